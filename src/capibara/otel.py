"""
OTel span event and counter helpers for graph builds and negotiation.

Log + OTel span event on the current span.  Events are only added when the
current span is recording, and counters go through the OpenTelemetry
metrics API (the global provider, or one passed to ``set_meter_provider()``),
so both are no-ops until the host process configures an SDK.

Usage::

    from capibara.otel import emit_resolution, emit_decode_failure

    emit_resolution(result)
    emit_decode_failure(error)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from opentelemetry import metrics
from opentelemetry import trace as otel_trace

if TYPE_CHECKING:
    from capibara.errors import DeclarationError, NegotiationDecodeError
    from capibara.graph.model import CapabilityGraph
    from capibara.negotiation.resolver import ResolutionResult

logger = logging.getLogger(__name__)

DECODE_ERRORS_METRIC = "capibara.negotiation.decode_errors"
RESOLUTIONS_METRIC = "capibara.negotiation.resolutions"
IGNORED_NAMES_METRIC = "capibara.negotiation.ignored_names"


class _Instruments:
    """Counters bound to one meter provider."""

    def __init__(self, meter_provider: Optional[metrics.MeterProvider] = None) -> None:
        meter = metrics.get_meter("capibara", meter_provider=meter_provider)
        self.decode_errors = meter.create_counter(
            DECODE_ERRORS_METRIC,
            unit="1",
            description="Capability artifacts that could not be decoded and were treated as absent",
        )
        self.resolutions = meter.create_counter(
            RESOLUTIONS_METRIC,
            unit="1",
            description="Completed capability resolutions by source",
        )
        self.ignored_names = meter.create_counter(
            IGNORED_NAMES_METRIC,
            unit="1",
            description="Advertised capability names unknown to the local graph",
        )


_instruments = _Instruments()


def set_meter_provider(meter_provider: Optional[metrics.MeterProvider]) -> None:
    """Record counters on *meter_provider* instead of the global provider.

    ``None`` goes back to the global provider.  Lets a host that owns its
    own ``MeterProvider`` (without installing it globally) collect them.
    """
    global _instruments
    _instruments = _Instruments(meter_provider)


def add_span_event(
    name: str, attributes: dict[str, str | int | float | bool]
) -> None:
    """Add an event to the current OTel span if it is recording.

    Args:
        name: Event name (e.g. ``"capibara.graph.built"``).
        attributes: Flat dict of span event attributes.
    """
    span = otel_trace.get_current_span()
    if span and span.is_recording():
        span.add_event(name=name, attributes=attributes)


def emit_graph_built(graph: CapabilityGraph) -> None:
    """Emit ``capibara.graph.built`` after a successful build."""
    attrs: dict[str, str | int | float | bool] = {
        "capibara.capability_count": len(graph),
        "capibara.root_count": len(graph.roots()),
        "capibara.fingerprint": graph.fingerprint().encode(),
    }
    logger.debug(
        "Capability graph built: capabilities=%d roots=%d fingerprint=%s",
        attrs["capibara.capability_count"],
        attrs["capibara.root_count"],
        attrs["capibara.fingerprint"],
    )
    add_span_event("capibara.graph.built", attrs)


def emit_declaration_error(error: DeclarationError) -> None:
    """Emit ``capibara.graph.invalid`` for a failed build."""
    attrs: dict[str, str | int | float | bool] = {
        "capibara.violation_kind": error.kind.value,
        "capibara.offender_count": len(error.offenders),
    }

    # First 3 offenders for quick filtering
    for i, offender in enumerate(error.offenders[:3]):
        attrs[f"capibara.offender.{i}"] = offender

    logger.error(
        "Capability graph invalid (%s): %s", error.kind.value, error
    )
    add_span_event("capibara.graph.invalid", attrs)


def emit_resolution(result: ResolutionResult) -> None:
    """Emit ``capibara.negotiation.resolved`` and count the resolution."""
    attrs: dict[str, str | int | float | bool] = {
        "capibara.source": result.source.value,
        "capibara.effective_count": len(result.effective),
        "capibara.ignored_count": len(result.ignored),
    }
    if result.fingerprint is not None:
        attrs["capibara.fingerprint"] = result.fingerprint.encode()

    _instruments.resolutions.add(1, {"source": result.source.value})
    if result.ignored:
        _instruments.ignored_names.add(len(result.ignored))
        logger.debug(
            "Ignoring capabilities unknown to local graph: %s",
            sorted(result.ignored),
        )

    logger.debug(
        "Capabilities resolved: source=%s effective=%d ignored=%d",
        result.source.value,
        len(result.effective),
        len(result.ignored),
    )
    add_span_event("capibara.negotiation.resolved", attrs)


def emit_decode_failure(error: NegotiationDecodeError) -> None:
    """Emit ``capibara.negotiation.degraded`` and count the failure.

    Decode failures degrade to baseline behavior, so they are logged at
    WARNING and never raised.
    """
    attrs: dict[str, str | int | float | bool] = {
        "capibara.error": str(error),
    }
    _instruments.decode_errors.add(1)
    logger.warning(
        "Undecodable capability artifact, treating as absent: %s", error
    )
    add_span_event("capibara.negotiation.degraded", attrs)
