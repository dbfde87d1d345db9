"""
Resolution of an advertised capability set against the local graph.

Policy:

- The effective set is the intersection of the advertised names with the
  names the local graph knows.  Unknown names are ignored (recorded in
  ``ResolutionResult.ignored``), never an error: a newer client may talk
  to an older backend.
- ``has_capability(name)`` is plain membership in the effective set.
- Per feature (lineage), the selected version is the most-derived
  capability of the chain present in the effective set.  Members missing
  further down the chain do not matter (``v1``, ``v3`` present selects
  ``v3``).  No member present selects the baseline, reported as ``None``.

``resolve()`` is pure and synchronous.  It raises only for malformed
input; an empty or entirely unknown set is a valid negotiation state.

Usage::

    from capibara.negotiation.resolver import resolve

    result = resolve({"feed.cursor.v2"}, graph)
    result.has_capability("feed.cursor.v2")      # True
    result.selected_version("feed.page.v1")      # "feed.cursor.v2"
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Union

from capibara.errors import NegotiationDecodeError
from capibara.fingerprint import CapabilitySet, Fingerprint, fingerprint
from capibara.graph.model import CapabilityGraph
from capibara.registry.schema import is_valid_name
from capibara.types import ResolutionSource


# ---------------------------------------------------------------------------
# Incoming artifact
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IncomingCapabilities:
    """What a peer advertised: its enumerated set plus, optionally, the
    fingerprint it computed over that set."""

    names: CapabilitySet
    fingerprint: Optional[Fingerprint] = None
    source: ResolutionSource = ResolutionSource.HEADER

    @classmethod
    def absent(cls) -> "IncomingCapabilities":
        return cls(names=CapabilitySet.empty(), source=ResolutionSource.ABSENT)

    @classmethod
    def degraded(cls) -> "IncomingCapabilities":
        return cls(names=CapabilitySet.empty(), source=ResolutionSource.DEGRADED)


Incoming = Union[IncomingCapabilities, Iterable[str], None]


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ResolutionResult:
    """Outcome of one negotiation event.  Never mutated after creation."""

    effective: CapabilitySet
    ignored: CapabilitySet
    source: ResolutionSource
    fingerprint: Optional[Fingerprint]
    _selections: Mapping[str, Optional[str]] = field(repr=False)
    _graph: CapabilityGraph = field(repr=False, compare=False)

    def has_capability(self, name: str) -> bool:
        return name in self.effective

    def selected_version(self, feature: str) -> Optional[str]:
        """Most-derived present capability in *feature*'s lineage.

        *feature* may be any member of the lineage.  Returns ``None`` for
        baseline behavior, including when *feature* is unknown locally.
        """
        if feature not in self._graph:
            return None
        return self._selections[self._graph.root(feature)]

    def is_baseline(self, feature: str) -> bool:
        return self.selected_version(feature) is None

    def selections(self) -> dict[str, Optional[str]]:
        """Selected version per feature, keyed by lineage root."""
        return dict(self._selections)

    @property
    def effective_fingerprint(self) -> Fingerprint:
        return fingerprint(self.effective)


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def _coerce(incoming: Incoming) -> IncomingCapabilities:
    if incoming is None:
        return IncomingCapabilities.absent()

    if isinstance(incoming, IncomingCapabilities):
        for name in incoming.names:
            if not is_valid_name(name):
                raise NegotiationDecodeError(f"Malformed capability name: {name!r}", name)
        if incoming.fingerprint is not None:
            expected = fingerprint(incoming.names)
            if incoming.fingerprint != expected:
                raise NegotiationDecodeError(
                    "Advertised fingerprint does not match the enumerated "
                    f"capability set ({incoming.fingerprint} != {expected})",
                    incoming.fingerprint.encode(),
                )
        return incoming

    if isinstance(incoming, (str, bytes)):
        raise NegotiationDecodeError(
            "Expected a collection of capability names, got a bare string",
            incoming,
        )

    try:
        names = list(incoming)
    except TypeError as exc:
        raise NegotiationDecodeError(
            f"Expected a collection of capability names, got {type(incoming).__name__}",
            incoming,
        ) from exc

    for name in names:
        if not is_valid_name(name):
            raise NegotiationDecodeError(f"Malformed capability name: {name!r}", name)

    return IncomingCapabilities(
        names=CapabilitySet(names), source=ResolutionSource.EXPLICIT
    )


def select_versions(
    effective: CapabilitySet, graph: CapabilityGraph
) -> dict[str, Optional[str]]:
    """Pick the most-derived present member of every lineage."""
    selections: dict[str, Optional[str]] = {}
    for root, chain in graph.features().items():
        selected: Optional[str] = None
        for name in chain:
            if name in effective:
                selected = name
        selections[root] = selected
    return selections


def resolve(incoming: Incoming, graph: CapabilityGraph) -> ResolutionResult:
    """Resolve an advertised capability set against *graph*.

    Args:
        incoming: ``None`` (nothing presented), a raw collection of names,
            or an ``IncomingCapabilities`` decoded from the wire.
        graph: The local, validated capability graph.

    Raises:
        NegotiationDecodeError: If *incoming* is malformed.
    """
    advertised = _coerce(incoming)
    effective = CapabilitySet(advertised.names & graph.names)
    ignored = CapabilitySet(advertised.names - graph.names)

    return ResolutionResult(
        effective=effective,
        ignored=ignored,
        source=advertised.source,
        fingerprint=advertised.fingerprint,
        _selections=MappingProxyType(select_versions(effective, graph)),
        _graph=graph,
    )
