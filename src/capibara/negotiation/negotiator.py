"""
Process-level negotiation façade.

``CapabilityNegotiator`` publishes one validated graph, the locally active
capability set and the index of known fingerprints as a single immutable
snapshot.  Readers never lock: they take the snapshot reference once per
call.  ``reload()`` builds a completely new graph and only then swaps the
snapshot, so an in-flight resolution never sees a half-updated graph and
a broken reload leaves the previous graph serving.

Inbound negotiation never fails a request: anything undecodable is logged,
counted and resolved as the empty set.

Usage::

    negotiator = CapabilityNegotiator(build(store.get_all()))

    # client side
    outbound = negotiator.outbound_headers()

    # backend side
    result = negotiator.resolve_headers(request.headers)
    attach_resolution(request.scope, result)
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from capibara.config import CapibaraConfig, get_config
from capibara.errors import IntrospectionDisabledError, NegotiationDecodeError
from capibara.fingerprint import CapabilitySet, FingerprintIndex
from capibara.graph.builder import build
from capibara.graph.model import CapabilityGraph
from capibara.negotiation.contract import decode_headers, encode_headers
from capibara.negotiation.resolver import (
    Incoming,
    IncomingCapabilities,
    ResolutionResult,
    resolve,
)
from capibara.otel import emit_decode_failure, emit_resolution
from capibara.registry.schema import CapabilityRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Snapshot:
    graph: CapabilityGraph
    active: CapabilitySet
    index: FingerprintIndex


def _active_for(graph: CapabilityGraph, active: Optional[Iterable[str]]) -> CapabilitySet:
    if active is None:
        return graph.active_set()
    active_set = CapabilitySet(active)
    unknown = active_set - graph.names
    if unknown:
        raise ValueError(
            f"Active capabilities not declared in the graph: {sorted(unknown)}"
        )
    return active_set


class CapabilityNegotiator:
    """Owns the published graph and answers negotiation requests.

    Args:
        graph: A graph returned by ``build()``.
        active: Capabilities this process supports; defaults to every
            declared capability.
        known_sets: Capability sets of peer builds whose hash-only
            advertisements should be resolvable.
        config: Configuration; defaults to ``get_config()``.
    """

    def __init__(
        self,
        graph: CapabilityGraph,
        active: Optional[Iterable[str]] = None,
        known_sets: Iterable[Iterable[str]] = (),
        config: Optional[CapibaraConfig] = None,
    ) -> None:
        self._config = config or get_config()
        self._write_lock = threading.Lock()
        active_set = _active_for(graph, active)
        self._snapshot = _Snapshot(
            graph=graph,
            active=active_set,
            index=FingerprintIndex([active_set, *known_sets]),
        )

    # -- published state ---------------------------------------------------

    @property
    def graph(self) -> CapabilityGraph:
        return self._snapshot.graph

    @property
    def active_set(self) -> CapabilitySet:
        return self._snapshot.active

    # -- outbound ------------------------------------------------------------

    def get_capability_hash(self) -> str:
        """Encoded fingerprint of the locally active set."""
        return self._snapshot.active.fingerprint().encode()

    def outbound_headers(self, include_list: bool = True) -> dict[str, str]:
        """Negotiation fields to attach to an outbound call."""
        return encode_headers(self._snapshot.active, include_list=include_list)

    # -- inbound -------------------------------------------------------------

    def resolve(self, incoming: Incoming) -> ResolutionResult:
        """Resolve an already-decoded or raw incoming set.

        Malformed input degrades to the empty set; never raises for it.
        """
        snapshot = self._snapshot
        try:
            result = resolve(incoming, snapshot.graph)
        except NegotiationDecodeError as exc:
            emit_decode_failure(exc)
            result = resolve(IncomingCapabilities.degraded(), snapshot.graph)
        emit_resolution(result)
        return result

    def resolve_headers(self, headers: Optional[Mapping[str, str]]) -> ResolutionResult:
        """Decode the negotiation fields of *headers* and resolve them.

        Missing fields resolve to baseline; malformed ones are treated as
        missing.
        """
        snapshot = self._snapshot
        try:
            incoming = decode_headers(headers, snapshot.index)
            result = resolve(incoming, snapshot.graph)
        except NegotiationDecodeError as exc:
            emit_decode_failure(exc)
            result = resolve(IncomingCapabilities.degraded(), snapshot.graph)
        emit_resolution(result)
        return result

    # -- lifecycle -------------------------------------------------------

    def reload(
        self,
        records: Iterable[CapabilityRecord],
        active: Optional[Iterable[str]] = None,
    ) -> CapabilityGraph:
        """Rebuild the graph from a full record snapshot and publish it.

        Raises:
            DeclarationError: The new records are invalid; the previously
                published graph keeps serving.
        """
        with self._write_lock:
            graph = build(records)
            active_set = _active_for(graph, active)
            index = FingerprintIndex([active_set])
            self._snapshot = _Snapshot(graph=graph, active=active_set, index=index)
        logger.info(
            "Published reloaded capability graph: capabilities=%d fingerprint=%s",
            len(graph),
            graph.fingerprint().encode(),
        )
        return graph

    def register_known_set(self, names: Iterable[str]) -> None:
        """Make a peer build's hash-only advertisement resolvable."""
        with self._write_lock:
            current = self._snapshot
            self._snapshot = _Snapshot(
                graph=current.graph,
                active=current.active,
                index=current.index.with_sets([names]),
            )

    # -- introspection -----------------------------------------------------

    def export(self) -> dict[str, Any]:
        """Graph export plus the active fingerprint, for capability viewers.

        Raises:
            IntrospectionDisabledError: When the configuration withholds it
                (production, unless explicitly enabled).
        """
        if not self._config.introspection_enabled:
            raise IntrospectionDisabledError(
                f"Capability introspection is disabled in "
                f"{self._config.environment.value}"
            )
        snapshot = self._snapshot
        payload = snapshot.graph.export()
        payload["activeFingerprint"] = snapshot.active.fingerprint().encode()
        return payload
