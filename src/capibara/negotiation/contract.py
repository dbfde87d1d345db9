"""
Wire encoding of the capability negotiation artifact.

Two header-like fields, transport-agnostic (HTTP headers, gRPC metadata,
message envelope fields):

- ``x-capability-hash``: the versioned fingerprint (``v1:<hex>``).
- ``x-capabilities``: the enumerated set, comma-separated, byte-wise sorted.

Absence semantics:

- neither field present -> empty set (baseline for every feature);
- enumerated set present -> that set, checked against the hash if both
  are present;
- hash only -> looked up among known sets; an unknown hash is treated as
  absent, since a fingerprint cannot be inverted.

Malformed values raise ``NegotiationDecodeError``; the negotiator turns
that into an empty set.  Field names are matched case-insensitively;
bytes names and values (raw ASGI headers) are decoded as latin-1.

Usage::

    from capibara.negotiation.contract import decode_headers, encode_headers

    headers = encode_headers(graph.active_set())
    incoming = decode_headers(request.headers)
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Optional

from capibara.errors import NegotiationDecodeError
from capibara.fingerprint import CapabilitySet, FingerprintIndex, fingerprint, parse_fingerprint
from capibara.negotiation.resolver import IncomingCapabilities
from capibara.types import ResolutionSource

logger = logging.getLogger(__name__)

HASH_HEADER = "x-capability-hash"
LIST_HEADER = "x-capabilities"
LIST_DELIMITER = ","


def encode_capability_list(names: Iterable[str]) -> str:
    return LIST_DELIMITER.join(CapabilitySet(names).ordered())


def parse_capability_list(value: str) -> CapabilitySet:
    """Parse the enumerated-set field.

    Surrounding whitespace around entries is ignored; an empty or blank
    value is the empty set.

    Raises:
        NegotiationDecodeError: On a malformed or duplicated name.
    """
    if not isinstance(value, str):
        raise NegotiationDecodeError(
            f"Capability list must be a string, got {type(value).__name__}", value
        )
    if not value.strip():
        return CapabilitySet.empty()

    entries = [entry.strip() for entry in value.split(LIST_DELIMITER)]
    try:
        return CapabilitySet.from_names(entries)
    except ValueError as exc:
        raise NegotiationDecodeError(str(exc), value) from exc


def encode_headers(names: Iterable[str], include_list: bool = True) -> dict[str, str]:
    """Encode a capability set as outbound negotiation fields.

    Args:
        names: The locally active capability names.
        include_list: Also send the enumerated set.  Without it the
            receiver can only resolve the hash if it already knows the set.

    Raises:
        ValueError: If a name is malformed.
    """
    capability_set = CapabilitySet(names)
    headers = {HASH_HEADER: fingerprint(capability_set).encode()}
    if include_list:
        headers[LIST_HEADER] = encode_capability_list(capability_set)
    return headers


def _text(raw: object) -> Optional[str]:
    # Raw ASGI header pairs arrive as latin-1 bytes.
    if isinstance(raw, bytes):
        return raw.decode("latin-1")
    if isinstance(raw, str):
        return raw
    return None


def _lookup(headers: Mapping[str, str], field_name: str) -> Optional[str]:
    found: Optional[str] = None
    for raw_key, raw_value in headers.items():
        key = _text(raw_key)
        if key is None:
            logger.debug(
                "Ignoring header with non-text name %r while looking up '%s'",
                raw_key,
                field_name,
            )
            continue
        if key.lower() != field_name:
            continue
        value = _text(raw_value)
        if value is None:
            raise NegotiationDecodeError(
                f"Value of '{field_name}' must be text, got {type(raw_value).__name__}",
                raw_value,
            )
        if found is not None and found != value:
            raise NegotiationDecodeError(
                f"Conflicting values for '{field_name}'", value
            )
        found = value
    return found


def decode_headers(
    headers: Optional[Mapping[str, str]],
    index: Optional[FingerprintIndex] = None,
) -> IncomingCapabilities:
    """Decode the negotiation fields from a header mapping.

    Args:
        headers: Inbound header mapping (``str`` or latin-1 ``bytes`` keys
            and values), or None when the transport has none.
        index: Known capability sets, for resolving a hash-only value.

    Raises:
        NegotiationDecodeError: If a present field is malformed.
    """
    if not headers:
        return IncomingCapabilities.absent()

    hash_value = _lookup(headers, HASH_HEADER)
    list_value = _lookup(headers, LIST_HEADER)

    if hash_value is None and list_value is None:
        return IncomingCapabilities.absent()

    advertised = parse_fingerprint(hash_value) if hash_value is not None else None

    if list_value is not None:
        return IncomingCapabilities(
            names=parse_capability_list(list_value),
            fingerprint=advertised,
            source=ResolutionSource.HEADER,
        )

    known = index.lookup(advertised) if index is not None else None
    if known is None:
        logger.debug(
            "Hash-only capability advertisement %s is not a known set, "
            "treating as absent",
            hash_value,
        )
        return IncomingCapabilities.absent()

    return IncomingCapabilities(
        names=known,
        fingerprint=advertised,
        source=ResolutionSource.HASH_LOOKUP,
    )
