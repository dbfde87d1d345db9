"""
Capability negotiation: resolution, wire contract and request context.

Public API::

    from capibara.negotiation import (
        # Resolution
        IncomingCapabilities,
        ResolutionResult,
        resolve,
        # Wire contract
        HASH_HEADER,
        LIST_HEADER,
        decode_headers,
        encode_headers,
        # Request context
        attach_resolution,
        get_resolution,
        has_capability,
        # Façade
        CapabilityNegotiator,
    )
"""

from capibara.negotiation.context import (
    RESOLUTION_KEY,
    attach_resolution,
    get_resolution,
    has_capability,
    selected_version,
)
from capibara.negotiation.contract import (
    HASH_HEADER,
    LIST_HEADER,
    decode_headers,
    encode_headers,
    parse_capability_list,
)
from capibara.negotiation.negotiator import CapabilityNegotiator
from capibara.negotiation.resolver import (
    IncomingCapabilities,
    ResolutionResult,
    resolve,
    select_versions,
)

__all__ = [
    # Resolution
    "IncomingCapabilities",
    "ResolutionResult",
    "resolve",
    "select_versions",
    # Wire contract
    "HASH_HEADER",
    "LIST_HEADER",
    "decode_headers",
    "encode_headers",
    "parse_capability_list",
    # Request context
    "RESOLUTION_KEY",
    "attach_resolution",
    "get_resolution",
    "has_capability",
    "selected_version",
    # Façade
    "CapabilityNegotiator",
]
