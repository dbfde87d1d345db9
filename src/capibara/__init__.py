"""
Capibara - capability graph and negotiation engine.

Every breaking change to a feature is declared as a named capability that
``replaces`` the one before it.  Client and backend exchange a fingerprint
and the enumerated set of capabilities they know, and each side resolves
that against its own validated graph to pick, per feature, the version of
the behavior to run.

Example:
    from capibara import CapabilityRecord, CapabilityRecordStore, build, resolve

    store = CapabilityRecordStore()
    store.register(CapabilityRecord(name="feed.page.v1"))
    store.register(CapabilityRecord(name="feed.cursor.v2", replaces="feed.page.v1"))
    graph = build(store.get_all())

    result = resolve({"feed.cursor.v2"}, graph)
    result.has_capability("feed.cursor.v2")   # True
    result.selected_version("feed.page.v1")   # "feed.cursor.v2"
"""

__version__ = "0.1.0"

from capibara.bootstrap import bootstrap
from capibara.config import CapibaraConfig, get_config, reset_config
from capibara.errors import (
    BranchingLineageError,
    CapibaraError,
    CycleError,
    DanglingReferenceError,
    DeclarationError,
    DuplicateNameError,
    IntrospectionDisabledError,
    NegotiationDecodeError,
    ResolutionAmbiguityError,
)
from capibara.fingerprint import (
    CapabilitySet,
    Fingerprint,
    FingerprintIndex,
    fingerprint,
    parse_fingerprint,
)
from capibara.graph import CapabilityGraph, build, build_from_store
from capibara.negotiation import (
    HASH_HEADER,
    LIST_HEADER,
    CapabilityNegotiator,
    IncomingCapabilities,
    ResolutionResult,
    attach_resolution,
    decode_headers,
    encode_headers,
    get_resolution,
    has_capability,
    resolve,
)
from capibara.registry import (
    CapabilityRecord,
    CapabilityRecordStore,
    RegistryDocument,
    RegistryLoader,
)
from capibara.types import CapabilityStatus, Environment, ResolutionSource, ViolationKind

__all__ = [
    "__version__",
    # Bootstrap / config
    "bootstrap",
    "CapibaraConfig",
    "get_config",
    "reset_config",
    # Errors
    "CapibaraError",
    "DeclarationError",
    "DuplicateNameError",
    "DanglingReferenceError",
    "CycleError",
    "BranchingLineageError",
    "NegotiationDecodeError",
    "ResolutionAmbiguityError",
    "IntrospectionDisabledError",
    # Registry
    "CapabilityRecord",
    "CapabilityRecordStore",
    "RegistryDocument",
    "RegistryLoader",
    # Graph
    "CapabilityGraph",
    "build",
    "build_from_store",
    # Fingerprint
    "CapabilitySet",
    "Fingerprint",
    "FingerprintIndex",
    "fingerprint",
    "parse_fingerprint",
    # Negotiation
    "HASH_HEADER",
    "LIST_HEADER",
    "CapabilityNegotiator",
    "IncomingCapabilities",
    "ResolutionResult",
    "attach_resolution",
    "decode_headers",
    "encode_headers",
    "get_resolution",
    "has_capability",
    "resolve",
    # Types
    "CapabilityStatus",
    "Environment",
    "ResolutionSource",
    "ViolationKind",
]
