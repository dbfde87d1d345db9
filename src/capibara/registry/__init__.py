"""
Capability record store: declaration models, YAML loading and the
in-memory store the graph is built from.

Public API::

    from capibara.registry import (
        CapabilityRecord,
        RegistryDocument,
        CapabilityRecordStore,
        RegistryLoader,
    )
"""

from capibara.registry.loader import RegistryLoader
from capibara.registry.schema import (
    NAME_PATTERN,
    CapabilityRecord,
    RegistryDocument,
    is_valid_name,
    name_sort_key,
)
from capibara.registry.store import CapabilityRecordStore

__all__ = [
    "NAME_PATTERN",
    "CapabilityRecord",
    "RegistryDocument",
    "is_valid_name",
    "name_sort_key",
    "CapabilityRecordStore",
    "RegistryLoader",
]
