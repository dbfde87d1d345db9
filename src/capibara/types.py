"""
Core enums shared across capibara modules.

String-valued enums so values round-trip through YAML, span attributes
and the introspection export without conversion.
"""

from __future__ import annotations

from enum import Enum


class CapabilityStatus(str, Enum):
    """Lifecycle flag of a declared capability.

    Deprecation never removes a name: fingerprints computed against an
    older registry snapshot stay interpretable.
    """

    ACTIVE = "active"
    DEPRECATED = "deprecated"


class ViolationKind(str, Enum):
    """Class of structural violation found while building a graph."""

    DUPLICATE_NAME = "duplicate_name"
    DANGLING_REFERENCE = "dangling_reference"
    CYCLE = "cycle"
    BRANCHING_LINEAGE = "branching_lineage"


class ResolutionSource(str, Enum):
    """Where the incoming capability set of a resolution came from."""

    EXPLICIT = "explicit"  # raw set handed to resolve() directly
    HEADER = "header"  # enumerated set carried on the wire
    HASH_LOOKUP = "hash_lookup"  # hash-only header matched a known set
    ABSENT = "absent"  # nothing presented
    DEGRADED = "degraded"  # presented but undecodable, treated as absent


class Environment(str, Enum):
    """Deployment tier, used to gate the introspection export."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


CAPABILITY_STATUS_VALUES = [s.value for s in CapabilityStatus]
VIOLATION_KIND_VALUES = [k.value for k in ViolationKind]
RESOLUTION_SOURCE_VALUES = [s.value for s in ResolutionSource]
