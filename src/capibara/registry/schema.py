"""
Pydantic v2 models for capability registry YAML format.

A registry document declares every capability a codebase knows about.
Each record is one breaking change, linked to the capability it
supersedes through ``replaces``.

All models use ``extra="forbid"`` to reject unknown keys at parse time.

Usage::

    from capibara.registry.schema import RegistryDocument
    import yaml

    with open("capabilities.yaml") as fh:
        raw = yaml.safe_load(fh)
    document = RegistryDocument.model_validate(raw)
"""

from __future__ import annotations

import re
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from capibara.types import CapabilityStatus

# Dotted identifier.  Excludes NUL (fingerprint separator) and ``,``
# (list header delimiter).
NAME_PATTERN = r"^[A-Za-z0-9_-]+(?:\.[A-Za-z0-9_-]+)*$"
NAME_RE = re.compile(NAME_PATTERN)

SEMVER_PATTERN = r"^\d+\.\d+\.\d+(?:[-+][0-9A-Za-z.+-]+)?$"


def is_valid_name(name: object) -> bool:
    """Return True if *name* is a well-formed capability name."""
    return isinstance(name, str) and NAME_RE.fullmatch(name) is not None


def name_sort_key(name: str) -> bytes:
    """Byte-wise ordering key, independent of locale collation."""
    return name.encode("utf-8")


# ---------------------------------------------------------------------------
# Capability record
# ---------------------------------------------------------------------------


class CapabilityRecord(BaseModel):
    """One declared structural contract.

    ``owner`` and ``introduced_in`` are informational; resolution only
    ever looks at ``name`` and ``replaces``.
    """

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    name: str = Field(
        ..., pattern=NAME_PATTERN, description="Globally unique dotted name"
    )
    owner: str = Field("", description="Owning team or person")
    introduced_in: str = Field(
        "0.0.0",
        alias="introducedIn",
        pattern=SEMVER_PATTERN,
        description="Semantic version that introduced the capability",
    )
    replaces: Optional[str] = Field(
        None,
        pattern=NAME_PATTERN,
        description="Name of the single capability this one supersedes",
    )
    status: CapabilityStatus = Field(
        CapabilityStatus.ACTIVE,
        description="Lifecycle flag; deprecated names stay resolvable",
    )
    description: Optional[str] = Field(None)

    @property
    def is_root(self) -> bool:
        return self.replaces is None

    def to_export(self) -> dict[str, Optional[str]]:
        """Serialize for the introspection export."""
        return {
            "name": self.name,
            "introducedIn": self.introduced_in,
            "replaces": self.replaces,
            "status": self.status.value,
            "owner": self.owner,
        }


# ---------------------------------------------------------------------------
# Top-level document
# ---------------------------------------------------------------------------


class RegistryDocument(BaseModel):
    """
    Root model for a capability registry YAML file.

    Duplicate names are not rejected here; they are reported together
    with every other structural violation by the graph builder.
    """

    model_config = ConfigDict(extra="forbid")

    schema_version: str = Field(
        ..., min_length=1, description="Document schema version (e.g. 0.1.0)"
    )
    contract_type: Literal["capability_registry"] = Field(
        "capability_registry", description="Document type discriminator"
    )
    capabilities: list[CapabilityRecord] = Field(
        default_factory=list,
        description="Every declared capability",
    )
    description: Optional[str] = Field(None)
