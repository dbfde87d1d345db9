"""
YAML registry loader.

Parses a capability registry file, validates it against
``RegistryDocument`` and hands the declared records to a fresh
``CapabilityRecordStore``.  Parsed documents are cached per file version:
the key is the resolved path together with the file's modification time
and size, so an edited registry is always re-read and re-validated.

Usage::

    from capibara.registry.loader import RegistryLoader

    loader = RegistryLoader()
    document = loader.load(Path("capabilities.yaml"))
    store = loader.load_store(Path("capabilities.yaml"))
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import ClassVar, Union

import yaml

from capibara.registry.schema import RegistryDocument
from capibara.registry.store import CapabilityRecordStore

logger = logging.getLogger(__name__)

# (resolved path, st_mtime_ns, st_size)
_CacheKey = tuple[str, int, int]


def _parse(raw: object, origin: str) -> RegistryDocument:
    if not isinstance(raw, dict):
        raise TypeError(
            f"Expected YAML mapping at root of {origin}, got {type(raw).__name__}"
        )
    return RegistryDocument.model_validate(raw)


class RegistryLoader:
    """Loads capability registry documents from YAML files."""

    _cache: ClassVar[dict[_CacheKey, RegistryDocument]] = {}

    @classmethod
    def clear_cache(cls) -> None:
        """Forget every parsed registry (useful in tests)."""
        cls._cache.clear()

    def load(self, path: Union[str, Path]) -> RegistryDocument:
        """Load and validate the registry at *path*.

        Raises:
            FileNotFoundError: If the file does not exist.
            TypeError: If the YAML root is not a mapping.
            yaml.YAMLError: If the file contains invalid YAML.
            pydantic.ValidationError: If the YAML does not match the schema.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Capability registry not found: {path}")

        resolved = path.resolve()
        stat = resolved.stat()
        key = (str(resolved), stat.st_mtime_ns, stat.st_size)
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Capability registry unchanged, using parsed copy: %s", resolved)
            return cached

        with open(resolved, encoding="utf-8") as fh:
            document = _parse(yaml.safe_load(fh), str(resolved))

        # Older versions of the same file can never be hit again.
        for stale in [k for k in self._cache if k[0] == key[0]]:
            del self._cache[stale]
        self._cache[key] = document

        logger.debug(
            "Loaded capability registry: path=%s, schema_version=%s, capabilities=%d",
            resolved,
            document.schema_version,
            len(document.capabilities),
        )
        return document

    def load_from_string(self, yaml_str: str) -> RegistryDocument:
        """Validate a registry given as YAML text.  Never cached.

        Raises:
            TypeError: If the YAML root is not a mapping.
            pydantic.ValidationError: If the YAML does not match the schema.
        """
        return _parse(yaml.safe_load(yaml_str), "<string>")

    def load_store(self, path: Union[str, Path]) -> CapabilityRecordStore:
        """Load a registry file and populate a fresh record store from it.

        Raises:
            DuplicateNameError: If the document declares a name twice.
        """
        document = self.load(path)
        return CapabilityRecordStore(document.capabilities)
