"""
Deterministic fingerprinting of capability sets.

A fingerprint is a cheap equality and cache key for a set of capability
names.  It is not invertible; whoever needs the set itself must receive
the enumerated names (see ``capibara.negotiation.contract``).

Algorithm, version 1 (must never be reordered or parametrized without
bumping ``FINGERPRINT_VERSION``):

1. encode each member name as UTF-8;
2. sort the encoded names byte-wise;
3. join them with a single NUL byte (not permitted inside names);
4. SHA-256 the result;
5. encode as ``v1:<lowercase hex digest>``.

The empty set hashes the empty byte string and is a valid fingerprint.

Usage::

    from capibara.fingerprint import CapabilitySet, fingerprint, parse_fingerprint

    fp = fingerprint(["feed.cursor.v2", "feed.page.v1"])
    header_value = fp.encode()            # "v1:..."
    assert parse_fingerprint(header_value) == fp
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from capibara.errors import NegotiationDecodeError
from capibara.registry.schema import is_valid_name, name_sort_key

FINGERPRINT_VERSION = 1
SUPPORTED_VERSIONS = frozenset({1})
SEPARATOR = b"\x00"

_DIGEST_HEX_LENGTH = 64
_ENCODED_RE = re.compile(r"^v(\d{1,4}):([0-9a-f]+)$")


# ---------------------------------------------------------------------------
# Capability set
# ---------------------------------------------------------------------------


class CapabilitySet(frozenset):
    """Immutable set of capability names.

    Membership is the only identity: construction order and duplicates in
    a lenient constructor call are irrelevant.  Use ``from_names()`` where
    duplicates or malformed names must be rejected.
    """

    @classmethod
    def from_names(cls, names: Iterable[str]) -> "CapabilitySet":
        """Build a set, rejecting duplicate members and malformed names.

        Raises:
            ValueError: On a duplicate member or a malformed name.
        """
        seen: set[str] = set()
        for name in names:
            if not is_valid_name(name):
                raise ValueError(f"Malformed capability name: {name!r}")
            if name in seen:
                raise ValueError(f"Duplicate capability name in set: {name}")
            seen.add(name)
        return cls(seen)

    @classmethod
    def empty(cls) -> "CapabilitySet":
        return cls()

    def ordered(self) -> list[str]:
        """Members in byte-wise order."""
        return sorted(self, key=name_sort_key)

    def fingerprint(self) -> "Fingerprint":
        return fingerprint(self)

    def __repr__(self) -> str:
        return f"CapabilitySet({self.ordered()!r})"


# ---------------------------------------------------------------------------
# Fingerprint value
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Fingerprint:
    """Versioned digest of a capability set's membership."""

    version: int
    digest: str

    def encode(self) -> str:
        """Textual wire encoding, ``v<version>:<hex digest>``."""
        return f"v{self.version}:{self.digest}"

    def __str__(self) -> str:
        return self.encode()


def fingerprint(names: Iterable[str]) -> Fingerprint:
    """Compute the version-1 fingerprint of a set of names.

    Duplicates in *names* collapse; order is irrelevant.

    Raises:
        ValueError: If a name is malformed.  The NUL separator in
            particular may never appear inside a hashed name.
    """
    keys: set[bytes] = set()
    for name in names:
        if not is_valid_name(name):
            raise ValueError(f"Malformed capability name: {name!r}")
        keys.add(name_sort_key(name))
    digest = hashlib.sha256(SEPARATOR.join(sorted(keys))).hexdigest()
    return Fingerprint(version=FINGERPRINT_VERSION, digest=digest)


def parse_fingerprint(value: str) -> Fingerprint:
    """Decode the textual form of a fingerprint.

    Raises:
        NegotiationDecodeError: If *value* is not a well-formed fingerprint
            of a supported algorithm version.
    """
    if not isinstance(value, str):
        raise NegotiationDecodeError(
            f"Fingerprint must be a string, got {type(value).__name__}", value
        )
    match = _ENCODED_RE.fullmatch(value.strip())
    if match is None:
        raise NegotiationDecodeError(f"Malformed fingerprint: {value!r}", value)

    version = int(match.group(1))
    digest = match.group(2)
    if version not in SUPPORTED_VERSIONS:
        raise NegotiationDecodeError(
            f"Unsupported fingerprint version {version}", value
        )
    if len(digest) != _DIGEST_HEX_LENGTH:
        raise NegotiationDecodeError(
            f"Fingerprint digest must be {_DIGEST_HEX_LENGTH} hex characters, "
            f"got {len(digest)}",
            value,
        )
    return Fingerprint(version=version, digest=digest)


# ---------------------------------------------------------------------------
# Known-set index
# ---------------------------------------------------------------------------


class FingerprintIndex:
    """Maps fingerprints of known capability sets back to the sets.

    Lets a hash-only advertisement from a known peer build be resolved.
    Instances are immutable; ``with_sets()`` returns a new index.
    A set holding a malformed name raises ``ValueError``.
    """

    def __init__(self, sets: Iterable[Iterable[str]] = ()) -> None:
        entries: dict[Fingerprint, CapabilitySet] = {}
        for names in sets:
            capability_set = CapabilitySet(names)
            entries[capability_set.fingerprint()] = capability_set
        self._entries: Mapping[Fingerprint, CapabilitySet] = entries

    def lookup(self, value: Fingerprint) -> Optional[CapabilitySet]:
        return self._entries.get(value)

    def with_sets(self, sets: Iterable[Iterable[str]]) -> "FingerprintIndex":
        """Return a new index holding this index's sets plus *sets*."""
        return FingerprintIndex([*self._entries.values(), *sets])

    def __contains__(self, value: object) -> bool:
        return value in self._entries

    def __len__(self) -> int:
        return len(self._entries)
