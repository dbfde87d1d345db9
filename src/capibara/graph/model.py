"""
Validated, immutable capability graph.

Nodes are capability records; edges follow ``replaces`` from a newer
capability to the one it supersedes.  Because every record replaces at
most one predecessor and the builder rejects branching, every node sits
on exactly one linear chain running from a root (oldest) to a tip
(most derived).

Instances are only created by ``capibara.graph.builder.build()``; never
construct one directly, since the constructor does not validate.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Iterator, Optional

from capibara.fingerprint import CapabilitySet, Fingerprint, fingerprint
from capibara.registry.schema import CapabilityRecord, name_sort_key


class CapabilityGraph:
    """Read-only view over a validated set of capability records.

    Safe to share between threads: nothing mutates after construction.
    """

    def __init__(self, records: tuple[CapabilityRecord, ...]) -> None:
        self._records = records
        self._by_name = MappingProxyType({r.name: r for r in records})

        successors: dict[str, list[str]] = {r.name: [] for r in records}
        for record in records:
            if record.replaces is not None:
                successors[record.replaces].append(record.name)
        self._successors = MappingProxyType(
            {name: frozenset(names) for name, names in successors.items()}
        )
        self._names = CapabilitySet(self._by_name)
        self._roots = tuple(r.name for r in records if r.replaces is None)
        self._fingerprint = fingerprint(self._names)
        self._features = MappingProxyType(
            {root: tuple(self.chain(root)) for root in self._roots}
        )

    # -- lookup ---------------------------------------------------------

    @property
    def names(self) -> CapabilitySet:
        return self._names

    @property
    def records(self) -> tuple[CapabilityRecord, ...]:
        """All records in byte-wise name order."""
        return self._records

    def get(self, name: str) -> Optional[CapabilityRecord]:
        return self._by_name.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[CapabilityRecord]:
        return iter(self._records)

    def _require(self, name: str) -> CapabilityRecord:
        record = self._by_name.get(name)
        if record is None:
            raise KeyError(f"Unknown capability: {name}")
        return record

    # -- traversal --------------------------------------------------------

    def lineage(self, name: str) -> list[str]:
        """Chain from the root of *name*'s lineage down to *name*, oldest first.

        Raises:
            KeyError: If *name* is not in the graph.
        """
        record = self._require(name)
        chain = [record.name]
        while record.replaces is not None:
            record = self._by_name[record.replaces]
            chain.append(record.name)
        chain.reverse()
        return chain

    def successors(self, name: str) -> frozenset[str]:
        """Names whose ``replaces`` points at *name* (direct replacements)."""
        self._require(name)
        return self._successors[name]

    def successor(self, name: str) -> Optional[str]:
        """The single direct replacement of *name*, or None for a tip."""
        successors = self.successors(name)
        return next(iter(successors)) if successors else None

    def root(self, name: str) -> str:
        """Oldest capability in *name*'s lineage; identifies the feature."""
        return self.lineage(name)[0]

    def depth(self, name: str) -> int:
        """Distance from the root; roots have depth 0."""
        return len(self.lineage(name)) - 1

    def chain(self, name: str) -> list[str]:
        """Full lineage containing *name*, root first, tip last."""
        chain = self.lineage(name)
        tip = self.successor(chain[-1])
        while tip is not None:
            chain.append(tip)
            tip = self.successor(tip)
        return chain

    def roots(self) -> tuple[str, ...]:
        """Root capability names in byte-wise order."""
        return self._roots

    def features(self) -> dict[str, list[str]]:
        """Every lineage keyed by its root."""
        return {root: list(chain) for root, chain in self._features.items()}

    # -- fingerprint / export ---------------------------------------------

    def active_set(self) -> CapabilitySet:
        """Every declared name, deprecated ones included."""
        return self._names

    def fingerprint(self) -> Fingerprint:
        return self._fingerprint

    def export(self) -> dict[str, Any]:
        """Read-only introspection payload for capability viewers."""
        return {
            "fingerprint": self._fingerprint.encode(),
            "capabilities": [record.to_export() for record in self._records],
        }

    def __repr__(self) -> str:
        return (
            f"CapabilityGraph(capabilities={len(self._records)}, "
            f"roots={len(self._roots)})"
        )


def sort_records(records: list[CapabilityRecord]) -> tuple[CapabilityRecord, ...]:
    """Order records byte-wise by name for deterministic construction."""
    return tuple(sorted(records, key=lambda r: name_sort_key(r.name)))
