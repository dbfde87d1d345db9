"""
In-memory capability record store.

The store is an explicit object owned by the process bootstrap and passed
by reference to the graph builder; there is no module-level registry.
Inserts are atomic and serialized (single writer).  There is no removal
or rename API: a name, once stored, stays.

Usage::

    from capibara.registry.store import CapabilityRecordStore
    from capibara.registry.schema import CapabilityRecord

    store = CapabilityRecordStore()
    store.register(CapabilityRecord(name="feed.page.v1"))
    store.register(CapabilityRecord(name="feed.cursor.v2", replaces="feed.page.v1"))
    graph = build(store.get_all())
"""

from __future__ import annotations

import logging
import threading
from typing import Iterable, Iterator, Optional

from capibara.errors import DuplicateNameError
from capibara.registry.schema import CapabilityRecord, name_sort_key

logger = logging.getLogger(__name__)


class CapabilityRecordStore:
    """Holds declared capability records keyed by name."""

    def __init__(self, records: Iterable[CapabilityRecord] = ()) -> None:
        self._records: dict[str, CapabilityRecord] = {}
        self._lock = threading.Lock()
        records = list(records)
        if records:
            self.register_all(records)

    def register(self, record: CapabilityRecord) -> None:
        """Insert a single record.

        Raises:
            DuplicateNameError: If a record with the same name exists.
        """
        with self._lock:
            if record.name in self._records:
                raise DuplicateNameError([record.name])
            self._records[record.name] = record
        logger.debug(
            "Registered capability: name=%s replaces=%s",
            record.name,
            record.replaces,
        )

    def register_all(self, records: Iterable[CapabilityRecord]) -> None:
        """Insert a batch of records, all or nothing.

        Every duplicate, whether against the store or within the batch,
        is reported in a single ``DuplicateNameError`` and nothing is
        inserted.
        """
        batch = list(records)
        with self._lock:
            seen: set[str] = set()
            duplicates: list[str] = []
            for record in batch:
                if record.name in self._records or record.name in seen:
                    duplicates.append(record.name)
                seen.add(record.name)
            if duplicates:
                raise DuplicateNameError(duplicates)
            for record in batch:
                self._records[record.name] = record
        logger.debug("Registered %d capabilities", len(batch))

    def get(self, name: str) -> Optional[CapabilityRecord]:
        return self._records.get(name)

    def get_all(self) -> list[CapabilityRecord]:
        """Return all records ordered byte-wise by name."""
        with self._lock:
            records = list(self._records.values())
        return sorted(records, key=lambda r: name_sort_key(r.name))

    def snapshot(self) -> tuple[CapabilityRecord, ...]:
        """Immutable copy of the current records, in ``get_all()`` order."""
        return tuple(self.get_all())

    def __contains__(self, name: object) -> bool:
        return name in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[CapabilityRecord]:
        return iter(self.get_all())
