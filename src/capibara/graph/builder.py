"""
Capability graph construction and structural validation.

``build()`` validates a record snapshot and returns an immutable
``CapabilityGraph``.  Violation classes are checked in a fixed order and
the build stops at the first class that has offenders, but every offender
of that class is reported at once:

1. duplicate names        -> ``DuplicateNameError``
2. dangling ``replaces``  -> ``DanglingReferenceError``
3. ``replaces`` cycles    -> ``CycleError``
4. branching lineages     -> ``BranchingLineageError``

A rebuild (e.g. development hot reload) always re-runs every check on the
full snapshot; there is no incremental patching of an existing graph.

Usage::

    from capibara.graph.builder import build

    graph = build(store.get_all())
    graph.lineage("feed.cursor.v2")   # ["feed.page.v1", "feed.cursor.v2"]
"""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from typing import Iterable, Optional

from capibara.errors import (
    BranchingLineageError,
    CycleError,
    DanglingReferenceError,
    DeclarationError,
    DuplicateNameError,
)
from capibara.graph.model import CapabilityGraph, sort_records
from capibara.otel import emit_declaration_error, emit_graph_built
from capibara.registry.schema import CapabilityRecord
from capibara.registry.store import CapabilityRecordStore

logger = logging.getLogger(__name__)

_VISITING = 1
_VISITED = 2


# ---------------------------------------------------------------------------
# Individual checks
# ---------------------------------------------------------------------------


def find_duplicates(records: list[CapabilityRecord]) -> list[str]:
    counts = Counter(r.name for r in records)
    return sorted(name for name, count in counts.items() if count > 1)


def find_dangling(records: list[CapabilityRecord]) -> list[tuple[str, str]]:
    names = {r.name for r in records}
    return sorted(
        (r.name, r.replaces)
        for r in records
        if r.replaces is not None and r.replaces not in names
    )


def find_cycles(records: list[CapabilityRecord]) -> list[list[str]]:
    """Find every ``replaces`` cycle.

    Depth-first walk from each node in byte-wise name order, marking nodes
    visiting while on the active path and visited once finished.  Reaching
    a node that is still visiting closes a cycle, reported from that node
    along the path.  Each cycle is reported once.

    Assumes names are unique and no reference dangles.
    """
    replaces = {r.name: r.replaces for r in sort_records(records)}
    state: dict[str, int] = {}
    cycles: list[list[str]] = []

    for start in replaces:
        if state.get(start) == _VISITED:
            continue

        path: list[str] = []
        node: Optional[str] = start
        while node is not None and state.get(node) != _VISITED:
            if state.get(node) == _VISITING:
                cycles.append(path[path.index(node):])
                break
            state[node] = _VISITING
            path.append(node)
            node = replaces[node]

        for name in path:
            state[name] = _VISITED

    return cycles


def find_branches(records: list[CapabilityRecord]) -> dict[str, list[str]]:
    successors: dict[str, list[str]] = defaultdict(list)
    for record in records:
        if record.replaces is not None:
            successors[record.replaces].append(record.name)
    return {
        predecessor: sorted(names)
        for predecessor, names in successors.items()
        if len(names) > 1
    }


def find_violation(records: Iterable[CapabilityRecord]) -> Optional[DeclarationError]:
    """Run the checks in order and return the first failing class, if any."""
    records = list(records)

    duplicates = find_duplicates(records)
    if duplicates:
        return DuplicateNameError(duplicates)

    dangling = find_dangling(records)
    if dangling:
        return DanglingReferenceError(dangling)

    cycles = find_cycles(records)
    if cycles:
        return CycleError(cycles)

    branches = find_branches(records)
    if branches:
        return BranchingLineageError(branches)

    return None


# ---------------------------------------------------------------------------
# Build
# ---------------------------------------------------------------------------


def build(records: Iterable[CapabilityRecord]) -> CapabilityGraph:
    """Validate *records* and build an immutable capability graph.

    Raises:
        DeclarationError: The first violation class found, listing every
            offending node of that class.
    """
    records = list(records)
    violation = find_violation(records)
    if violation is not None:
        emit_declaration_error(violation)
        raise violation

    graph = CapabilityGraph(sort_records(records))
    emit_graph_built(graph)
    return graph


def build_from_store(store: CapabilityRecordStore) -> CapabilityGraph:
    """Build a graph from a snapshot of *store*."""
    return build(store.snapshot())
