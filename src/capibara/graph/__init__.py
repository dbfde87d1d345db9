"""
Capability graph: validated ``replaces`` lineages over declared records.

Public API::

    from capibara.graph import CapabilityGraph, build, build_from_store
"""

from capibara.graph.builder import build, build_from_store, find_violation
from capibara.graph.model import CapabilityGraph

__all__ = [
    "CapabilityGraph",
    "build",
    "build_from_store",
    "find_violation",
]
