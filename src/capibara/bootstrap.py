"""
Process startup: registry file -> record store -> graph -> negotiator.

A declaration error here is fatal: it propagates
out of ``bootstrap()`` so the process never serves with a broken graph.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from capibara.config import CapibaraConfig, get_config
from capibara.graph.builder import build_from_store
from capibara.negotiation.negotiator import CapabilityNegotiator
from capibara.registry.loader import RegistryLoader

logger = logging.getLogger(__name__)


def bootstrap(
    config: Optional[CapibaraConfig] = None,
    known_sets: Iterable[Iterable[str]] = (),
) -> CapabilityNegotiator:
    """Load the configured registry and return a ready negotiator.

    Raises:
        FileNotFoundError: If the registry document does not exist.
        DeclarationError: If the declared capabilities are invalid.
    """
    config = config or get_config()
    path = config.get_registry_path()

    store = RegistryLoader().load_store(path)
    graph = build_from_store(store)
    negotiator = CapabilityNegotiator(graph, known_sets=known_sets, config=config)

    logger.info(
        "Capability negotiation ready: registry=%s capabilities=%d hash=%s",
        path,
        len(graph),
        negotiator.get_capability_hash(),
    )
    return negotiator
