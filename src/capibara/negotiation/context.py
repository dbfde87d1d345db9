"""
Request-scoped attachment of a resolution result.

The host framework (backend) or application bootstrap (client) owns a
mutable per-request or per-session context mapping.  The resolution is
stored inside it under ``RESOLUTION_KEY`` so it travels with the context
to the single feature entry point allowed to branch on capabilities.

A context with nothing attached answers ``False`` for every capability:
missing negotiation means baseline behavior, never "trust everything".

Usage::

    from capibara.negotiation.context import attach_resolution, has_capability

    attach_resolution(request.scope, negotiator.resolve_headers(request.headers))
    ...
    if has_capability(request.scope, "feed.cursor.v2"):
        return cursor_page(...)
    return offset_page(...)
"""

from __future__ import annotations

import logging
from typing import Any, MutableMapping, Optional

from capibara.negotiation.resolver import ResolutionResult

logger = logging.getLogger(__name__)

# Key under which the resolution is stored in the context mapping.
RESOLUTION_KEY = "_capibara_resolution"


def attach_resolution(
    context: MutableMapping[str, Any], result: ResolutionResult
) -> None:
    """Store *result* in *context*, replacing any earlier resolution."""
    if RESOLUTION_KEY in context:
        logger.debug("Replacing capability resolution already attached to context")
    context[RESOLUTION_KEY] = result


def get_resolution(context: MutableMapping[str, Any]) -> Optional[ResolutionResult]:
    result = context.get(RESOLUTION_KEY)
    return result if isinstance(result, ResolutionResult) else None


def has_capability(context: MutableMapping[str, Any], name: str) -> bool:
    result = get_resolution(context)
    return result is not None and result.has_capability(name)


def selected_version(context: MutableMapping[str, Any], feature: str) -> Optional[str]:
    """Selected version of *feature*, ``None`` (baseline) when nothing is attached."""
    result = get_resolution(context)
    return result.selected_version(feature) if result is not None else None
