"""
Error taxonomy for the capability graph and negotiation engine.

Two families with opposite propagation policies:

- ``DeclarationError`` and its subclasses are raised while building a
  ``CapabilityGraph``.  They are fatal to process startup and always list
  every offending node of the failing class, not just the first.
- ``NegotiationDecodeError`` is raised when an advertised capability
  artifact is malformed.  The negotiator absorbs it and degrades to an
  empty effective set; it never reaches a request handler.

Usage::

    from capibara.errors import DeclarationError

    try:
        graph = build(records)
    except DeclarationError as exc:
        for offender in exc.offenders:
            print(offender)
        raise SystemExit(1)
"""

from __future__ import annotations

from typing import Sequence

from capibara.types import ViolationKind


class CapibaraError(Exception):
    """Base class for all errors raised by capibara."""


# ---------------------------------------------------------------------------
# Declaration-time errors
# ---------------------------------------------------------------------------


class DeclarationError(CapibaraError):
    """A capability declaration set is structurally invalid."""

    kind: ViolationKind

    def __init__(self, message: str, offenders: Sequence[str]) -> None:
        self.offenders = list(offenders)
        super().__init__(message)


class DuplicateNameError(DeclarationError):
    """Two or more records share a name."""

    kind = ViolationKind.DUPLICATE_NAME

    def __init__(self, names: Sequence[str]) -> None:
        self.names = sorted(set(names))
        super().__init__(
            f"Duplicate capability name(s): {', '.join(self.names)}",
            self.names,
        )


class DanglingReferenceError(DeclarationError):
    """A ``replaces`` value names a capability that was never declared."""

    kind = ViolationKind.DANGLING_REFERENCE

    def __init__(self, references: Sequence[tuple[str, str]]) -> None:
        self.references = sorted(references)
        described = [f"{name} -> {target}" for name, target in self.references]
        super().__init__(
            f"Dangling replaces reference(s): {', '.join(described)}",
            described,
        )


class CycleError(DeclarationError):
    """Following ``replaces`` edges revisits a node."""

    kind = ViolationKind.CYCLE

    def __init__(self, cycles: Sequence[Sequence[str]]) -> None:
        self.cycles = [list(cycle) for cycle in cycles]
        described = [" -> ".join(cycle + [cycle[0]]) for cycle in self.cycles]
        super().__init__(
            f"Replaces cycle(s) detected: {'; '.join(described)}",
            described,
        )


class BranchingLineageError(DeclarationError):
    """Two or more records replace the same predecessor."""

    kind = ViolationKind.BRANCHING_LINEAGE

    def __init__(self, branches: dict[str, Sequence[str]]) -> None:
        self.branches = {
            predecessor: sorted(successors)
            for predecessor, successors in sorted(branches.items())
        }
        described = [
            f"{predecessor} <- [{', '.join(successors)}]"
            for predecessor, successors in self.branches.items()
        ]
        super().__init__(
            "Branching lineage(s) without priority order: " + "; ".join(described),
            described,
        )


# ---------------------------------------------------------------------------
# Runtime negotiation errors
# ---------------------------------------------------------------------------


class NegotiationDecodeError(CapibaraError):
    """An advertised capability artifact could not be decoded."""

    def __init__(self, message: str, value: object = None) -> None:
        self.value = value
        super().__init__(message)


class ResolutionAmbiguityError(CapibaraError):
    """More than one most-derived capability is present in one lineage.

    Reserved for branching-lineage extensions; a graph that passed
    ``build()`` is linear and cannot produce it.
    """

    def __init__(self, feature: str, candidates: Sequence[str]) -> None:
        self.feature = feature
        self.candidates = sorted(candidates)
        super().__init__(
            f"Ambiguous selection for feature '{feature}': {self.candidates}"
        )


class IntrospectionDisabledError(CapibaraError):
    """The introspection export is withheld in this deployment."""
