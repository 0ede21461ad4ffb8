from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from casebook.ruleset.pruning import PruningProposal


class CasebookError(Exception):
    """Base class for every error raised by casebook."""

    def __init__(self, reason: str, *, hint: Optional[str] = None) -> None:
        self.reason = reason
        self.hint = hint
        message = reason if not hint else f"{reason}. {hint}"
        super().__init__(message)


class ValidationError(CasebookError):
    """Raised for malformed incident or ruleset entry input."""


class NotFoundError(CasebookError):
    """Raised when an incident identifier does not resolve."""

    def __init__(self, record_id: str) -> None:
        self.record_id = record_id
        super().__init__(f"Incident record not found: {record_id}")


class CapacityError(CasebookError):
    """Raised when a commit would push the ruleset over its line ceiling."""

    def __init__(
        self,
        *,
        projected: int,
        ceiling: int,
        pruning: Optional["PruningProposal"] = None,
        hint: Optional[str] = None,
    ) -> None:
        self.projected = projected
        self.ceiling = ceiling
        self.pruning = pruning
        if hint is None and pruning is not None:
            hint = (
                f"Remove at least {pruning.overflow} line(s); "
                f"suggested: {', '.join(c.entry.key for c in pruning.suggested) or 'none'}"
            )
        super().__init__(
            f"Ruleset would have {projected} lines, ceiling is {ceiling}",
            hint=hint,
        )


class ConcurrentProposalError(CasebookError):
    """Raised when a second proposal is attempted while one is pending."""


class StaleRevisionError(ConcurrentProposalError):
    """Raised when the committed ruleset moved on since a proposal was drafted."""

    def __init__(self, *, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Ruleset revision changed from {expected} to {actual} since the proposal was drafted",
            hint="Resubmit the proposal against the current document",
        )
