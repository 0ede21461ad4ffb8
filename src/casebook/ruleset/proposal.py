"""
Ruleset change proposal and its approval state machine.

States::

    DRAFTING -> PENDING_APPROVAL -> APPROVED -> COMMITTED
                       |
                       +-> REJECTED -> DRAFTING

A proposal is persisted while it is DRAFTING or PENDING_APPROVAL so that
waiting for a human is a durable state rather than a blocked call.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from casebook.errors import ValidationError
from .pruning import PruningProposal
from .schema import EntryInput, RuleEntry


class ProposalState(str, Enum):
    """Lifecycle of one ruleset change."""
    DRAFTING = "drafting"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMMITTED = "committed"


class Decision(str, Enum):
    """Approver decision."""
    APPROVED = "approved"
    REJECTED = "rejected"


ALLOWED_TRANSITIONS = {
    ProposalState.DRAFTING: {ProposalState.PENDING_APPROVAL},
    ProposalState.PENDING_APPROVAL: {ProposalState.APPROVED, ProposalState.REJECTED, ProposalState.DRAFTING},
    ProposalState.APPROVED: {ProposalState.COMMITTED, ProposalState.PENDING_APPROVAL, ProposalState.DRAFTING},
    ProposalState.REJECTED: {ProposalState.DRAFTING},
    ProposalState.COMMITTED: set(),
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class ProposalEdits:
    """
    Approver edits applied on approval or rejection.

    Attributes:
        entries: Replacement candidate entries (None keeps the current ones)
        removals: Entry keys selected for pruning (None keeps the suggestion)
        feedback: Free-text note for the next proposal cycle
    """
    entries: Optional[Sequence[EntryInput]] = None
    removals: Optional[Sequence[str]] = None
    feedback: Optional[str] = None


@dataclass
class Proposal:
    """One ruleset change moving through the approval state machine."""

    entries: List[RuleEntry]
    base_revision: int
    state: ProposalState = ProposalState.DRAFTING
    removals: List[str] = field(default_factory=list)
    pruning: Optional[PruningProposal] = None
    feedback: Optional[str] = None
    proposal_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    created_at: str = field(default_factory=_now)
    history: List[Dict[str, str]] = field(default_factory=list)

    def transition(self, target: ProposalState) -> None:
        """
        Move to ``target``.

        Raises:
            ValidationError: If the transition is not allowed
        """
        if target not in ALLOWED_TRANSITIONS[self.state]:
            raise ValidationError(
                f"Proposal {self.proposal_id} cannot move from {self.state.value} to {target.value}"
            )
        self.history.append({"from": self.state.value, "to": target.value, "at": _now()})
        self.state = target

    def apply_edits(self, edits: Optional[ProposalEdits]) -> None:
        if edits is None:
            return
        if edits.entries is not None:
            self.entries = [RuleEntry.coerce(e) for e in edits.entries]
        if edits.removals is not None:
            self.removals = list(dict.fromkeys(edits.removals))
        if edits.feedback is not None:
            self.feedback = edits.feedback

    @property
    def is_open(self) -> bool:
        return self.state in (ProposalState.DRAFTING, ProposalState.PENDING_APPROVAL)

    def summary(self) -> List[str]:
        lines = [
            f"Proposal {self.proposal_id} [{self.state.value}] base revision {self.base_revision}",
        ]
        lines.extend(f"  + {entry.render()}" for entry in self.entries)
        if self.removals:
            lines.extend(f"  - {key}" for key in self.removals)
        if self.feedback:
            lines.append(f"  feedback: {self.feedback}")
        if self.pruning is not None:
            lines.extend(f"  {line}" for line in self.pruning.describe())
        return lines

    def to_dict(self) -> Dict[str, Any]:
        return {
            "proposal_id": self.proposal_id,
            "state": self.state.value,
            "base_revision": self.base_revision,
            "created_at": self.created_at,
            "entries": [e.to_dict() for e in self.entries],
            "removals": list(self.removals),
            "pruning": self.pruning.to_dict() if self.pruning else None,
            "feedback": self.feedback,
            "history": list(self.history),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Proposal":
        try:
            return cls(
                proposal_id=str(data["proposal_id"]),
                state=ProposalState(data["state"]),
                base_revision=int(data["base_revision"]),
                created_at=str(data.get("created_at") or _now()),
                entries=[RuleEntry.from_dict(e) for e in data.get("entries") or []],
                removals=[str(k) for k in data.get("removals") or []],
                pruning=PruningProposal.from_dict(data["pruning"]) if data.get("pruning") else None,
                feedback=data.get("feedback"),
                history=list(data.get("history") or []),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Corrupt pending proposal: {e}") from e
