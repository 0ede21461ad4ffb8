"""
Ruleset Document Package
========================

Size-bounded operating rules distilled from incident records.

This package provides:
- RuleEntry / RuleCategory: single-line entry schema
- RulesetDocument: versioned snapshot with render/parse
- RulesetManager: approval-gated, ceiling-enforcing mutations

Usage:
    from casebook.ruleset import RulesetManager, Decision

    manager = RulesetManager(store)
    manager.propose_addition([("WARNING", "Never reuse order ids", "PM-001")])
    manager.approve(Decision.APPROVED)
"""

from .document import RulesetDocument
from .manager import CommitResult, RulesetManager
from .proposal import Decision, Proposal, ProposalEdits, ProposalState
from .pruning import PruningCandidate, PruningProposal
from .repository import RulesetRepository
from .schema import RuleCategory, RuleEntry

__all__ = [
    "CommitResult",
    "Decision",
    "Proposal",
    "ProposalEdits",
    "ProposalState",
    "PruningCandidate",
    "PruningProposal",
    "RuleCategory",
    "RuleEntry",
    "RulesetDocument",
    "RulesetManager",
    "RulesetRepository",
]
