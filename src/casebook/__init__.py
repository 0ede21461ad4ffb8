"""
Casebook
========

Incident archive plus a size-bounded ruleset distilled from it.

This package provides:
- IncidentStore: append-only postmortem records with keyword search
- RulesetManager: approval-gated ruleset capped at 100 rendered lines
- draft_entries(): starting-point distillation of an incident

Usage:
    from casebook import IncidentStore, RulesetManager, Decision

    store = IncidentStore()
    manager = RulesetManager(store)
"""

from .errors import (
    CapacityError,
    CasebookError,
    ConcurrentProposalError,
    NotFoundError,
    StaleRevisionError,
    ValidationError,
)
from .incidents import IncidentRecord, IncidentStore, Severity
from .ruleset import Decision, ProposalEdits, ProposalState, RuleCategory, RuleEntry, RulesetManager
from .distill import draft_entries

__all__ = [
    "CapacityError",
    "CasebookError",
    "ConcurrentProposalError",
    "NotFoundError",
    "StaleRevisionError",
    "ValidationError",
    "IncidentRecord",
    "IncidentStore",
    "Severity",
    "Decision",
    "ProposalEdits",
    "ProposalState",
    "RuleCategory",
    "RuleEntry",
    "RulesetManager",
    "draft_entries",
]

__version__ = "1.0.0"
