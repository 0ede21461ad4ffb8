"""Ports and adapters for the collaborators around the store."""

from .ports import (
    JsonlOutcomeReporter,
    LoggingOutcomeReporter,
    OutcomeReporter,
    ProposalOutcome,
    WorkItemSource,
    YamlWorkItemSource,
    recall_for_work_item,
)

__all__ = [
    "JsonlOutcomeReporter",
    "LoggingOutcomeReporter",
    "OutcomeReporter",
    "ProposalOutcome",
    "WorkItemSource",
    "YamlWorkItemSource",
    "recall_for_work_item",
]
