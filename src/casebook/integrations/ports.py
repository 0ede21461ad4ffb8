"""
Collaborator ports.

The store only needs two things from ticketing, source-control and test
harness integrations:

- the keywords or incident ids attached to a unit of work
- somewhere to report the outcome of a ruleset change

Adapters here are file/logging based; real integrations implement the
same protocols.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

import yaml

from casebook.errors import ValidationError
from casebook.incidents import IncidentRecord, IncidentStore

logger = logging.getLogger(__name__)


@dataclass
class ProposalOutcome:
    """Outcome of one ruleset change, reported to the host."""
    proposal_id: str
    status: str  # 'pending_approval' | 'rejected' | 'committed' | 'cancelled'
    revision: Optional[int] = None
    added: int = 0
    removed: int = 0
    line_count: Optional[int] = None
    reason: Optional[str] = None
    reported_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@runtime_checkable
class WorkItemSource(Protocol):
    """Reads what a unit of work says about relevant history."""

    def keywords_for(self, work_item_id: str) -> List[str]:
        ...

    def incident_ids_for(self, work_item_id: str) -> List[str]:
        ...


@runtime_checkable
class OutcomeReporter(Protocol):
    """Receives ruleset change outcomes."""

    def report(self, outcome: ProposalOutcome) -> None:
        ...


class YamlWorkItemSource:
    """
    Work items described in a YAML file::

        TRD-142:
          keywords: [order, reconnect]
          incidents: [PM-001]
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            raise ValidationError(f"Work item file not found: {self.path}")
        with open(self.path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValidationError(f"Work item file {self.path.name} must contain a mapping")
        return data

    def _item(self, work_item_id: str) -> Dict[str, Any]:
        item = self._load().get(work_item_id)
        if item is None:
            return {}
        if not isinstance(item, dict):
            raise ValidationError(f"Work item {work_item_id} must be a mapping")
        return item

    def keywords_for(self, work_item_id: str) -> List[str]:
        return [str(k) for k in self._item(work_item_id).get("keywords") or []]

    def incident_ids_for(self, work_item_id: str) -> List[str]:
        return [str(i) for i in self._item(work_item_id).get("incidents") or []]


class LoggingOutcomeReporter:
    """Reports outcomes to the module logger."""

    def report(self, outcome: ProposalOutcome) -> None:
        logger.info(
            f"actions: ruleset_outcome proposal={outcome.proposal_id} status={outcome.status} "
            f"revision={outcome.revision} added={outcome.added} removed={outcome.removed} "
            f"lines={outcome.line_count}"
        )


class JsonlOutcomeReporter(LoggingOutcomeReporter):
    """Appends outcomes as JSON lines and logs them."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def report(self, outcome: ProposalOutcome) -> None:
        super().report(outcome)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(json.dumps(outcome.to_dict(), sort_keys=True) + "\n")


def recall_for_work_item(
    store: IncidentStore,
    source: WorkItemSource,
    work_item_id: str,
) -> List[IncidentRecord]:
    """
    Incidents relevant to a unit of work.

    Explicitly linked incidents come first, then keyword hits in ranking
    order. A work item with neither keywords nor links recalls nothing.

    Raises:
        NotFoundError: If an explicitly linked incident does not exist
    """
    recalled: List[IncidentRecord] = []
    seen = set()
    for record_id in source.incident_ids_for(work_item_id):
        record = store.get_by_id(record_id)
        if record.id not in seen:
            seen.add(record.id)
            recalled.append(record)

    keywords = source.keywords_for(work_item_id)
    if keywords:
        for record in store.search(keywords):
            if record.id not in seen:
                seen.add(record.id)
                recalled.append(record)

    logger.debug(f"Recalled {len(recalled)} incident(s) for {work_item_id}")
    return recalled
