"""
Incident Record Store
=====================

Append-only storage and keyword retrieval of postmortem entries.

There is no update or delete: a record, once written, is case history.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

from pydantic import ValidationError as PydanticValidationError

from casebook.core.settings import get_settings
from casebook.errors import NotFoundError, ValidationError
from .repository import IncidentRepository
from .schema import IncidentRecord, format_record_id, normalize_record_id
from .search import SearchResults

logger = logging.getLogger(__name__)

_dir_locks: Dict[Path, threading.Lock] = {}
_dir_locks_guard = threading.Lock()


def _lock_for(directory: Path) -> threading.Lock:
    """One identifier-assignment lock per archive directory in this process."""
    key = directory.resolve()
    with _dir_locks_guard:
        if key not in _dir_locks:
            _dir_locks[key] = threading.Lock()
        return _dir_locks[key]


def describe_validation_error(exc: PydanticValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "record"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


class IncidentStore:
    """
    Durable append-only incident archive.

    Usage:
        store = IncidentStore(Path("postmortem"))
        record_id = store.create_record(
            title="Duplicate orders on reconnect",
            severity="HIGH",
            timeline="...",
            root_cause="...",
            mitigation="...",
            keywords={"order", "duplication"},
        )
        record = store.get_by_id(record_id)
    """

    def __init__(self, postmortem_dir: Optional[Path] = None, id_prefix: Optional[str] = None):
        settings = get_settings()
        self.postmortem_dir = Path(postmortem_dir or settings.postmortem_dir)
        self.id_prefix = (id_prefix or settings.id_prefix).upper()
        self.repository = IncidentRepository(self.postmortem_dir)
        self._id_lock = _lock_for(self.postmortem_dir)

    def create_record(
        self,
        title: str,
        severity: str,
        timeline: str,
        root_cause: str,
        mitigation: str,
        keywords: Iterable[str],
        references: Iterable[str] = (),
        supersedes: Iterable[str] = (),
    ) -> str:
        """
        Create a new incident record and return its identifier.

        Duplicate payloads are not detected; each call creates a new record.

        Raises:
            ValidationError: If severity is outside the closed set, title or
                root cause is empty, or a linked identifier does not resolve
        """
        references = [normalize_record_id(r) for r in references if str(r).strip()]
        supersedes = [normalize_record_id(s) for s in supersedes if str(s).strip()]

        with self._id_lock:
            record_id = format_record_id(self.id_prefix, self.repository.max_sequence() + 1)

            try:
                record = IncidentRecord(
                    id=record_id,
                    title=title,
                    severity=severity,
                    timeline=timeline or "",
                    root_cause=root_cause,
                    mitigation=mitigation or "",
                    keywords=list(keywords or []),
                    references=references,
                    supersedes=supersedes,
                )
            except PydanticValidationError as e:
                raise ValidationError(
                    f"Invalid incident record: {describe_validation_error(e)}"
                ) from e

            for linked in sorted(record.references | record.supersedes):
                if not self.exists(linked):
                    raise ValidationError(
                        f"Invalid incident record: linked incident {linked} does not exist"
                    )

            self.repository.write_record_file(record.filename, record.to_dict())

        logger.info(
            f"actions: incident_created id={record.id} severity={record.severity.value} "
            f"keywords={len(record.keywords)} supersedes={len(record.supersedes)}"
        )
        return record.id

    def get_by_id(self, record_id: str) -> IncidentRecord:
        """
        Get a record by identifier.

        Raises:
            NotFoundError: If no record with that identifier exists
        """
        path = self.repository.find_path(record_id)
        return self._load(path)

    def exists(self, record_id: str) -> bool:
        try:
            self.repository.find_path(record_id)
        except NotFoundError:
            return False
        return True

    def list_records(self) -> List[IncidentRecord]:
        """All records in creation order."""
        return [self._load(path) for _, path in self.repository.iter_paths()]

    def search(self, keywords: Iterable[str]) -> SearchResults:
        """
        Search records by keyword.

        Returns a lazy, restartable sequence; see ``casebook.incidents.search``
        for the ranking rules.
        """
        return SearchResults(self.list_records, keywords)

    def superseded_ids(self) -> Set[str]:
        """Identifiers that a later record lists in ``supersedes``."""
        superseded: Set[str] = set()
        for record in self.list_records():
            superseded.update(record.supersedes)
        return superseded

    def _load(self, path: Path) -> IncidentRecord:
        data = self.repository.read_record_file(path)
        try:
            return IncidentRecord.from_dict(data)
        except (PydanticValidationError, TypeError, ValueError) as e:
            detail = describe_validation_error(e) if isinstance(e, PydanticValidationError) else str(e)
            raise ValidationError(f"Corrupt incident file {path.name}: {detail}") from e
