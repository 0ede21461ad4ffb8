"""
Incident Record Store Package
=============================

Append-only postmortem archive with keyword retrieval.

Usage:
    from casebook.incidents import IncidentStore

    store = IncidentStore()
    hits = store.search({"order"}).ids()
"""

from .schema import IncidentRecord, Severity, format_record_id, record_sequence
from .search import SearchResults
from .store import IncidentStore

__all__ = [
    "IncidentRecord",
    "Severity",
    "IncidentStore",
    "SearchResults",
    "format_record_id",
    "record_sequence",
]
