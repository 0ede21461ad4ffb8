"""
Tabular views over the archive and the ruleset.

Used by the CLI ``list`` and ``coverage`` commands and handy in notebooks.
"""

from __future__ import annotations

import logging

import pandas as pd

from casebook.incidents import IncidentStore
from casebook.ruleset import RulesetDocument

logger = logging.getLogger(__name__)

INCIDENT_COLUMNS = ["id", "title", "severity", "keywords", "created_at", "superseded"]
COVERAGE_COLUMNS = ["source", "title", "severity", "rules", "superseded"]
MANUAL_ROW = "manual"


def incident_frame(store: IncidentStore) -> pd.DataFrame:
    """One row per incident, in creation order."""
    records = store.list_records()
    superseded = store.superseded_ids()
    rows = [
        {
            "id": r.id,
            "title": r.title,
            "severity": r.severity.value,
            "keywords": len(r.keywords),
            "created_at": pd.Timestamp(r.created_at),
            "superseded": r.id in superseded,
        }
        for r in records
    ]
    return pd.DataFrame(rows, columns=INCIDENT_COLUMNS)


def coverage_frame(store: IncidentStore, document: RulesetDocument) -> pd.DataFrame:
    """
    Ruleset entries per source.

    Every incident gets a row (0 for undistilled ones); manual entries are
    counted on a trailing ``manual`` row when present.
    """
    incidents = incident_frame(store)
    entries = pd.DataFrame(
        [{"source": e.source_label} for e in document.entries],
        columns=["source"],
    )
    counts = entries.groupby("source").size() if not entries.empty else pd.Series(dtype="int64")

    frame = incidents.rename(columns={"id": "source"})[["source", "title", "severity", "superseded"]].copy()
    frame["rules"] = frame["source"].map(counts).fillna(0).astype(int)

    manual = int(counts.get(MANUAL_ROW, 0))
    if manual:
        manual_row = pd.DataFrame(
            [{"source": MANUAL_ROW, "title": "", "severity": "", "rules": manual, "superseded": False}]
        )
        frame = pd.concat([frame, manual_row], ignore_index=True)

    orphaned = set(counts.index) - set(frame["source"])
    if orphaned:
        logger.warning(f"Ruleset entries reference unknown incidents: {sorted(orphaned)}")

    return frame[COVERAGE_COLUMNS].reset_index(drop=True)
