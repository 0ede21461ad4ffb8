"""Incident record contract.

Defines the canonical postmortem entry persisted by the incident store.
Records are immutable once created.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable

from pydantic import BaseModel, ConfigDict, Field, field_validator

from casebook.core.settings.constants import ID_NUMBER_WIDTH, SLUG_MAX_LENGTH


RECORD_ID_PATTERN = re.compile(r"^(?P<prefix>[A-Z][A-Z0-9]*)-(?P<number>\d+)$")


class Severity(str, Enum):
    """Closed set of incident severities."""
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


def format_record_id(prefix: str, number: int) -> str:
    """Format a sequential identifier, e.g. ``PM-007``."""
    return f"{prefix}-{number:0{ID_NUMBER_WIDTH}d}"


def record_sequence(record_id: str) -> int:
    """Return the numeric part of a record identifier."""
    match = RECORD_ID_PATTERN.match(record_id)
    if not match:
        raise ValueError(f"Invalid record id: '{record_id}' (expected e.g. PM-001)")
    return int(match.group("number"))


def normalize_record_id(value: str) -> str:
    return str(value).strip().upper()


def normalize_keywords(values: Iterable[str]) -> FrozenSet[str]:
    """Lower-case and strip keywords, dropping empty ones."""
    return frozenset(
        k for k in (str(v).strip().lower() for v in values) if k
    )


def slugify(title: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")
    return slug[:SLUG_MAX_LENGTH].rstrip("-") or "incident"


class IncidentRecord(BaseModel):
    """
    Durable entry documenting a past failure, its cause, and its fix.

    Key features:
    - Sequential immutable identifier (``PM-001``)
    - Closed severity set
    - Keyword set used for retrieval
    - Links to related and superseded incidents
    """

    id: str = Field(..., description="Sequential identifier, e.g. PM-001")
    title: str = Field(..., description="Short incident title")
    severity: Severity = Field(..., description="CRITICAL / HIGH / MEDIUM / LOW")
    timeline: str = Field("", description="Free-text timeline")
    root_cause: str = Field(..., description="Root-cause narrative")
    mitigation: str = Field("", description="Mitigation description")
    keywords: FrozenSet[str] = Field(default_factory=frozenset)
    references: FrozenSet[str] = Field(default_factory=frozenset)
    supersedes: FrozenSet[str] = Field(default_factory=frozenset)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(frozen=True)

    @field_validator("id")
    @classmethod
    def id_format(cls, v: str) -> str:
        v = normalize_record_id(v)
        record_sequence(v)
        return v

    @field_validator("title", "root_cause")
    @classmethod
    def must_not_be_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v

    @field_validator("severity", mode="before")
    @classmethod
    def severity_upper(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("keywords", mode="before")
    @classmethod
    def keywords_normalized(cls, v: Any) -> FrozenSet[str]:
        if isinstance(v, str):
            v = [v]
        return normalize_keywords(v or [])

    @field_validator("references", "supersedes", mode="before")
    @classmethod
    def ids_normalized(cls, v: Any) -> FrozenSet[str]:
        if isinstance(v, str):
            v = [v]
        return frozenset(normalize_record_id(i) for i in (v or []) if str(i).strip())

    @field_validator("created_at")
    @classmethod
    def datetime_must_be_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            raise ValueError("Datetime must be timezone-aware (UTC)")
        return v

    @property
    def sequence(self) -> int:
        return record_sequence(self.id)

    @property
    def slug(self) -> str:
        return slugify(self.title)

    @property
    def filename(self) -> str:
        return f"{self.id}-{self.slug}.yaml"

    def text_fields(self) -> Dict[str, str]:
        """Free-text fields searched by substring."""
        return {
            "title": self.title,
            "timeline": self.timeline,
            "root_cause": self.root_cause,
            "mitigation": self.mitigation,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dictionary for YAML serialization."""
        return {
            "id": self.id,
            "title": self.title,
            "severity": self.severity.value,
            "timeline": self.timeline,
            "root_cause": self.root_cause,
            "mitigation": self.mitigation,
            "keywords": sorted(self.keywords),
            "references": sorted(self.references),
            "supersedes": sorted(self.supersedes),
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IncidentRecord":
        """Create from a dictionary produced by ``to_dict``."""
        data = dict(data)
        if isinstance(data.get("created_at"), str):
            data["created_at"] = datetime.fromisoformat(data["created_at"])
        return cls(**data)

    def to_markdown(self) -> str:
        """Human-readable rendering for terminals and reviews."""
        lines = [
            f"# {self.id}: {self.title}",
            "",
            f"- Severity: {self.severity.value}",
            f"- Created: {self.created_at.isoformat()}",
            f"- Keywords: {', '.join(sorted(self.keywords)) or '-'}",
        ]
        if self.references:
            lines.append(f"- References: {', '.join(sorted(self.references))}")
        if self.supersedes:
            lines.append(f"- Supersedes: {', '.join(sorted(self.supersedes))}")
        for heading, body in (
            ("Timeline", self.timeline),
            ("Root Cause", self.root_cause),
            ("Mitigation", self.mitigation),
        ):
            lines.extend(["", f"## {heading}", body.strip() or "-"])
        return "\n".join(lines) + "\n"
