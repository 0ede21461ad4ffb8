"""
Rule Entry Schema
=================

One operating rule: a category marker, a single-line statement, and the
incident it was distilled from (or ``manual``).

Rendered form::

    - [WARNING] Never reuse client order ids after reconnect (PM-001)
    - [DIRECTIVE] Run the parity suite before merging (manual)
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Union

from casebook.core.settings.constants import DEFAULT_MAX_STATEMENT_LENGTH, MANUAL_SOURCE
from casebook.errors import ValidationError


class RuleCategory(str, Enum):
    """Closed set of rule categories."""
    WARNING = "WARNING"
    DIRECTIVE = "DIRECTIVE"
    PARAMETER = "PARAMETER"

    @classmethod
    def parse(cls, value: Union[str, "RuleCategory"]) -> "RuleCategory":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            allowed = ", ".join(c.value for c in cls)
            raise ValidationError(f"Unknown rule category '{value}' (allowed: {allowed})")


ENTRY_LINE_PATTERN = re.compile(
    r"^- \[(?P<category>[A-Z]+)\] (?P<statement>.+) \((?P<source>[A-Z][A-Z0-9]*-\d+|manual)\)$"
)

EntryInput = Union["RuleEntry", Sequence[Any], Dict[str, Any]]


@dataclass(frozen=True)
class RuleEntry:
    """Single-line operating rule."""

    category: RuleCategory
    statement: str
    source_id: Optional[str] = None

    @property
    def is_manual(self) -> bool:
        """True when the entry is an explicit manual note with no incident."""
        return self.source_id is None

    @property
    def source_label(self) -> str:
        return self.source_id or MANUAL_SOURCE

    @property
    def key(self) -> str:
        """Stable 12-character identifier used in pruning and approval edits."""
        blob = f"{self.category.value}|{self.statement}|{self.source_label}"
        return hashlib.sha1(blob.encode("utf-8")).hexdigest()[:12]

    def render(self) -> str:
        return f"- [{self.category.value}] {self.statement} ({self.source_label})"

    def validate(self, max_length: int = DEFAULT_MAX_STATEMENT_LENGTH) -> None:
        """
        Validate the single-line contract.

        Raises:
            ValidationError: If the statement is empty, spans lines, or is too long
        """
        if not self.statement or not self.statement.strip():
            raise ValidationError(f"Rule statement must not be empty ({self.category.value})")
        if self.statement.splitlines() != [self.statement]:
            raise ValidationError(
                f"Rule statement must be a single line: {self.statement.splitlines()[0]!r}..."
            )
        if self.statement != self.statement.strip():
            raise ValidationError(f"Rule statement has leading/trailing whitespace: {self.statement!r}")
        if len(self.statement) > max_length:
            raise ValidationError(
                f"Rule statement is {len(self.statement)} characters, limit is {max_length}: "
                f"{self.statement[:40]!r}..."
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "statement": self.statement,
            "source_id": self.source_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RuleEntry":
        return cls.create(data.get("category"), data.get("statement"), data.get("source_id"))

    @classmethod
    def create(cls, category: Any, statement: Any, source_id: Any = None) -> "RuleEntry":
        """Build an entry from loose input, normalising category and source."""
        source = None
        if source_id is not None and str(source_id).strip():
            source = str(source_id).strip().upper()
            if source.lower() == MANUAL_SOURCE:
                source = None
        return cls(
            category=RuleCategory.parse(category),
            statement="" if statement is None else str(statement),
            source_id=source,
        )

    @classmethod
    def coerce(cls, value: EntryInput) -> "RuleEntry":
        """Accept an entry, a ``(category, statement, source_id)`` tuple, or a dict."""
        if isinstance(value, cls):
            return value
        if isinstance(value, dict):
            return cls.from_dict(value)
        if isinstance(value, (tuple, list)) and len(value) in (2, 3):
            return cls.create(*value)
        raise ValidationError(
            f"Rule entry must be (category, statement, source_id), got {value!r}"
        )

    @classmethod
    def parse_line(cls, line: str) -> "RuleEntry":
        """
        Parse one rendered line.

        Raises:
            ValidationError: If the line does not follow the entry format
        """
        match = ENTRY_LINE_PATTERN.match(line)
        if not match:
            raise ValidationError(f"Not a rule entry line: {line!r}")
        return cls.create(match.group("category"), match.group("statement"), match.group("source"))
