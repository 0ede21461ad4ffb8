"""
Ruleset Document
================

Versioned, ordered list of rule entries (oldest first).

Rendered layout (header lines count towards the ceiling)::

    # Operating Rules
    <!-- casebook revision=12 -->
    - [WARNING] ... (PM-001)
    - [PARAMETER] ... (manual)
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from casebook.core.settings.constants import RULESET_TITLE
from casebook.errors import ValidationError
from .schema import RuleEntry

REVISION_PATTERN = re.compile(r"^<!-- casebook revision=(?P<revision>\d+) -->$")
HEADER_LINES = 2


@dataclass(frozen=True)
class RulesetDocument:
    """Immutable snapshot of the committed ruleset at one revision."""

    revision: int = 0
    entries: Tuple[RuleEntry, ...] = field(default_factory=tuple)

    def lines(self) -> List[str]:
        return [RULESET_TITLE, f"<!-- casebook revision={self.revision} -->"] + [
            entry.render() for entry in self.entries
        ]

    def render(self) -> str:
        return "\n".join(self.lines()) + "\n"

    @property
    def line_count(self) -> int:
        return HEADER_LINES + len(self.entries)

    def keys(self) -> List[str]:
        return [entry.key for entry in self.entries]

    def find(self, key: str) -> Optional[RuleEntry]:
        for entry in self.entries:
            if entry.key == key:
                return entry
        return None

    def projected_line_count(self, additions: Sequence[RuleEntry], removals: Iterable[str] = ()) -> int:
        """Line count after removing ``removals`` keys and appending ``additions``."""
        removed = len(set(removals) & set(self.keys()))
        return self.line_count - removed + len(additions)

    def apply(self, additions: Sequence[RuleEntry], removals: Iterable[str] = ()) -> "RulesetDocument":
        """
        Return the next revision with removals dropped and additions appended.

        Raises:
            ValidationError: If a removal key is not in the document
        """
        removal_set = set(removals)
        unknown = removal_set - set(self.keys())
        if unknown:
            raise ValidationError(f"Cannot remove unknown rule entries: {', '.join(sorted(unknown))}")
        kept = tuple(e for e in self.entries if e.key not in removal_set)
        return RulesetDocument(revision=self.revision + 1, entries=kept + tuple(additions))

    @classmethod
    def parse(cls, text: str) -> "RulesetDocument":
        """
        Parse a rendered document. Blank lines are ignored.

        Raises:
            ValidationError: If the header or any entry line is malformed
        """
        lines = [line.rstrip() for line in text.splitlines()]
        lines = [line for line in lines if line]
        if len(lines) < HEADER_LINES or lines[0] != RULESET_TITLE:
            raise ValidationError(f"Ruleset must start with '{RULESET_TITLE}'")
        match = REVISION_PATTERN.match(lines[1])
        if not match:
            raise ValidationError(f"Ruleset line 2 must be the revision marker, got {lines[1]!r}")

        entries = []
        for number, line in enumerate(lines[HEADER_LINES:], start=HEADER_LINES + 1):
            try:
                entries.append(RuleEntry.parse_line(line))
            except ValidationError as e:
                raise ValidationError(f"Ruleset line {number}: {e.reason}") from e
        return cls(revision=int(match.group("revision")), entries=tuple(entries))
