"""
Draft rule entries from an incident record.

Distillation is a human decision; this only produces a starting point that
the author edits before proposing it.
"""

from __future__ import annotations

import re
from typing import List

from casebook.core.settings.constants import DEFAULT_MAX_STATEMENT_LENGTH
from casebook.incidents import IncidentRecord
from casebook.ruleset import RuleCategory, RuleEntry

SENTENCE_END = re.compile(r"(?<=[.!?])\s")
ASSIGNMENT = re.compile(r"\b(?P<name>[A-Za-z_][A-Za-z0-9_.]*)\s*=\s*(?P<value>[^\s,;]+)")


def single_line(text: str) -> str:
    """Collapse all whitespace to single spaces."""
    return " ".join(text.split())


def first_sentence(text: str) -> str:
    text = single_line(text)
    if not text:
        return ""
    return SENTENCE_END.split(text, maxsplit=1)[0]


def truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[: max(max_length - 3, 0)].rstrip() + "..."


def draft_entries(record: IncidentRecord, max_length: int = DEFAULT_MAX_STATEMENT_LENGTH) -> List[RuleEntry]:
    """
    Draft single-line entries for a record.

    - WARNING: title plus the first sentence of the root cause
    - DIRECTIVE: first sentence of the mitigation (if any)
    - PARAMETER: one per ``name=value`` found in the mitigation
    """
    drafts: List[RuleEntry] = []

    cause = first_sentence(record.root_cause).rstrip(".")
    warning = f"{single_line(record.title)}: {cause}" if cause else single_line(record.title)
    drafts.append(RuleEntry(RuleCategory.WARNING, truncate(warning, max_length), record.id))

    directive = first_sentence(record.mitigation)
    if directive:
        drafts.append(RuleEntry(RuleCategory.DIRECTIVE, truncate(directive, max_length), record.id))

    seen = set()
    for match in ASSIGNMENT.finditer(record.mitigation):
        name, value = match.group("name"), match.group("value").rstrip(".")
        if name in seen or not value:
            continue
        seen.add(name)
        drafts.append(RuleEntry(RuleCategory.PARAMETER, truncate(f"{name} = {value}", max_length), record.id))

    return drafts
