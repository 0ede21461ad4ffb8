"""
Pruning proposals for the size-bounded ruleset.

When an addition would push the document over the ceiling, every existing
entry is offered as a candidate (oldest first) and annotated with whether its
source incident has since been superseded. The suggested selection takes
superseded entries first, then the oldest remaining ones, until the overflow
is covered.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Collection, Dict, List, Optional, Sequence

from .document import RulesetDocument
from .schema import RuleEntry


@dataclass(frozen=True)
class PruningCandidate:
    entry: RuleEntry
    position: int
    superseded: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.entry.key,
            "position": self.position,
            "superseded": self.superseded,
            **self.entry.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PruningCandidate":
        return cls(
            entry=RuleEntry.from_dict(data),
            position=int(data["position"]),
            superseded=bool(data.get("superseded", False)),
        )


@dataclass(frozen=True)
class PruningProposal:
    """Removal candidates needed to bring a change under the ceiling."""

    projected: int
    ceiling: int
    candidates: List[PruningCandidate] = field(default_factory=list)
    suggested: List[PruningCandidate] = field(default_factory=list)

    @property
    def overflow(self) -> int:
        return max(self.projected - self.ceiling, 0)

    @property
    def feasible(self) -> bool:
        """True when removing candidates can cover the overflow."""
        return len(self.candidates) >= self.overflow

    def suggested_keys(self) -> List[str]:
        return [c.entry.key for c in self.suggested]

    def describe(self) -> List[str]:
        """Human-readable lines for the approver."""
        lines = [
            f"Projected {self.projected} lines exceeds ceiling {self.ceiling}; "
            f"remove at least {self.overflow}."
        ]
        suggested = set(self.suggested_keys())
        for c in self.candidates:
            marker = "*" if c.entry.key in suggested else " "
            status = "superseded" if c.superseded else ("manual" if c.entry.is_manual else "active")
            lines.append(f" {marker} {c.entry.key} #{c.position + 1} [{status}] {c.entry.render()}")
        return lines

    def to_dict(self) -> Dict[str, Any]:
        return {
            "projected": self.projected,
            "ceiling": self.ceiling,
            "candidates": [c.to_dict() for c in self.candidates],
            "suggested": self.suggested_keys(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PruningProposal":
        candidates = [PruningCandidate.from_dict(c) for c in data.get("candidates") or []]
        by_key = {c.entry.key: c for c in candidates}
        suggested = [by_key[k] for k in data.get("suggested") or [] if k in by_key]
        return cls(
            projected=int(data["projected"]),
            ceiling=int(data["ceiling"]),
            candidates=candidates,
            suggested=suggested,
        )


def build_pruning_proposal(
    document: RulesetDocument,
    additions: Sequence[RuleEntry],
    superseded_ids: Collection[str],
    ceiling: int,
    removals: Collection[str] = (),
) -> Optional[PruningProposal]:
    """
    Build a pruning proposal, or None when the change already fits.

    Args:
        document: Committed snapshot the change applies to
        additions: Entries to append
        superseded_ids: Incident ids that a later incident supersedes
        ceiling: Maximum rendered line count
        removals: Keys already selected for removal
    """
    projected = document.projected_line_count(additions, removals)
    if projected <= ceiling:
        return None

    removal_set = set(removals)
    candidates = [
        PruningCandidate(
            entry=entry,
            position=idx,
            superseded=entry.source_id is not None and entry.source_id in superseded_ids,
        )
        for idx, entry in enumerate(document.entries)
        if entry.key not in removal_set
    ]

    overflow = projected - ceiling
    ordered = [c for c in candidates if c.superseded] + [c for c in candidates if not c.superseded]
    suggested = sorted(ordered[:overflow], key=lambda c: c.position)

    return PruningProposal(
        projected=projected,
        ceiling=ceiling,
        candidates=candidates,
        suggested=suggested,
    )
