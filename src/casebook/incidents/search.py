"""
Keyword search over the incident archive.

Ranking is deterministic:
1. records with an exact keyword match
2. records where a query term is a substring of a keyword or a free-text field
3. within a tier, most recent record first

An empty query yields every record in creation order.
"""

from __future__ import annotations

from typing import Callable, FrozenSet, Iterable, Iterator, List, Optional, Tuple

from .schema import IncidentRecord, normalize_keywords

EXACT_MATCH = 0
SUBSTRING_MATCH = 1


def match_tier(record: IncidentRecord, terms: FrozenSet[str]) -> Optional[int]:
    """Return the best match tier for a record, or None when nothing matches."""
    if terms & record.keywords:
        return EXACT_MATCH

    haystacks = list(record.keywords) + [t.lower() for t in record.text_fields().values()]
    for term in terms:
        if any(term in h for h in haystacks):
            return SUBSTRING_MATCH
    return None


def rank(records: Iterable[IncidentRecord], terms: FrozenSet[str]) -> List[IncidentRecord]:
    """Order matching records by (tier, most recent first)."""
    if not terms:
        return sorted(records, key=lambda r: r.sequence)

    scored: List[Tuple[int, int, IncidentRecord]] = []
    for record in records:
        tier = match_tier(record, terms)
        if tier is not None:
            scored.append((tier, -record.sequence, record))
    scored.sort(key=lambda item: (item[0], item[1]))
    return [record for _, _, record in scored]


class SearchResults:
    """
    Lazy, restartable result sequence.

    Nothing is read until iteration starts; every new iteration rescans the
    archive, so results reflect writes made since the object was created.
    """

    def __init__(self, loader: Callable[[], Iterable[IncidentRecord]], keywords: Iterable[str]):
        self._loader = loader
        self.terms = normalize_keywords(keywords)

    def __iter__(self) -> Iterator[IncidentRecord]:
        yield from rank(self._loader(), self.terms)

    def ids(self) -> List[str]:
        return [record.id for record in self]

    def first(self) -> Optional[IncidentRecord]:
        return next(iter(self), None)

    def __repr__(self) -> str:
        return f"SearchResults(terms={sorted(self.terms)})"
