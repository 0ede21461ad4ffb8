"""
Ruleset Document Manager
========================

Maintains the size-bounded ruleset and enforces the line ceiling on every
mutation. Every change goes through an explicit approval step; nothing is
written to the ruleset until ``approve(Decision.APPROVED)``.

CRITICAL INVARIANTS:
- A committed document never exceeds the ceiling
- Every entry resolves to an incident record or is a manual note
- At most one open proposal per ruleset
- Commits apply against the revision the proposal was drafted from
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

from casebook.core.settings import get_settings
from casebook.errors import (
    CapacityError,
    ConcurrentProposalError,
    NotFoundError,
    StaleRevisionError,
    ValidationError,
)
from casebook.incidents import IncidentStore
from casebook.integrations.ports import LoggingOutcomeReporter, OutcomeReporter, ProposalOutcome
from .document import RulesetDocument
from .proposal import Decision, Proposal, ProposalEdits, ProposalState
from .pruning import build_pruning_proposal
from .repository import RulesetRepository
from .schema import EntryInput, RuleEntry

logger = logging.getLogger(__name__)

_path_locks: Dict[Path, threading.RLock] = {}
_path_locks_guard = threading.Lock()


def _lock_for(path: Path) -> threading.RLock:
    key = path.resolve()
    with _path_locks_guard:
        if key not in _path_locks:
            _path_locks[key] = threading.RLock()
        return _path_locks[key]


@dataclass(frozen=True)
class CommitResult:
    """Result of a committed change."""
    proposal_id: str
    revision: int
    added: List[RuleEntry]
    removed: List[RuleEntry]
    line_count: int


class RulesetManager:
    """
    Approval-gated manager for the operating-rules document.

    Usage:
        manager = RulesetManager(store)
        proposal = manager.propose_addition([
            ("WARNING", "Never reuse client order ids after reconnect", "PM-001"),
        ])
        result = manager.approve(Decision.APPROVED)
    """

    def __init__(
        self,
        store: IncidentStore,
        repository: Optional[RulesetRepository] = None,
        ceiling: Optional[int] = None,
        max_statement_length: Optional[int] = None,
        reporter: Optional[OutcomeReporter] = None,
    ):
        settings = get_settings()
        self.store = store
        self.repository = repository or RulesetRepository(settings.ruleset_path, settings.pending_path)
        self.ceiling = ceiling if ceiling is not None else settings.line_ceiling
        self.max_statement_length = (
            max_statement_length if max_statement_length is not None else settings.max_statement_length
        )
        self.reporter = reporter or LoggingOutcomeReporter()
        self._lock = _lock_for(self.repository.ruleset_path)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def load_document(self) -> RulesetDocument:
        return self.repository.read_document()

    def current_line_count(self) -> int:
        """Rendered line count of the committed document."""
        return self.load_document().line_count

    def pending(self) -> Optional[Proposal]:
        """The open proposal, or None."""
        data = self.repository.read_pending()
        return Proposal.from_dict(data) if data is not None else None

    def initialize(self) -> RulesetDocument:
        """Create an empty ruleset file if the project has none yet."""
        with self._lock:
            if self.repository.exists():
                return self.load_document()
            document = RulesetDocument()
            self.repository.write_document(document)
            logger.info(f"actions: ruleset_initialized path={self.repository.ruleset_path}")
            return document

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def propose_addition(self, entries: Sequence[EntryInput]) -> Proposal:
        """
        Propose new entries and move the change to PENDING_APPROVAL.

        A proposal still in DRAFTING (after a rejection) is replaced by this one.

        Raises:
            ValidationError: Malformed entry, unresolvable source or duplicate
            ConcurrentProposalError: Another proposal awaits approval
            CapacityError: No pruning can make room for the entries
        """
        with self._lock:
            candidates = self._validate_entries(entries)

            existing = self.pending()
            if existing is not None and existing.state == ProposalState.PENDING_APPROVAL:
                raise ConcurrentProposalError(
                    f"Proposal {existing.proposal_id} is awaiting approval",
                    hint="Approve, reject or cancel it before proposing another change",
                )

            document = self.load_document()
            self._check_duplicates(candidates, document)

            proposal = Proposal(entries=candidates, base_revision=document.revision)
            if existing is not None:
                proposal.feedback = existing.feedback
                logger.info(f"Replacing drafting proposal {existing.proposal_id} with {proposal.proposal_id}")

            self._submit(proposal, document)
            return proposal

    def resubmit(self) -> Proposal:
        """
        Re-validate a DRAFTING proposal against the current document.

        Raises:
            ValidationError: No drafting proposal, or its entries are invalid
            CapacityError: No pruning can make room for the entries
        """
        with self._lock:
            proposal = self._require_pending(ProposalState.DRAFTING)
            proposal.entries = self._validate_entries(proposal.entries)
            document = self.load_document()
            self._check_duplicates(proposal.entries, document)
            self._submit(proposal, document)
            return proposal

    def approve(
        self,
        decision: Union[Decision, str],
        edits: Optional[ProposalEdits] = None,
    ) -> Union[CommitResult, Proposal]:
        """
        Resolve the pending proposal.

        APPROVED commits additions and removals atomically and returns a
        ``CommitResult``. REJECTED returns the proposal to DRAFTING with the
        edits applied and returns it.

        Raises:
            ValidationError: No pending proposal or invalid edits
            StaleRevisionError: The document changed since the proposal was drafted
            CapacityError: The edited change does not fit under the ceiling
        """
        decision = Decision(decision)
        with self._lock:
            proposal = self._require_pending(ProposalState.PENDING_APPROVAL)
            if decision == Decision.REJECTED:
                return self._reject(proposal, edits)
            return self._commit(proposal, edits)

    def cancel(self) -> bool:
        """Discard the open proposal. Returns False when there was none."""
        with self._lock:
            proposal = self.pending()
            if proposal is None:
                return False
            self.repository.delete_pending()
            logger.info(f"actions: proposal_cancelled id={proposal.proposal_id} state={proposal.state.value}")
            self.reporter.report(ProposalOutcome(proposal_id=proposal.proposal_id, status="cancelled"))
            return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _submit(self, proposal: Proposal, document: RulesetDocument) -> None:
        pruning = build_pruning_proposal(
            document,
            proposal.entries,
            self.store.superseded_ids(),
            self.ceiling,
        )
        if pruning is not None and not pruning.feasible:
            raise CapacityError(
                projected=pruning.projected,
                ceiling=self.ceiling,
                pruning=pruning,
                hint=(
                    f"Removing all {len(pruning.candidates)} existing entries still leaves "
                    f"{pruning.overflow - len(pruning.candidates)} line(s) over; propose fewer entries"
                ),
            )

        proposal.base_revision = document.revision
        proposal.pruning = pruning
        proposal.removals = pruning.suggested_keys() if pruning else []
        proposal.transition(ProposalState.PENDING_APPROVAL)
        self._persist(proposal)

        projected = document.projected_line_count(proposal.entries, proposal.removals)
        logger.info(
            f"actions: proposal_pending id={proposal.proposal_id} entries={len(proposal.entries)} "
            f"base_revision={document.revision} projected_lines={projected} "
            f"pruning={'yes' if pruning else 'no'}"
        )
        self.reporter.report(
            ProposalOutcome(
                proposal_id=proposal.proposal_id,
                status=ProposalState.PENDING_APPROVAL.value,
                revision=document.revision,
                added=len(proposal.entries),
                removed=len(proposal.removals),
                line_count=projected,
            )
        )

    def _reject(self, proposal: Proposal, edits: Optional[ProposalEdits]) -> Proposal:
        proposal.transition(ProposalState.REJECTED)
        proposal.apply_edits(edits)
        proposal.pruning = None
        proposal.transition(ProposalState.DRAFTING)
        self._persist(proposal)

        logger.info(f"actions: proposal_rejected id={proposal.proposal_id} feedback={bool(proposal.feedback)}")
        self.reporter.report(
            ProposalOutcome(
                proposal_id=proposal.proposal_id,
                status=ProposalState.REJECTED.value,
                reason=proposal.feedback,
            )
        )
        return proposal

    def _commit(self, proposal: Proposal, edits: Optional[ProposalEdits]) -> CommitResult:
        proposal.apply_edits(edits)
        if not proposal.entries and not proposal.removals:
            raise ValidationError(f"Proposal {proposal.proposal_id} has nothing to commit")
        entries = self._validate_entries(proposal.entries, allow_empty=True)

        document = self.load_document()
        if document.revision != proposal.base_revision:
            proposal.transition(ProposalState.DRAFTING)
            proposal.pruning = None
            self._persist(proposal)
            raise StaleRevisionError(expected=proposal.base_revision, actual=document.revision)

        unknown = set(proposal.removals) - set(document.keys())
        if unknown:
            raise ValidationError(f"Cannot remove unknown rule entries: {', '.join(sorted(unknown))}")
        self._check_duplicates(entries, document, removals=proposal.removals)

        projected = document.projected_line_count(entries, proposal.removals)
        if projected > self.ceiling:
            pruning = build_pruning_proposal(
                document, entries, self.store.superseded_ids(), self.ceiling, proposal.removals
            )
            proposal.pruning = pruning
            self._persist(proposal)
            logger.warning(
                f"Commit of {proposal.proposal_id} refused: {projected} lines > ceiling {self.ceiling}"
            )
            raise CapacityError(projected=projected, ceiling=self.ceiling, pruning=pruning)

        proposal.transition(ProposalState.APPROVED)
        removed = [document.find(key) for key in proposal.removals]
        new_document = document.apply(entries, proposal.removals)
        if new_document.line_count > self.ceiling:
            raise CapacityError(projected=new_document.line_count, ceiling=self.ceiling)

        self.repository.write_document(new_document)
        proposal.transition(ProposalState.COMMITTED)
        self.repository.delete_pending()

        result = CommitResult(
            proposal_id=proposal.proposal_id,
            revision=new_document.revision,
            added=list(entries),
            removed=[e for e in removed if e is not None],
            line_count=new_document.line_count,
        )
        logger.info(
            f"actions: ruleset_committed id={proposal.proposal_id} revision={result.revision} "
            f"added={len(result.added)} removed={len(result.removed)} lines={result.line_count}"
        )
        self.reporter.report(
            ProposalOutcome(
                proposal_id=proposal.proposal_id,
                status=ProposalState.COMMITTED.value,
                revision=result.revision,
                added=len(result.added),
                removed=len(result.removed),
                line_count=result.line_count,
            )
        )
        return result

    def _validate_entries(self, entries: Iterable[EntryInput], allow_empty: bool = False) -> List[RuleEntry]:
        candidates = [RuleEntry.coerce(e) for e in entries]
        if not candidates and not allow_empty:
            raise ValidationError("A proposal needs at least one rule entry")

        for entry in candidates:
            entry.validate(self.max_statement_length)
            if entry.source_id is not None:
                try:
                    self.store.get_by_id(entry.source_id)
                except NotFoundError as e:
                    raise ValidationError(
                        f"Rule source {entry.source_id} does not resolve to an incident record "
                        f"(statement: {entry.statement[:40]!r})"
                    ) from e
        return candidates

    def _check_duplicates(
        self,
        entries: Sequence[RuleEntry],
        document: RulesetDocument,
        removals: Iterable[str] = (),
    ) -> None:
        kept = set(document.keys()) - set(removals)
        seen = set()
        for entry in entries:
            if entry.key in kept:
                raise ValidationError(f"Rule already present in the ruleset: {entry.render()}")
            if entry.key in seen:
                raise ValidationError(f"Rule proposed twice: {entry.render()}")
            seen.add(entry.key)

    def _require_pending(self, state: ProposalState) -> Proposal:
        proposal = self.pending()
        if proposal is None:
            raise ValidationError("No open proposal")
        if proposal.state != state:
            raise ValidationError(
                f"Proposal {proposal.proposal_id} is {proposal.state.value}, expected {state.value}"
            )
        return proposal

    def _persist(self, proposal: Proposal) -> None:
        self.repository.write_pending(proposal.to_dict())
