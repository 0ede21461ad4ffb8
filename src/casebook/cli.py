"""
Casebook CLI Entry Point

Incident archive and operating-rules maintenance:
    casebook incident create --title ... --severity HIGH --root-cause ...
    casebook incident search order duplication
    casebook rules propose --entry "WARNING|Never reuse order ids|PM-001"
    casebook rules approve
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import pandas as pd

from casebook.core.settings import get_settings
from casebook.core.settings.constants import DEFAULT_POSTMORTEM_DIRNAME, DEFAULT_RULESET_FILENAME
from casebook.distill import draft_entries
from casebook.errors import CapacityError, CasebookError
from casebook.incidents import IncidentStore
from casebook.integrations import JsonlOutcomeReporter, LoggingOutcomeReporter, YamlWorkItemSource, recall_for_work_item
from casebook.reports import coverage_frame, incident_frame
from casebook.ruleset import Decision, ProposalEdits, RulesetManager, RulesetRepository

logger = logging.getLogger(__name__)


def _build(args) -> Tuple[IncidentStore, RulesetManager]:
    settings = get_settings()
    if args.root:
        root = Path(args.root)
        postmortem_dir = root / DEFAULT_POSTMORTEM_DIRNAME
        ruleset_path = root / DEFAULT_RULESET_FILENAME
    else:
        postmortem_dir = settings.postmortem_dir
        ruleset_path = settings.ruleset_path

    reporter = (
        JsonlOutcomeReporter(settings.outcome_log_path)
        if settings.outcome_log_path
        else LoggingOutcomeReporter()
    )
    store = IncidentStore(postmortem_dir)
    manager = RulesetManager(store, RulesetRepository(ruleset_path), reporter=reporter)
    return store, manager


def _parse_entry(raw: str) -> Tuple[str, str, Optional[str]]:
    parts = raw.split("|")
    if len(parts) not in (2, 3):
        raise argparse.ArgumentTypeError(
            f"Entry must be 'CATEGORY|statement' or 'CATEGORY|statement|SOURCE', got {raw!r}"
        )
    category, statement = parts[0], parts[1]
    source = parts[2] if len(parts) == 3 else None
    return category, statement.strip(), source


def _print_frame(frame: pd.DataFrame) -> None:
    if frame.empty:
        print("(none)")
        return
    print(frame.to_string(index=False))


def _print_proposal(proposal) -> None:
    for line in proposal.summary():
        print(line)


# ----------------------------------------------------------------------
# incident commands
# ----------------------------------------------------------------------

def cmd_incident_create(args) -> int:
    store, _ = _build(args)
    record_id = store.create_record(
        title=args.title,
        severity=args.severity,
        timeline=args.timeline,
        root_cause=args.root_cause,
        mitigation=args.mitigation,
        keywords=args.keyword,
        references=args.reference,
        supersedes=args.supersedes,
    )
    print(record_id)
    return 0


def cmd_incident_show(args) -> int:
    store, _ = _build(args)
    print(store.get_by_id(args.id).to_markdown(), end="")
    return 0


def cmd_incident_search(args) -> int:
    store, _ = _build(args)
    hits = list(store.search(args.keywords))
    for record in hits:
        print(f"{record.id}  [{record.severity.value}]  {record.title}")
    if not hits:
        print("(no matches)")
    return 0


def cmd_incident_list(args) -> int:
    store, _ = _build(args)
    _print_frame(incident_frame(store))
    return 0


def cmd_incident_recall(args) -> int:
    store, _ = _build(args)
    source = YamlWorkItemSource(Path(args.work_items))
    for record in recall_for_work_item(store, source, args.work_item):
        print(f"{record.id}  [{record.severity.value}]  {record.title}")
    return 0


# ----------------------------------------------------------------------
# rules commands
# ----------------------------------------------------------------------

def cmd_rules_init(args) -> int:
    _, manager = _build(args)
    document = manager.initialize()
    print(f"Ruleset at revision {document.revision} ({document.line_count} lines)")
    return 0


def cmd_rules_status(args) -> int:
    _, manager = _build(args)
    document = manager.load_document()
    print(f"Revision: {document.revision}")
    print(f"Lines: {document.line_count}/{manager.ceiling}")
    proposal = manager.pending()
    if proposal is None:
        print("No open proposal")
    else:
        _print_proposal(proposal)
    return 0


def cmd_rules_propose(args) -> int:
    _, manager = _build(args)
    proposal = manager.propose_addition(args.entry)
    _print_proposal(proposal)
    return 0


def cmd_rules_distill(args) -> int:
    store, manager = _build(args)
    drafts = draft_entries(store.get_by_id(args.id), manager.max_statement_length)
    if args.propose:
        _print_proposal(manager.propose_addition(drafts))
    else:
        for entry in drafts:
            print(entry.render())
    return 0


def cmd_rules_approve(args) -> int:
    _, manager = _build(args)
    edits = None
    if args.remove is not None or args.feedback:
        edits = ProposalEdits(removals=args.remove, feedback=args.feedback)
    result = manager.approve(Decision.APPROVED, edits)
    print(f"Committed revision {result.revision}: +{len(result.added)} -{len(result.removed)} ({result.line_count} lines)")
    return 0


def cmd_rules_reject(args) -> int:
    _, manager = _build(args)
    edits = ProposalEdits(
        entries=args.entry if args.entry else None,
        feedback=args.feedback,
    )
    proposal = manager.approve(Decision.REJECTED, edits)
    _print_proposal(proposal)
    return 0


def cmd_rules_resubmit(args) -> int:
    _, manager = _build(args)
    _print_proposal(manager.resubmit())
    return 0


def cmd_rules_cancel(args) -> int:
    _, manager = _build(args)
    print("Proposal cancelled" if manager.cancel() else "No open proposal")
    return 0


def cmd_rules_coverage(args) -> int:
    store, manager = _build(args)
    _print_frame(coverage_frame(store, manager.load_document()))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="casebook",
        description="Casebook - incident archive and size-bounded operating rules",
    )
    parser.add_argument("--root", default=None, help="Project root (default: CASEBOOK_ROOT or CWD)")
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: LOG_LEVEL or INFO)",
    )
    groups = parser.add_subparsers(dest="group", required=True)

    # incident
    incident = groups.add_parser("incident", help="Incident record archive").add_subparsers(
        dest="command", required=True
    )

    p = incident.add_parser("create", help="Create an incident record")
    p.add_argument("--title", required=True)
    p.add_argument("--severity", required=True, help="CRITICAL, HIGH, MEDIUM or LOW")
    p.add_argument("--root-cause", required=True)
    p.add_argument("--timeline", default="")
    p.add_argument("--mitigation", default="")
    p.add_argument("--keyword", action="append", default=[])
    p.add_argument("--reference", action="append", default=[])
    p.add_argument("--supersedes", action="append", default=[])
    p.set_defaults(func=cmd_incident_create)

    p = incident.add_parser("show", help="Show one incident record")
    p.add_argument("id")
    p.set_defaults(func=cmd_incident_show)

    p = incident.add_parser("search", help="Search incident records by keyword")
    p.add_argument("keywords", nargs="*")
    p.set_defaults(func=cmd_incident_search)

    p = incident.add_parser("list", help="List incident records")
    p.set_defaults(func=cmd_incident_list)

    p = incident.add_parser("recall", help="Incidents relevant to a work item")
    p.add_argument("work_item")
    p.add_argument("--work-items", required=True, help="YAML file describing work items")
    p.set_defaults(func=cmd_incident_recall)

    # rules
    rules = groups.add_parser("rules", help="Operating rules document").add_subparsers(
        dest="command", required=True
    )

    p = rules.add_parser("init", help="Create an empty ruleset")
    p.set_defaults(func=cmd_rules_init)

    p = rules.add_parser("status", help="Show revision, line count and the open proposal")
    p.set_defaults(func=cmd_rules_status)

    p = rules.add_parser("propose", help="Propose new rule entries")
    p.add_argument("--entry", action="append", required=True, type=_parse_entry,
                   help="CATEGORY|statement|SOURCE (SOURCE omitted or 'manual' for manual notes)")
    p.set_defaults(func=cmd_rules_propose)

    p = rules.add_parser("distill", help="Draft entries from an incident")
    p.add_argument("id")
    p.add_argument("--propose", action="store_true", help="Propose the drafts directly")
    p.set_defaults(func=cmd_rules_distill)

    p = rules.add_parser("approve", help="Approve and commit the open proposal")
    p.add_argument("--remove", action="append", default=None,
                   help="Entry key to prune (replaces the suggested removals)")
    p.add_argument("--feedback", default=None)
    p.set_defaults(func=cmd_rules_approve)

    p = rules.add_parser("reject", help="Reject the open proposal back to drafting")
    p.add_argument("--feedback", required=True)
    p.add_argument("--entry", action="append", default=[], type=_parse_entry,
                   help="Replacement entry for the next cycle")
    p.set_defaults(func=cmd_rules_reject)

    p = rules.add_parser("resubmit", help="Resubmit a drafting proposal")
    p.set_defaults(func=cmd_rules_resubmit)

    p = rules.add_parser("cancel", help="Discard the open proposal")
    p.set_defaults(func=cmd_rules_cancel)

    p = rules.add_parser("coverage", help="Rules distilled per incident")
    p.set_defaults(func=cmd_rules_coverage)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level or get_settings().log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        return args.func(args)
    except CapacityError as e:
        print(f"Error: {e}", file=sys.stderr)
        if e.pruning is not None:
            for line in e.pruning.describe():
                print(line, file=sys.stderr)
        return 2
    except CasebookError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":  # pragma: no cover - thin CLI wrapper
    sys.exit(main())
