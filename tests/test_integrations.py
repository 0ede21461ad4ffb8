import json

import pytest

from casebook.errors import NotFoundError, ValidationError
from casebook.integrations import (
    JsonlOutcomeReporter,
    OutcomeReporter,
    ProposalOutcome,
    WorkItemSource,
    YamlWorkItemSource,
    recall_for_work_item,
)
from casebook.ruleset import Decision, RulesetManager


@pytest.fixture
def work_items(tmp_path):
    path = tmp_path / "work_items.yaml"
    path.write_text(
        "TRD-1:\n"
        "  keywords: [logging]\n"
        "  incidents: [PM-001]\n"
        "TRD-2:\n"
        "  keywords: [order]\n"
        "TRD-3:\n"
        "  incidents: [PM-099]\n",
        encoding="utf-8",
    )
    return YamlWorkItemSource(path)


def test_protocols():
    assert isinstance(YamlWorkItemSource("x.yaml"), WorkItemSource)
    assert isinstance(JsonlOutcomeReporter("x.jsonl"), OutcomeReporter)


def test_recall_links_first_then_search(store, work_items, order_incident):
    store.create_record(
        title="Log flood", severity="LOW", timeline="", root_cause="x", mitigation="", keywords=["logging"],
    )
    recalled = recall_for_work_item(store, work_items, "TRD-1")
    assert [r.id for r in recalled] == ["PM-001", "PM-002"]


def test_recall_deduplicates(store, work_items, order_incident):
    recalled = recall_for_work_item(store, work_items, "TRD-2")
    assert [r.id for r in recalled] == ["PM-001"]


def test_recall_unknown_work_item(store, work_items, order_incident):
    assert recall_for_work_item(store, work_items, "TRD-404") == []


def test_recall_broken_link(store, work_items):
    with pytest.raises(NotFoundError):
        recall_for_work_item(store, work_items, "TRD-3")


def test_missing_work_item_file(tmp_path):
    with pytest.raises(ValidationError, match="not found"):
        YamlWorkItemSource(tmp_path / "missing.yaml").keywords_for("TRD-1")


def test_jsonl_reporter_records_commit(tmp_path, store, repository, order_incident):
    log_path = tmp_path / "logs" / "outcomes.jsonl"
    manager = RulesetManager(store, repository, reporter=JsonlOutcomeReporter(log_path))
    manager.propose_addition([("WARNING", "Persist client order ids", "PM-001")])
    manager.approve(Decision.APPROVED)

    lines = [json.loads(line) for line in log_path.read_text(encoding="utf-8").splitlines()]
    assert [line["status"] for line in lines] == ["pending_approval", "committed"]
    assert lines[-1]["revision"] == 1
    assert lines[-1]["line_count"] == 3


def test_outcome_to_dict():
    outcome = ProposalOutcome(proposal_id="abc", status="cancelled")
    data = outcome.to_dict()
    assert data["proposal_id"] == "abc"
    assert data["revision"] is None
