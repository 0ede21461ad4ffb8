from casebook.distill import draft_entries, first_sentence, truncate
from casebook.ruleset import RuleCategory


def test_first_sentence_collapses_whitespace():
    assert first_sentence("Ids were\n  regenerated. Then more.") == "Ids were regenerated."
    assert first_sentence("   ") == ""


def test_truncate():
    assert truncate("short", 10) == "short"
    assert truncate("abcdefghijkl", 8) == "abcde..."


def test_draft_entries_from_incident(store, order_incident):
    drafts = draft_entries(store.get_by_id(order_incident))

    assert [d.category for d in drafts] == [
        RuleCategory.WARNING,
        RuleCategory.DIRECTIVE,
        RuleCategory.PARAMETER,
    ]
    assert drafts[0].statement == (
        "Duplicate orders after broker reconnect: Client order ids were regenerated on reconnect"
    )
    assert drafts[1].statement == "Persist client order ids."
    assert drafts[2].statement == "max_retries = 3"
    assert all(d.source_id == order_incident for d in drafts)
    for d in drafts:
        d.validate()


def test_drafts_respect_length_limit(store):
    record_id = store.create_record(
        title="Very long title " * 5,
        severity="LOW",
        timeline="",
        root_cause="A cause that goes on and on " * 10,
        mitigation="",
        keywords=[],
    )
    drafts = draft_entries(store.get_by_id(record_id), max_length=60)

    assert len(drafts) == 1
    assert len(drafts[0].statement) <= 60
    assert drafts[0].statement.endswith("...")
    drafts[0].validate(60)


def test_drafts_can_be_proposed(store, manager, order_incident):
    proposal = manager.propose_addition(draft_entries(store.get_by_id(order_incident)))
    assert len(proposal.entries) == 3
