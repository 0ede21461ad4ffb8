"""
Tests for IncidentStore
=======================

Append-only creation, identifier assignment, round-trip and lookups.
"""

import threading

import pytest

from casebook.errors import NotFoundError, ValidationError
from casebook.incidents import IncidentStore, Severity


def _create(store, title="Stale quotes in backtest", severity="MEDIUM", keywords=("quotes",), **kwargs):
    return store.create_record(
        title=title,
        severity=severity,
        timeline=kwargs.pop("timeline", "t0 load; t1 stale bar"),
        root_cause=kwargs.pop("root_cause", "Cache was never invalidated."),
        mitigation=kwargs.pop("mitigation", "Invalidate on session change."),
        keywords=keywords,
        **kwargs,
    )


class TestCreateRecord:
    """Record creation and validation."""

    def test_first_identifier(self, store):
        assert _create(store) == "PM-001"

    def test_identifiers_are_sequential(self, store):
        ids = [_create(store, title=f"Incident {i}") for i in range(3)]
        assert ids == ["PM-001", "PM-002", "PM-003"]

    def test_file_named_with_id_and_slug(self, store, tmp_path):
        _create(store, title="Duplicate Orders: on reconnect!")
        files = sorted(p.name for p in (tmp_path / "postmortem").glob("*.yaml"))
        assert files == ["PM-001-duplicate-orders-on-reconnect.yaml"]

    def test_invalid_severity(self, store):
        with pytest.raises(ValidationError, match="severity"):
            _create(store, severity="URGENT")

    def test_severity_case_insensitive(self, store):
        record_id = _create(store, severity="critical")
        assert store.get_by_id(record_id).severity == Severity.CRITICAL

    def test_empty_title(self, store):
        with pytest.raises(ValidationError, match="title"):
            _create(store, title="   ")

    def test_empty_root_cause(self, store):
        with pytest.raises(ValidationError, match="root_cause"):
            _create(store, root_cause="")

    def test_failed_creation_writes_nothing(self, store, tmp_path):
        with pytest.raises(ValidationError):
            _create(store, severity="nope")
        assert list((tmp_path / "postmortem").glob("*.yaml")) == []
        assert _create(store) == "PM-001"

    def test_unknown_reference(self, store):
        with pytest.raises(ValidationError, match="PM-009"):
            _create(store, references=["PM-009"])

    def test_duplicate_payloads_create_two_records(self, store):
        assert _create(store) == "PM-001"
        assert _create(store) == "PM-002"

    def test_custom_prefix(self, tmp_path):
        store = IncidentStore(tmp_path / "pm", id_prefix="inc")
        assert _create(store) == "INC-001"


class TestRoundTrip:
    """Creating then reading returns an identical record."""

    def test_get_by_id_identical(self, store):
        record_id = _create(
            store,
            title="Weird: yes/no \"quotes\" & unicode é",
            timeline="line one\nline two\n\n  indented: true\n",
            root_cause="Trailing whitespace kept   ",
            mitigation="2024-01-01 looks like a date\n# not a heading",
            keywords={"Order", " fills "},
        )
        first = store.get_by_id(record_id)
        second = store.get_by_id(record_id)

        assert first == second
        assert first.timeline == "line one\nline two\n\n  indented: true\n"
        assert first.root_cause == "Trailing whitespace kept   "
        assert first.mitigation == "2024-01-01 looks like a date\n# not a heading"
        assert first.keywords == frozenset({"order", "fills"})

    def test_list_records_in_creation_order(self, store):
        for i in range(12):
            _create(store, title=f"Incident {i}")
        assert [r.id for r in store.list_records()] == [f"PM-{i:03d}" for i in range(1, 13)]


class TestLookup:
    """Lookup by identifier."""

    def test_unknown_id(self, store):
        with pytest.raises(NotFoundError) as exc:
            store.get_by_id("PM-404")
        assert exc.value.record_id == "PM-404"

    def test_lookup_normalizes_case(self, store):
        record_id = _create(store)
        assert store.get_by_id(record_id.lower()).id == record_id

    def test_exists(self, store):
        _create(store)
        assert store.exists("PM-001")
        assert not store.exists("PM-002")


class TestSupersession:
    """Later records can supersede earlier ones."""

    def test_superseded_ids(self, store):
        first = _create(store, title="Old fee model")
        _create(store, title="Unrelated")
        _create(store, title="New fee model", supersedes=[first], references=["PM-002"])

        assert store.superseded_ids() == {"PM-001"}
        assert store.get_by_id("PM-003").references == frozenset({"PM-002"})


class TestConcurrency:
    """Identifier assignment is serialized."""

    def test_parallel_creation_unique_ids(self, tmp_path):
        errors = []
        ids = []
        lock = threading.Lock()

        def worker(n):
            try:
                # separate store instances share the per-directory lock
                local = IncidentStore(tmp_path / "postmortem")
                record_id = _create(local, title=f"Parallel {n}")
                with lock:
                    ids.append(record_id)
            except Exception as e:  # pragma: no cover - surfaced by assertion
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert sorted(ids) == [f"PM-{i:03d}" for i in range(1, 11)]
