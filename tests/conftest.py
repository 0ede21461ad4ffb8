import pytest

from casebook.core.settings import reset_settings
from casebook.incidents import IncidentStore
from casebook.ruleset import RulesetManager, RulesetRepository


class RecordingReporter:
    """Collects reported outcomes."""

    def __init__(self):
        self.outcomes = []

    def report(self, outcome):
        self.outcomes.append(outcome)

    @property
    def statuses(self):
        return [o.status for o in self.outcomes]


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point settings at a fresh root and drop cached settings."""
    for var in (
        "CASEBOOK_POSTMORTEM_DIR",
        "CASEBOOK_RULESET_PATH",
        "CASEBOOK_OUTCOME_LOG",
        "CASEBOOK_ID_PREFIX",
        "CASEBOOK_MAX_STATEMENT_LENGTH",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("CASEBOOK_ROOT", str(tmp_path))
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def store(tmp_path):
    return IncidentStore(tmp_path / "postmortem")


@pytest.fixture
def reporter():
    return RecordingReporter()


@pytest.fixture
def repository(tmp_path):
    return RulesetRepository(tmp_path / "OPERATING_RULES.md")


@pytest.fixture
def manager(store, repository, reporter):
    return RulesetManager(store, repository, reporter=reporter)


@pytest.fixture
def order_incident(store):
    """PM-001: HIGH, keywords {order, duplication}."""
    return store.create_record(
        title="Duplicate orders after broker reconnect",
        severity="HIGH",
        timeline="09:31 reconnect; 09:32 second fill observed",
        root_cause="Client order ids were regenerated on reconnect.",
        mitigation="Persist client order ids. Set max_retries=3 on resend.",
        keywords={"order", "duplication"},
    )
