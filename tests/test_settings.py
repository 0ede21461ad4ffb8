from pathlib import Path

import pytest

from casebook.core.settings import CasebookSettings, get_settings, reset_settings


def test_defaults_follow_root(tmp_path):
    settings = get_settings()
    assert settings.root == tmp_path
    assert settings.postmortem_dir == tmp_path / "postmortem"
    assert settings.ruleset_path == tmp_path / "OPERATING_RULES.md"
    assert settings.pending_path == tmp_path / "OPERATING_RULES.md.pending.yaml"
    assert settings.line_ceiling == 100
    assert settings.max_statement_length == 200


def test_singleton():
    assert get_settings() is get_settings()
    first = get_settings()
    reset_settings()
    assert get_settings() is not first


def test_env_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("CASEBOOK_POSTMORTEM_DIR", str(tmp_path / "cases"))
    monkeypatch.setenv("CASEBOOK_RULESET_PATH", str(tmp_path / "CLAUDE.md"))
    monkeypatch.setenv("CASEBOOK_ID_PREFIX", "inc")
    monkeypatch.setenv("CASEBOOK_MAX_STATEMENT_LENGTH", "120")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = CasebookSettings()
    assert settings.postmortem_dir == Path(tmp_path / "cases")
    assert settings.ruleset_path == Path(tmp_path / "CLAUDE.md")
    assert settings.id_prefix == "INC"
    assert settings.max_statement_length == 120
    assert settings.log_level == "DEBUG"


def test_bad_max_length(monkeypatch):
    monkeypatch.setenv("CASEBOOK_MAX_STATEMENT_LENGTH", "lots")
    with pytest.raises(ValueError, match="must be an integer"):
        CasebookSettings()
