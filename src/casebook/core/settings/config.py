"""
Casebook Settings
=================

12-Factor configuration using a dataclass.

Settings are loaded from:
1. Environment variables (highest priority)
2. .env file (if exists)
3. Default values (fallback)

Usage:
    from casebook.core.settings import get_settings

    settings = get_settings()
    store_dir = settings.postmortem_dir
    rules_file = settings.ruleset_path
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .constants import (
    DEFAULT_ID_PREFIX,
    DEFAULT_MAX_STATEMENT_LENGTH,
    DEFAULT_POSTMORTEM_DIRNAME,
    DEFAULT_RULESET_FILENAME,
    PENDING_SUFFIX,
    RULESET_LINE_CEILING,
)

load_dotenv()


@dataclass
class CasebookSettings:
    """
    Central configuration for the incident archive and the ruleset.

    The line ceiling is not configurable from the environment.
    """

    # ===== Roots =====
    root: Path = field(default_factory=Path.cwd)

    # ===== Artifacts =====
    postmortem_dir: Optional[Path] = None
    ruleset_path: Optional[Path] = None
    outcome_log_path: Optional[Path] = None

    # ===== Rules =====
    id_prefix: str = DEFAULT_ID_PREFIX
    max_statement_length: int = DEFAULT_MAX_STATEMENT_LENGTH
    line_ceiling: int = RULESET_LINE_CEILING

    # ===== Runtime =====
    log_level: str = "INFO"

    def __post_init__(self):
        """Load environment overrides and compute derived paths."""
        self._load_from_env()
        self._set_defaults()

    def _load_from_env(self):
        """Load settings from environment variables."""
        if root := os.getenv("CASEBOOK_ROOT"):
            self.root = Path(root)
        if postmortem_dir := os.getenv("CASEBOOK_POSTMORTEM_DIR"):
            self.postmortem_dir = Path(postmortem_dir)
        if ruleset_path := os.getenv("CASEBOOK_RULESET_PATH"):
            self.ruleset_path = Path(ruleset_path)
        if outcome_log := os.getenv("CASEBOOK_OUTCOME_LOG"):
            self.outcome_log_path = Path(outcome_log)

        if prefix := os.getenv("CASEBOOK_ID_PREFIX"):
            self.id_prefix = prefix.strip().upper()

        max_len = os.getenv("CASEBOOK_MAX_STATEMENT_LENGTH")
        if max_len:
            try:
                self.max_statement_length = int(max_len)
            except ValueError:
                raise ValueError(
                    f"CASEBOOK_MAX_STATEMENT_LENGTH must be an integer, got '{max_len}'"
                )

        self.log_level = os.getenv("LOG_LEVEL", self.log_level).upper()

    def _set_defaults(self):
        """Fill unset paths relative to the root."""
        if not self.postmortem_dir:
            self.postmortem_dir = self.root / DEFAULT_POSTMORTEM_DIRNAME
        if not self.ruleset_path:
            self.ruleset_path = self.root / DEFAULT_RULESET_FILENAME

    @property
    def pending_path(self) -> Path:
        """Location of the durable pending-proposal file."""
        return self.ruleset_path.with_name(self.ruleset_path.name + PENDING_SUFFIX)


# Singleton instance
_settings: Optional[CasebookSettings] = None


def get_settings() -> CasebookSettings:
    """
    Get singleton settings instance.

    Returns:
        CasebookSettings instance
    """
    global _settings

    if _settings is None:
        _settings = CasebookSettings()

    return _settings


def reset_settings():
    """
    Reset settings (for testing).

    WARNING: Only use in tests!
    """
    global _settings
    _settings = None
