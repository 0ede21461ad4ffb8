"""
Core Settings Package
=====================

Central configuration for casebook.

This package provides:
- CasebookSettings: Environment-aware configuration dataclass
- get_settings(): Singleton settings factory
- Constants: severities, rule categories, line ceiling, file names
"""

from .config import CasebookSettings, get_settings, reset_settings
from .constants import (
    SEVERITIES,
    RULE_CATEGORIES,
    RULESET_LINE_CEILING,
    DEFAULT_MAX_STATEMENT_LENGTH,
    DEFAULT_ID_PREFIX,
    MANUAL_SOURCE,
)

__all__ = [
    "CasebookSettings",
    "get_settings",
    "reset_settings",
    "SEVERITIES",
    "RULE_CATEGORIES",
    "RULESET_LINE_CEILING",
    "DEFAULT_MAX_STATEMENT_LENGTH",
    "DEFAULT_ID_PREFIX",
    "MANUAL_SOURCE",
]
