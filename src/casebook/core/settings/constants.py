from __future__ import annotations

from typing import Tuple


SEVERITIES: Tuple[str, ...] = ("CRITICAL", "HIGH", "MEDIUM", "LOW")
RULE_CATEGORIES: Tuple[str, ...] = ("WARNING", "DIRECTIVE", "PARAMETER")

RULESET_LINE_CEILING: int = 100
DEFAULT_MAX_STATEMENT_LENGTH: int = 200

DEFAULT_ID_PREFIX: str = "PM"
ID_NUMBER_WIDTH: int = 3
SLUG_MAX_LENGTH: int = 40

DEFAULT_POSTMORTEM_DIRNAME: str = "postmortem"
DEFAULT_RULESET_FILENAME: str = "OPERATING_RULES.md"
RULESET_TITLE: str = "# Operating Rules"
PENDING_SUFFIX: str = ".pending.yaml"

MANUAL_SOURCE: str = "manual"
