"""Ruleset Repository - Handles file reading and atomic writes for the ruleset and its pending proposal."""

import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from casebook.core.settings.constants import PENDING_SUFFIX
from casebook.errors import ValidationError
from .document import RulesetDocument


class RulesetRepository:
    """Repository for the ruleset markdown file and its pending-proposal YAML."""

    def __init__(self, ruleset_path: Path, pending_path: Optional[Path] = None):
        """
        Initialize repository.

        Args:
            ruleset_path: Rendered ruleset file (e.g. OPERATING_RULES.md)
            pending_path: Optional override for the pending proposal file
        """
        self.ruleset_path = Path(ruleset_path)
        self.pending_path = Path(pending_path) if pending_path else self.ruleset_path.with_name(
            self.ruleset_path.name + PENDING_SUFFIX
        )

    def exists(self) -> bool:
        return self.ruleset_path.exists()

    def read_document(self) -> RulesetDocument:
        """
        Read the committed document.

        Returns:
            Parsed document; an empty revision-0 document if the file is missing

        Raises:
            ValidationError: If the file is malformed
        """
        if not self.ruleset_path.exists():
            return RulesetDocument()
        return RulesetDocument.parse(self.ruleset_path.read_text(encoding="utf-8"))

    def write_document(self, document: RulesetDocument) -> None:
        """
        Atomically write the ruleset (crash-safe: tmp + rename).

        Raises:
            OSError: If write fails
        """
        self._atomic_write(self.ruleset_path, document.render(), validate=RulesetDocument.parse)

    def read_pending(self) -> Optional[Dict[str, Any]]:
        """Read the pending proposal, or None when there is none."""
        if not self.pending_path.exists():
            return None
        with open(self.pending_path, "r", encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ValidationError(f"Pending proposal file is not valid YAML: {e}") from e
        if not isinstance(data, dict):
            raise ValidationError(f"Pending proposal file {self.pending_path.name} must contain a mapping")
        return data

    def write_pending(self, content: Dict[str, Any]) -> None:
        text = yaml.safe_dump(content, default_flow_style=False, sort_keys=False, allow_unicode=True)
        self._atomic_write(self.pending_path, text, validate=yaml.safe_load)

    def delete_pending(self) -> bool:
        if self.pending_path.exists():
            os.unlink(self.pending_path)
            return True
        return False

    def _atomic_write(self, target_path: Path, text: str, validate) -> None:
        target_path.parent.mkdir(parents=True, exist_ok=True)

        tmp_fd, tmp_path = tempfile.mkstemp(
            dir=target_path.parent,
            prefix=f".{target_path.name}_",
            suffix=".tmp",
        )

        try:
            with os.fdopen(tmp_fd, "w", encoding="utf-8") as f:
                f.write(text)

            # Validate tmp file is parseable
            with open(tmp_path, "r", encoding="utf-8") as f:
                validate(f.read())

            os.replace(tmp_path, target_path)

        except Exception:
            if Path(tmp_path).exists():
                os.unlink(tmp_path)
            raise
