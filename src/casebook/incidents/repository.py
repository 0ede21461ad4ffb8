"""Incident Repository - Handles path resolution and file I/O for postmortem YAMLs."""

import os
import tempfile
from pathlib import Path
from typing import Dict, Any, Iterator, List, Optional, Tuple

import yaml

from casebook.errors import NotFoundError, ValidationError
from .schema import RECORD_ID_PATTERN, normalize_record_id


class IncidentRepository:
    """Repository for one-file-per-incident storage."""

    def __init__(self, base_path: Path):
        """
        Initialize repository.

        Args:
            base_path: Directory holding ``<ID>-<slug>.yaml`` files
        """
        self.base_path = Path(base_path)

    def _scan(self) -> List[Tuple[int, str, Path]]:
        if not self.base_path.exists():
            return []
        found = []
        for path in self.base_path.glob("*.yaml"):
            record_id = _id_from_filename(path.name)
            if record_id is None:
                continue
            found.append((int(record_id.split("-", 1)[1]), record_id, path))
        found.sort(key=lambda item: item[0])
        return found

    def iter_paths(self) -> Iterator[Tuple[str, Path]]:
        """Yield (record_id, path) in creation order."""
        for _, record_id, path in self._scan():
            yield record_id, path

    def max_sequence(self) -> int:
        """Highest sequence number on disk, 0 for an empty archive."""
        scanned = self._scan()
        return scanned[-1][0] if scanned else 0

    def find_path(self, record_id: str) -> Path:
        """
        Locate the file for a record.

        Raises:
            NotFoundError: If no file carries that identifier
        """
        wanted = normalize_record_id(record_id)
        for current_id, path in self.iter_paths():
            if current_id == wanted:
                return path
        raise NotFoundError(wanted)

    def read_record_file(self, path: Path) -> Dict[str, Any]:
        """
        Read and parse one record file.

        Raises:
            ValidationError: If the file is not a YAML mapping
        """
        with open(path, "r", encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ValidationError(f"Incident file {path.name} is not valid YAML: {e}") from e
        if not isinstance(data, dict):
            raise ValidationError(f"Incident file {path.name} must contain a YAML mapping")
        return data

    def write_record_file(self, filename: str, content: Dict[str, Any]) -> Path:
        """
        Atomically write a new record file (crash-safe: tmp + rename).

        Args:
            filename: Target file name (``<ID>-<slug>.yaml``)
            content: Record as a plain dictionary

        Raises:
            ValidationError: If a file for that identifier already exists
            OSError: If the write fails
        """
        record_id = _id_from_filename(filename)
        if record_id is None or record_id != content.get("id"):
            raise ValidationError(
                f"Record id mismatch: filename '{filename}', content has '{content.get('id')}'"
            )

        self.base_path.mkdir(parents=True, exist_ok=True)

        existing: Optional[Path] = None
        try:
            existing = self.find_path(record_id)
        except NotFoundError:
            pass
        if existing is not None:
            raise ValidationError(f"Incident record {record_id} already exists: {existing.name}")

        target_path = self.base_path / filename
        tmp_fd, tmp_path = tempfile.mkstemp(
            dir=self.base_path,
            prefix=f".{record_id}_",
            suffix=".yaml.tmp",
        )

        try:
            with os.fdopen(tmp_fd, "w", encoding="utf-8") as f:
                yaml.safe_dump(content, f, default_flow_style=False, sort_keys=False, allow_unicode=True)

            with open(tmp_path, "r", encoding="utf-8") as f:
                yaml.safe_load(f)

            os.replace(tmp_path, target_path)

        except Exception:
            if Path(tmp_path).exists():
                os.unlink(tmp_path)
            raise

        return target_path


def _id_from_filename(name: str) -> Optional[str]:
    if name.startswith("."):
        return None
    stem = name[: -len(".yaml")] if name.endswith(".yaml") else name
    parts = stem.split("-", 2)
    if len(parts) < 2:
        return None
    candidate = f"{parts[0]}-{parts[1]}"
    return candidate if RECORD_ID_PATTERN.match(candidate) else None
