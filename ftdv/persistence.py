"""Reviewed-file persistence.

One JSON document holds the reviewed paths of every repository, keyed by an
identity string. Writes go to a sibling temp file that replaces the real one,
so an interrupted save never leaves a truncated document behind.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from platformdirs import user_data_dir

logger = logging.getLogger(__name__)

APP_NAME = "ftdv"
STATE_FILENAME = "reviewed.json"
STATE_PATH = Path(user_data_dir(APP_NAME, appauthor=False)) / STATE_FILENAME
FORMAT_VERSION = 1


class PersistenceError(Exception):
    """Raised when reviewed state cannot be read or written."""


class ReviewStore:
    """Load and save reviewed path sets in a single JSON file."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path if path is not None else STATE_PATH

    def _read_document(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            raw = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise PersistenceError(f"cannot read {self.path}: {exc}") from exc
        try:
            data = json.loads(raw) if raw.strip() else {}
        except json.JSONDecodeError as exc:
            raise PersistenceError(f"corrupt reviewed state in {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise PersistenceError(f"corrupt reviewed state in {self.path}: expected an object")
        return data

    def load_strict(self, identity: str) -> set[str]:
        """Return reviewed paths for ``identity``; raise ``PersistenceError`` on bad data."""
        data = self._read_document()
        repositories = data.get("repositories", {})
        if not isinstance(repositories, dict):
            raise PersistenceError(f"corrupt reviewed state in {self.path}: 'repositories' is not an object")
        record = repositories.get(identity)
        if record is None:
            return set()
        reviewed = record.get("reviewed") if isinstance(record, dict) else None
        if not isinstance(reviewed, list):
            raise PersistenceError(f"corrupt reviewed state for {identity} in {self.path}")
        return {item for item in reviewed if isinstance(item, str)}

    def load(self, identity: str) -> tuple[set[str], str | None]:
        """Return ``(reviewed paths, warning)``.

        Missing data is an empty set. Unreadable or corrupt data is also an
        empty set, with the failure logged and returned as the warning.
        """
        try:
            return self.load_strict(identity), None
        except PersistenceError as exc:
            logger.warning("persistence: %s", exc)
            return set(), str(exc)

    def save(self, identity: str, reviewed: set[str]) -> None:
        """Write ``reviewed`` for ``identity``, keeping other repositories and unknown fields.

        Raises ``PersistenceError`` when the file cannot be written. An
        unreadable existing document is replaced.
        """
        try:
            data = self._read_document()
        except PersistenceError:
            data = {}
        repositories = data.get("repositories")
        if not isinstance(repositories, dict):
            repositories = {}
        record = repositories.get(identity)
        if not isinstance(record, dict):
            record = {}
        record["reviewed"] = sorted(reviewed)
        repositories[identity] = record
        data["repositories"] = repositories
        data["version"] = FORMAT_VERSION
        self._write_atomic(json.dumps(data, indent=2, sort_keys=True) + "\n")

    def _write_atomic(self, text: str) -> None:
        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                tmp_name = handle.name
                handle.write(text)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as exc:
            raise PersistenceError(f"cannot write {self.path}: {exc}") from exc
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass
