"""Single-slot file medium readable by other processes."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

DEFAULT_FILENAME = "widget_snapshot.json"


class MirrorUnavailableError(RuntimeError):
    """Raised when the shared medium cannot be read or written."""


class FileMirrorMedium:
    """Overwrite-only JSON mailbox inside a directory shared with the companion surface.

    Writes go to a temporary file that is renamed over the previous document,
    so a reader sees either the old snapshot or the new one in full.
    """

    def __init__(self, directory: Path, *, filename: str = DEFAULT_FILENAME) -> None:
        self._directory = Path(directory)
        self._path = self._directory / filename

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> dict[str, Any] | None:
        """Return the stored document, or ``None`` when nothing was written yet."""

        if not self._path.exists():
            return None
        try:
            document = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise MirrorUnavailableError(f"Cannot read {self._path}: {exc}") from exc
        if not isinstance(document, dict):
            raise MirrorUnavailableError(f"Unexpected document in {self._path}")
        return document

    def store(self, document: dict[str, Any]) -> None:
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self._directory, prefix=".tmp_", suffix=".json")
        except OSError as exc:
            raise MirrorUnavailableError(f"Cannot open {self._directory}: {exc}") from exc
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(json.dumps(document, ensure_ascii=False))
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp, self._path)
        except OSError as exc:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise MirrorUnavailableError(f"Cannot write {self._path}: {exc}") from exc


__all__ = ["DEFAULT_FILENAME", "FileMirrorMedium", "MirrorUnavailableError"]
