"""Fire-and-forget refresh signals addressed to a companion surface kind."""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Callable, Protocol

logger = logging.getLogger(__name__)


class RefreshSignal(Protocol):
    def emit(self, kind: str) -> None:
        ...


class FileRefreshSignal:
    """Touch ``<directory>/reload/<kind>`` so a polling reader notices the change."""

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory) / "reload"

    def marker(self, kind: str) -> Path:
        return self._directory / kind

    def emit(self, kind: str) -> None:
        marker = self.marker(kind)
        try:
            marker.parent.mkdir(parents=True, exist_ok=True)
            marker.touch()
            os.utime(marker, None)
        except OSError as exc:
            logger.warning("Refresh signal failed", extra={"kind": kind, "error": str(exc)})

    def last_emitted(self, kind: str) -> datetime | None:
        marker = self.marker(kind)
        try:
            return datetime.fromtimestamp(marker.stat().st_mtime).astimezone()
        except OSError:
            return None


class CallbackRefreshSignal:
    """Forward refresh requests to an in-process callable."""

    def __init__(self, callback: Callable[[str], None]) -> None:
        self._callback = callback

    def emit(self, kind: str) -> None:
        self._callback(kind)


__all__ = ["CallbackRefreshSignal", "FileRefreshSignal", "RefreshSignal"]
