"""Widget mirror: the companion surface's view of the current week."""

from __future__ import annotations

import logging
import threading
from datetime import date, datetime
from typing import Callable

from pydantic import ValidationError

from ..weeks import current_week_start, week_start_for
from .medium import FileMirrorMedium, MirrorUnavailableError
from .models import LEGACY_TEXT_KEYS, MirrorSnapshot
from .signal import RefreshSignal

logger = logging.getLogger(__name__)


class WidgetMirror:
    """Write and read the cross-process snapshot of the current week's intention.

    The mirror is advisory. A missing or unreadable medium yields the empty
    snapshot for the current week on read and turns writes into no-ops.
    """

    def __init__(
        self,
        medium: FileMirrorMedium,
        *,
        kind: str = "WeeklyIntentionWidget",
        signal: RefreshSignal | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._medium = medium
        self._kind = kind
        self._signal = signal
        self._clock = clock or (lambda: datetime.now().astimezone())
        self._lock = threading.Lock()

    @property
    def kind(self) -> str:
        return self._kind

    def _placeholder(self) -> MirrorSnapshot:
        return MirrorSnapshot(week_start=current_week_start(self._clock()), text="", updated_at=None)

    def write(
        self,
        week_start: date | datetime,
        text: str,
        now: datetime | None = None,
    ) -> MirrorSnapshot:
        """Replace the snapshot and ask the companion surface to re-render."""

        snapshot = MirrorSnapshot(
            week_start=week_start_for(week_start),
            text=text.strip(),
            updated_at=now or self._clock(),
        )
        with self._lock:
            try:
                self._medium.store(snapshot.to_document())
            except MirrorUnavailableError as exc:
                logger.warning("Widget mirror unavailable; skipping write", extra={"error": str(exc)})
                return snapshot

        if self._signal is not None:
            self._signal.emit(self._kind)
        logger.debug(
            "Mirrored intention",
            extra={"week_start": snapshot.week_start.isoformat(), "kind": self._kind},
        )
        return snapshot

    def read(self) -> MirrorSnapshot:
        try:
            document = self._medium.load()
        except MirrorUnavailableError as exc:
            logger.warning("Widget mirror unreadable", extra={"error": str(exc)})
            return self._placeholder()

        if document is None:
            return self._placeholder()

        if "weekStart" not in document:
            for key in LEGACY_TEXT_KEYS:
                legacy = document.get(key)
                if isinstance(legacy, str):
                    return MirrorSnapshot(
                        week_start=current_week_start(self._clock()), text=legacy
                    )
            return self._placeholder()

        try:
            return MirrorSnapshot.model_validate(document)
        except ValidationError as exc:
            logger.warning("Discarding malformed widget snapshot", extra={"error": str(exc)})
            return self._placeholder()


__all__ = ["WidgetMirror"]
