"""Keep the widget mirror in step with the authoritative store."""

from __future__ import annotations

import asyncio
import logging
import threading
from datetime import date, datetime
from typing import Callable

from .mirror import WidgetMirror
from .storage import IntentionStore, StoreFetchError
from .weeks import current_week_start, week_start_for

logger = logging.getLogger(__name__)


class ReconciliationDriver:
    """Decide when the mirror is rewritten.

    Saves to the current week are mirrored directly. Foreground resumes and
    store observations compare the stored text against the mirror and only
    write on a mismatch, since every write fires a refresh signal.

    Mirror writes are serialized by ``_lock``. Each mirrored save bumps a
    generation counter; a reconciliation pass whose store read started before
    that save discards its result instead of writing it back.
    """

    def __init__(
        self,
        store: IntentionStore,
        mirror: WidgetMirror,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._mirror = mirror
        self._clock = clock or (lambda: datetime.now().astimezone())
        self._lock = threading.Lock()
        self._generation = 0

    def handle_save(self, week_start: date, text: str) -> bool:
        now = self._clock()
        current = current_week_start(now)
        if week_start_for(week_start) != current:
            return False
        with self._lock:
            self._generation += 1
            self._mirror.write(current, text, now=now)
        return True

    def handle_foreground(self) -> bool:
        return self._reconcile("foreground")

    def handle_remote_change(self) -> bool:
        return self._reconcile("store_change")

    def _reconcile(self, trigger: str) -> bool:
        with self._lock:
            generation = self._generation
        now = self._clock()
        current = current_week_start(now)
        try:
            text = self._store.find(current)
        except StoreFetchError as exc:
            logger.warning(
                "Skipping reconciliation; store read failed",
                extra={"trigger": trigger, "error": str(exc)},
            )
            return False

        with self._lock:
            if generation != self._generation:
                logger.debug(
                    "Discarding reconciliation read overtaken by a save",
                    extra={"trigger": trigger},
                )
                return False
            return self._apply(current, text, now, trigger)

    def _apply(self, current: date, text: str, now: datetime, trigger: str) -> bool:
        snapshot = self._mirror.read()
        if snapshot.week_start == current and snapshot.text.strip() == text.strip():
            return False
        self._mirror.write(current, text, now=now)
        logger.info(
            "Widget mirror refreshed",
            extra={"trigger": trigger, "week_start": current.isoformat()},
        )
        return True

    async def watch(self, interval: float) -> None:
        """Poll the store for changes that arrived without a local save."""

        while True:
            await asyncio.sleep(interval)
            await asyncio.to_thread(self._reconcile, "store_poll")


__all__ = ["ReconciliationDriver"]
