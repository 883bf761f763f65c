"""Advisory sync status derived from reachability transitions."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Protocol

from .reachability import ReachabilityMonitor

logger = logging.getLogger(__name__)

DEFAULT_SETTLE_SECONDS = 1.2


class SyncStatus(str, Enum):
    IDLE = "idle"
    OFFLINE = "offline"
    RESYNCING = "resyncing"


_LABELS: dict[SyncStatus, str | None] = {
    SyncStatus.IDLE: None,
    SyncStatus.OFFLINE: "Offline",
    SyncStatus.RESYNCING: "Syncing…",
}


class TimerHandle(Protocol):
    def cancel(self) -> Any:
        ...


class Scheduler(Protocol):
    """Anything with ``call_later``; an asyncio event loop qualifies."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        ...


class SyncStatusCoordinator:
    """Tri-state status with a settle-down timer after reconnecting.

    The remote store gives no completion signal, so ``RESYNCING`` is shown for
    a fixed interval after coming back online. Nothing here gates store
    operations.
    """

    def __init__(
        self,
        scheduler: Scheduler | None = None,
        *,
        settle_seconds: float = DEFAULT_SETTLE_SECONDS,
    ) -> None:
        self._scheduler = scheduler
        self._settle_seconds = settle_seconds
        self._state = SyncStatus.IDLE
        self._timer: TimerHandle | None = None
        self._generation = 0
        self._listeners: list[Callable[[SyncStatus], None]] = []

    @property
    def state(self) -> SyncStatus:
        return self._state

    @property
    def label(self) -> str | None:
        return _LABELS[self._state]

    def add_listener(self, listener: Callable[[SyncStatus], None]) -> None:
        self._listeners.append(listener)

    def attach(self, monitor: ReachabilityMonitor) -> Callable[[], None]:
        """Subscribe to ``monitor``; returns the unsubscribe callable."""

        return monitor.subscribe(self.handle_network_change)

    def handle_network_change(self, online: bool) -> None:
        if not online:
            self._cancel_timer()
            self._set_state(SyncStatus.OFFLINE)
            return

        if self._state is SyncStatus.OFFLINE:
            self._set_state(SyncStatus.RESYNCING)
            self._arm_timer()
        else:
            self._cancel_timer()
            self._set_state(SyncStatus.IDLE)

    def _arm_timer(self) -> None:
        self._cancel_timer()
        generation = self._generation
        scheduler = self._scheduler or asyncio.get_running_loop()
        self._timer = scheduler.call_later(
            self._settle_seconds, lambda: self._settle(generation)
        )

    def _cancel_timer(self) -> None:
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _settle(self, generation: int) -> None:
        if generation != self._generation or self._state is not SyncStatus.RESYNCING:
            return
        self._timer = None
        self._set_state(SyncStatus.IDLE)

    def _set_state(self, state: SyncStatus) -> None:
        if state is self._state:
            return
        previous, self._state = self._state, state
        logger.info(
            "Sync status changed",
            extra={"previous": previous.value, "state": state.value},
        )
        for listener in list(self._listeners):
            listener(state)


__all__ = ["DEFAULT_SETTLE_SECONDS", "Scheduler", "SyncStatus", "SyncStatusCoordinator"]
