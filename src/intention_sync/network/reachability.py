"""Network reachability monitor.

A daemon thread probes a TCP endpoint and pushes online/offline transitions
to subscribers. Deliveries go through a ``dispatch`` callable so consumers can
be marshaled onto the owning event loop (``loop.call_soon_threadsafe``).
"""

from __future__ import annotations

import logging
import socket
import threading
from typing import Callable

logger = logging.getLogger(__name__)

Probe = Callable[[], bool]
Subscriber = Callable[[bool], None]
Dispatch = Callable[..., object]


def _direct_dispatch(callback: Subscriber, online: bool) -> None:
    callback(online)


def tcp_probe(host: str, port: int, *, timeout: float = 3.0) -> Probe:
    """Return a probe that reports whether ``host:port`` accepts a TCP connection."""

    def _probe() -> bool:
        try:
            with socket.create_connection((host, port), timeout=timeout):
                return True
        except OSError:
            return False

    return _probe


class ReachabilityMonitor:
    """Observable ``online`` flag fed by a background probe loop.

    Deliveries are dispatched while the lock is held, so every subscriber sees
    values in the order they were recorded and ends on the latest one.
    """

    def __init__(
        self,
        probe: Probe | None = None,
        *,
        interval: float = 10.0,
        initial: bool = True,
        dispatch: Dispatch | None = None,
    ) -> None:
        self._probe = probe
        self._interval = interval
        self._online = initial
        self._dispatch: Dispatch = dispatch or _direct_dispatch
        self._subscribers: list[Subscriber] = []
        self._lock = threading.RLock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def online(self) -> bool:
        with self._lock:
            return self._online

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback`` and deliver the current value to it right away."""

        with self._lock:
            self._subscribers.append(callback)
            self._dispatch(callback, self._online)

        def _unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return _unsubscribe

    def report(self, online: bool) -> None:
        """Record an observed path state, notifying subscribers on transitions."""

        with self._lock:
            if online == self._online:
                return
            self._online = online
            logger.info("Network path changed", extra={"online": online})
            for callback in list(self._subscribers):
                self._dispatch(callback, online)

    def start(self, *, dispatch: Dispatch | None = None) -> None:
        """Start the background probe thread."""

        if dispatch is not None:
            with self._lock:
                self._dispatch = dispatch
        if self._probe is None or (self._thread is not None and self._thread.is_alive()):
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._monitor_loop, daemon=True, name="reachability-monitor"
        )
        self._thread.start()
        logger.info("Reachability monitor started", extra={"interval": self._interval})

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None

    def _monitor_loop(self) -> None:
        assert self._probe is not None
        while not self._stop.is_set():
            try:
                online = bool(self._probe())
            except Exception:
                logger.exception("Reachability probe raised; treating path as offline")
                online = False
            self.report(online)
            if self._stop.wait(self._interval):
                break


__all__ = ["ReachabilityMonitor", "tcp_probe"]
