from __future__ import annotations

import socket
import threading
import time

from intention_sync.network import ReachabilityMonitor, tcp_probe


def test_late_subscriber_receives_current_value() -> None:
    monitor = ReachabilityMonitor(initial=True)
    monitor.report(False)

    received: list[bool] = []
    monitor.subscribe(received.append)

    assert received == [False]


def test_only_transitions_are_pushed() -> None:
    monitor = ReachabilityMonitor(initial=True)
    received: list[bool] = []
    monitor.subscribe(received.append)

    for value in [True, False, False, True, True]:
        monitor.report(value)

    assert received == [True, False, True]
    assert monitor.online is True


def test_unsubscribe_stops_delivery() -> None:
    monitor = ReachabilityMonitor()
    received: list[bool] = []
    unsubscribe = monitor.subscribe(received.append)

    unsubscribe()
    monitor.report(False)

    assert received == [True]


def test_deliveries_go_through_dispatch() -> None:
    queued: list[tuple] = []
    monitor = ReachabilityMonitor(dispatch=lambda callback, value: queued.append((callback, value)))
    received: list[bool] = []

    monitor.subscribe(received.append)
    monitor.report(False)

    assert received == []
    for callback, value in queued:
        callback(value)
    assert received == [True, False]


def test_probe_thread_reports_offline() -> None:
    went_offline = threading.Event()
    monitor = ReachabilityMonitor(lambda: False, interval=60)
    monitor.subscribe(lambda online: went_offline.set() if not online else None)

    monitor.start()
    try:
        assert went_offline.wait(timeout=5)
    finally:
        monitor.stop()

    assert monitor.online is False


def test_probe_exception_counts_as_offline() -> None:
    def broken_probe() -> bool:
        raise RuntimeError("path observer crashed")

    went_offline = threading.Event()
    monitor = ReachabilityMonitor(broken_probe, interval=60)
    monitor.subscribe(lambda online: went_offline.set() if not online else None)

    monitor.start()
    try:
        assert went_offline.wait(timeout=5)
    finally:
        monitor.stop()


def test_tcp_probe_against_local_listener() -> None:
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.bind(("127.0.0.1", 0))
    listener.listen(1)
    port = listener.getsockname()[1]
    try:
        assert tcp_probe("127.0.0.1", port, timeout=1.0)() is True
    finally:
        listener.close()

    assert tcp_probe("127.0.0.1", port, timeout=1.0)() is False


def test_report_during_initial_delivery_arrives_after_it() -> None:
    delivering = threading.Event()
    received: list[bool] = []

    def slow_dispatch(callback, online):
        delivering.set()
        time.sleep(0.05)
        callback(online)

    monitor = ReachabilityMonitor(initial=True, dispatch=slow_dispatch)

    def go_offline() -> None:
        delivering.wait(2)
        monitor.report(False)

    reporter = threading.Thread(target=go_offline)
    reporter.start()
    monitor.subscribe(received.append)
    reporter.join(2)

    assert monitor.online is False
    assert received == [True, False]
