"""FastMCP server bootstrap for the weekly intention service."""

import asyncio
import contextlib
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Optional

from fastmcp import Context, FastMCP

from . import __version__
from .config import IntentionSettings, get_settings
from .mirror import FileMirrorMedium, FileRefreshSignal, WidgetMirror
from .network import ReachabilityMonitor, SyncStatusCoordinator, tcp_probe
from .reconcile import ReconciliationDriver
from .storage import IntentionStore, StoreFetchError, StoreUnavailableError
from .tools import register_tools
from .weeks import current_week_start

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    """Configure root logging for the server."""

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
    )


@dataclass(slots=True)
class IntentionRuntime:
    settings: IntentionSettings
    store: IntentionStore
    mirror: WidgetMirror
    driver: ReconciliationDriver
    coordinator: SyncStatusCoordinator
    monitor: ReachabilityMonitor


def build_runtime(
    settings: Optional[IntentionSettings] = None,
    *,
    store: IntentionStore | None = None,
    mirror: WidgetMirror | None = None,
    monitor: ReachabilityMonitor | None = None,
) -> IntentionRuntime:
    """Wire the store, mirror, and status components together.

    Raises ``StoreUnavailableError`` when the intention store cannot be opened.
    """

    settings = settings or get_settings()

    if store is None:
        store = IntentionStore(
            settings.chroma_persist_path, collection_name=settings.collection_name
        )
    store.ping()

    if mirror is None:
        mirror = WidgetMirror(
            FileMirrorMedium(settings.shared_path),
            kind=settings.widget_kind,
            signal=FileRefreshSignal(settings.shared_path),
        )

    driver = ReconciliationDriver(store, mirror)
    store.add_save_listener(driver.handle_save)

    coordinator = SyncStatusCoordinator(settle_seconds=settings.resync_settle_seconds)
    if monitor is None:
        monitor = ReachabilityMonitor(
            tcp_probe(settings.reachability_host, settings.reachability_port),
            interval=settings.reachability_interval,
        )

    return IntentionRuntime(
        settings=settings,
        store=store,
        mirror=mirror,
        driver=driver,
        coordinator=coordinator,
        monitor=monitor,
    )


@contextlib.asynccontextmanager
async def run_runtime(runtime: IntentionRuntime) -> AsyncIterator[IntentionRuntime]:
    """Start background observation on the running loop and tear it down on exit."""

    loop = asyncio.get_running_loop()
    runtime.monitor.start(dispatch=loop.call_soon_threadsafe)
    unsubscribe = runtime.coordinator.attach(runtime.monitor)
    await asyncio.to_thread(runtime.driver.handle_foreground)
    watcher = asyncio.create_task(runtime.driver.watch(runtime.settings.store_poll_interval))
    try:
        yield runtime
    finally:
        watcher.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await watcher
        unsubscribe()
        runtime.monitor.stop()


def build_status(runtime: IntentionRuntime) -> dict[str, Any]:
    """Summarize sync status, the mirrored snapshot, and store health."""

    current = current_week_start()
    snapshot = runtime.mirror.read()

    store_error: str | None = None
    duplicate_weeks: list[str] = []
    current_text = ""
    try:
        current_text = runtime.store.find(current)
        duplicate_weeks = sorted(week.isoformat() for week in runtime.store.duplicates())
    except StoreFetchError as exc:
        store_error = str(exc)

    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "server_version": __version__,
        "sync": {
            "state": runtime.coordinator.state.value,
            "label": runtime.coordinator.label,
            "online": runtime.monitor.online,
        },
        "current_week": {
            "week_start": current.isoformat(),
            "text": current_text,
        },
        "mirror": {
            "kind": runtime.mirror.kind,
            "snapshot": snapshot.to_document(),
            "in_sync": snapshot.week_start == current and snapshot.text == current_text,
        },
        "store": {
            "collection": runtime.settings.collection_name,
            "duplicate_weeks": duplicate_weeks,
            "error": store_error,
        },
    }


def create_server(
    settings: Optional[IntentionSettings] = None,
    runtime: IntentionRuntime | None = None,
) -> FastMCP:
    """Instantiate the FastMCP server around an intention runtime."""

    runtime = runtime or build_runtime(settings)

    server = FastMCP(
        name="Weekly Intention",
        version=__version__,
        instructions=(
            "Record one short intention per calendar week. Intentions sync across "
            "devices; the current week's intention is mirrored to the home-screen widget."
        ),
        lifespan=lambda _server: run_runtime(runtime),
    )

    handles = register_tools(
        server,
        store=runtime.store,
        mirror=runtime.mirror,
        driver=runtime.driver,
        coordinator=runtime.coordinator,
    )

    @server.resource(
        "resource://intention/status",
        name="intention_status",
        title="Weekly Intention Status",
        description="Sync status label, current week intention, and widget mirror state.",
        mime_type="application/json",
        tags={"status", "health"},
    )
    def status_resource(context: Context) -> str:
        """Return a JSON string summarizing runtime state."""

        payload = build_status(runtime)
        payload["request_id"] = getattr(context, "request_id", None)
        return json.dumps(payload)

    setattr(server, "runtime", runtime)
    setattr(server, "tool_handles", handles)
    return server


def main() -> None:
    """Entry point for running the weekly intention server via CLI."""

    settings = get_settings()
    configure_logging(settings.log_level)

    try:
        server = create_server(settings)
    except StoreUnavailableError as exc:
        logger.critical("Intention store unavailable", extra={"error": str(exc)})
        raise SystemExit(1) from exc

    logger.info(
        "Launching weekly intention server",
        extra={
            "version": __version__,
            "log_level": settings.log_level,
            "shared_path": str(settings.shared_path),
        },
    )
    server.run()


if __name__ == "__main__":
    main()
