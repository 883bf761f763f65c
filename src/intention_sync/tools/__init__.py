"""Tool registration for the weekly intention server."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any

from fastmcp import Context, FastMCP

from ..mirror import WidgetMirror
from ..network import SyncStatusCoordinator
from ..reconcile import ReconciliationDriver
from ..storage import IntentionRecord, IntentionStore
from ..weeks import current_week_start, parse_week_start, week_range_label

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ToolHandles:
    save_intention: Any
    get_intention: Any
    recall_intentions: Any
    app_foreground: Any


def _resolve_week(week_start: str | None) -> date:
    if not week_start:
        return current_week_start()
    try:
        return parse_week_start(week_start)
    except ValueError as exc:
        raise ValueError(f"Invalid week_start '{week_start}'; expected YYYY-MM-DD") from exc


def _record_summary(record: IntentionRecord) -> dict[str, Any]:
    return {
        "week_start": record.week_start.isoformat(),
        "range": week_range_label(record.week_start),
        "text": record.text.strip(),
    }


def register_tools(
    server: FastMCP,
    *,
    store: IntentionStore,
    mirror: WidgetMirror,
    driver: ReconciliationDriver,
    coordinator: SyncStatusCoordinator,
) -> ToolHandles:
    """Register the intention tools on the server."""

    async def _save_intention(
        text: str,
        week_start: str | None = None,
        context: Context | None = None,
    ) -> dict[str, Any]:
        """Save the intention for a week (defaults to the current week). Blank text clears it."""

        week = _resolve_week(week_start)
        # upsert also writes the mirror through the store's save listener.
        record = await asyncio.to_thread(store.upsert, week, text)

        _emit_log(
            context,
            "info",
            "Saved intention" if record is not None else "Cleared intention",
            extra={"week_start": week.isoformat()},
        )

        return {
            "week_start": week.isoformat(),
            "range": week_range_label(week),
            "text": record.text if record is not None else "",
            "record_id": record.id if record is not None else None,
            "cleared": record is None,
            "sync_status": coordinator.label,
        }

    def _get_intention(
        week_start: str | None = None,
        context: Context | None = None,
    ) -> dict[str, Any]:
        """Return the intention for a week (defaults to the current week)."""

        week = _resolve_week(week_start)
        text = store.find(week)
        _emit_log(context, "debug", "Read intention", extra={"week_start": week.isoformat()})
        return {
            "week_start": week.isoformat(),
            "range": week_range_label(week),
            "text": text,
            "is_current_week": week == current_week_start(),
        }

    def _recall_intentions(
        query: str = "",
        limit: int = 20,
        context: Context | None = None,
    ) -> dict[str, Any]:
        """Search past intentions, newest week first."""

        if limit < 1:
            raise ValueError("limit must be >= 1")
        matches = store.search(query)
        payload = [_record_summary(record) for record in matches[:limit]]
        _emit_log(
            context,
            "debug",
            "Recall intentions",
            extra={"query": query, "results": len(payload)},
        )
        return {"query": query, "count": len(matches), "matches": payload}

    async def _app_foreground(context: Context | None = None) -> dict[str, Any]:
        """Reconcile the widget mirror as when the app returns to the foreground."""

        written = await asyncio.to_thread(driver.handle_foreground)
        snapshot = await asyncio.to_thread(mirror.read)
        _emit_log(
            context,
            "info" if written else "debug",
            "Foreground reconciliation",
            extra={"mirror_written": written},
        )
        return {
            "mirror_written": written,
            "snapshot": snapshot.to_document(),
            "sync_status": coordinator.label,
        }

    tool_save = server.tool(
        name="save_intention",
        description=(
            "Save the weekly intention. Provide week_start as YYYY-MM-DD for any day of "
            "the target week, or omit it for the current week. Blank text clears the week."
        ),
    )(_save_intention)

    tool_get = server.tool(
        name="get_intention",
        description="Read the intention stored for a week (defaults to the current week).",
    )(_get_intention)

    tool_recall = server.tool(
        name="recall_intentions",
        description="Search stored intentions by keyword, newest week first.",
    )(_recall_intentions)

    tool_foreground = server.tool(
        name="app_foreground",
        description="Refresh the widget mirror if it no longer matches the current week's intention.",
    )(_app_foreground)

    return ToolHandles(
        save_intention=tool_save,
        get_intention=tool_get,
        recall_intentions=tool_recall,
        app_foreground=tool_foreground,
    )


def _emit_log(
    context: Context | None,
    level: str,
    message: str,
    *,
    extra: dict[str, Any] | None = None,
) -> None:
    """Log through the MCP context logger when available, else the module logger."""

    payload = extra or {}

    if context is not None:
        ctx_logger = getattr(context, "logger", None)
        if ctx_logger is not None:
            log_method = getattr(ctx_logger, level, None)
            if callable(log_method):
                log_method(message, extra=payload)
                return

    fallback = getattr(logger, level, logger.info)
    fallback(message, extra=payload)


__all__ = ["register_tools", "ToolHandles"]
