"""Weekly intention diagnostics CLI.

``widget`` reads the mirror the same way the companion surface does; the other
commands inspect the intention store.
"""

from __future__ import annotations

import argparse
import json

from intention_sync.config import IntentionSettings
from intention_sync.mirror import FileMirrorMedium, FileRefreshSignal, WidgetMirror
from intention_sync.storage import IntentionStore, IntentionStoreError
from intention_sync.weeks import current_week_start, week_range_label

PLACEHOLDER = "Set this week’s intention"


def load_store(settings: IntentionSettings) -> IntentionStore:
    try:
        store = IntentionStore(settings.chroma_persist_path, collection_name=settings.collection_name)
        store.ping()
        return store
    except IntentionStoreError as exc:
        print(f"Intention store unavailable: {exc}")
        raise SystemExit(1)


def load_mirror(settings: IntentionSettings) -> WidgetMirror:
    return WidgetMirror(FileMirrorMedium(settings.shared_path), kind=settings.widget_kind)


def cmd_widget(args: argparse.Namespace) -> None:
    settings = IntentionSettings()
    mirror = load_mirror(settings)
    snapshot = mirror.read()
    current = current_week_start()
    shown = snapshot.text if snapshot.text and snapshot.week_start == current else ""

    if args.json:
        payload = {
            "kind": mirror.kind,
            "shown": shown or PLACEHOLDER,
            "stale_week": snapshot.week_start != current,
            "snapshot": snapshot.to_document(),
        }
        last_reload = FileRefreshSignal(settings.shared_path).last_emitted(mirror.kind)
        payload["reload_requested_at"] = last_reload.isoformat() if last_reload else None
        print(json.dumps(payload, indent=2))
    else:
        print(shown or PLACEHOLDER)


def cmd_recall(args: argparse.Namespace) -> None:
    settings = IntentionSettings()
    store = load_store(settings)
    try:
        records = store.search(args.search or "")
    except IntentionStoreError as exc:
        print(f"Intention store unavailable: {exc}")
        raise SystemExit(1)

    if args.json:
        payload = [
            {
                "id": record.id,
                "week_start": record.week_start.isoformat(),
                "text": record.text,
            }
            for record in records
        ]
        print(json.dumps(payload, indent=2))
        return

    if not records:
        print("No matching intentions" if args.search else "No past intentions yet")
        return
    for record in records:
        print(f"{week_range_label(record.week_start)}: {record.text.strip()}")


def cmd_duplicates(args: argparse.Namespace) -> None:
    settings = IntentionSettings()
    store = load_store(settings)
    try:
        duplicates = store.duplicates()
    except IntentionStoreError as exc:
        print(f"Intention store unavailable: {exc}")
        raise SystemExit(1)

    payload = {
        week.isoformat(): [
            {"id": record.id, "text": record.text, "created_at": record.created_at.isoformat()}
            for record in records
        ]
        for week, records in sorted(duplicates.items())
    }
    print(json.dumps(payload, indent=2))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Weekly intention diagnostics")
    sub = parser.add_subparsers(dest="cmd")

    p_widget = sub.add_parser("widget", help="Show what the widget would display")
    p_widget.add_argument("--json", action="store_true", help="Output JSON")
    p_widget.set_defaults(func=cmd_widget)

    p_recall = sub.add_parser("recall", help="List stored intentions, newest week first")
    p_recall.add_argument("--search", default=None, help="Case-insensitive text filter")
    p_recall.add_argument("--json", action="store_true", help="Output JSON")
    p_recall.set_defaults(func=cmd_recall)

    p_duplicates = sub.add_parser(
        "duplicates",
        help="List weeks that hold more than one physical record",
    )
    p_duplicates.set_defaults(func=cmd_duplicates)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return
    args.func(args)


if __name__ == "__main__":
    main()
