from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

from intention_sync.mirror import (
    FileMirrorMedium,
    FileRefreshSignal,
    MirrorSnapshot,
    WidgetMirror,
)

from stubs import CURRENT_WEEK, LAST_WEEK, NOW, RecordingSignal


def make_mirror(directory: Path, signal: RecordingSignal | None = None) -> WidgetMirror:
    return WidgetMirror(
        FileMirrorMedium(directory),
        kind="WeeklyIntentionWidget",
        signal=signal,
        clock=lambda: NOW,
    )


def test_write_then_read_round_trip(tmp_path: Path) -> None:
    mirror = make_mirror(tmp_path)
    t0 = datetime(2026, 10, 20, 7, 15, 30, 123456, tzinfo=timezone.utc)

    mirror.write(CURRENT_WEEK, "focus", t0)
    snapshot = mirror.read()

    assert snapshot.week_start == CURRENT_WEEK
    assert snapshot.text == "focus"
    assert snapshot.updated_at == t0


def test_write_trims_and_signals_kind(tmp_path: Path) -> None:
    signal = RecordingSignal()
    mirror = make_mirror(tmp_path, signal)

    snapshot = mirror.write(CURRENT_WEEK, "  breathe \n")

    assert snapshot.text == "breathe"
    assert mirror.read().text == "breathe"
    assert signal.emitted == ["WeeklyIntentionWidget"]


def test_document_uses_shared_field_names(tmp_path: Path) -> None:
    mirror = make_mirror(tmp_path)
    mirror.write(CURRENT_WEEK, "focus", NOW)

    document = json.loads((tmp_path / "widget_snapshot.json").read_text(encoding="utf-8"))

    assert set(document) == {"schemaVersion", "weekStart", "text", "updatedAt"}
    assert document["schemaVersion"] == 2
    assert datetime.fromisoformat(document["weekStart"]).date() == CURRENT_WEEK
    assert datetime.fromisoformat(document["updatedAt"]) == NOW


def test_writes_replace_previous_snapshot(tmp_path: Path) -> None:
    mirror = make_mirror(tmp_path)
    mirror.write(LAST_WEEK, "old week", NOW)
    mirror.write(CURRENT_WEEK, "new week", NOW)

    snapshot = mirror.read()

    assert (snapshot.week_start, snapshot.text) == (CURRENT_WEEK, "new week")
    assert [path.name for path in tmp_path.iterdir()] == ["widget_snapshot.json"]


def test_read_before_any_write_returns_placeholder(tmp_path: Path) -> None:
    mirror = make_mirror(tmp_path / "never-written")

    snapshot = mirror.read()

    assert snapshot == MirrorSnapshot(week_start=CURRENT_WEEK, text="", updated_at=None)


def test_unavailable_medium_is_silent(tmp_path: Path) -> None:
    blocked = tmp_path / "blocked"
    blocked.write_text("not a directory", encoding="utf-8")
    signal = RecordingSignal()
    mirror = make_mirror(blocked, signal)

    mirror.write(CURRENT_WEEK, "focus", NOW)

    assert signal.emitted == []
    assert mirror.read().text == ""


def test_malformed_document_reads_as_placeholder(tmp_path: Path) -> None:
    (tmp_path / "widget_snapshot.json").write_text("{not json", encoding="utf-8")
    mirror = make_mirror(tmp_path)

    assert mirror.read() == MirrorSnapshot(week_start=CURRENT_WEEK)


def test_legacy_text_key_maps_to_current_week(tmp_path: Path) -> None:
    (tmp_path / "widget_snapshot.json").write_text(
        json.dumps({"currentWeekIntention": "  from an older build "}), encoding="utf-8"
    )
    mirror = make_mirror(tmp_path)

    snapshot = mirror.read()

    assert snapshot.week_start == CURRENT_WEEK
    assert snapshot.text == "from an older build"
    assert snapshot.updated_at is None


def test_utc_week_start_from_older_writer(tmp_path: Path) -> None:
    midnight = datetime(2026, 10, 19).astimezone().astimezone(timezone.utc)
    (tmp_path / "widget_snapshot.json").write_text(
        json.dumps(
            {
                "weekStart": midnight.isoformat().replace("+00:00", "Z"),
                "text": "focus",
                "updatedAt": None,
            }
        ),
        encoding="utf-8",
    )

    assert make_mirror(tmp_path).read().week_start == CURRENT_WEEK


def test_file_refresh_signal_touches_marker(tmp_path: Path) -> None:
    signal = FileRefreshSignal(tmp_path)
    assert signal.last_emitted("WeeklyIntentionWidget") is None

    signal.emit("WeeklyIntentionWidget")

    assert signal.marker("WeeklyIntentionWidget").exists()
    assert signal.last_emitted("WeeklyIntentionWidget") is not None


def test_week_start_keeps_writer_calendar_day(tmp_path: Path) -> None:
    (tmp_path / "widget_snapshot.json").write_text(
        json.dumps(
            {
                "schemaVersion": 2,
                "weekStart": "2026-10-19T00:00:00+14:00",
                "text": "focus",
                "updatedAt": None,
            }
        ),
        encoding="utf-8",
    )

    snapshot = make_mirror(tmp_path).read()

    assert snapshot.week_start == CURRENT_WEEK
    assert MirrorSnapshot.model_validate(
        {"weekStart": "2026-10-19T00:00:00-10:00"}
    ).week_start == CURRENT_WEEK
