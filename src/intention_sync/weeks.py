"""Monday-first week boundary helpers."""

from __future__ import annotations

from datetime import date, datetime, timedelta


def week_start_for(value: date | datetime) -> date:
    """Return the Monday that begins the ISO week containing ``value``."""

    day = value.date() if isinstance(value, datetime) else value
    return day - timedelta(days=day.weekday())


def current_week_start(now: datetime | None = None) -> date:
    return week_start_for(now or datetime.now().astimezone())


def parse_week_start(value: str) -> date:
    """Parse ``YYYY-MM-DD`` (or a full ISO timestamp) and normalize it to a week start."""

    text = value.strip()
    if len(text) > 10:
        return week_start_for(datetime.fromisoformat(text))
    return week_start_for(date.fromisoformat(text))


def week_range_label(week_start: date) -> str:
    end = week_start + timedelta(days=6)
    return f"{week_start:%b} {week_start.day} – {end:%b} {end.day}"


__all__ = ["current_week_start", "parse_week_start", "week_range_label", "week_start_for"]
