"""Data models for persisted intentions."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime


@dataclass(slots=True)
class IntentionRecord:
    id: str
    week_start: date
    text: str
    created_at: datetime


__all__ = ["IntentionRecord"]
