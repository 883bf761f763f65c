"""Snapshot model shared by the primary process and the companion surface."""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from ..weeks import week_start_for

SCHEMA_VERSION = 2

# Keys written by earlier revisions that stored only the text of the current week.
LEGACY_TEXT_KEYS = ("widget_currentWeek_text", "currentWeekIntention", "weekly_intention_text")


class MirrorSnapshot(BaseModel):
    """Best-effort copy of the current week's intention."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    schema_version: int = Field(default=SCHEMA_VERSION, alias="schemaVersion")
    week_start: date = Field(..., alias="weekStart")
    text: str = ""
    updated_at: datetime | None = Field(default=None, alias="updatedAt")

    @field_validator("week_start", mode="before")
    @classmethod
    def _normalize_week_start(cls, value: Any) -> Any:
        if isinstance(value, str):
            stripped = value.strip()
            if len(stripped) > 10:
                parsed = datetime.fromisoformat(stripped)
                # Midnight in its own offset names the writer's calendar day. Any other
                # instant was encoded in a foreign zone and is read as local time.
                if parsed.tzinfo is not None and parsed.time() != time():
                    parsed = parsed.astimezone()
                value = parsed.date()
            else:
                value = date.fromisoformat(stripped)
        if isinstance(value, (date, datetime)):
            return week_start_for(value)
        return value

    @field_validator("text", mode="before")
    @classmethod
    def _trim_text(cls, value: Any) -> Any:
        if value is None:
            return ""
        return value.strip() if isinstance(value, str) else value

    @field_serializer("week_start")
    def _serialize_week_start(self, value: date) -> str:
        return datetime.combine(value, time()).astimezone().isoformat()

    @field_serializer("updated_at")
    def _serialize_updated_at(self, value: datetime | None) -> str | None:
        return value.isoformat() if value is not None else None

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


__all__ = ["LEGACY_TEXT_KEYS", "MirrorSnapshot", "SCHEMA_VERSION"]
