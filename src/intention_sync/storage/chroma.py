"""Chroma-backed intention store.

The replicated collection accepts concurrent inserts from several devices and
has no uniqueness constraint, so a merge can leave more than one physical
record for the same week. ``IntentionStore.upsert`` is the only place those
duplicates are collapsed.
"""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable, Protocol

from ..weeks import current_week_start, week_start_for
from .models import IntentionRecord

logger = logging.getLogger(__name__)

_UNKNOWN_CREATED_AT = datetime(1970, 1, 1, tzinfo=timezone.utc)

SaveListener = Callable[[date, str], None]


class IntentionStoreError(RuntimeError):
    """Base class for intention store errors."""


class StoreUnavailableError(IntentionStoreError):
    """Raised when the backing collection cannot be opened."""


class StoreFetchError(IntentionStoreError):
    """Raised when reading from the backing collection fails."""


class StoreWriteError(IntentionStoreError):
    """Raised when a mutation of the backing collection fails."""


class CollectionProtocol(Protocol):
    """Protocol for the minimal Chroma collection API used by the store."""

    def add(
        self,
        *,
        documents: Iterable[str],
        metadatas: Iterable[dict[str, Any]],
        ids: Iterable[str],
    ) -> None:
        ...

    def get(
        self,
        *,
        ids: Iterable[str] | None = None,
        where: dict[str, Any] | None = None,
        limit: int | None = None,
    ) -> dict[str, list[Any]]:
        ...

    def update(
        self,
        *,
        ids: Iterable[str],
        documents: Iterable[str] | None = None,
        metadatas: Iterable[dict[str, Any]] | None = None,
    ) -> None:
        ...

    def delete(self, *, ids: Iterable[str]) -> None:
        ...


class ClientProtocol(Protocol):
    """Protocol for the minimal Chroma client API used by the store."""

    def get_or_create_collection(self, name: str) -> CollectionProtocol:
        ...


def _dedup_key(record: IntentionRecord) -> tuple[datetime, str]:
    return (record.created_at, record.id)


class IntentionStore:
    """Authoritative set of weekly intentions with one effective record per week."""

    def __init__(
        self,
        path: Path,
        *,
        collection_name: str = "weekly_intentions",
        client_factory: Callable[[], ClientProtocol] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._path = Path(path)
        self._collection_name = collection_name
        self._client_factory = client_factory or self._default_client_factory
        self._clock = clock or (lambda: datetime.now().astimezone())
        self._client: ClientProtocol | None = None
        self._collection: CollectionProtocol | None = None
        self._save_listeners: list[SaveListener] = []

    def _default_client_factory(self) -> ClientProtocol:
        try:
            import chromadb
        except ImportError as exc:  # pragma: no cover - depends on environment
            raise StoreUnavailableError("chromadb package is not installed") from exc

        return chromadb.PersistentClient(path=str(self._path))

    def _ensure_collection(self) -> CollectionProtocol:
        if self._collection is None:
            try:
                client = self._client or self._client_factory()
                self._client = client
                self._collection = client.get_or_create_collection(self._collection_name)
            except StoreUnavailableError:
                raise
            except Exception as exc:
                raise StoreUnavailableError(
                    f"Cannot open collection '{self._collection_name}' at {self._path}: {exc}"
                ) from exc
        return self._collection

    def _convert_result(self, result: dict[str, list[Any]]) -> list[IntentionRecord]:
        records: list[IntentionRecord] = []
        ids = result.get("ids") or []
        documents = result.get("documents") or []
        metadatas = result.get("metadatas") or []
        for record_id, document, metadata in zip(ids, documents, metadatas):
            metadata = metadata or {}
            try:
                week_start = date.fromisoformat(str(metadata.get("week_start", "")))
            except ValueError:
                logger.warning("Skipping record without a usable week_start", extra={"id": record_id})
                continue
            created_raw = metadata.get("created_at")
            try:
                created_at = (
                    datetime.fromisoformat(created_raw)
                    if isinstance(created_raw, str)
                    else _UNKNOWN_CREATED_AT
                )
            except ValueError:
                created_at = _UNKNOWN_CREATED_AT
            if created_at.tzinfo is None:
                created_at = created_at.replace(tzinfo=timezone.utc)
            records.append(
                IntentionRecord(
                    id=str(record_id),
                    week_start=week_start,
                    text=document or "",
                    created_at=created_at,
                )
            )
        records.sort(key=_dedup_key)
        return records

    def _fetch(self, where: dict[str, Any] | None = None) -> list[IntentionRecord]:
        collection = self._ensure_collection()
        try:
            result = collection.get(where=where)
        except Exception as exc:
            raise StoreFetchError(f"Failed to read intentions: {exc}") from exc
        return self._convert_result(result)

    def _matches(self, week_start: date) -> list[IntentionRecord]:
        return self._fetch({"week_start": week_start.isoformat()})

    def ping(self) -> bool:
        """Verify that the underlying collection can be obtained."""

        self._ensure_collection()
        return True

    def add_save_listener(self, listener: SaveListener) -> None:
        """Register a callback run after every save that touches the current week."""

        self._save_listeners.append(listener)

    def upsert(self, week_start: date | datetime, text: str) -> IntentionRecord | None:
        """Save ``text`` as the intention for the week containing ``week_start``.

        Whitespace-only text deletes every record for the week. Otherwise the
        earliest-created record for the week is updated in place and any other
        record for that week is deleted. Returns the surviving record, or
        ``None`` when the week was cleared.
        """

        week = week_start_for(week_start)
        trimmed = text.strip()
        matches = self._matches(week)
        collection = self._ensure_collection()
        record: IntentionRecord | None = None

        try:
            if not trimmed:
                if matches:
                    collection.delete(ids=[match.id for match in matches])
                    logger.info(
                        "Cleared intention",
                        extra={"week_start": week.isoformat(), "removed": len(matches)},
                    )
            elif matches:
                keeper, *duplicates = matches
                collection.update(ids=[keeper.id], documents=[trimmed])
                if duplicates:
                    collection.delete(ids=[duplicate.id for duplicate in duplicates])
                    logger.info(
                        "Collapsed duplicate intentions",
                        extra={
                            "week_start": week.isoformat(),
                            "kept": keeper.id,
                            "removed": len(duplicates),
                        },
                    )
                record = IntentionRecord(
                    id=keeper.id,
                    week_start=week,
                    text=trimmed,
                    created_at=keeper.created_at,
                )
            else:
                created_at = self._clock()
                record_id = uuid.uuid4().hex
                collection.add(
                    documents=[trimmed],
                    metadatas=[
                        {"week_start": week.isoformat(), "created_at": created_at.isoformat()}
                    ],
                    ids=[record_id],
                )
                record = IntentionRecord(
                    id=record_id,
                    week_start=week,
                    text=trimmed,
                    created_at=created_at,
                )
        except Exception as exc:
            raise StoreWriteError(f"Failed to save intention for {week.isoformat()}: {exc}") from exc

        if week == current_week_start(self._clock()):
            for listener in list(self._save_listeners):
                listener(week, trimmed)

        return record

    def find(self, week_start: date | datetime) -> str:
        """Return the trimmed text for the week, or an empty string."""

        matches = self._matches(week_start_for(week_start))
        return matches[0].text.strip() if matches else ""

    def all(self) -> list[IntentionRecord]:
        """Return every stored record, newest week first."""

        records = self._fetch()
        records.sort(key=lambda record: record.week_start, reverse=True)
        return records

    def search(self, query: str) -> list[IntentionRecord]:
        needle = query.strip().lower()
        records = self.all()
        if not needle:
            return records
        return [record for record in records if needle in record.text.lower()]

    def duplicates(self) -> dict[date, list[IntentionRecord]]:
        """Return weeks that currently hold more than one physical record."""

        grouped: dict[date, list[IntentionRecord]] = defaultdict(list)
        for record in self._fetch():
            grouped[record.week_start].append(record)
        return {week: records for week, records in grouped.items() if len(records) > 1}


__all__ = [
    "IntentionStore",
    "IntentionStoreError",
    "StoreFetchError",
    "StoreUnavailableError",
    "StoreWriteError",
]
