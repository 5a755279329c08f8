"""Persistence adapters for logbook entries."""

from __future__ import annotations

from datetime import date, datetime, timezone
from threading import RLock
from typing import Any, Iterable, Mapping, MutableMapping, Protocol

from sqlalchemy import MetaData, Table, and_, delete, insert, select, update
from sqlalchemy.engine import Engine

from ...infra.db import ENGINE
from ...infra.logging import get_logger
from .types import EntryNotFoundError, LogbookEntry

logger = get_logger(__name__)

TABLE_NAME = "logbook_entries"


class LogbookEntryRepository(Protocol):  # pragma: no cover - interface only
    """Persistence abstraction consumed by :class:`LogbookEntryService`.

    Every call commits on its own; batch writes are atomic.
    """

    def get_by_id(self, entry_id: str) -> LogbookEntry | None: ...

    def get_all(self) -> list[LogbookEntry]: ...

    def get_all_for_user(self, user_id: str) -> list[LogbookEntry]: ...

    def get_by_ids(self, entry_ids: Iterable[str]) -> list[LogbookEntry]: ...

    def get_by_date_for_user(
        self, user_id: str, entry_date: date
    ) -> LogbookEntry | None: ...

    def get_by_dates_for_user(
        self, user_id: str, dates: Iterable[date]
    ) -> list[LogbookEntry]: ...

    def get_by_date_range_for_user(
        self, user_id: str, start: date, end: date
    ) -> list[LogbookEntry]: ...

    def insert(self, entry: LogbookEntry) -> LogbookEntry: ...

    def insert_batch(self, entries: Iterable[LogbookEntry]) -> list[LogbookEntry]: ...

    def update(self, entry: LogbookEntry) -> LogbookEntry: ...

    def update_batch(self, entries: Iterable[LogbookEntry]) -> list[LogbookEntry]: ...

    def remove(self, entry_id: str) -> None: ...

    def remove_batch(self, entry_ids: Iterable[str]) -> None: ...


def _sort_key(entry: LogbookEntry) -> tuple[date, datetime]:
    return (entry.entry_date, entry.created_at)


class InMemoryLogbookEntryRepository(LogbookEntryRepository):
    """In-memory adapter primarily used for tests and local runs."""

    def __init__(self, entries: Iterable[LogbookEntry] | None = None) -> None:
        self._lock = RLock()
        self._store: MutableMapping[str, LogbookEntry] = {}
        for entry in entries or ():
            self._store[entry.entry_id] = entry

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get_by_id(self, entry_id: str) -> LogbookEntry | None:
        with self._lock:
            return self._store.get(entry_id)

    def get_all(self) -> list[LogbookEntry]:
        with self._lock:
            rows = list(self._store.values())
        return sorted(rows, key=_sort_key)

    def get_all_for_user(self, user_id: str) -> list[LogbookEntry]:
        return self._select(lambda entry: entry.user_id == user_id)

    def get_by_ids(self, entry_ids: Iterable[str]) -> list[LogbookEntry]:
        wanted = set(entry_ids)
        return self._select(lambda entry: entry.entry_id in wanted)

    def get_by_date_for_user(
        self, user_id: str, entry_date: date
    ) -> LogbookEntry | None:
        matches = self._select(
            lambda entry: entry.user_id == user_id and entry.entry_date == entry_date
        )
        return matches[0] if matches else None

    def get_by_dates_for_user(
        self, user_id: str, dates: Iterable[date]
    ) -> list[LogbookEntry]:
        wanted = set(dates)
        return self._select(
            lambda entry: entry.user_id == user_id and entry.entry_date in wanted
        )

    def get_by_date_range_for_user(
        self, user_id: str, start: date, end: date
    ) -> list[LogbookEntry]:
        return self._select(
            lambda entry: entry.user_id == user_id
            and start <= entry.entry_date <= end
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def insert(self, entry: LogbookEntry) -> LogbookEntry:
        with self._lock:
            self._store[entry.entry_id] = entry
        return entry

    def insert_batch(self, entries: Iterable[LogbookEntry]) -> list[LogbookEntry]:
        batch = list(entries)
        with self._lock:
            for entry in batch:
                self._store[entry.entry_id] = entry
        return batch

    def update(self, entry: LogbookEntry) -> LogbookEntry:
        return self.update_batch([entry])[0]

    def update_batch(self, entries: Iterable[LogbookEntry]) -> list[LogbookEntry]:
        batch = list(entries)
        with self._lock:
            missing = [
                entry.entry_id for entry in batch if entry.entry_id not in self._store
            ]
            if missing:
                raise EntryNotFoundError(missing[0])
            for entry in batch:
                self._store[entry.entry_id] = entry
        return batch

    def remove(self, entry_id: str) -> None:
        with self._lock:
            if self._store.pop(entry_id, None) is None:
                raise EntryNotFoundError(entry_id)

    def remove_batch(self, entry_ids: Iterable[str]) -> None:
        with self._lock:
            for entry_id in entry_ids:
                self._store.pop(entry_id, None)

    def _select(self, predicate) -> list[LogbookEntry]:
        with self._lock:
            rows = [entry for entry in self._store.values() if predicate(entry)]
        return sorted(rows, key=_sort_key)


class SqlLogbookEntryRepository(LogbookEntryRepository):
    """SQLAlchemy Core adapter over the ``logbook_entries`` table."""

    def __init__(
        self,
        engine: Engine | None = None,
        *,
        table: Table | None = None,
    ) -> None:
        self._engine = engine or ENGINE
        if table is not None:
            self._entries = table
            self._metadata = table.metadata
        else:
            self._metadata = MetaData()
            self._entries = Table(TABLE_NAME, self._metadata, autoload_with=self._engine)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get_by_id(self, entry_id: str) -> LogbookEntry | None:
        stmt = select(self._entries).where(self._entries.c.entry_id == entry_id)
        with self._engine.begin() as conn:
            row = conn.execute(stmt).mappings().first()
        return self._row_from_mapping(row) if row is not None else None

    def get_all(self) -> list[LogbookEntry]:
        return self._fetch()

    def get_all_for_user(self, user_id: str) -> list[LogbookEntry]:
        return self._fetch(self._entries.c.user_id == user_id)

    def get_by_ids(self, entry_ids: Iterable[str]) -> list[LogbookEntry]:
        ids = list(dict.fromkeys(entry_ids))
        if not ids:
            return []
        return self._fetch(self._entries.c.entry_id.in_(ids))

    def get_by_date_for_user(
        self, user_id: str, entry_date: date
    ) -> LogbookEntry | None:
        rows = self._fetch(
            self._entries.c.user_id == user_id,
            self._entries.c.entry_date == entry_date,
        )
        return rows[0] if rows else None

    def get_by_dates_for_user(
        self, user_id: str, dates: Iterable[date]
    ) -> list[LogbookEntry]:
        wanted = sorted(set(dates))
        if not wanted:
            return []
        return self._fetch(
            self._entries.c.user_id == user_id,
            self._entries.c.entry_date.in_(wanted),
        )

    def get_by_date_range_for_user(
        self, user_id: str, start: date, end: date
    ) -> list[LogbookEntry]:
        return self._fetch(
            self._entries.c.user_id == user_id,
            and_(
                self._entries.c.entry_date >= start,
                self._entries.c.entry_date <= end,
            ),
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def insert(self, entry: LogbookEntry) -> LogbookEntry:
        return self.insert_batch([entry])[0]

    def insert_batch(self, entries: Iterable[LogbookEntry]) -> list[LogbookEntry]:
        batch = list(entries)
        if not batch:
            return []
        with self._engine.begin() as conn:
            conn.execute(
                insert(self._entries),
                [self._values_from_entry(entry) for entry in batch],
            )
        logger.debug("logbook_rows_inserted", extra={"count": len(batch)})
        return batch

    def update(self, entry: LogbookEntry) -> LogbookEntry:
        return self.update_batch([entry])[0]

    def update_batch(self, entries: Iterable[LogbookEntry]) -> list[LogbookEntry]:
        batch = list(entries)
        with self._engine.begin() as conn:
            for entry in batch:
                stmt = (
                    update(self._entries)
                    .where(self._entries.c.entry_id == entry.entry_id)
                    .values(
                        activity=entry.activity,
                        description=entry.description,
                        entry_date=entry.entry_date,
                        updated_at=entry.updated_at,
                    )
                )
                result = conn.execute(stmt)
                if result.rowcount == 0:
                    raise EntryNotFoundError(entry.entry_id)
        logger.debug("logbook_rows_updated", extra={"count": len(batch)})
        return batch

    def remove(self, entry_id: str) -> None:
        stmt = delete(self._entries).where(self._entries.c.entry_id == entry_id)
        with self._engine.begin() as conn:
            result = conn.execute(stmt)
        if result.rowcount == 0:
            raise EntryNotFoundError(entry_id)

    def remove_batch(self, entry_ids: Iterable[str]) -> None:
        ids = list(dict.fromkeys(entry_ids))
        if not ids:
            return
        stmt = delete(self._entries).where(self._entries.c.entry_id.in_(ids))
        with self._engine.begin() as conn:
            result = conn.execute(stmt)
        logger.debug("logbook_rows_removed", extra={"count": result.rowcount})

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _fetch(self, *conditions: Any) -> list[LogbookEntry]:
        stmt = select(self._entries)
        if conditions:
            stmt = stmt.where(*conditions)
        stmt = stmt.order_by(self._entries.c.entry_date, self._entries.c.created_at)
        with self._engine.begin() as conn:
            rows = conn.execute(stmt).mappings().all()
        return [self._row_from_mapping(row) for row in rows]

    @staticmethod
    def _values_from_entry(entry: LogbookEntry) -> dict[str, Any]:
        return {
            "entry_id": entry.entry_id,
            "user_id": entry.user_id,
            "activity": entry.activity,
            "description": entry.description,
            "entry_date": entry.entry_date,
            "created_at": entry.created_at,
            "updated_at": entry.updated_at,
        }

    @staticmethod
    def _row_from_mapping(row: Mapping[str, Any]) -> LogbookEntry:
        return LogbookEntry(
            entry_id=str(row["entry_id"]),
            user_id=str(row["user_id"]),
            activity=row["activity"],
            description=row.get("description"),
            entry_date=row["entry_date"],
            created_at=_ensure_aware(row["created_at"]),
            updated_at=_ensure_aware(row["updated_at"]),
        )


def _ensure_aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


__all__ = [
    "InMemoryLogbookEntryRepository",
    "LogbookEntryRepository",
    "SqlLogbookEntryRepository",
    "TABLE_NAME",
]
