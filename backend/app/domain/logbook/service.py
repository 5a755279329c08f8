"""Logbook entry service: ownership rules, caching and batch handling."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from http import HTTPStatus
from typing import Any, Callable, Iterable, Sequence, TypeVar
from uuid import uuid4

from ...infra.cache import MemoryResponseCache, ResponseCache
from ...infra.logging import get_logger
from ...infra.metrics import MetricsClient, get_metrics_client
from .csv_export import serialize_entries
from .repository import InMemoryLogbookEntryRepository, LogbookEntryRepository
from .types import (
    DateRange,
    EntryChanges,
    EntryDraft,
    LogbookEntry,
    LogbookEntryDto,
    ServiceResult,
    UserContext,
    utcnow,
)

logger = get_logger(__name__)

T = TypeVar("T")

REQUEST_SUCCESSFUL = "Request successful"
GENERIC_FAILURE = "An error occurred. Request unsuccessful."
ENTRY_NOT_FOUND = "Entry not found"
PAST_DATE_SINGLE = "You cannot add a new entry for past dates."
PAST_DATE_BATCH = "Cannot add entries for past dates"
DUPLICATE_DATE_SINGLE = "An entry for this date already exists."
DUPLICATE_DATE_BATCH = "An entry for this date already exists"
DUPLICATE_IN_BATCH = "Duplicate date within the submitted batch"
UPDATE_FORBIDDEN = "You do not have permission to update this entry"
DELETE_FORBIDDEN = "You do not have permission to delete this entry"
READ_FORBIDDEN = "You do not have permission to view this entry"
LIST_ALL_FORBIDDEN = "You do not have permission to view all entries"
BATCH_DELETE_FORBIDDEN = (
    "You don't have permission to delete one or more of these entries"
)
NO_ENTRIES_FOR_IDS = "No entries found for the provided IDs"
NO_ENTRIES_FOR_DELETION = "No entries found for deletion"
ALL_UPDATED = "All entries updated successfully"


@dataclass(frozen=True)
class CachePolicy:
    """Expiration windows applied to every cached read."""

    sliding_seconds: int = 120
    absolute_seconds: int = 600

    @property
    def sliding(self) -> timedelta:
        return timedelta(seconds=self.sliding_seconds)

    @property
    def absolute(self) -> timedelta:
        return timedelta(seconds=self.absolute_seconds)


def collection_cache_key(user_id: str) -> str:
    return f"logbook_entries:{user_id}"


def entry_cache_key(user_id: str, entry_id: str) -> str:
    return f"logbook_entry:{user_id}:{entry_id}"


class LogbookEntryService:
    """Business rules over logbook persistence.

    Every public operation returns a :class:`ServiceResult`. Rule violations
    become failure results; unexpected exceptions are logged and surface as a
    500 result so the HTTP layer never sees a raw traceback.
    """

    def __init__(
        self,
        *,
        repository: LogbookEntryRepository | None = None,
        cache: ResponseCache | None = None,
        metrics: MetricsClient | None = None,
        clock: Callable[[], datetime] = utcnow,
        cache_policy: CachePolicy | None = None,
        enforce_read_ownership: bool = False,
    ) -> None:
        self._repository = (
            repository if repository is not None else InMemoryLogbookEntryRepository()
        )
        # Empty caches are falsy, so compare against None explicitly.
        self._cache = cache if cache is not None else MemoryResponseCache()
        self._metrics = metrics or get_metrics_client()
        self._clock = clock
        self._cache_policy = cache_policy or CachePolicy()
        self._enforce_read_ownership = enforce_read_ownership

    # ------------------------------------------------------------------
    # Single-entry operations
    # ------------------------------------------------------------------
    def create_entry(
        self, draft: EntryDraft, user: UserContext
    ) -> ServiceResult[LogbookEntryDto]:
        return self._guard("create_entry", user, self._create_entry, draft, user)

    def update_entry(
        self, entry_id: str, changes: EntryChanges, user: UserContext
    ) -> ServiceResult[LogbookEntryDto]:
        return self._guard(
            "update_entry", user, self._update_entry, entry_id, changes, user
        )

    def delete_entry(self, entry_id: str, user: UserContext) -> ServiceResult[None]:
        return self._guard("delete_entry", user, self._delete_entry, entry_id, user)

    def get_entry(
        self, entry_id: str, user: UserContext
    ) -> ServiceResult[LogbookEntryDto]:
        return self._guard("get_entry", user, self._get_entry, entry_id, user)

    def list_entries(self, user: UserContext) -> ServiceResult[list[LogbookEntryDto]]:
        return self._guard("list_entries", user, self._list_entries, user)

    def list_all_entries(
        self, user: UserContext
    ) -> ServiceResult[list[LogbookEntryDto]]:
        return self._guard("list_all_entries", user, self._list_all_entries, user)

    # ------------------------------------------------------------------
    # Batch operations
    # ------------------------------------------------------------------
    def create_entries(
        self, drafts: Sequence[EntryDraft], user: UserContext
    ) -> ServiceResult[list[LogbookEntryDto]]:
        return self._guard("create_entries", user, self._create_entries, drafts, user)

    def update_entries(
        self, changes: Sequence[EntryChanges], user: UserContext
    ) -> ServiceResult[list[LogbookEntryDto]]:
        return self._guard("update_entries", user, self._update_entries, changes, user)

    def delete_entries(
        self, entry_ids: Sequence[str], user: UserContext
    ) -> ServiceResult[None]:
        return self._guard(
            "delete_entries", user, self._delete_entries, entry_ids, user
        )

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------
    def export_entries_csv(
        self, date_range: DateRange, user: UserContext
    ) -> ServiceResult[bytes]:
        return self._guard(
            "export_entries_csv", user, self._export_entries_csv, date_range, user
        )

    # ------------------------------------------------------------------
    # Implementations
    # ------------------------------------------------------------------
    def _create_entry(
        self, draft: EntryDraft, user: UserContext
    ) -> ServiceResult[LogbookEntryDto]:
        today = self._today()
        entry_date = draft.entry_date or today
        if entry_date < today:
            return ServiceResult.failure(HTTPStatus.BAD_REQUEST, PAST_DATE_SINGLE)
        existing = self._repository.get_by_date_for_user(user.user_id, entry_date)
        if existing is not None:
            return ServiceResult.failure(HTTPStatus.BAD_REQUEST, DUPLICATE_DATE_SINGLE)

        entry = self._new_entry(draft, entry_date, user, self._clock())
        self._repository.insert(entry)
        self._invalidate(user.user_id)
        logger.info(
            "logbook_entry_created",
            extra={
                "entry_id": entry.entry_id,
                "user_id": user.user_id,
                "entry_date": entry_date.isoformat(),
            },
        )
        return ServiceResult.success(
            entry.to_dto(), status_code=HTTPStatus.CREATED, message=REQUEST_SUCCESSFUL
        )

    def _update_entry(
        self, entry_id: str, changes: EntryChanges, user: UserContext
    ) -> ServiceResult[LogbookEntryDto]:
        existing = self._repository.get_by_id(entry_id)
        if existing is None:
            return ServiceResult.failure(HTTPStatus.NOT_FOUND, ENTRY_NOT_FOUND)
        if not existing.owned_by(user):
            logger.warning(
                "logbook_update_forbidden",
                extra={"entry_id": entry_id, "user_id": user.user_id},
            )
            return ServiceResult.failure(HTTPStatus.FORBIDDEN, UPDATE_FORBIDDEN)

        new_date = changes.entry_date or existing.entry_date
        if new_date != existing.entry_date:
            clash = self._repository.get_by_date_for_user(user.user_id, new_date)
            if clash is not None and clash.entry_id != entry_id:
                return ServiceResult.failure(
                    HTTPStatus.BAD_REQUEST, DUPLICATE_DATE_SINGLE
                )

        updated = self._apply_changes(existing, changes, self._clock())
        self._repository.update(updated)
        self._invalidate(user.user_id, [entry_id])
        logger.info(
            "logbook_entry_updated",
            extra={"entry_id": entry_id, "user_id": user.user_id},
        )
        return ServiceResult.success(updated.to_dto(), message=REQUEST_SUCCESSFUL)

    def _delete_entry(self, entry_id: str, user: UserContext) -> ServiceResult[None]:
        existing = self._repository.get_by_id(entry_id)
        if existing is None:
            return ServiceResult.failure(HTTPStatus.NOT_FOUND, ENTRY_NOT_FOUND)
        if not existing.owned_by(user):
            logger.warning(
                "logbook_delete_forbidden",
                extra={"entry_id": entry_id, "user_id": user.user_id},
            )
            return ServiceResult.failure(HTTPStatus.FORBIDDEN, DELETE_FORBIDDEN)

        self._repository.remove(entry_id)
        self._invalidate(user.user_id, [entry_id])
        logger.info(
            "logbook_entry_deleted",
            extra={"entry_id": entry_id, "user_id": user.user_id},
        )
        return ServiceResult.success(status_code=HTTPStatus.NO_CONTENT)

    def _get_entry(
        self, entry_id: str, user: UserContext
    ) -> ServiceResult[LogbookEntryDto]:
        key = entry_cache_key(user.user_id, entry_id)
        hit, cached = self._cache_lookup(key)
        if hit:
            return ServiceResult.success(cached, message=REQUEST_SUCCESSFUL)

        entry = self._repository.get_by_id(entry_id)
        if entry is None:
            return ServiceResult.failure(HTTPStatus.NOT_FOUND, ENTRY_NOT_FOUND)
        if self._enforce_read_ownership and not entry.owned_by(user):
            return ServiceResult.failure(HTTPStatus.FORBIDDEN, READ_FORBIDDEN)

        dto = entry.to_dto()
        self._cache_store(key, dto)
        return ServiceResult.success(dto, message=REQUEST_SUCCESSFUL)

    def _list_entries(self, user: UserContext) -> ServiceResult[list[LogbookEntryDto]]:
        key = collection_cache_key(user.user_id)
        hit, cached = self._cache_lookup(key)
        if hit:
            return ServiceResult.success(list(cached), message=REQUEST_SUCCESSFUL)

        dtos = tuple(
            entry.to_dto() for entry in self._repository.get_all_for_user(user.user_id)
        )
        self._cache_store(key, dtos)
        logger.info(
            "logbook_entries_loaded",
            extra={"user_id": user.user_id, "count": len(dtos)},
        )
        return ServiceResult.success(list(dtos), message=REQUEST_SUCCESSFUL)

    def _list_all_entries(
        self, user: UserContext
    ) -> ServiceResult[list[LogbookEntryDto]]:
        if not user.is_admin:
            return ServiceResult.failure(HTTPStatus.FORBIDDEN, LIST_ALL_FORBIDDEN)
        dtos = [entry.to_dto() for entry in self._repository.get_all()]
        logger.info(
            "logbook_all_entries_loaded",
            extra={"user_id": user.user_id, "count": len(dtos)},
        )
        return ServiceResult.success(dtos, message=REQUEST_SUCCESSFUL)

    def _create_entries(
        self, drafts: Sequence[EntryDraft], user: UserContext
    ) -> ServiceResult[list[LogbookEntryDto]]:
        today = self._today()
        candidate_dates = {
            draft.entry_date or today
            for draft in drafts
            if (draft.entry_date or today) >= today
        }
        stored_dates = {
            entry.entry_date
            for entry in self._repository.get_by_dates_for_user(
                user.user_id, candidate_dates
            )
        }

        now = self._clock()
        accepted: list[LogbookEntry] = []
        errors: list[str] = []
        seen: set[date] = set()
        for draft in drafts:
            entry_date = draft.entry_date or today
            reason = self._creation_rejection(entry_date, today, stored_dates, seen)
            if reason is not None:
                errors.append(f"Entry for {entry_date.isoformat()}: {reason}")
                continue
            seen.add(entry_date)
            accepted.append(self._new_entry(draft, entry_date, user, now))

        if accepted:
            self._repository.insert_batch(accepted)
            self._invalidate(user.user_id)
            logger.info(
                "logbook_entries_created",
                extra={"user_id": user.user_id, "count": len(accepted)},
            )

        dtos = [entry.to_dto() for entry in accepted]
        if not errors:
            return ServiceResult.success(
                dtos, status_code=HTTPStatus.CREATED, message=REQUEST_SUCCESSFUL
            )
        self._record_rejections("create", len(errors))
        message = (
            f"{len(accepted)} entries created successfully. "
            f"{len(errors)} entries failed"
        )
        logger.info(
            "logbook_batch_create_partial",
            extra={
                "user_id": user.user_id,
                "accepted": len(accepted),
                "rejected": len(errors),
            },
        )
        return ServiceResult.success(
            dtos, status_code=HTTPStatus.MULTI_STATUS, message=message, errors=errors
        )

    def _update_entries(
        self, changes: Sequence[EntryChanges], user: UserContext
    ) -> ServiceResult[list[LogbookEntryDto]]:
        requested_ids = [item.entry_id for item in changes if item.entry_id]
        found = {
            entry.entry_id: entry
            for entry in self._repository.get_by_ids(requested_ids)
        }
        if not found:
            return ServiceResult.failure(HTTPStatus.NOT_FOUND, NO_ENTRIES_FOR_IDS)

        # entry_date -> entry_id for the caller's entries on any targeted date
        target_dates = {item.entry_date for item in changes if item.entry_date}
        owned = {
            entry.entry_date: entry.entry_id
            for entry in self._repository.get_by_dates_for_user(
                user.user_id, target_dates
            )
        }
        now = self._clock()
        pending: list[LogbookEntry] = []
        errors: list[str] = []
        for item in changes:
            entry = found.get(item.entry_id or "")
            reason = None
            if entry is None:
                reason = ENTRY_NOT_FOUND
            elif not entry.owned_by(user):
                reason = UPDATE_FORBIDDEN
            else:
                new_date = item.entry_date or entry.entry_date
                holder = owned.get(new_date)
                if holder is not None and holder != entry.entry_id:
                    reason = DUPLICATE_DATE_BATCH
            if reason is not None:
                errors.append(f"Entry with ID {item.entry_id}: {reason}")
                continue

            updated = self._apply_changes(entry, item, now)
            if owned.get(entry.entry_date) == entry.entry_id:
                del owned[entry.entry_date]
            owned[updated.entry_date] = updated.entry_id
            found[updated.entry_id] = updated
            pending.append(updated)

        if pending:
            self._repository.update_batch(pending)
            self._invalidate(user.user_id, [entry.entry_id for entry in pending])
            logger.info(
                "logbook_entries_updated",
                extra={"user_id": user.user_id, "count": len(pending)},
            )

        dtos = [entry.to_dto() for entry in pending]
        if not errors:
            return ServiceResult.success(dtos, message=ALL_UPDATED)
        self._record_rejections("update", len(errors))
        message = (
            f"{len(pending)} entries updated successfully. "
            f"{len(errors)} entries failed."
        )
        return ServiceResult.success(
            dtos, status_code=HTTPStatus.MULTI_STATUS, message=message, errors=errors
        )

    def _delete_entries(
        self, entry_ids: Sequence[str], user: UserContext
    ) -> ServiceResult[None]:
        entries = self._repository.get_by_ids(entry_ids)
        if not entries:
            return ServiceResult.failure(HTTPStatus.NOT_FOUND, NO_ENTRIES_FOR_DELETION)
        if any(not entry.owned_by(user) for entry in entries):
            logger.warning(
                "logbook_batch_delete_forbidden",
                extra={"user_id": user.user_id, "requested": len(entry_ids)},
            )
            return ServiceResult.failure(HTTPStatus.FORBIDDEN, BATCH_DELETE_FORBIDDEN)

        self._repository.remove_batch([entry.entry_id for entry in entries])
        self._invalidate(user.user_id, entry_ids)
        logger.info(
            "logbook_entries_deleted",
            extra={"user_id": user.user_id, "count": len(entries)},
        )
        return ServiceResult.success(status_code=HTTPStatus.NO_CONTENT)

    def _export_entries_csv(
        self, date_range: DateRange, user: UserContext
    ) -> ServiceResult[bytes]:
        entries = self._repository.get_by_date_range_for_user(
            user.user_id, date_range.start, date_range.end
        )
        payload = serialize_entries(entry.to_dto() for entry in entries)
        logger.info(
            "logbook_csv_exported",
            extra={"user_id": user.user_id, "count": len(entries)},
        )
        return ServiceResult.success(payload, message=REQUEST_SUCCESSFUL)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _guard(
        self,
        operation: str,
        user: UserContext,
        func: Callable[..., ServiceResult[T]],
        *args: Any,
    ) -> ServiceResult[T]:
        try:
            return func(*args)
        except Exception:
            logger.exception(
                "logbook_operation_failed",
                extra={"operation": operation, "user_id": user.user_id},
            )
            self._safe_metrics_increment("logbook_operation_failures_total")
            return ServiceResult.failure(
                HTTPStatus.INTERNAL_SERVER_ERROR, GENERIC_FAILURE
            )

    def _today(self) -> date:
        return self._clock().date()

    @staticmethod
    def _creation_rejection(
        entry_date: date, today: date, stored: set[date], seen: set[date]
    ) -> str | None:
        if entry_date < today:
            return PAST_DATE_BATCH
        if entry_date in stored:
            return DUPLICATE_DATE_BATCH
        if entry_date in seen:
            return DUPLICATE_IN_BATCH
        return None

    @staticmethod
    def _new_entry(
        draft: EntryDraft, entry_date: date, user: UserContext, now: datetime
    ) -> LogbookEntry:
        return LogbookEntry(
            entry_id=str(uuid4()),
            user_id=user.user_id,
            activity=draft.activity,
            description=draft.description,
            entry_date=entry_date,
            created_at=now,
            updated_at=now,
        )

    @staticmethod
    def _apply_changes(
        entry: LogbookEntry, changes: EntryChanges, now: datetime
    ) -> LogbookEntry:
        return replace(
            entry,
            activity=changes.activity or entry.activity,
            description=changes.description,
            entry_date=changes.entry_date or entry.entry_date,
            updated_at=now,
        )

    def _cache_lookup(self, key: str) -> tuple[bool, Any]:
        hit, value = self._cache.try_get(key)
        self._safe_metrics_increment(
            "logbook_cache_hits_total" if hit else "logbook_cache_misses_total"
        )
        logger.debug(
            "logbook_cache_hit" if hit else "logbook_cache_miss",
            extra={"key": key},
        )
        return hit, value

    def _cache_store(self, key: str, value: Any) -> None:
        self._cache.set(
            key,
            value,
            sliding=self._cache_policy.sliding,
            absolute=self._cache_policy.absolute,
        )

    def _invalidate(self, user_id: str, entry_ids: Iterable[str] = ()) -> None:
        self._cache.remove(collection_cache_key(user_id))
        for entry_id in entry_ids:
            self._cache.remove(entry_cache_key(user_id, entry_id))

    def _record_rejections(self, action: str, count: int) -> None:
        self._safe_metrics_increment(f"logbook_batch_{action}_rejections_total", count)

    def _safe_metrics_increment(self, metric: str, value: int = 1) -> None:
        try:
            self._metrics.increment(metric, value)
        except Exception:  # pragma: no cover - defensive
            logger.exception(
                "metrics_increment_failed",
                extra={"metric": metric, "value": value},
            )


__all__ = [
    "CachePolicy",
    "LogbookEntryService",
    "collection_cache_key",
    "entry_cache_key",
]
