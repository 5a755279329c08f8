"""Logbook domain package."""

from .csv_export import CSV_FILENAME, CSV_MEDIA_TYPE, serialize_entries
from .repository import (
    InMemoryLogbookEntryRepository,
    LogbookEntryRepository,
    SqlLogbookEntryRepository,
)
from .service import (
    CachePolicy,
    LogbookEntryService,
    collection_cache_key,
    entry_cache_key,
)
from .types import (
    DateRange,
    EntryChanges,
    EntryDraft,
    EntryNotFoundError,
    LogbookEntry,
    LogbookEntryDto,
    Role,
    ServiceResult,
    UserContext,
)

__all__ = [
    "CSV_FILENAME",
    "CSV_MEDIA_TYPE",
    "CachePolicy",
    "DateRange",
    "EntryChanges",
    "EntryDraft",
    "EntryNotFoundError",
    "InMemoryLogbookEntryRepository",
    "LogbookEntry",
    "LogbookEntryDto",
    "LogbookEntryRepository",
    "LogbookEntryService",
    "Role",
    "ServiceResult",
    "SqlLogbookEntryRepository",
    "UserContext",
    "collection_cache_key",
    "entry_cache_key",
    "serialize_entries",
]
