"""CSV serialization for logbook entry exports."""

from __future__ import annotations

import csv
import io
from typing import Iterable

from .types import LogbookEntryDto

CSV_FIELDS = ("entry_id", "activity", "description", "entry_date", "last_updated")
CSV_FILENAME = "LogbookEntries.csv"
CSV_MEDIA_TYPE = "text/csv"


def serialize_entries(entries: Iterable[LogbookEntryDto]) -> bytes:
    """Render entries as UTF-8 CSV; the header row is always written."""

    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=CSV_FIELDS, lineterminator="\n")
    writer.writeheader()
    for entry in entries:
        writer.writerow(
            {
                "entry_id": entry.entry_id,
                "activity": entry.activity,
                "description": entry.description or "",
                "entry_date": entry.entry_date.isoformat(),
                "last_updated": entry.last_updated.isoformat(),
            }
        )
    return buffer.getvalue().encode("utf-8")


__all__ = ["CSV_FIELDS", "CSV_FILENAME", "CSV_MEDIA_TYPE", "serialize_entries"]
