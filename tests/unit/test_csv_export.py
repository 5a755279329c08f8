"""Tests for CSV serialization of logbook entries."""

from __future__ import annotations

import csv
import io
from datetime import date, datetime, timezone

from backend.app.domain.logbook import LogbookEntryDto, serialize_entries


def test_empty_export_still_has_header() -> None:
    payload = serialize_entries([])

    assert payload == b"entry_id,activity,description,entry_date,last_updated\n"


def test_rows_use_iso_dates_and_quote_special_characters() -> None:
    dto = LogbookEntryDto(
        entry_id="e-1",
        activity='Review, "design"',
        description="Café notes",
        entry_date=date(2026, 10, 20),
        last_updated=datetime(2026, 10, 20, 17, 5, tzinfo=timezone.utc),
    )
    blank = LogbookEntryDto(
        entry_id="e-2",
        activity="Plain",
        description=None,
        entry_date=date(2026, 10, 21),
        last_updated=datetime(2026, 10, 21, 9, 0, tzinfo=timezone.utc),
    )

    payload = serialize_entries([dto, blank])
    rows = list(csv.DictReader(io.StringIO(payload.decode("utf-8"))))

    assert rows[0] == {
        "entry_id": "e-1",
        "activity": 'Review, "design"',
        "description": "Café notes",
        "entry_date": "2026-10-20",
        "last_updated": "2026-10-20T17:05:00+00:00",
    }
    assert rows[1]["description"] == ""
    assert rows[1]["entry_date"] == "2026-10-21"
