"""Logbook entry endpoints."""

from __future__ import annotations

from datetime import date, datetime
from http import HTTPStatus
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from ...api.dependencies import get_current_user, get_logbook_service
from ...domain.logbook import (
    CSV_FILENAME,
    CSV_MEDIA_TYPE,
    DateRange,
    EntryChanges,
    EntryDraft,
    LogbookEntryDto,
    LogbookEntryService,
    ServiceResult,
    UserContext,
)
from ...domain.logbook.types import ACTIVITY_MAX_LENGTH, DESCRIPTION_MAX_LENGTH


class EntryRecord(BaseModel):
    """API representation for a logbook entry."""

    entry_id: str
    activity: str
    description: str | None = None
    entry_date: date
    last_updated: datetime


class ApiEnvelope(BaseModel):
    """Uniform response wrapper returned by every JSON endpoint."""

    status_code: int
    succeeded: bool
    message: str | None = None
    data: Any = None
    errors: list[str] = Field(default_factory=list)


class EntryCreateRequest(BaseModel):
    """Request body for POST /api/logbook."""

    activity: str = Field(..., max_length=ACTIVITY_MAX_LENGTH)
    description: str | None = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    entry_date: date | None = None

    @field_validator("activity")
    @classmethod
    def _validate_activity(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("activity is required")
        return value.strip()

    def to_draft(self) -> EntryDraft:
        return EntryDraft(
            activity=self.activity,
            description=self.description,
            entry_date=self.entry_date,
        )


class EntryUpdateRequest(EntryCreateRequest):
    """Request body for PUT /api/logbook/{entry_id}."""

    def to_changes(self, entry_id: str | None = None) -> EntryChanges:
        return EntryChanges(
            entry_id=entry_id,
            activity=self.activity,
            description=self.description,
            entry_date=self.entry_date,
        )


class BatchEntryUpdateRequest(EntryUpdateRequest):
    """Single item of PUT /api/logbook/update-multiple-entries."""

    entry_id: str = Field(..., min_length=1)


router = APIRouter(prefix="/api/logbook", tags=["logbook"])


def _to_record(dto: LogbookEntryDto) -> EntryRecord:
    return EntryRecord(
        entry_id=dto.entry_id,
        activity=dto.activity,
        description=dto.description,
        entry_date=dto.entry_date,
        last_updated=dto.last_updated,
    )


def _serialize_data(data: Any) -> Any:
    if isinstance(data, LogbookEntryDto):
        return _to_record(data).model_dump(mode="json")
    if isinstance(data, (list, tuple)):
        return [_serialize_data(item) for item in data]
    return data


def _respond(result: ServiceResult[Any]) -> Response:
    if result.status_code == HTTPStatus.NO_CONTENT:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    envelope = ApiEnvelope(
        status_code=int(result.status_code),
        succeeded=result.succeeded,
        message=result.message,
        data=_serialize_data(result.data),
        errors=result.errors,
    )
    return JSONResponse(
        status_code=int(result.status_code),
        content=envelope.model_dump(mode="json"),
    )


# ----------------------------------------------------------------------
# Static routes are registered before /{entry_id} so they win matching.
# ----------------------------------------------------------------------
@router.get("", summary="List the caller's entries")
def list_entries(
    user: UserContext = Depends(get_current_user),
    service: LogbookEntryService = Depends(get_logbook_service),
) -> Response:
    return _respond(service.list_entries(user))


@router.get("/entries", summary="List every entry (administrators only)")
def list_all_entries(
    user: UserContext = Depends(get_current_user),
    service: LogbookEntryService = Depends(get_logbook_service),
) -> Response:
    return _respond(service.list_all_entries(user))


@router.get("/download-csv", summary="Export the caller's entries as CSV")
def download_csv(
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    user: UserContext = Depends(get_current_user),
    service: LogbookEntryService = Depends(get_logbook_service),
) -> Response:
    date_range = DateRange(
        start=start_date or date.min,
        end=end_date or date.max,
    )
    if date_range.start > date_range.end:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start_date must not be after end_date",
        )
    result = service.export_entries_csv(date_range, user)
    if not result.succeeded:
        return _respond(result)
    return Response(
        content=result.data or b"",
        media_type=CSV_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{CSV_FILENAME}"'},
    )


@router.post("/create-multiple-entries", summary="Create several entries")
def create_entries(
    payload: list[EntryCreateRequest] = Body(...),
    user: UserContext = Depends(get_current_user),
    service: LogbookEntryService = Depends(get_logbook_service),
) -> Response:
    drafts = [item.to_draft() for item in payload]
    return _respond(service.create_entries(drafts, user))


@router.put("/update-multiple-entries", summary="Update several entries")
def update_entries(
    payload: list[BatchEntryUpdateRequest] = Body(...),
    user: UserContext = Depends(get_current_user),
    service: LogbookEntryService = Depends(get_logbook_service),
) -> Response:
    changes = [item.to_changes(item.entry_id) for item in payload]
    return _respond(service.update_entries(changes, user))


@router.delete("/delete-multiple-entries", summary="Delete several entries")
def delete_entries(
    entry_ids: list[str] = Body(...),
    user: UserContext = Depends(get_current_user),
    service: LogbookEntryService = Depends(get_logbook_service),
) -> Response:
    return _respond(service.delete_entries(entry_ids, user))


@router.post("", summary="Create an entry")
def create_entry(
    payload: EntryCreateRequest,
    user: UserContext = Depends(get_current_user),
    service: LogbookEntryService = Depends(get_logbook_service),
) -> Response:
    return _respond(service.create_entry(payload.to_draft(), user))


@router.get("/{entry_id}", summary="Fetch a single entry")
def get_entry(
    entry_id: str,
    user: UserContext = Depends(get_current_user),
    service: LogbookEntryService = Depends(get_logbook_service),
) -> Response:
    return _respond(service.get_entry(entry_id, user))


@router.put("/{entry_id}", summary="Update an entry")
def update_entry(
    entry_id: str,
    payload: EntryUpdateRequest,
    user: UserContext = Depends(get_current_user),
    service: LogbookEntryService = Depends(get_logbook_service),
) -> Response:
    return _respond(
        service.update_entry(entry_id, payload.to_changes(entry_id), user)
    )


@router.delete("/{entry_id}", summary="Delete an entry")
def delete_entry(
    entry_id: str,
    user: UserContext = Depends(get_current_user),
    service: LogbookEntryService = Depends(get_logbook_service),
) -> Response:
    return _respond(service.delete_entry(entry_id, user))
