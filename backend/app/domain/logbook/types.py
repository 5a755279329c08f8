"""Shared logbook domain types."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from http import HTTPStatus
from typing import Generic, TypeVar

T = TypeVar("T")

ACTIVITY_MAX_LENGTH = 50
DESCRIPTION_MAX_LENGTH = 250


class Role(str, Enum):
    """Roles recognised by the logbook API."""

    ADMINISTRATOR = "Administrator"
    USER = "User"


@dataclass(frozen=True)
class UserContext:
    """Identity of the caller threaded through every service operation."""

    user_id: str
    roles: frozenset[Role] = frozenset({Role.USER})

    @property
    def is_admin(self) -> bool:
        return Role.ADMINISTRATOR in self.roles


@dataclass(frozen=True)
class LogbookEntryDto:
    """Public projection of an entry returned to callers."""

    entry_id: str
    activity: str
    description: str | None
    entry_date: date
    last_updated: datetime


@dataclass(frozen=True)
class LogbookEntry:
    """Internal representation of a stored logbook entry."""

    entry_id: str
    user_id: str
    activity: str
    description: str | None
    entry_date: date
    created_at: datetime
    updated_at: datetime

    def to_dto(self) -> LogbookEntryDto:
        return LogbookEntryDto(
            entry_id=self.entry_id,
            activity=self.activity,
            description=self.description,
            entry_date=self.entry_date,
            last_updated=self.updated_at,
        )

    def owned_by(self, user: UserContext) -> bool:
        return self.user_id == user.user_id


@dataclass(frozen=True)
class EntryDraft:
    """Creation input; a missing date means today."""

    activity: str
    description: str | None = None
    entry_date: date | None = None


@dataclass(frozen=True)
class EntryChanges:
    """Update input.

    A missing ``activity`` or ``entry_date`` keeps the stored value; the
    description is always overwritten so callers can clear it.
    """

    activity: str | None = None
    description: str | None = None
    entry_date: date | None = None
    entry_id: str | None = None


@dataclass(frozen=True)
class DateRange:
    """Inclusive date window used by the CSV export."""

    start: date = date.min
    end: date = date.max

    def contains(self, value: date) -> bool:
        return self.start <= value <= self.end


@dataclass
class ServiceResult(Generic[T]):
    """Outcome of a service operation mapped 1:1 onto an HTTP response."""

    status_code: HTTPStatus
    data: T | None = None
    message: str | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return 200 <= int(self.status_code) < 300

    @classmethod
    def success(
        cls,
        data: T | None = None,
        *,
        status_code: HTTPStatus = HTTPStatus.OK,
        message: str | None = None,
        errors: list[str] | None = None,
    ) -> "ServiceResult[T]":
        return cls(
            status_code=status_code,
            data=data,
            message=message,
            errors=list(errors or []),
        )

    @classmethod
    def failure(
        cls,
        status_code: HTTPStatus,
        message: str,
        *,
        errors: list[str] | None = None,
    ) -> "ServiceResult[T]":
        return cls(
            status_code=status_code,
            data=None,
            message=message,
            errors=list(errors or []),
        )


class EntryNotFoundError(LookupError):
    """Raised by repositories when a write targets a missing entry."""

    def __init__(self, entry_id: str) -> None:
        super().__init__(f"Logbook entry '{entry_id}' not found")
        self.entry_id = entry_id


def utcnow() -> datetime:
    """UTC timestamp helper shared across implementations."""

    return datetime.now(timezone.utc)
