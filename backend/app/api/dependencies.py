"""Shared API dependencies."""

from __future__ import annotations

from functools import lru_cache

from fastapi import HTTPException, Request, status

from ..config import load_settings
from ..domain.logbook import (
    CachePolicy,
    LogbookEntryService,
    Role,
    SqlLogbookEntryRepository,
    UserContext,
)
from ..infra.cache import MemoryResponseCache

__all__ = [
    "USER_ID_HEADER",
    "USER_ROLES_HEADER",
    "get_current_user",
    "get_logbook_service",
]

USER_ID_HEADER = "x-user-id"
USER_ROLES_HEADER = "x-user-roles"


def get_current_user(request: Request) -> UserContext:
    """Build the caller identity from headers set by the upstream identity layer."""

    user_id = (request.headers.get(USER_ID_HEADER) or "").strip()
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authenticated user",
        )

    raw_roles = request.headers.get(USER_ROLES_HEADER) or ""
    roles: set[Role] = set()
    for candidate in (part.strip() for part in raw_roles.split(",")):
        if not candidate:
            continue
        try:
            roles.add(Role(candidate))
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid role '{candidate}'",
            ) from exc
    return UserContext(user_id=user_id, roles=frozenset(roles or {Role.USER}))


@lru_cache()
def _logbook_service_singleton() -> LogbookEntryService:
    settings = load_settings()
    return LogbookEntryService(
        repository=SqlLogbookEntryRepository(),
        cache=MemoryResponseCache(maxsize=settings.cache.max_entries),
        cache_policy=CachePolicy(
            sliding_seconds=settings.cache.sliding_seconds,
            absolute_seconds=settings.cache.absolute_seconds,
        ),
        enforce_read_ownership=settings.logbook.enforce_read_ownership,
    )


def get_logbook_service() -> LogbookEntryService:
    """Return the logbook service singleton."""

    return _logbook_service_singleton()
