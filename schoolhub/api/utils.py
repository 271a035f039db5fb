# schoolhub/api/utils.py - Helpers shared by routers
from contextlib import contextmanager
from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import HTTPException, status

from schoolhub.core.errors import DomainError


def parse_uuid(value: Optional[str], label: str) -> Optional[UUID]:
    """Parse an id from a path or query string, 400 on a malformed value"""
    if value is None:
        return None
    try:
        return UUID(value)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {label} ID format"
        )


def parse_date(value: Optional[str], label: str = "date") -> Optional[date]:
    """Parse a YYYY-MM-DD query parameter, 400 on a malformed value"""
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {label} format. Use YYYY-MM-DD"
        )


def to_http_exception(error: DomainError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.detail)


@contextmanager
def domain_errors():
    """Translate domain errors raised inside the block into HTTPException"""
    try:
        yield
    except DomainError as e:
        raise to_http_exception(e) from e
