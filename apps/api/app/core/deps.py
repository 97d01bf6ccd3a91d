"""FastAPI dependencies for database access, value validation and CSRF checks."""

from functools import lru_cache
from typing import Generator

from fastapi import HTTPException, Request
from sqlalchemy.orm import Session

from app.db.session import SessionLocal
from app.services.field_codec import FieldValueValidator, build_default_registry


CSRF_HEADER = "X-Requested-With"
CSRF_HEADER_VALUE = "XMLHttpRequest"


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@lru_cache
def get_value_validator() -> FieldValueValidator:
    """Validator built once per process from the default codec registry."""
    return FieldValueValidator(build_default_registry())


def require_csrf_header(request: Request) -> None:
    """
    Verify CSRF header on mutations.

    Apply to state-changing endpoints (POST, PUT, PATCH, DELETE).

    Raises:
        HTTPException 403: Missing or invalid CSRF header
    """
    if request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE:
        raise HTTPException(
            status_code=403,
            detail=f"Missing CSRF header. Include '{CSRF_HEADER}: {CSRF_HEADER_VALUE}'"
        )
