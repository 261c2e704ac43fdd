"""Translate domain exceptions into HTTP errors."""

from fastapi import HTTPException

from ..errors import (
    InvalidArgumentError,
    InvalidOperationError,
    NotFoundError,
    SocialGraphError,
    StoreUnavailableError,
)

_STATUS_CODES: list[tuple[type[SocialGraphError], int]] = [
    (NotFoundError, 404),
    (InvalidOperationError, 400),
    (InvalidArgumentError, 400),
    (StoreUnavailableError, 503),
]


def to_http_exception(error: SocialGraphError) -> HTTPException:
    """Map a domain error to the HTTPException clients should see."""
    for exc_type, status_code in _STATUS_CODES:
        if isinstance(error, exc_type):
            return HTTPException(status_code=status_code, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))
