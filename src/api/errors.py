"""Translation of service errors into HTTP responses."""

from __future__ import annotations

from fastapi import HTTPException, status

from src.services.errors import (
    ConflictError,
    ConsistencyError,
    EmptyCatalogError,
    NotFoundError,
    NotSignedInError,
    PermissionDeniedError,
    PreconditionFailedError,
    TransportError,
)

_STATUS_BY_ERROR: list[tuple[type[ConsistencyError], int]] = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (NotSignedInError, status.HTTP_401_UNAUTHORIZED),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (PreconditionFailedError, status.HTTP_412_PRECONDITION_FAILED),
    (TransportError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (EmptyCatalogError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def to_http_exception(exc: ConsistencyError) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
