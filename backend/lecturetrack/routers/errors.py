"""
Traduction des exceptions métier en réponses HTTP, partagée par les routers.
"""

from fastapi import HTTPException

from lecturetrack.exceptions import (
    ConflictError,
    DomainError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
)

STATUS_CODES = {
    NotFoundError: 404,
    ConflictError: 409,
    InvalidStateError: 409,
    ForbiddenError: 403,
}


def to_http(exc: DomainError) -> HTTPException:
    """Code HTTP de l'erreur métier (400 pour une règle sans code dédié)."""
    for error_type, status_code in STATUS_CODES.items():
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))
