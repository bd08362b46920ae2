"""
Mapping from service exceptions to HTTP errors.

Routes keep the usual shape:

    try:
        ...
        db.commit()
    except ValueError as e:
        db.rollback()
        raise http_error(e)
"""

from fastapi import HTTPException

from ftms.exceptions import (
    ValidationFailedError,
    NotFoundError,
    StateConflictError,
    DuplicateError,
    IntegrationError,
)


def http_error(error: ValueError) -> HTTPException:
    if isinstance(error, ValidationFailedError):
        return HTTPException(status_code=400, detail=error.errors)
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, DuplicateError):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, IntegrationError):
        return HTTPException(status_code=502, detail=str(error))
    if isinstance(error, StateConflictError):
        return HTTPException(status_code=400, detail=str(error))
    return HTTPException(status_code=400, detail=str(error))
