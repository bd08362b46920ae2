"""
Typed exceptions for FTMS services.

Every exception derives from FTMSError, which is itself a ValueError,
so callers that only care about "the request was bad" can keep catching
ValueError. Routes map the subclasses onto HTTP status codes:

    FTMSError (ValueError)
    +-- ValidationFailedError   400  field-level errors, never partially applied
    |   +-- UnbalancedEntryError
    +-- NotFoundError           404  referenced entity missing
    +-- StateConflictError      400  illegal from the current state
    +-- DuplicateError          409  uniqueness conflict
    +-- IntegrationError        502  upstream HR / Operations failure
"""


class FTMSError(ValueError):
    """Base class for all domain errors."""

    code = "FTMS_ERROR"


class ValidationFailedError(FTMSError):
    """One or more field-level validation errors."""

    code = "VALIDATION_FAILED"

    def __init__(self, errors: list[str] | str):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class UnbalancedEntryError(ValidationFailedError):
    """Journal entry debits do not equal credits."""

    code = "UNBALANCED_ENTRY"


class NotFoundError(FTMSError):
    """A referenced record does not exist (or is soft-deleted)."""

    code = "NOT_FOUND"


class StateConflictError(FTMSError):
    """The operation is not legal from the record's current state."""

    code = "STATE_CONFLICT"


class DuplicateError(FTMSError):
    """A record with the same unique key already exists."""

    code = "DUPLICATE"


class IntegrationError(FTMSError):
    """An external system call failed or returned an unusable payload."""

    code = "INTEGRATION_ERROR"
