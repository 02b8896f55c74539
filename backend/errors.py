"""Error taxonomy shared by the verification engine and the API layer.

Services raise these; routers turn them into HTTP responses with
``raise_http_error``. Each error carries the stable ``code`` that clients
switch on (``validation_error``, ``not_found``, ``conflict``,
``collaborator_unavailable``).
"""
from fastapi import HTTPException


class EngineError(Exception):
    code = "internal_error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RequirementValidationError(EngineError):
    """A requirement set or request payload is malformed."""
    code = "validation_error"
    status_code = 400


class ReauthenticationRequired(RequirementValidationError):
    """Permanent exceptions need a fresh password confirmation."""


class PermissionDeniedError(EngineError):
    code = "forbidden"
    status_code = 403


class NotFoundError(EngineError):
    code = "not_found"
    status_code = 404


class ConflictError(EngineError):
    """A concurrent writer changed the record first. Re-fetch and retry."""
    code = "conflict"
    status_code = 409
    retryable = True


class InvalidTransitionError(ConflictError):
    """The record is not in the state the transition starts from."""
    retryable = False


class CollaboratorError(EngineError):
    """An upstream dependency (extraction, persistence) is unavailable."""
    code = "collaborator_unavailable"
    status_code = 503


class ExtractionUnavailable(CollaboratorError):
    pass


def raise_http_error(error: EngineError):
    raise HTTPException(
        status_code=error.status_code,
        detail={"code": error.code, "message": error.message},
    )
