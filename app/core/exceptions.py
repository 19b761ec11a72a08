from typing import Any, Dict, Optional
from fastapi import HTTPException, status


class AttemptError(HTTPException):
    """Base for protocol errors. ``code`` is the stable identifier clients switch on."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "bad_request"
    default_detail: str = "Request could not be processed."

    def __init__(self, detail: Optional[str] = None, *, code: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)
        if code:
            self.code = code
        self.details = details


class VersionConflict(AttemptError):
    status_code = status.HTTP_409_CONFLICT
    code = "version_conflict"
    default_detail = "The attempt has changed since it was last read. Refetch and retry."


class Expired(AttemptError):
    status_code = status.HTTP_410_GONE
    code = "attempt_expired"
    default_detail = "Time is up for this attempt."


class QuestionExpired(Expired):
    code = "question_expired"
    default_detail = "Time is up for this question; the attempt has ended."


class AttemptLimitExceeded(AttemptError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = "max_attempts"
    default_detail = "The maximum number of attempts for this assignment has been reached."


class IncompleteAttempt(AttemptError):
    code = "incomplete_attempt"
    default_detail = "All questions must be answered before finishing."


class InvalidPayload(AttemptError):
    code = "invalid_payload"
    default_detail = "The answer payload is not valid for this question."


class ValidationFailed(AttemptError):
    code = "validation_error"
    default_detail = "The request is missing required information."


class InvalidState(AttemptError):
    code = "invalid_state"
    default_detail = "The attempt is not in a state that allows this operation."


class Forbidden(AttemptError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    default_detail = "You do not have permission to perform this action."


class NotFound(AttemptError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_detail = "Resource not found."


ERRORS_BY_CODE = {
    cls.code: cls
    for cls in (
        VersionConflict, Expired, QuestionExpired, AttemptLimitExceeded,
        IncompleteAttempt, InvalidPayload, ValidationFailed, InvalidState, Forbidden, NotFound,
    )
}


def error_for(status_code: int, code: Optional[str], detail: Optional[str] = None) -> AttemptError:
    """Rebuild the protocol error for a status-coded response."""
    cls = ERRORS_BY_CODE.get(code or "")
    if cls is None:
        cls = next(
            (c for c in ERRORS_BY_CODE.values() if c.status_code == status_code and c is not QuestionExpired),
            AttemptError,
        )
    err = cls(detail)
    if cls is AttemptError:
        err.status_code = status_code
        err.code = code or err.code
    return err
