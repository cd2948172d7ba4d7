"""Typed errors raised by the interview engine services."""
from typing import Any, Dict, Optional


class InterviewEngineError(Exception):
    """Base class for every error the core reports to its callers."""

    code = "engine_error"
    http_status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "detail": self.message}


class ValidationError(InterviewEngineError):
    """A required field is missing or invalid."""

    code = "validation_error"
    http_status = 422


class InsufficientQuotaError(InterviewEngineError):
    """A minutes reservation was rejected by the quota ledger."""

    code = "insufficient_quota"
    http_status = 402

    def __init__(self, remaining: int, required: int, message: Optional[str] = None):
        self.remaining = remaining
        self.required = required
        super().__init__(message or (
            f"Insufficient conversation minutes. You have {remaining} minutes remaining, "
            f"but need {required} minutes for this interview. Please upgrade your plan to continue."
        ))

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(remaining=self.remaining, required=self.required)
        return data


class ReferenceNotFoundError(InterviewEngineError):
    """A required lookup (interview type, difficulty) has no matching id."""

    code = "reference_not_found"
    http_status = 422


class NotFoundError(InterviewEngineError):
    """The requested record does not exist (or is not visible to the account)."""

    code = "not_found"
    http_status = 404


class StateConflictError(InterviewEngineError):
    """The operation is incompatible with the record's current state."""

    code = "state_conflict"
    http_status = 409


class ConfigurationError(InterviewEngineError):
    """Missing credential or mapping; needs an operator fix, retrying will not help."""

    code = "configuration_error"
    http_status = 503


class RemoteServiceError(InterviewEngineError):
    """Non-2xx or transport failure from the session provider or the data store."""

    code = "remote_service_error"
    http_status = 502

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        source: str = "tavus",
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.source = source

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(source=self.source, status_code=self.status_code, body=self.body)
        return data
