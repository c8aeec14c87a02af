"""Error taxonomy shared by the credentials provider jobs."""
from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Stable codes sent to the secrets manager when a task fails."""

    UNKNOWN_ACTION = "Err10000"
    SECRET_FETCH_FAILED = "Err10001"
    INVALID_CONFIGURATION = "Err10002"
    BACKEND_UNREACHABLE = "Err10003"
    CREATE_REJECTED = "Err10004"
    REVOKE_REJECTED = "Err10005"
    REPORT_FAILED_AFTER_CREATE = "Err10006"
    REVOKE_FAILED_AFTER_REPORT_FAILURE = "Err10007"


class CredentialsJobError(Exception):
    """Base class for every failure a job can surface."""

    code: ErrorCode = ErrorCode.INVALID_CONFIGURATION


class ConfigurationError(CredentialsJobError):
    """Raised when a job parameter is missing or cannot be interpreted."""

    code = ErrorCode.INVALID_CONFIGURATION


class SecretFetchError(CredentialsJobError):
    """Raised when a referenced secret cannot be read from the secrets manager."""

    code = ErrorCode.SECRET_FETCH_FAILED


class SecretTypeMismatchError(SecretFetchError):
    """Raised when a referenced secret does not have the expected type or shape."""


class BackendError(CredentialsJobError):
    """Raised when a credential backend fails permanently."""

    code = ErrorCode.CREATE_REJECTED

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class BackendRejectedError(BackendError):
    """Raised when a backend refuses the request (bad parameters, conflict)."""


class BackendUnavailableError(BackendError):
    """Raised when a backend stays unreachable once retries are exhausted."""

    code = ErrorCode.BACKEND_UNREACHABLE


class ReportError(CredentialsJobError):
    """Raised when a task update cannot be delivered to the secrets manager."""

    code = ErrorCode.REPORT_FAILED_AFTER_CREATE


class OrchestratorAuthError(ReportError):
    """Raised when the secrets manager does not accept the job's own API key."""

    code = ErrorCode.SECRET_FETCH_FAILED


__all__ = [
    "BackendError",
    "BackendRejectedError",
    "BackendUnavailableError",
    "ConfigurationError",
    "CredentialsJobError",
    "ErrorCode",
    "OrchestratorAuthError",
    "ReportError",
    "SecretFetchError",
    "SecretTypeMismatchError",
]
