"""Provisioning saga, retry policy and backend contract shared by provider jobs."""
from __future__ import annotations

from .base import Credential, CredentialBackend
from .context import CREATE_CREDENTIALS, DELETE_CREDENTIALS, TaskContext
from .dispatcher import dispatch
from .errors import (
    BackendError,
    BackendRejectedError,
    BackendUnavailableError,
    ConfigurationError,
    CredentialsJobError,
    ErrorCode,
    OrchestratorAuthError,
    ReportError,
    SecretFetchError,
    SecretTypeMismatchError,
)
from .payload import CredentialsPayload
from .retry import RetryingSession, RetryPolicy, raise_for_backend_status
from .saga import Outcome, ProvisioningSaga, SagaState

__all__ = [
    "BackendError",
    "BackendRejectedError",
    "BackendUnavailableError",
    "CREATE_CREDENTIALS",
    "ConfigurationError",
    "Credential",
    "CredentialBackend",
    "CredentialsJobError",
    "CredentialsPayload",
    "DELETE_CREDENTIALS",
    "ErrorCode",
    "OrchestratorAuthError",
    "Outcome",
    "ProvisioningSaga",
    "ReportError",
    "RetryPolicy",
    "RetryingSession",
    "SagaState",
    "SecretFetchError",
    "SecretTypeMismatchError",
    "TaskContext",
    "dispatch",
]
