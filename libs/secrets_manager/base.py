"""Interface of the secrets manager as seen by the provider jobs."""
from __future__ import annotations

from typing import Any, Iterable, Mapping, Protocol

from libs.credentials.context import TaskContext
from libs.credentials.errors import ErrorCode

from .models import Secret, SecretTask


class SecretsManager(Protocol):
    """Operations the saga needs from the secrets manager.

    Implementations raise :class:`~libs.credentials.errors.SecretFetchError`
    when a referenced secret cannot be read and
    :class:`~libs.credentials.errors.ReportError` when a task update is not
    accepted.
    """

    def fetch_secret(self, secret_id: str, expected_types: Iterable[str]) -> Secret:
        """Return the secret ``secret_id`` after checking its type."""

    def report_created(
        self, context: TaskContext, credentials_id: str, payload: Mapping[str, Any]
    ) -> SecretTask:
        """Mark the task as succeeded with the new credentials."""

    def report_deleted(self, context: TaskContext) -> SecretTask:
        """Mark the task as succeeded after the credentials were revoked."""

    def report_failed(
        self, context: TaskContext, code: ErrorCode | str, description: str
    ) -> SecretTask:
        """Mark the task as failed with ``code`` and a readable description."""


__all__ = ["SecretsManager"]
