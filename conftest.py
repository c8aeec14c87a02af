"""Shared fixtures for the library and provider job tests."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Mapping

import pytest

from libs.credentials.context import CREATE_CREDENTIALS, TaskContext
from libs.credentials.errors import ErrorCode, SecretFetchError, SecretTypeMismatchError
from libs.secrets_manager.models import (
    TASK_CREDENTIALS_CREATED,
    TASK_CREDENTIALS_DELETED,
    TASK_FAILED,
    Secret,
    SecretTask,
)


class FakeSecretsManager:
    """In-memory secrets manager recording every task update attempt."""

    def __init__(self) -> None:
        self.secrets: dict[str, Secret] = {}
        self.reports: list[dict[str, Any]] = []
        self.failures: dict[str, Exception] = {}

    def add_secret(self, secret_id: str, secret_type: str, **fields: Any) -> Secret:
        secret = Secret(id=secret_id, secret_type=secret_type, **fields)
        self.secrets[secret_id] = secret
        return secret

    def fail_report(self, status: str, error: Exception) -> None:
        self.failures[status] = error

    def fetch_secret(self, secret_id: str, expected_types: Iterable[str]) -> Secret:
        expected = tuple(expected_types)
        secret = self.secrets.get(secret_id)
        if secret is None:
            raise SecretFetchError(f"cannot get secret with ID '{secret_id}'")
        if secret.secret_type not in expected:
            raise SecretTypeMismatchError(
                f"get secret id: '{secret_id}' returned unexpected secret type: {secret.secret_type}"
            )
        return secret

    def report_created(
        self, context: TaskContext, credentials_id: str, payload: Mapping[str, Any]
    ) -> SecretTask:
        return self._record(
            TASK_CREDENTIALS_CREATED, context, credentials_id=credentials_id, payload=dict(payload)
        )

    def report_deleted(self, context: TaskContext) -> SecretTask:
        return self._record(TASK_CREDENTIALS_DELETED, context, credentials_id=context.credentials_id)

    def report_failed(
        self, context: TaskContext, code: ErrorCode | str, description: str
    ) -> SecretTask:
        code_value = code.value if isinstance(code, ErrorCode) else code
        return self._record(TASK_FAILED, context, code=code_value, description=description)

    def _record(self, status: str, context: TaskContext, **details: Any) -> SecretTask:
        self.reports.append(
            {
                "status": status,
                "secret_id": context.secret_id,
                "task_id": context.secret_task_id,
                **details,
            }
        )
        if status in self.failures:
            raise self.failures[status]
        return SecretTask(
            id=context.secret_task_id,
            secret_id=context.secret_id,
            status=status,
            updated_by="iam-ServiceId-tests",
        )

    def statuses(self) -> list[str]:
        return [report["status"] for report in self.reports]


@pytest.fixture
def secrets_manager() -> FakeSecretsManager:
    return FakeSecretsManager()


@pytest.fixture
def make_context() -> Callable[..., TaskContext]:
    def factory(action: str = CREATE_CREDENTIALS, **overrides: Any) -> TaskContext:
        values: dict[str, Any] = {
            "secret_id": "0b5571f7-21e6-42b7-91c5-3f5ac9793a46",
            "secret_task_id": "a3e8a6a2-6b55-4d5e-9bcb-7c3a1b9f0e21",
            "secret_group_id": "default",
            "secret_name": "ci-pipeline",
            "action": action,
            "trigger": "secret_creation",
        }
        values.update(overrides)
        return TaskContext(**values)

    return factory


@pytest.fixture
def task_logger() -> logging.LoggerAdapter:
    return logging.LoggerAdapter(logging.getLogger("tests"), {})
