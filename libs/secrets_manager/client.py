"""HTTP client for the secrets manager secret and secret-task APIs."""
from __future__ import annotations

from typing import Any, Iterable, Mapping

import httpx
from pydantic import ValidationError

from libs.credentials.context import TaskContext
from libs.credentials.errors import (
    ErrorCode,
    OrchestratorAuthError,
    ReportError,
    SecretFetchError,
    SecretTypeMismatchError,
)

from .auth import IamTokenAuth, IamTokenError, iam_url_for
from .models import (
    TASK_CREDENTIALS_CREATED,
    TASK_CREDENTIALS_DELETED,
    TASK_FAILED,
    Secret,
    SecretTask,
)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or "no error details"
    if isinstance(body, dict):
        errors = body.get("errors")
        if isinstance(errors, list) and errors and isinstance(errors[0], dict):
            return str(errors[0].get("message") or errors[0])
        if "message" in body:
            return str(body["message"])
    return response.text


class SecretsManagerClient:
    """Tiny wrapper around the secrets manager v2 HTTP API.

    Reports are attempted exactly once. A stuck report is an operational
    incident and is surfaced to the caller as :class:`ReportError`.
    """

    def __init__(
        self,
        instance_url: str,
        api_key: str,
        *,
        timeout: float = 30.0,
        auth: httpx.Auth | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._instance_url = instance_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self._instance_url,
            auth=auth or IamTokenAuth(api_key, iam_url=iam_url_for(self._instance_url)),
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    def __enter__(self) -> "SecretsManagerClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def get_secret(self, secret_id: str) -> Secret:
        """Return the secret ``secret_id`` whatever its type."""

        try:
            response = self._client.get(f"/api/v2/secrets/{secret_id}")
        except IamTokenError as exc:
            if exc.api_key_not_found:
                raise OrchestratorAuthError(f"cannot call the secrets manager service: {exc}") from exc
            raise SecretFetchError(f"cannot get secret with ID '{secret_id}': {exc}") from exc
        except httpx.HTTPError as exc:
            raise SecretFetchError(f"cannot get secret with ID '{secret_id}': {exc}") from exc

        if response.status_code != httpx.codes.OK:
            raise SecretFetchError(
                f"cannot get secret with ID '{secret_id}'. unexpected status code "
                f"{response.status_code}: {_error_message(response)}"
            )
        try:
            return Secret.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise SecretFetchError(
                f"cannot parse secret with ID '{secret_id}': {exc}"
            ) from exc

    def fetch_secret(self, secret_id: str, expected_types: Iterable[str]) -> Secret:
        expected = tuple(expected_types)
        secret = self.get_secret(secret_id)
        if secret.secret_type not in expected:
            raise SecretTypeMismatchError(
                f"get secret id: '{secret_id}' returned unexpected secret type: "
                f"{secret.secret_type}, expected {' or '.join(expected)} type"
            )
        return secret

    def report_created(
        self, context: TaskContext, credentials_id: str, payload: Mapping[str, Any]
    ) -> SecretTask:
        body = {
            "status": TASK_CREDENTIALS_CREATED,
            "credentials": {"id": credentials_id, "payload": dict(payload)},
        }
        return self._update_task(context, body)

    def report_deleted(self, context: TaskContext) -> SecretTask:
        return self._update_task(context, {"status": TASK_CREDENTIALS_DELETED})

    def report_failed(
        self, context: TaskContext, code: ErrorCode | str, description: str
    ) -> SecretTask:
        code_value = code.value if isinstance(code, ErrorCode) else code
        body = {
            "status": TASK_FAILED,
            "errors": [{"code": code_value, "description": description}],
        }
        return self._update_task(context, body)

    def _update_task(self, context: TaskContext, body: dict[str, Any]) -> SecretTask:
        path = f"/api/v2/secrets/{context.secret_id}/tasks/{context.secret_task_id}"
        try:
            response = self._client.put(path, json=body)
        except IamTokenError as exc:
            if exc.api_key_not_found:
                raise OrchestratorAuthError(f"cannot call the secrets manager service: {exc}") from exc
            raise ReportError(f"cannot update task: {exc}") from exc
        except httpx.HTTPError as exc:
            raise ReportError(f"cannot update task: {exc}") from exc

        if response.status_code != httpx.codes.OK:
            raise ReportError(
                f"cannot update task: unexpected status code {response.status_code}: "
                f"{_error_message(response)}"
            )
        try:
            return SecretTask.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise ReportError(f"cannot parse updated task: {exc}") from exc


__all__ = ["SecretsManagerClient"]
