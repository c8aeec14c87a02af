"""IAM user API keys managed through the IAM identity service."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

import httpx

from libs.credentials.base import Credential, CredentialBackend
from libs.credentials.context import TaskContext
from libs.credentials.errors import BackendRejectedError
from libs.credentials.retry import RetryingSession, is_transport_error, raise_for_backend_status
from libs.observability.logging import TaskLogger
from libs.secrets_manager.auth import IamTokenAuth, IamTokenError
from libs.secrets_manager.base import SecretsManager
from libs.secrets_manager.login import read_login_secret

from .config import Settings
from .schemas import ApiKeyCredentials

APIKEYS_PATH = "/v1/apikeys"
# Keys are created locked so they cannot be deleted by mistake from the console.
CREATE_HEADERS = {"Entity-Lock": "true", "Entity-Disable": "false"}

logger = logging.getLogger(__name__)


def _iam_error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if not isinstance(body, dict):
        return response.text
    errors = body.get("errors")
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        return str(errors[0].get("message") or errors[0].get("code"))
    return str(body.get("errorMessage") or response.text)


def _is_transient(exc: Exception) -> bool:
    if isinstance(exc, IamTokenError):
        return exc.transient
    return is_transport_error(exc)


def _is_not_found(response: httpx.Response) -> bool:
    if response.status_code != httpx.codes.NOT_FOUND:
        return False
    try:
        errors = response.json().get("errors")
    except (ValueError, AttributeError):
        return False
    return isinstance(errors, list) and len(errors) == 1 and errors[0].get("code") == "not_found"


class IamApiKeyBackend(CredentialBackend):
    """Create and delete API keys of one IAM identity."""

    name = "IAM API key"
    payload_model = ApiKeyCredentials

    def __init__(
        self,
        session: RetryingSession,
        *,
        iam_id: str,
        account_id: str,
        support_sessions: bool = False,
        action_when_leaked: str = "",
        log: logging.Logger | logging.LoggerAdapter | None = None,
    ) -> None:
        self._session = session
        self.iam_id = iam_id
        self.account_id = account_id
        self.support_sessions = support_sessions
        self.action_when_leaked = action_when_leaked
        self._log = log or logger

    def close(self) -> None:
        self._session.close()

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._session.request(method, url, **kwargs)
        except IamTokenError as exc:
            raise BackendRejectedError(
                f"cannot authenticate with IAM: {exc}", status_code=exc.status_code
            ) from exc

    def create(self, context: TaskContext) -> Credential:
        body: dict[str, Any] = {
            "name": f"{context.secret_name}-{context.secret_task_id[-6:]}",
            "iam_id": self.iam_id,
            "description": (
                "Created by Secrets Manager IAM user API Key provider for secret "
                f"{context.secret_name} ({context.secret_id}) by {context.secret_task_id}"
            ),
            "account_id": self.account_id,
            "support_sessions": self.support_sessions,
        }
        if self.action_when_leaked:
            body["action_when_leaked"] = self.action_when_leaked

        response = self._request("POST", APIKEYS_PATH, json=body, headers=CREATE_HEADERS)
        raise_for_backend_status(response, "IAM", extract_message=_iam_error_message)

        try:
            data = response.json()
            created = bool(data.get("id") and data.get("apikey"))
        except (ValueError, AttributeError) as exc:
            raise BackendRejectedError(
                f"cannot decode IAM response: {exc}", status_code=response.status_code
            ) from exc
        if not created:
            raise BackendRejectedError("IAM did not return the created API key")
        return Credential(
            id=data["id"],
            payload={
                "apikey": data["apikey"],
                "id": data["id"],
                "crn": data.get("crn"),
                "iam_id": data.get("iam_id"),
                "account_id": data.get("account_id"),
            },
        )

    def revoke(self, credential_id: str) -> None:
        if not self._unlock(credential_id):
            self._log.info("API key with id '%s' does not exist, nothing to delete", credential_id)
            return
        response = self._request("DELETE", f"{APIKEYS_PATH}/{credential_id}")
        raise_for_backend_status(response, "IAM", extract_message=_iam_error_message)

    def _unlock(self, credential_id: str) -> bool:
        """Unlock the key before deletion; ``False`` means it is already gone."""

        response = self._request("POST", f"{APIKEYS_PATH}/{credential_id}/unlock")
        if response.status_code == httpx.codes.NO_CONTENT:
            return True
        if _is_not_found(response):
            return False
        raise_for_backend_status(response, "IAM", extract_message=_iam_error_message)
        raise BackendRejectedError(
            f"unexpected {response.status_code} response from IAM when unlocking API key "
            f"'{credential_id}'",
            status_code=response.status_code,
        )


def build_session(
    api_key: str,
    url: str,
    *,
    log: logging.Logger | logging.LoggerAdapter | None = None,
    transport: httpx.BaseTransport | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> RetryingSession:
    """Session to ``url`` authenticated with ``api_key``; token outages are retried too."""

    return RetryingSession(
        base_url=url.rstrip("/"),
        headers={"Accept": "application/json"},
        auth=IamTokenAuth(api_key, iam_url=url),
        transport=transport,
        sleep=sleep,
        log=log,
        is_transient=_is_transient,
    )


def load_backend(
    settings: Settings, secrets_manager: SecretsManager, log: TaskLogger
) -> IamApiKeyBackend:
    api_key = read_login_secret(
        secrets_manager, settings.apikey_secret_id, credentials_field="apikey"
    )
    session = build_session(api_key, settings.url, log=log)
    return IamApiKeyBackend(
        session,
        iam_id=settings.iam_id,
        account_id=settings.account_id,
        support_sessions=settings.support_sessions,
        action_when_leaked=settings.action_when_leaked,
        log=log,
    )


__all__ = ["IamApiKeyBackend", "build_session", "load_backend"]
