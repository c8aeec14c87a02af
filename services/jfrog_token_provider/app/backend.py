"""Scoped JFrog access tokens."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from libs.credentials.base import Credential, CredentialBackend
from libs.credentials.context import TaskContext
from libs.credentials.errors import BackendRejectedError
from libs.credentials.retry import RetryingSession, raise_for_backend_status
from libs.observability.logging import TaskLogger
from libs.secrets_manager.base import SecretsManager
from libs.secrets_manager.login import read_login_secret

from .config import Settings
from .schemas import AccessTokenCredentials

TOKENS_PATH = "/access/api/v1/tokens"
NO_ERROR_DETAILS = "error details were not provided by JFrog"

logger = logging.getLogger(__name__)


def _jfrog_error_message(response: httpx.Response) -> str:
    try:
        errors = response.json().get("errors")
    except (ValueError, AttributeError):
        return NO_ERROR_DETAILS
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        return str(errors[0].get("message") or NO_ERROR_DETAILS)
    return NO_ERROR_DETAILS


class JFrogTokenBackend(CredentialBackend):
    """Issue and revoke access tokens through the JFrog Access API."""

    name = "JFrog access token"
    payload_model = AccessTokenCredentials

    def __init__(
        self,
        session: RetryingSession,
        settings: Settings,
        *,
        log: logging.Logger | logging.LoggerAdapter | None = None,
    ) -> None:
        self._session = session
        self._settings = settings
        self._log = log or logger

    def close(self) -> None:
        self._session.close()

    def token_request(self) -> dict[str, Any]:
        settings = self._settings
        body: dict[str, Any] = {
            "username": settings.username,
            "scope": settings.scope,
            "expires_in": settings.expires_in_seconds,
            "refreshable": settings.refreshable,
            "description": settings.description,
            "audience": settings.audience,
            "include_reference_token": settings.include_reference_token,
        }
        if settings.grant_type:
            body["grant_type"] = settings.grant_type
        return body

    def create(self, context: TaskContext) -> Credential:
        response = self._session.post(f"{TOKENS_PATH}/", json=self.token_request())
        raise_for_backend_status(response, "JFrog", extract_message=_jfrog_error_message)

        try:
            data = response.json()
            access_token = data.get("access_token")
            token_id = data.get("token_id")
        except (ValueError, AttributeError) as exc:
            raise BackendRejectedError(
                f"cannot decode JFrog response: {exc}", status_code=response.status_code
            ) from exc
        if not access_token or not token_id:
            raise BackendRejectedError("JFrog response did not contain an access token")
        return Credential(
            id=token_id,
            payload={
                "access_token": access_token,
                "token_id": token_id,
                "refresh_token": data.get("refresh_token"),
                "reference_token": data.get("reference_token"),
            },
        )

    def revoke(self, credential_id: str) -> None:
        response = self._session.delete(f"{TOKENS_PATH}/{credential_id}")
        if response.status_code == httpx.codes.NOT_FOUND:
            self._log.info("token with id '%s' was already revoked", credential_id)
            return
        raise_for_backend_status(response, "JFrog", extract_message=_jfrog_error_message)


def load_backend(
    settings: Settings, secrets_manager: SecretsManager, log: TaskLogger
) -> JFrogTokenBackend:
    admin_token = read_login_secret(secrets_manager, settings.login_secret_id)
    session = RetryingSession(
        base_url=settings.jfrog_base_url,
        headers={"Authorization": f"Bearer {admin_token}", "Accept": "application/json"},
        log=log,
    )
    return JFrogTokenBackend(session, settings, log=log)


__all__ = ["JFrogTokenBackend", "load_backend"]
