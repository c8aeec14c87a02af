"""Rotate a Slack user token through the OAuth refresh token grant.

Slack refresh tokens are single use. The refresh token reported with the
previous version of the secret is tried first, then the seed token stored in
the exchange tokens secret.
"""

from __future__ import annotations

import hashlib
import logging

from pydantic import ValidationError

from libs.credentials.base import Credential, CredentialBackend
from libs.credentials.context import TaskContext
from libs.credentials.errors import (
    BackendRejectedError,
    CredentialsJobError,
    OrchestratorAuthError,
    SecretTypeMismatchError,
)
from libs.credentials.retry import RetryingSession, raise_for_backend_status
from libs.observability.logging import TaskLogger
from libs.secrets_manager.base import SecretsManager
from libs.secrets_manager.login import credentials_content, read_login_secret
from libs.secrets_manager.models import CUSTOM_CREDENTIALS

from .config import Settings
from .schemas import ExchangeTokens, SlackTokenCredentials, TokenExchangeResponse

REFRESH_TOKEN_FIELD = "slack_refresh_token"
FINGERPRINT_LENGTH = 16

logger = logging.getLogger(__name__)


def token_fingerprint(access_token: str) -> str:
    return hashlib.sha256(access_token.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]


class SlackTokenBackend(CredentialBackend):
    name = "Slack token"
    payload_model = SlackTokenCredentials
    revocable = False

    def __init__(
        self,
        session: RetryingSession,
        secrets_manager: SecretsManager,
        exchange: ExchangeTokens,
        *,
        token_url: str,
        log: logging.Logger | logging.LoggerAdapter | None = None,
    ) -> None:
        self._session = session
        self._secrets_manager = secrets_manager
        self._exchange = exchange
        self._token_url = token_url
        self._log = log or logger

    def close(self) -> None:
        self._session.close()

    def previous_refresh_token(self, context: TaskContext) -> str:
        """Return the refresh token of the current secret version, if any."""

        try:
            secret = self._secrets_manager.fetch_secret(context.secret_id, (CUSTOM_CREDENTIALS,))
        except OrchestratorAuthError:
            raise
        except CredentialsJobError as exc:
            self._log.warning("cannot read the previous secret version: %s", exc)
            return ""
        if not secret.versions_total:
            return ""
        token = credentials_content(secret).get(REFRESH_TOKEN_FIELD)
        return token if isinstance(token, str) else ""

    def exchange(self, refresh_token: str) -> TokenExchangeResponse:
        response = self._session.post(
            self._token_url,
            data={
                "client_id": self._exchange.client_id,
                "client_secret": self._exchange.client_secret,
                "refresh_token": refresh_token,
                "grant_type": "refresh_token",
            },
        )
        raise_for_backend_status(response, "Slack")
        try:
            result = TokenExchangeResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise BackendRejectedError(f"cannot parse Slack response: {exc}") from exc
        if not result.ok or not result.access_token:
            raise BackendRejectedError(f"Slack error: {result.error or 'no access token returned'}")
        return result

    def create(self, context: TaskContext) -> Credential:
        seed_token = self._exchange.refresh_token
        refresh_token = self.previous_refresh_token(context)
        if not refresh_token:
            self._log.info("last refresh token not found, using the exchange tokens refresh token")
            refresh_token = seed_token

        try:
            result = self.exchange(refresh_token)
        except BackendRejectedError as exc:
            if refresh_token == seed_token:
                raise
            self._log.info("retrying with the exchange tokens refresh token after error: %s", exc)
            result = self.exchange(seed_token)

        return Credential(
            id=token_fingerprint(result.access_token),
            payload={
                "slack_access_token": result.access_token,
                "slack_refresh_token": result.refresh_token,
            },
        )

    def revoke(self, credential_id: str) -> None:
        # Rotated tokens expire on their own; Slack offers nothing to revoke.
        self._log.info("nothing to revoke for Slack token '%s'", credential_id)


def load_exchange_tokens(secrets_manager: SecretsManager, secret_id: str) -> ExchangeTokens:
    raw = read_login_secret(secrets_manager, secret_id)
    try:
        return ExchangeTokens.model_validate_json(raw)
    except ValidationError as exc:
        raise SecretTypeMismatchError(
            f"secret with ID '{secret_id}' does not hold valid Slack exchange tokens: {exc}"
        ) from exc


def load_backend(
    settings: Settings, secrets_manager: SecretsManager, log: TaskLogger
) -> SlackTokenBackend:
    exchange = load_exchange_tokens(secrets_manager, settings.exchange_tokens_secret_id)
    session = RetryingSession(headers={"Accept": "application/json"}, log=log)
    return SlackTokenBackend(
        session, secrets_manager, exchange, token_url=settings.token_url, log=log
    )


__all__ = ["SlackTokenBackend", "load_backend", "load_exchange_tokens", "token_fingerprint"]
