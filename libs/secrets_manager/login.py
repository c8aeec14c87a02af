"""Read the login material a provider needs to talk to its backend."""
from __future__ import annotations

from typing import Any

from libs.credentials.errors import SecretTypeMismatchError

from .base import SecretsManager
from .models import ARBITRARY, CUSTOM_CREDENTIALS, Secret


def read_login_secret(
    secrets_manager: SecretsManager,
    secret_id: str,
    *,
    credentials_field: str | None = None,
) -> str:
    """Return the secret value stored in ``secret_id``.

    Arbitrary secrets hold the value in their payload. When
    ``credentials_field`` is given, custom credentials secrets are accepted
    as well and the value is read from that output parameter.
    """

    expected = (ARBITRARY,) if credentials_field is None else (ARBITRARY, CUSTOM_CREDENTIALS)
    secret = secrets_manager.fetch_secret(secret_id, expected)
    if secret.secret_type == ARBITRARY:
        value = secret.payload
    else:
        value = (secret.credentials_content or {}).get(credentials_field)
    if not isinstance(value, str) or not value:
        raise SecretTypeMismatchError(
            f"secret with ID '{secret_id}' does not hold a usable {credentials_field or 'payload'} value"
        )
    return value


def credentials_content(secret: Secret) -> dict[str, Any]:
    """Return the output parameters of a custom credentials secret."""

    return dict(secret.credentials_content or {})


__all__ = ["credentials_content", "read_login_secret"]
