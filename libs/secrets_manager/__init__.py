"""Client side of the secrets manager used by the provider jobs."""
from __future__ import annotations

from .auth import IamTokenAuth, IamTokenError, iam_url_for
from .base import SecretsManager
from .client import SecretsManagerClient
from .login import read_login_secret
from .models import (
    ARBITRARY,
    CUSTOM_CREDENTIALS,
    SERVICE_CREDENTIALS,
    Secret,
    SecretTask,
)

__all__ = [
    "ARBITRARY",
    "CUSTOM_CREDENTIALS",
    "SERVICE_CREDENTIALS",
    "IamTokenAuth",
    "IamTokenError",
    "Secret",
    "SecretTask",
    "SecretsManager",
    "SecretsManagerClient",
    "iam_url_for",
    "read_login_secret",
]
