"""Resources exchanged with the secrets manager API."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict

ARBITRARY = "arbitrary"
CUSTOM_CREDENTIALS = "custom_credentials"
SERVICE_CREDENTIALS = "service_credentials"

TASK_CREDENTIALS_CREATED = "credentials_created"
TASK_CREDENTIALS_DELETED = "credentials_deleted"
TASK_FAILED = "failed"


class Secret(BaseModel):
    """Subset of a secret resource the jobs rely on.

    Which of ``payload``, ``credentials`` and ``credentials_content`` is set
    depends on ``secret_type``.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    secret_type: str
    name: str | None = None
    payload: Any = None
    credentials: dict[str, Any] | None = None
    credentials_content: dict[str, Any] | None = None
    versions_total: int | None = None


class SecretTaskError(BaseModel):
    code: str
    description: str


class SecretTask(BaseModel):
    """Secret task as returned after an update."""

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    secret_id: str | None = None
    status: str | None = None
    updated_by: str | None = None
    errors: list[SecretTaskError] | None = None


__all__ = [
    "ARBITRARY",
    "CUSTOM_CREDENTIALS",
    "SERVICE_CREDENTIALS",
    "Secret",
    "SecretTask",
    "SecretTaskError",
    "TASK_CREDENTIALS_CREATED",
    "TASK_CREDENTIALS_DELETED",
    "TASK_FAILED",
]
