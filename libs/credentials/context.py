"""Per-run task context handed over by the secrets manager."""
from __future__ import annotations

from dataclasses import dataclass, replace

CREATE_CREDENTIALS = "create_credentials"
DELETE_CREDENTIALS = "delete_credentials"


@dataclass(frozen=True, slots=True)
class TaskContext:
    """Identifies the secret task a job run works on.

    The context is immutable. The credentials id produced by a successful
    create is recorded with :meth:`with_credentials_id`, which returns a new
    context carried forward to the report or to the compensation step.
    """

    secret_id: str
    secret_task_id: str
    secret_group_id: str
    secret_name: str
    action: str
    trigger: str = ""
    secret_version_id: str = ""
    credentials_id: str = ""

    def with_credentials_id(self, credentials_id: str) -> "TaskContext":
        return replace(self, credentials_id=credentials_id)


__all__ = ["CREATE_CREDENTIALS", "DELETE_CREDENTIALS", "TaskContext"]
