"""Credential backend abstractions shared by the provider jobs."""
from __future__ import annotations

import abc
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Mapping

from .context import TaskContext
from .payload import CredentialsPayload


@dataclass(frozen=True, slots=True)
class Credential:
    """Result of a successful create.

    ``id`` is assigned by the backend and is the only handle needed to revoke
    the credential later. ``payload`` holds the output parameters reported to
    the secrets manager.
    """

    id: str
    payload: Mapping[str, Any] = field(default_factory=dict)


class CredentialBackend(abc.ABC):
    """One third-party system able to create and revoke credentials."""

    name: ClassVar[str]
    payload_model: ClassVar[type[CredentialsPayload]]
    #: False when revoke has nothing to remove in the external system.
    revocable: ClassVar[bool] = True

    @abc.abstractmethod
    def create(self, context: TaskContext) -> Credential:
        """Allocate a new credential for the secret described by ``context``."""

    @abc.abstractmethod
    def revoke(self, credential_id: str) -> None:
        """Remove ``credential_id``.

        Implementations must succeed without side effect when the credential
        does not exist, so that deletion can be repeated safely.
        """

    def close(self) -> None:
        return None

    def __enter__(self) -> "CredentialBackend":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


BackendLoader = Callable[[], CredentialBackend]


__all__ = ["BackendLoader", "Credential", "CredentialBackend"]
