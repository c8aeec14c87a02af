"""Create-report-compensate protocol shared by every provider job.

A credential created in an external backend must end up either reported to
the secrets manager or revoked again. The saga drives one run through the
following states::

    START -> CREATED -> REPORTED_OK
    START -> CREATE_FAILED -> REPORTED_ERROR
    START -> CREATED -> REPORT_FAILED -> COMPENSATED -> REPORTED_ERROR
    START -> CREATED -> REPORT_FAILED -> COMPENSATION_FAILED -> FATAL
    START -> REVOKED -> REPORTED_OK
    START -> REVOKE_FAILED -> REPORTED_ERROR

Any run whose final report cannot be delivered ends in ``FATAL``. Every step
is attempted once; retries only happen inside the backends' HTTP sessions.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import ValidationError

from .base import BackendLoader, Credential, CredentialBackend
from .context import TaskContext
from .errors import (
    BackendError,
    BackendRejectedError,
    BackendUnavailableError,
    ConfigurationError,
    CredentialsJobError,
    ErrorCode,
    OrchestratorAuthError,
    ReportError,
)

if TYPE_CHECKING:  # pragma: no cover - typing only
    from libs.secrets_manager.base import SecretsManager
    from libs.secrets_manager.models import SecretTask


class SagaState(str, Enum):
    START = "start"
    CREATED = "created"
    CREATE_FAILED = "create_failed"
    REPORT_FAILED = "report_failed"
    COMPENSATED = "compensated"
    COMPENSATION_FAILED = "compensation_failed"
    REVOKED = "revoked"
    REVOKE_FAILED = "revoke_failed"
    REPORTED_OK = "reported_ok"
    REPORTED_ERROR = "reported_error"
    FATAL = "fatal"


@dataclass(frozen=True, slots=True)
class Outcome:
    """Terminal result of one saga run."""

    state: SagaState
    credentials_id: str = ""
    error_code: ErrorCode | None = None
    description: str = ""

    @property
    def succeeded(self) -> bool:
        return self.state is SagaState.REPORTED_OK

    @property
    def exit_code(self) -> int:
        return 0 if self.succeeded else 1


def _failure_code(exc: CredentialsJobError, rejected_code: ErrorCode) -> ErrorCode:
    if isinstance(exc, BackendError) and not isinstance(exc, BackendUnavailableError):
        return rejected_code
    return exc.code


class ProvisioningSaga:
    """Run the create or delete path of a job exactly once."""

    def __init__(
        self,
        secrets_manager: "SecretsManager",
        load_backend: BackendLoader,
        context: TaskContext,
        logger: logging.Logger | logging.LoggerAdapter,
    ) -> None:
        self._secrets_manager = secrets_manager
        self._load_backend = load_backend
        self._context = context
        self._log = logger
        self.history: list[SagaState] = [SagaState.START]

    @property
    def context(self) -> TaskContext:
        return self._context

    @property
    def state(self) -> SagaState:
        return self.history[-1]

    def _transition(self, state: SagaState) -> None:
        self._log.debug("saga state %s -> %s", self.state.value, state.value)
        self.history.append(state)

    def _fatal(self, code: ErrorCode | None, description: str, credentials_id: str = "") -> Outcome:
        self._transition(SagaState.FATAL)
        return Outcome(SagaState.FATAL, credentials_id, code, description)

    def _job_error(
        self, exc: Exception, error_cls: type[CredentialsJobError], step: str
    ) -> CredentialsJobError:
        """Return ``exc`` as a job error, wrapping anything unexpected as ``error_cls``."""

        if isinstance(exc, CredentialsJobError):
            return exc
        self._log.error("unexpected error while %s", step, exc_info=exc)
        error = error_cls(f"unexpected {type(exc).__name__} while {step}: {exc}")
        error.__cause__ = exc
        return error

    def report_failure(
        self, code: ErrorCode, description: str, *, credentials_id: str = ""
    ) -> Outcome:
        """Tell the secrets manager the task failed; the run ends here."""

        try:
            task = self._secrets_manager.report_failed(self._context, code, description)
        except Exception as exc:
            error = self._job_error(exc, ReportError, "reporting the failure")
            self._log.error(
                "cannot update task about error with code: '%s' and description: '%s'. "
                "returned error: %s",
                code.value,
                description,
                error,
            )
            return self._fatal(code, description, credentials_id)

        self._log.info(
            "task was updated about error with code: '%s' and description: '%s' by: %s",
            code.value,
            description,
            task.updated_by,
        )
        self._transition(SagaState.REPORTED_ERROR)
        return Outcome(SagaState.REPORTED_ERROR, credentials_id, code, description)

    def _open_backend(self, failed_state: SagaState) -> CredentialBackend | Outcome:
        try:
            return self._load_backend()
        except OrchestratorAuthError as exc:
            self._log.error("%s", exc)
            return self._fatal(exc.code, str(exc))
        except Exception as exc:
            error = self._job_error(exc, ConfigurationError, "loading the credentials backend")
            self._log.error("cannot initialise the credentials backend: %s", error)
            self._transition(failed_state)
            return self.report_failure(error.code, f"error: {error}")

    def create(self) -> Outcome:
        backend = self._open_backend(SagaState.CREATE_FAILED)
        if isinstance(backend, Outcome):
            return backend

        with backend:
            try:
                credential = backend.create(self._context)
            except Exception as exc:
                error = self._job_error(exc, BackendRejectedError, "generating credentials")
                self._log.error("error generating credentials: %s", error)
                self._transition(SagaState.CREATE_FAILED)
                return self.report_failure(
                    _failure_code(error, ErrorCode.CREATE_REJECTED), f"error: {error}"
                )

            self._context = self._context.with_credentials_id(credential.id)
            self._transition(SagaState.CREATED)
            self._log.info("%s credentials with id '%s' were created", backend.name, credential.id)

            try:
                task = self._report_created(backend, credential)
            except Exception as exc:
                return self._compensate(
                    backend, credential, self._job_error(exc, ReportError, "updating the task")
                )

        self._transition(SagaState.REPORTED_OK)
        self._log.info(
            "task successfully updated: credentials with id: '%s' were created by: %s",
            credential.id,
            task.updated_by,
        )
        return Outcome(SagaState.REPORTED_OK, credential.id)

    def _report_created(self, backend: CredentialBackend, credential: Credential) -> SecretTask:
        try:
            payload = backend.payload_model.model_validate(dict(credential.payload))
        except ValidationError as exc:
            raise ReportError(f"invalid credentials payload: {exc}") from exc
        return self._secrets_manager.report_created(
            self._context, credential.id, payload.to_report()
        )

    def _compensate(
        self,
        backend: CredentialBackend,
        credential: Credential,
        report_error: CredentialsJobError,
    ) -> Outcome:
        self._transition(SagaState.REPORT_FAILED)
        description = f"cannot update task: {report_error}. "
        try:
            backend.revoke(credential.id)
        except Exception as exc:
            error = self._job_error(exc, BackendRejectedError, "revoking unreported credentials")
            self._transition(SagaState.COMPENSATION_FAILED)
            description += (
                f"cannot revoke the {backend.name} credentials with id: '{credential.id}'. "
                f"error: {error}"
            )
            self._log.error("%s", description)
            return self._fatal(
                ErrorCode.REVOKE_FAILED_AFTER_REPORT_FAILURE, description, credential.id
            )

        self._transition(SagaState.COMPENSATED)
        outcome = "revoked" if backend.revocable else "discarded"
        description += f"{backend.name} credentials with id: '{credential.id}' were {outcome}."
        self._log.error("%s", description)
        return self.report_failure(
            ErrorCode.REPORT_FAILED_AFTER_CREATE, description, credentials_id=credential.id
        )

    def delete(self) -> Outcome:
        credentials_id = self._context.credentials_id
        if not credentials_id:
            error = ConfigurationError("a credentials id is required to delete credentials")
            self._log.error("%s", error)
            self._transition(SagaState.REVOKE_FAILED)
            return self.report_failure(error.code, f"error: {error}")

        backend = self._open_backend(SagaState.REVOKE_FAILED)
        if isinstance(backend, Outcome):
            return backend

        with backend:
            try:
                backend.revoke(credentials_id)
            except Exception as exc:
                error = self._job_error(exc, BackendRejectedError, "revoking credentials")
                self._log.error("error revoking credentials: %s", error)
                self._transition(SagaState.REVOKE_FAILED)
                return self.report_failure(
                    _failure_code(error, ErrorCode.REVOKE_REJECTED),
                    f"error revoking credentials with credentials id: '{credentials_id}': {error}",
                    credentials_id=credentials_id,
                )
        self._transition(SagaState.REVOKED)

        try:
            task = self._secrets_manager.report_deleted(self._context)
        except Exception as exc:
            error = self._job_error(exc, ReportError, "updating the task")
            self._log.error(
                "cannot update task about revoked credentials with credentials id: '%s'. error: %s",
                credentials_id,
                error,
            )
            return self._fatal(None, str(error), credentials_id)

        self._transition(SagaState.REPORTED_OK)
        self._log.info(
            "task successfully updated: credentials with id: '%s' were revoked by: %s",
            credentials_id,
            task.updated_by,
        )
        return Outcome(SagaState.REPORTED_OK, credentials_id)


__all__ = ["Outcome", "ProvisioningSaga", "SagaState"]
