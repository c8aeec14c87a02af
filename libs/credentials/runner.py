"""Single process entry point shared by the provider jobs."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Generic

from pydantic import ValidationError

from libs.observability.logging import TaskLogger, configure_logging, get_task_logger

from .base import CredentialBackend
from .dispatcher import dispatch
from .saga import Outcome, ProvisioningSaga
from .settings import (
    JobSettings,
    SettingsT,
    describe_validation_error,
    get_job_settings,
    load_provider_settings,
)

if TYPE_CHECKING:  # pragma: no cover - typing only
    from libs.secrets_manager.base import SecretsManager

BackendFactory = Callable[[SettingsT, "SecretsManager", TaskLogger], CredentialBackend]


class ProviderJob(Generic[SettingsT]):
    """Wire settings, secrets manager, saga and dispatcher for one provider."""

    def __init__(
        self,
        service_name: str,
        settings_cls: type[SettingsT],
        build_backend: BackendFactory,
    ) -> None:
        self.service_name = service_name
        self.settings_cls = settings_cls
        self.build_backend = build_backend

    def run(
        self,
        *,
        job_settings: JobSettings | None = None,
        settings: SettingsT | None = None,
        secrets_manager: "SecretsManager | None" = None,
    ) -> Outcome | None:
        """Execute the requested action; ``None`` means the job could not start."""

        configure_logging(self.service_name)
        if job_settings is None:
            try:
                job_settings = get_job_settings()
            except ValidationError as exc:
                logging.getLogger(self.service_name).error(
                    "Failed to create config: %s", describe_validation_error(exc)
                )
                return None

        context = job_settings.task_context()
        log = get_task_logger(self.service_name, context)

        owns_client = secrets_manager is None
        if secrets_manager is None:
            from libs.secrets_manager.client import SecretsManagerClient

            secrets_manager = SecretsManagerClient(
                job_settings.instance_url, job_settings.access_apikey
            )
        manager = secrets_manager

        def load_backend() -> CredentialBackend:
            provider_settings = (
                settings if settings is not None else load_provider_settings(self.settings_cls)
            )
            return self.build_backend(provider_settings, manager, log)

        try:
            saga = ProvisioningSaga(manager, load_backend, context, log)
            outcome = dispatch(saga)
        finally:
            if owns_client:
                manager.close()  # type: ignore[attr-defined]

        if not outcome.succeeded:
            log.error(
                "job finished in state '%s' (%s)",
                outcome.state.value,
                outcome.error_code.value if outcome.error_code else "no error code",
            )
        return outcome

    def __call__(self, **kwargs) -> int:
        outcome = self.run(**kwargs)
        return 1 if outcome is None else outcome.exit_code


__all__ = ["BackendFactory", "ProviderJob"]
