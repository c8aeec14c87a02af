"""Parameters every provider job receives from the secrets manager."""

from __future__ import annotations

from typing import TypeVar

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings

from .context import TaskContext
from .errors import ConfigurationError

SettingsT = TypeVar("SettingsT", bound=BaseSettings)


class JobSettings(BaseSettings):
    """Common ``SM_`` environment variables set on every job run."""

    access_apikey: str = Field(..., description="API key used to call the secrets manager", repr=False)
    instance_url: str = Field(..., description="Base URL of the secrets manager instance")
    secret_id: str
    secret_group_id: str
    secret_name: str
    secret_task_id: str
    action: str
    trigger: str
    credentials_id: str = ""
    secret_version_id: str = ""

    class Config:
        env_prefix = "SM_"
        case_sensitive = False

    def task_context(self) -> TaskContext:
        return TaskContext(
            secret_id=self.secret_id,
            secret_task_id=self.secret_task_id,
            secret_group_id=self.secret_group_id,
            secret_name=self.secret_name,
            action=self.action,
            trigger=self.trigger,
            secret_version_id=self.secret_version_id,
            credentials_id=self.credentials_id,
        )


def get_job_settings() -> JobSettings:
    return JobSettings()


def describe_validation_error(exc: ValidationError) -> str:
    """Return a one-line summary naming every invalid parameter."""

    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "settings"
        problems.append(f"{location}: {error.get('msg')}")
    return "; ".join(problems)


def load_provider_settings(settings_cls: type[SettingsT]) -> SettingsT:
    """Instantiate ``settings_cls`` from the environment.

    Validation failures are raised as :class:`ConfigurationError` so the saga
    reports them to the secrets manager.
    """

    try:
        return settings_cls()
    except ValidationError as exc:
        raise ConfigurationError(
            f"configuration errors: {describe_validation_error(exc)}"
        ) from exc


__all__ = [
    "JobSettings",
    "describe_validation_error",
    "get_job_settings",
    "load_provider_settings",
]
