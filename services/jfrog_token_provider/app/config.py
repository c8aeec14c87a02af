"""Environment configuration for the JFrog access token provider."""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

DEFAULT_SCOPE = "applied-permissions/user"
DEFAULT_EXPIRES_IN_SECONDS = 7_776_000  # 90 days
DEFAULT_AUDIENCE = "*@*"


class Settings(BaseSettings):
    login_secret_id: str = Field(
        ...,
        alias="SM_LOGIN_SECRET_ID_VALUE",
        description="Arbitrary secret holding an admin access token",
    )
    jfrog_base_url: str = Field(..., alias="SM_JFROG_BASE_URL_VALUE")
    username: str = Field(..., alias="SM_USERNAME_VALUE")
    scope: str = Field(DEFAULT_SCOPE, alias="SM_SCOPE_VALUE")
    expires_in_seconds: int = Field(DEFAULT_EXPIRES_IN_SECONDS, ge=0, alias="SM_EXPIRES_IN_SECONDS_VALUE")
    refreshable: bool = Field(False, alias="SM_REFRESHABLE_VALUE")
    description: str = Field("", alias="SM_DESCRIPTION_VALUE")
    audience: str = Field(DEFAULT_AUDIENCE, alias="SM_AUDIENCE_VALUE")
    include_reference_token: bool = Field(False, alias="SM_INCLUDE_REFERENCE_TOKEN_VALUE")
    grant_type: str | None = Field(None, alias="SM_GRANT_TYPE_VALUE")

    class Config:
        case_sensitive = False
        populate_by_name = True

    @field_validator("jfrog_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    # Empty values behave as if the parameter was not set.
    @field_validator("scope")
    @classmethod
    def _default_scope(cls, value: str) -> str:
        return value or DEFAULT_SCOPE

    @field_validator("audience")
    @classmethod
    def _default_audience(cls, value: str) -> str:
        return value or DEFAULT_AUDIENCE

    @field_validator("expires_in_seconds")
    @classmethod
    def _default_expiry(cls, value: int) -> int:
        return value or DEFAULT_EXPIRES_IN_SECONDS
