"""Environment configuration for the PostgreSQL role provider."""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

DEFAULT_SCHEMA = "public"


class Settings(BaseSettings):
    login_secret_id: str = Field(
        ...,
        alias="SM_LOGIN_SECRET_ID_VALUE",
        description="Service credentials secret of the database deployment",
    )
    schema_name: str = Field(DEFAULT_SCHEMA, alias="SM_SCHEMA_NAME_VALUE")

    class Config:
        case_sensitive = False
        populate_by_name = True

    @field_validator("schema_name")
    @classmethod
    def _default_schema(cls, value: str) -> str:
        return value or DEFAULT_SCHEMA
