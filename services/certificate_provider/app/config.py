"""Environment configuration for the self-signed certificate provider."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings

KEY_ALGO_RSA = "RSA"
KEY_ALGO_ECDSA = "ECDSA"
SIGN_ALGO_SHA256 = "SHA256"
SIGN_ALGO_SHA512 = "SHA512"
DEFAULT_EXPIRATION_DAYS = 90


class Settings(BaseSettings):
    common_name: str = Field(..., alias="SM_COMMON_NAME_VALUE")
    organization: str = Field("", alias="SM_ORG_VALUE")
    country: str = Field("", pattern=r"^([A-Za-z]{2})?$", alias="SM_COUNTRY_VALUE")
    san: str = Field("", alias="SM_SAN_VALUE", description="Comma separated DNS names")
    expiration_days: int = Field(DEFAULT_EXPIRATION_DAYS, ge=0, alias="SM_EXPIRATION_DAYS_VALUE")
    key_algo: Literal["RSA", "ECDSA"] = Field(KEY_ALGO_RSA, alias="SM_KEY_ALGO_VALUE")
    sign_algo: Literal["SHA256", "SHA512"] = Field(SIGN_ALGO_SHA256, alias="SM_SIGN_ALGO_VALUE")

    class Config:
        case_sensitive = False
        populate_by_name = True

    @field_validator("expiration_days")
    @classmethod
    def _default_expiration(cls, value: int) -> int:
        return value or DEFAULT_EXPIRATION_DAYS

    @field_validator("key_algo", "sign_algo", mode="before")
    @classmethod
    def _normalise_algorithm(cls, value: Any, info: ValidationInfo) -> Any:
        if isinstance(value, str):
            value = value.strip().upper()
            if not value:
                return KEY_ALGO_RSA if info.field_name == "key_algo" else SIGN_ALGO_SHA256
        return value

    def dns_names(self) -> list[str]:
        return [name.strip() for name in self.san.split(",") if name.strip()]
