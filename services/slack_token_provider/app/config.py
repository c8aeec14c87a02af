"""Environment configuration for the Slack token provider."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings

SLACK_TOKEN_URL = "https://slack.com/api/oauth.v2.access"


class Settings(BaseSettings):
    exchange_tokens_secret_id: str = Field(
        ...,
        alias="SM_EXCHANGE_TOKENS_SECRET_ID_VALUE",
        description="Arbitrary secret holding the Slack app client and seed tokens as JSON",
    )
    token_url: str = Field(SLACK_TOKEN_URL, alias="SM_TOKEN_URL_VALUE")

    class Config:
        case_sensitive = False
        populate_by_name = True
