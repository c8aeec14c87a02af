from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from libs.credentials.payload import CredentialsPayload


class SlackTokenCredentials(CredentialsPayload):
    slack_access_token: str
    slack_refresh_token: str


class ExchangeTokens(BaseModel):
    """JSON document stored in the exchange tokens secret."""

    model_config = ConfigDict(extra="ignore")

    client_id: str
    client_secret: str
    refresh_token: str
    access_token: str | None = None


class TokenExchangeResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    ok: bool = False
    access_token: str = ""
    refresh_token: str = ""
    error: str | None = None
