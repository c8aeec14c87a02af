"""Environment configuration for the IAM API key provider."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings

from libs.secrets_manager.auth import IAM_URL


class Settings(BaseSettings):
    """Provider parameters, read from ``SM_<NAME>_VALUE`` variables."""

    apikey_secret_id: str = Field(
        ...,
        alias="SM_APIKEY_SECRET_ID_VALUE",
        description="Secret holding the API key allowed to manage the user's API keys",
    )
    iam_id: str = Field(..., alias="SM_IAM_ID_VALUE", description="IAM id of the key owner")
    account_id: str = Field(..., alias="SM_ACCOUNT_ID_VALUE")
    url: str = Field(IAM_URL, alias="SM_URL_VALUE", description="IAM identity service URL")
    support_sessions: bool = Field(False, alias="SM_SUPPORT_SESSIONS_VALUE")
    action_when_leaked: str = Field("", alias="SM_ACTION_WHEN_LEAKED_VALUE")

    class Config:
        case_sensitive = False
        populate_by_name = True
