from __future__ import annotations

from libs.credentials.payload import CredentialsPayload


class AccessTokenCredentials(CredentialsPayload):
    access_token: str
    token_id: str
    refresh_token: str | None = None
    reference_token: str | None = None
