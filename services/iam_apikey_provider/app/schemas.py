from __future__ import annotations

from libs.credentials.payload import CredentialsPayload


class ApiKeyCredentials(CredentialsPayload):
    apikey: str
    id: str
    crn: str | None = None
    iam_id: str | None = None
    account_id: str | None = None
