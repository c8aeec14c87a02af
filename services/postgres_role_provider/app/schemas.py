from __future__ import annotations

from libs.credentials.payload import CredentialsPayload


class RoleCredentials(CredentialsPayload):
    certificate_base64: str
    username: str
    password: str
    composed: str
