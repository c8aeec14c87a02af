from __future__ import annotations

from libs.credentials.payload import CredentialsPayload


class CertificateCredentials(CredentialsPayload):
    certificate_base64: str
    private_key_base64: str
