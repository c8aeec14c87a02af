"""Generate self-signed TLS server certificates with ``cryptography``."""

from __future__ import annotations

import base64
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from libs.credentials.base import Credential, CredentialBackend
from libs.credentials.context import TaskContext
from libs.credentials.errors import BackendRejectedError
from libs.observability.logging import TaskLogger
from libs.secrets_manager.base import SecretsManager

from .config import KEY_ALGO_ECDSA, SIGN_ALGO_SHA512, Settings
from .schemas import CertificateCredentials

RSA_KEY_SIZE = 2048
SERIAL_BITS = 128

logger = logging.getLogger(__name__)


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


class SelfSignedCertificateBackend(CredentialBackend):
    """Issue a certificate signed by its own key.

    Nothing is stored outside the secret, so revoking is a no-op.
    """

    name = "certificate"
    payload_model = CertificateCredentials
    revocable = False

    def __init__(
        self,
        settings: Settings,
        *,
        clock: Callable[[], datetime] = lambda: datetime.now(tz=timezone.utc),
        log: logging.Logger | logging.LoggerAdapter | None = None,
    ) -> None:
        self._settings = settings
        self._clock = clock
        self._log = log or logger

    def _private_key(self):
        if self._settings.key_algo == KEY_ALGO_ECDSA:
            return ec.generate_private_key(ec.SECP256R1())
        return rsa.generate_private_key(public_exponent=65537, key_size=RSA_KEY_SIZE)

    def _hash(self) -> hashes.HashAlgorithm:
        if self._settings.sign_algo == SIGN_ALGO_SHA512:
            return hashes.SHA512()
        return hashes.SHA256()

    def _subject(self) -> x509.Name:
        attributes = [x509.NameAttribute(NameOID.COMMON_NAME, self._settings.common_name)]
        if self._settings.organization:
            attributes.append(
                x509.NameAttribute(NameOID.ORGANIZATION_NAME, self._settings.organization)
            )
        if self._settings.country:
            attributes.append(x509.NameAttribute(NameOID.COUNTRY_NAME, self._settings.country))
        return x509.Name(attributes)

    def _certificate(self, key, serial_number: int) -> x509.Certificate:
        not_before = self._clock()
        subject = self._subject()
        builder = (
            x509.CertificateBuilder()
            .subject_name(subject)
            .issuer_name(subject)
            .public_key(key.public_key())
            .serial_number(serial_number)
            .not_valid_before(not_before)
            .not_valid_after(not_before + timedelta(days=self._settings.expiration_days))
            .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
            .add_extension(
                x509.KeyUsage(
                    digital_signature=True,
                    content_commitment=False,
                    key_encipherment=True,
                    data_encipherment=False,
                    key_agreement=False,
                    key_cert_sign=False,
                    crl_sign=False,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=True,
            )
            .add_extension(x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]), critical=False)
        )
        dns_names = self._settings.dns_names()
        if dns_names:
            builder = builder.add_extension(
                x509.SubjectAlternativeName([x509.DNSName(name) for name in dns_names]),
                critical=False,
            )

        return builder.sign(key, self._hash())

    def create(self, context: TaskContext) -> Credential:
        key = self._private_key()
        serial_number = secrets.randbits(SERIAL_BITS) or 1
        try:
            certificate = self._certificate(key, serial_number)
        except ValueError as exc:
            raise BackendRejectedError(f"cannot generate certificate: {exc}") from exc

        certificate_pem = certificate.public_bytes(serialization.Encoding.PEM)
        key_pem = key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        )
        self._log.info("generated certificate with serial number: '%s'", serial_number)
        return Credential(
            id=str(serial_number),
            payload={
                "certificate_base64": _b64(certificate_pem),
                "private_key_base64": _b64(key_pem),
            },
        )

    def revoke(self, credential_id: str) -> None:
        self._log.info("certificate with serial number: '%s' is disposed", credential_id)


def load_backend(
    settings: Settings, secrets_manager: SecretsManager, log: TaskLogger
) -> SelfSignedCertificateBackend:
    return SelfSignedCertificateBackend(settings, log=log)


__all__ = ["SelfSignedCertificateBackend", "load_backend"]
