"""Read-only login roles created in a PostgreSQL deployment.

The role OID is the credentials id. Creating a role and granting its
privileges happen in a single transaction, so a failed grant leaves no role
behind.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
import secrets
import uuid
from typing import Any, Callable, Mapping
from urllib.parse import quote, urlsplit, urlunsplit

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from libs.credentials.base import Credential, CredentialBackend
from libs.credentials.context import TaskContext
from libs.credentials.errors import (
    BackendError,
    BackendRejectedError,
    BackendUnavailableError,
    ConfigurationError,
    SecretTypeMismatchError,
)
from libs.db.db import connect_with_certificate
from libs.observability.logging import TaskLogger
from libs.secrets_manager.base import SecretsManager
from libs.secrets_manager.models import SERVICE_CREDENTIALS

from .config import Settings
from .schemas import RoleCredentials

CERTIFICATE_PATH = "connection.postgres.certificate.certificate_base64"
COMPOSED_PATH = "connection.postgres.composed[0]"
ROLE_PREFIX = "secrets_manager_"
PASSWORD_ALPHABET = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789!$-_*"
PASSWORD_LENGTH = 64
MIN_PASSWORD_LENGTH = 12
MAX_OID = 2**32 - 1

_INDEXED_KEY = re.compile(r"^(?P<key>[^\[]+)\[(?P<index>\d+)\]$")

logger = logging.getLogger(__name__)


def quote_identifier(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


def quote_literal(literal: str) -> str:
    return "'" + literal.replace("'", "''") + "'"


def generate_password(length: int = PASSWORD_LENGTH) -> str:
    if length < MIN_PASSWORD_LENGTH:
        raise ValueError(f"password length must be at least {MIN_PASSWORD_LENGTH} characters")
    return "".join(secrets.choice(PASSWORD_ALPHABET) for _ in range(length))


def generate_role_name() -> str:
    return ROLE_PREFIX + str(uuid.uuid4()).replace("-", "_")


def value_at_path(document: Mapping[str, Any], path: str) -> Any:
    """Resolve a dotted path such as ``connection.postgres.composed[0]``."""

    current: Any = document
    for part in path.split("."):
        match = _INDEXED_KEY.match(part)
        key = match.group("key") if match else part
        if not isinstance(current, Mapping) or key not in current:
            return None
        current = current[key]
        if match:
            index = int(match.group("index"))
            if not isinstance(current, list) or index >= len(current):
                return None
            current = current[index]
    return current


def with_user(composed: str, username: str, password: str) -> str:
    """Return ``composed`` with its user info replaced by the new role."""

    parsed = urlsplit(composed)
    host = parsed.netloc.rpartition("@")[2]
    netloc = f"{quote(username, safe='')}:{quote(password, safe='')}@{host}"
    return urlunsplit((parsed.scheme, netloc, parsed.path, parsed.query, parsed.fragment))


def parse_role_oid(credential_id: str) -> int:
    try:
        oid = int(credential_id)
    except ValueError as exc:
        raise ConfigurationError(
            f"cannot convert credentials id: '{credential_id}' to int: {exc}"
        ) from exc
    if not 0 <= oid <= MAX_OID:
        raise ConfigurationError(f"credentials id: '{credential_id}' is not a valid role oid")
    return oid


def execute_ddl(conn: Connection, statement: str) -> None:
    """Run a statement without parameters through the DBAPI cursor.

    Drivers with a format paramstyle, psycopg2 among them, still interpret
    ``%`` in the statement, so it is doubled for them.
    """

    if conn.dialect.paramstyle in ("format", "pyformat"):
        statement = statement.replace("%", "%%")
    conn.exec_driver_sql(statement)


def _database_error(message: str, exc: SQLAlchemyError) -> BackendError:
    if isinstance(exc, OperationalError):
        return BackendUnavailableError(f"{message}. error: {exc}")
    return BackendRejectedError(f"{message}. error: {exc}")


class PostgresRoleBackend(CredentialBackend):
    name = "PostgreSQL role"
    payload_model = RoleCredentials

    def __init__(
        self,
        engine: Engine,
        *,
        composed: str,
        certificate_base64: str,
        schema_name: str = "public",
        on_close: Callable[[], None] | None = None,
        log: logging.Logger | logging.LoggerAdapter | None = None,
    ) -> None:
        self._engine = engine
        self.composed = composed
        self.certificate_base64 = certificate_base64
        self.schema_name = schema_name
        self._on_close = on_close
        self._log = log or logger

    def close(self) -> None:
        if self._on_close is not None:
            self._on_close()

    def create(self, context: TaskContext) -> Credential:
        role_name = generate_role_name()
        password = generate_password()
        role = quote_identifier(role_name)
        schema = quote_identifier(self.schema_name)

        try:
            with self._engine.begin() as conn:
                execute_ddl(
                    conn, f"CREATE ROLE {role} WITH LOGIN PASSWORD {quote_literal(password)}"
                )
                oid = conn.execute(
                    text("SELECT oid FROM pg_roles WHERE rolname = :name"), {"name": role_name}
                ).scalar_one()
                execute_ddl(conn, f"GRANT USAGE ON SCHEMA {schema} TO {role}")
                execute_ddl(conn, f"GRANT SELECT ON ALL TABLES IN SCHEMA {schema} TO {role}")
        except SQLAlchemyError as exc:
            raise _database_error(
                f"cannot generate a new postgres role for schema: '{self.schema_name}'", exc
            ) from exc

        self._log.info("created role oid: %s for schema '%s'", oid, self.schema_name)
        return Credential(
            id=str(oid),
            payload={
                "certificate_base64": self.certificate_base64,
                "username": role_name,
                "password": password,
                "composed": with_user(self.composed, role_name, password),
            },
        )

    def revoke(self, credential_id: str) -> None:
        oid = parse_role_oid(credential_id)
        schema = quote_identifier(self.schema_name)
        try:
            with self._engine.begin() as conn:
                role_name = conn.execute(
                    text("SELECT rolname FROM pg_roles WHERE oid = :oid"), {"oid": oid}
                ).scalar_one_or_none()
                if role_name is None:
                    self._log.info("no operation required, role with oid '%s' not found", oid)
                    return
                role = quote_identifier(role_name)
                execute_ddl(conn, f"REVOKE ALL PRIVILEGES ON SCHEMA {schema} FROM {role}")
                execute_ddl(
                    conn, f"REVOKE ALL PRIVILEGES ON ALL TABLES IN SCHEMA {schema} FROM {role}"
                )
                execute_ddl(conn, f"DROP ROLE IF EXISTS {role}")
        except SQLAlchemyError as exc:
            raise _database_error(
                f"cannot delete postgres role with oid: '{oid}' for schema: '{self.schema_name}'",
                exc,
            ) from exc
        self._log.info("role with oid '%s' dropped for schema '%s'", oid, self.schema_name)


def read_connection(secrets_manager: SecretsManager, secret_id: str) -> tuple[str, str]:
    """Return the composed URL and base64 CA certificate of the deployment."""

    secret = secrets_manager.fetch_secret(secret_id, (SERVICE_CREDENTIALS,))
    credentials = secret.credentials or {}
    certificate_base64 = value_at_path(credentials, CERTIFICATE_PATH)
    if not isinstance(certificate_base64, str):
        raise SecretTypeMismatchError(
            f"postgres certificate was not found in path: '{CERTIFICATE_PATH}'"
        )
    composed = value_at_path(credentials, COMPOSED_PATH)
    if not isinstance(composed, str):
        raise SecretTypeMismatchError(f"postgres composed was not found in path: '{COMPOSED_PATH}'")
    return composed, certificate_base64


def load_backend(
    settings: Settings, secrets_manager: SecretsManager, log: TaskLogger
) -> PostgresRoleBackend:
    composed, certificate_base64 = read_connection(secrets_manager, settings.login_secret_id)
    try:
        certificate = base64.b64decode(certificate_base64, validate=True)
    except binascii.Error as exc:
        raise ConfigurationError(f"postgres certificate decoding error: {exc}") from exc

    try:
        handle = connect_with_certificate(composed, certificate)
    except (SQLAlchemyError, ValueError) as exc:
        raise ConfigurationError(f"cannot parse postgres composed url. error: {exc}") from exc

    return PostgresRoleBackend(
        handle.engine,
        composed=composed,
        certificate_base64=certificate_base64,
        schema_name=settings.schema_name,
        on_close=handle.dispose,
        log=log,
    )


__all__ = [
    "PostgresRoleBackend",
    "generate_password",
    "generate_role_name",
    "load_backend",
    "quote_identifier",
    "quote_literal",
    "value_at_path",
]
