"""Database helpers shared by jobs that manage database credentials."""
from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from urllib.parse import urlsplit, urlunsplit

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

_POSTGRES_SCHEMES = {"postgres", "postgresql"}
POSTGRES_DRIVER_SCHEME = "postgresql+psycopg2"


def to_sqlalchemy_url(composed: str) -> str:
    """Return ``composed`` with a scheme SQLAlchemy maps to psycopg2."""

    parsed = urlsplit(composed)
    if parsed.scheme not in _POSTGRES_SCHEMES:
        return composed
    return urlunsplit((POSTGRES_DRIVER_SCHEME, parsed.netloc, parsed.path, parsed.query, parsed.fragment))


@dataclass
class DatabaseHandle:
    """Engine bound to a TLS root certificate written to a private file."""

    engine: Engine
    certificate_path: str

    def dispose(self) -> None:
        self.engine.dispose()
        try:
            os.unlink(self.certificate_path)
        except FileNotFoundError:
            pass


def connect_with_certificate(composed: str, certificate: bytes) -> DatabaseHandle:
    """Create an engine verifying the server against ``certificate`` (PEM)."""

    fd, path = tempfile.mkstemp(prefix="db-ca-", suffix=".pem")
    with os.fdopen(fd, "wb") as handle:
        handle.write(certificate)

    try:
        engine = create_engine(
            to_sqlalchemy_url(composed),
            future=True,
            pool_pre_ping=True,
            connect_args={"sslrootcert": path},
        )
    except Exception:
        os.unlink(path)
        raise
    return DatabaseHandle(engine=engine, certificate_path=path)


__all__ = ["DatabaseHandle", "POSTGRES_DRIVER_SCHEME", "connect_with_certificate", "to_sqlalchemy_url"]
