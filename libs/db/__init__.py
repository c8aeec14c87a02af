"""Database connection helpers."""

from .db import DatabaseHandle, connect_with_certificate, to_sqlalchemy_url

__all__ = ["DatabaseHandle", "connect_with_certificate", "to_sqlalchemy_url"]
