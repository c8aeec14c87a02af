"""Declarations of the credentials payload each job reports back."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict

MAX_STRING_LENGTH = 100_000


class CredentialsPayload(BaseModel):
    """Base class of the output parameters a job hands to the secrets manager.

    Subclasses declare one field per output parameter. String fields are
    limited to :data:`MAX_STRING_LENGTH` characters and at least one field must
    be required, otherwise the class definition fails.
    """

    model_config = ConfigDict(extra="forbid", str_max_length=MAX_STRING_LENGTH)

    @classmethod
    def __pydantic_init_subclass__(cls, **kwargs: Any) -> None:
        super().__pydantic_init_subclass__(**kwargs)
        if not any(field.is_required() for field in cls.model_fields.values()):
            raise TypeError(
                f"{cls.__name__} must declare at least one required output parameter"
            )

    def to_report(self) -> dict[str, Any]:
        """Return the flat mapping sent along with the created credentials."""

        return self.model_dump(exclude_none=True)


__all__ = ["CredentialsPayload", "MAX_STRING_LENGTH"]
