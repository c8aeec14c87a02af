"""Select the saga path matching the action requested by the secrets manager."""
from __future__ import annotations

from .context import CREATE_CREDENTIALS, DELETE_CREDENTIALS
from .errors import ErrorCode
from .saga import Outcome, ProvisioningSaga


def dispatch(saga: ProvisioningSaga) -> Outcome:
    """Run exactly one saga path for the action carried by the task context.

    An unknown action is reported once with :attr:`ErrorCode.UNKNOWN_ACTION`;
    no backend is loaded in that case.
    """

    action = saga.context.action
    if action == CREATE_CREDENTIALS:
        return saga.create()
    if action == DELETE_CREDENTIALS:
        return saga.delete()
    return saga.report_failure(ErrorCode.UNKNOWN_ACTION, f"unknown action: '{action}'")


__all__ = ["dispatch"]
