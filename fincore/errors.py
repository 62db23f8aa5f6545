"""
Error classes for the ledger engine.

Zero is a valid financial result, so failures are never folded into a
default value: the engine either returns a complete result or raises one
of the errors below.
"""


class FinCoreError(Exception):
    """Base class for every error raised by the engine."""


class InputError(FinCoreError, ValueError):
    """
    Malformed request, rejected before the ledger is queried.

    **Common Causes:**
    - non-positive or non-integer window sizes
    - unknown obligation frequency or interval below 1
    - transfer bill without a destination account
    - recurring template that already reached its last occurrence
    """


class CollaboratorError(FinCoreError):
    """
    The ledger collaborator failed to query or write.

    Adapters over a real store raise (or wrap their driver errors into)
    this class. The engine propagates it unchanged.
    """


class ExecutionError(FinCoreError):
    """One half of an obligation execution failed.

    ``stage`` is ``"append"`` when the ledger transaction was not written
    (nothing changed) or ``"update"`` when the transaction exists but the
    obligation state did not advance.
    """

    def __init__(self, stage: str, cause: BaseException):
        super().__init__(f"{stage} failed: {cause}")
        self.stage = stage
        self.cause = cause
