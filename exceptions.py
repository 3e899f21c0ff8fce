"""
Typed exceptions for the transaction engine.

Every class carries a machine-readable ``code``. Subclasses of
``TransactionRejectedError`` describe a single rejected record and never
abort a run; the remaining ones are run-level failures.
"""

from typing import Optional


class TxnFlowError(Exception):
    """Base exception for all txnflow errors."""

    code: str = "TXNFLOW_ERROR"


# Per-record rejections


class TransactionRejectedError(TxnFlowError):
    """A single transaction could not be applied."""

    code: str = "TRANSACTION_REJECTED"


class InsufficientFundsError(TransactionRejectedError):
    code: str = "INSUFFICIENT_FUNDS"

    def __init__(self, message: str = "Insufficient funds for a withdrawal"):
        super().__init__(message)


class InvalidDepositTransactionError(TransactionRejectedError):
    code: str = "INVALID_DEPOSIT_TRANSACTION"

    def __init__(self, message: str = "`deposit` transaction must contain `amount`"):
        super().__init__(message)


class InvalidWithdrawalTransactionError(TransactionRejectedError):
    code: str = "INVALID_WITHDRAWAL_TRANSACTION"

    def __init__(self, message: str = "`withdrawal` transaction must contain `amount`"):
        super().__init__(message)


class InvalidTransactionRefError(TransactionRejectedError):
    """Referenced transaction does not exist or belongs to another client."""

    code: str = "INVALID_TRANSACTION_REF"

    def __init__(self, tx_id: int):
        self.tx_id = tx_id
        super().__init__(f"Transaction not found: {tx_id}")


class TransactionNotDisputedError(TransactionRejectedError):
    code: str = "TRANSACTION_NOT_DISPUTED"

    def __init__(self, tx_id: int):
        self.tx_id = tx_id
        super().__init__(f"Transaction is not under dispute: {tx_id}")


class TransactionAlreadyDisputedError(TransactionRejectedError):
    code: str = "TRANSACTION_ALREADY_DISPUTED"

    def __init__(self, tx_id: int):
        self.tx_id = tx_id
        super().__init__(f"Transaction is already under dispute: {tx_id}")


class LockedAccountError(TransactionRejectedError):
    code: str = "LOCKED_ACCOUNT"

    def __init__(self, message: str = "Attempted transaction on a locked account"):
        super().__init__(message)


# Run-level failures


class InvalidArgumentsError(TxnFlowError):
    code: str = "INVALID_ARGUMENTS"

    def __init__(
        self,
        message: str = "This program must be called with a single argument referring to a csv file",
    ):
        super().__init__(message)


class InputOutputError(TxnFlowError):
    """The input source could not be opened or read."""

    code: str = "IO_ERROR"

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        self.reason = reason
        detail = f": {reason}" if reason else ""
        super().__init__(f"Failed reading {path}{detail}")


class DeserializationError(TxnFlowError):
    """
    A record (or the whole input) could not be decoded.

    ``fatal`` is False for a single bad row, which is logged and skipped,
    and True when the input stream itself is malformed.
    """

    code: str = "DESERIALIZATION_ERROR"

    def __init__(self, message: str, line_num: Optional[int] = None, fatal: bool = False):
        self.line_num = line_num
        self.fatal = fatal
        super().__init__(message)


class SerializationError(TxnFlowError):
    code: str = "SERIALIZATION_ERROR"

    def __init__(self, message: str = "Failed serializing account snapshots"):
        super().__init__(message)
