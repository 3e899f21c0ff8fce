from decimal import Decimal
from pydantic import BaseModel

from exceptions import InsufficientFundsError, LockedAccountError
from models import (
    AccountSnapshot,
    StoredTransaction,
    StoredTransactionType,
    WithdrawalChargebackPolicy,
)


class LedgerEntry(BaseModel):
    """
    Balance state of a single client.

    An entry is either active or locked. Locking happens only through a
    chargeback and is permanent: every mutating call on a locked entry raises
    LockedAccountError and leaves the balances untouched.

    Dispute handling is driven by the kind of the referenced transaction.
    Disputing a deposit moves its amount from available to held; disputing a
    withdrawal only adds the amount to held, since the funds already left
    available when the withdrawal was applied.
    """

    available: Decimal = Decimal("0")
    held: Decimal = Decimal("0")
    locked: bool = False

    @property
    def total(self) -> Decimal:
        return self.available + self.held

    def _ensure_active(self) -> None:
        if self.locked:
            raise LockedAccountError()

    def deposit(self, amount: Decimal) -> None:
        self._ensure_active()
        self.available += amount

    def withdraw(self, amount: Decimal) -> None:
        self._ensure_active()
        if self.available < amount:
            raise InsufficientFundsError()
        self.available -= amount

    def open_dispute(self, ref: StoredTransaction) -> None:
        self._ensure_active()
        if ref.kind == StoredTransactionType.deposit:
            self.available -= ref.amount
        self.held += ref.amount

    def resolve_dispute(self, ref: StoredTransaction) -> None:
        self._ensure_active()
        if ref.kind == StoredTransactionType.deposit:
            self.available += ref.amount
        self.held -= ref.amount

    def chargeback(
        self,
        ref: StoredTransaction,
        policy: WithdrawalChargebackPolicy = WithdrawalChargebackPolicy.reverse,
    ) -> None:
        """Settle a dispute against the client and lock the account."""
        self._ensure_active()
        self.held -= ref.amount
        if (
            ref.kind == StoredTransactionType.withdrawal
            and policy == WithdrawalChargebackPolicy.reverse
        ):
            self.available += ref.amount
        self.locked = True

    def as_snapshot(self, client: int) -> AccountSnapshot:
        return AccountSnapshot(
            client=client,
            available=self.available,
            held=self.held,
            total=self.total,
            locked=self.locked,
        )
