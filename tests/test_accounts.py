import pytest
from decimal import Decimal

from accounts import LedgerEntry
from exceptions import InsufficientFundsError, LockedAccountError
from models import StoredTransaction, StoredTransactionType, WithdrawalChargebackPolicy


def stored(kind: StoredTransactionType, amount: str, client: int = 1) -> StoredTransaction:
    return StoredTransaction(client=client, kind=kind, amount=Decimal(amount))


def funded(amount: str) -> LedgerEntry:
    entry = LedgerEntry()
    entry.deposit(Decimal(amount))
    return entry


def balances(entry: LedgerEntry):
    return entry.available, entry.held, entry.total, entry.locked


class TestDepositAndWithdrawal:
    """Plain credits and debits."""

    def test_new_entry_is_empty_and_active(self):
        entry = LedgerEntry()
        assert balances(entry) == (Decimal("0"), Decimal("0"), Decimal("0"), False)

    def test_deposit_credits_available(self):
        entry = funded("5.0")
        assert balances(entry) == (Decimal("5.0"), Decimal("0"), Decimal("5.0"), False)

    def test_withdrawal_debits_available(self):
        entry = funded("5.0")
        entry.withdraw(Decimal("1.25"))
        assert entry.available == Decimal("3.75")
        assert entry.total == Decimal("3.75")

    def test_withdrawal_of_entire_balance(self):
        entry = funded("1.23")
        entry.withdraw(Decimal("1.23"))
        assert entry.available == Decimal("0")
        assert entry.locked is False

    def test_insufficient_funds_leaves_balance_unchanged(self):
        entry = funded("5.0")
        with pytest.raises(InsufficientFundsError):
            entry.withdraw(Decimal("6.0"))
        assert balances(entry) == (Decimal("5.0"), Decimal("0"), Decimal("5.0"), False)

    def test_withdrawal_checks_available_not_total(self):
        entry = funded("5.0")
        entry.open_dispute(stored(StoredTransactionType.deposit, "4.0"))
        with pytest.raises(InsufficientFundsError):
            entry.withdraw(Decimal("2.0"))
        assert entry.available == Decimal("1.0")
        assert entry.held == Decimal("4.0")


class TestDisputes:
    """Dispute, resolve and chargeback follow the referenced transaction's kind."""

    def test_dispute_deposit_moves_funds_to_held(self):
        entry = funded("5.0")
        entry.open_dispute(stored(StoredTransactionType.deposit, "5.0"))
        assert balances(entry) == (Decimal("0"), Decimal("5.0"), Decimal("5.0"), False)

    def test_dispute_withdrawal_only_adds_to_held(self):
        entry = funded("10.0")
        entry.withdraw(Decimal("3.0"))
        entry.open_dispute(stored(StoredTransactionType.withdrawal, "3.0"))
        assert entry.available == Decimal("7.0")
        assert entry.held == Decimal("3.0")
        assert entry.total == Decimal("10.0")

    def test_dispute_deposit_may_drive_available_negative(self):
        entry = funded("5.0")
        entry.withdraw(Decimal("4.0"))
        entry.open_dispute(stored(StoredTransactionType.deposit, "5.0"))
        assert entry.available == Decimal("-4.0")
        assert entry.held == Decimal("5.0")
        assert entry.total == Decimal("1.0")

    @pytest.mark.parametrize("kind", list(StoredTransactionType))
    def test_resolve_restores_pre_dispute_balances(self, kind):
        entry = funded("10.0")
        if kind == StoredTransactionType.withdrawal:
            entry.withdraw(Decimal("2.5"))
        before = balances(entry)

        ref = stored(kind, "2.5")
        entry.open_dispute(ref)
        entry.resolve_dispute(ref)

        assert balances(entry) == before

    def test_chargeback_deposit_removes_held_and_locks(self):
        entry = funded("5.0")
        ref = stored(StoredTransactionType.deposit, "5.0")
        entry.open_dispute(ref)
        entry.chargeback(ref)
        assert balances(entry) == (Decimal("0"), Decimal("0"), Decimal("0"), True)

    def test_chargeback_withdrawal_reverses_it_by_default(self):
        entry = funded("10.0")
        entry.withdraw(Decimal("3.0"))
        ref = stored(StoredTransactionType.withdrawal, "3.0")
        entry.open_dispute(ref)
        entry.chargeback(ref)
        assert balances(entry) == (Decimal("10.0"), Decimal("0"), Decimal("10.0"), True)

    def test_chargeback_withdrawal_retain_policy(self):
        entry = funded("10.0")
        entry.withdraw(Decimal("3.0"))
        ref = stored(StoredTransactionType.withdrawal, "3.0")
        entry.open_dispute(ref)
        entry.chargeback(ref, WithdrawalChargebackPolicy.retain)
        assert balances(entry) == (Decimal("7.0"), Decimal("0"), Decimal("7.0"), True)


class TestLockedEntry:
    """A locked entry rejects every mutation and keeps its balances."""

    @pytest.fixture
    def locked_entry(self):
        entry = funded("8.0")
        entry.deposit(Decimal("2.0"))
        ref = stored(StoredTransactionType.deposit, "2.0")
        entry.open_dispute(ref)
        entry.chargeback(ref)
        return entry

    def test_balances_after_lock(self, locked_entry):
        assert balances(locked_entry) == (Decimal("8.0"), Decimal("0"), Decimal("8.0"), True)

    @pytest.mark.parametrize("operation", [
        lambda e: e.deposit(Decimal("1.0")),
        lambda e: e.withdraw(Decimal("1.0")),
        lambda e: e.open_dispute(stored(StoredTransactionType.deposit, "1.0")),
        lambda e: e.resolve_dispute(stored(StoredTransactionType.deposit, "1.0")),
        lambda e: e.chargeback(stored(StoredTransactionType.withdrawal, "1.0")),
    ])
    def test_every_operation_rejected(self, locked_entry, operation):
        before = balances(locked_entry)
        with pytest.raises(LockedAccountError):
            operation(locked_entry)
        assert balances(locked_entry) == before


class TestSnapshot:
    def test_as_snapshot_projects_balances(self):
        entry = funded("5.0")
        entry.open_dispute(stored(StoredTransactionType.deposit, "2.0"))
        snapshot = entry.as_snapshot(42)

        assert snapshot.client == 42
        assert snapshot.available == Decimal("3.0")
        assert snapshot.held == Decimal("2.0")
        assert snapshot.total == snapshot.available + snapshot.held
        assert snapshot.locked is False
