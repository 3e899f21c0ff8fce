from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple
import asyncio
from collections import defaultdict

from accounts import LedgerEntry
from exceptions import InvalidDepositTransactionError, InvalidWithdrawalTransactionError
from models import StoredTransaction, StoredTransactionType, TransactionRecord, TransactionType


class TransactionRepository(ABC):
    @abstractmethod
    async def store_transaction(self, record: TransactionRecord) -> None:
        """Keep a deposit or withdrawal for later disputes. No-op for other kinds."""
        pass

    @abstractmethod
    async def get_transaction(self, tx_id: int) -> Optional[StoredTransaction]:
        """Get a read-only copy of a stored transaction. Returns None if unknown."""
        pass

    @abstractmethod
    async def get_transaction_for_update(self, tx_id: int) -> Optional[StoredTransaction]:
        """Get the stored transaction itself, so its disputed flag can be changed."""
        pass

    @abstractmethod
    async def discard_transaction(self, tx_id: int) -> None:
        """Forget a transaction that was recorded but never applied."""
        pass

    @abstractmethod
    async def get_transactions_count(self) -> int:
        """Get total number of stored transactions."""
        pass


class AccountRepository(ABC):
    @abstractmethod
    async def get_or_create_account(self, client_id: int) -> LedgerEntry:
        """Get the client's ledger entry, creating an empty one on first use."""
        pass

    @abstractmethod
    async def list_accounts(self) -> List[Tuple[int, LedgerEntry]]:
        """Get every (client_id, entry) pair. Order is not significant."""
        pass

    @abstractmethod
    async def get_accounts_count(self) -> int:
        """Get total number of accounts."""
        pass

    @abstractmethod
    def get_lock(self, client_id: int) -> asyncio.Lock:
        """Get the lock guarding one client's entry."""
        pass


_STORED_KINDS = {
    TransactionType.deposit: (StoredTransactionType.deposit, InvalidDepositTransactionError),
    TransactionType.withdrawal: (StoredTransactionType.withdrawal, InvalidWithdrawalTransactionError),
}


class InMemoryTransactionRepository(TransactionRepository):
    def __init__(self):
        # Grows for the whole run; ids are assumed unique in the input.
        self.transactions: Dict[int, StoredTransaction] = {}

    async def store_transaction(self, record: TransactionRecord) -> None:
        if record.kind not in _STORED_KINDS:
            return
        stored_kind, missing_amount_error = _STORED_KINDS[record.kind]
        if record.amount is None:
            raise missing_amount_error()
        self.transactions[record.id] = StoredTransaction(
            client=record.client,
            kind=stored_kind,
            amount=record.amount,
        )

    async def get_transaction(self, tx_id: int) -> Optional[StoredTransaction]:
        stored = self.transactions.get(tx_id)
        if stored is None:
            return None
        return stored.model_copy()

    async def get_transaction_for_update(self, tx_id: int) -> Optional[StoredTransaction]:
        return self.transactions.get(tx_id)

    async def discard_transaction(self, tx_id: int) -> None:
        self.transactions.pop(tx_id, None)

    async def get_transactions_count(self) -> int:
        return len(self.transactions)


class InMemoryAccountRepository(AccountRepository):
    def __init__(self):
        self.accounts: Dict[int, LedgerEntry] = {}
        self.locks: Dict[int, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def get_or_create_account(self, client_id: int) -> LedgerEntry:
        if client_id not in self.accounts:
            self.accounts[client_id] = LedgerEntry()
        return self.accounts[client_id]

    async def list_accounts(self) -> List[Tuple[int, LedgerEntry]]:
        return list(self.accounts.items())

    async def get_accounts_count(self) -> int:
        return len(self.accounts)

    def get_lock(self, client_id: int) -> asyncio.Lock:
        """Get lock for specific client."""
        return self.locks[client_id]
