import asyncio
import structlog

from accounts import LedgerEntry
from exceptions import (
    InvalidTransactionRefError,
    TransactionAlreadyDisputedError,
    TransactionNotDisputedError,
    TransactionRejectedError,
)
from models import StoredTransaction, TransactionRecord, TransactionType, WithdrawalChargebackPolicy
from repositories import AccountRepository, TransactionRepository

logger = structlog.get_logger()


class TransactionManager:
    def __init__(
        self,
        transaction_repo: TransactionRepository,
        account_repo: AccountRepository,
        withdrawal_chargeback_policy: WithdrawalChargebackPolicy = WithdrawalChargebackPolicy.reverse,
    ):
        self.transaction_repo = transaction_repo
        self.account_repo = account_repo
        self.withdrawal_chargeback_policy = withdrawal_chargeback_policy

    async def process(self, record: TransactionRecord) -> None:
        """
        Apply one transaction to its client's account.

        Raises a TransactionRejectedError subclass when the transaction cannot
        be applied. A rejected transaction leaves no trace in account state,
        although the client's account is created either way.
        """
        logger.debug(
            "Processing transaction",
            tx_id=record.id,
            client_id=record.client,
            type=record.kind.value,
            amount=str(record.amount) if record.amount is not None else None,
        )

        async with self.account_repo.get_lock(record.client):
            # Recording and the account fetch touch disjoint state; wait for both.
            store_result, account = await asyncio.gather(
                self.transaction_repo.store_transaction(record),
                self.account_repo.get_or_create_account(record.client),
                return_exceptions=True,
            )
            if isinstance(account, BaseException):
                raise account

            try:
                if isinstance(store_result, BaseException):
                    raise store_result
                await self._dispatch(record, account)
            except TransactionRejectedError as e:
                logger.warning(
                    "Transaction rejected",
                    tx_id=record.id,
                    client_id=record.client,
                    type=record.kind.value,
                    error_code=e.code,
                    error=str(e),
                )
                raise

        logger.debug(
            "Transaction processed",
            tx_id=record.id,
            client_id=record.client,
            available=str(account.available),
            held=str(account.held),
            locked=account.locked,
        )

    async def _dispatch(self, record: TransactionRecord, account: LedgerEntry) -> None:
        if record.kind in (TransactionType.deposit, TransactionType.withdrawal):
            await self._process_money_movement(record, account)
        elif record.kind == TransactionType.dispute:
            await self._process_dispute(record, account)
        elif record.kind == TransactionType.resolve:
            await self._process_resolve(record, account)
        elif record.kind == TransactionType.chargeback:
            await self._process_chargeback(record, account)

    async def _process_money_movement(self, record: TransactionRecord, account: LedgerEntry) -> None:
        try:
            if record.kind == TransactionType.deposit:
                account.deposit(record.amount)
            else:
                account.withdraw(record.amount)
        except TransactionRejectedError:
            # Only applied movements can be disputed later.
            await self.transaction_repo.discard_transaction(record.id)
            raise

    async def _get_referenced(self, record: TransactionRecord) -> StoredTransaction:
        """Fetch the transaction a dispute, resolve or chargeback points at."""
        ref = await self.transaction_repo.get_transaction_for_update(record.id)
        # A client may only act on its own transactions.
        if ref is None or ref.client != record.client:
            raise InvalidTransactionRefError(record.id)
        return ref

    async def _process_dispute(self, record: TransactionRecord, account: LedgerEntry) -> None:
        ref = await self._get_referenced(record)
        if ref.disputed:
            raise TransactionAlreadyDisputedError(record.id)

        account.open_dispute(ref)
        ref.disputed = True

    async def _process_resolve(self, record: TransactionRecord, account: LedgerEntry) -> None:
        ref = await self._get_referenced(record)
        if not ref.disputed:
            raise TransactionNotDisputedError(record.id)

        account.resolve_dispute(ref)
        ref.disputed = False

    async def _process_chargeback(self, record: TransactionRecord, account: LedgerEntry) -> None:
        ref = await self._get_referenced(record)
        if not ref.disputed:
            raise TransactionNotDisputedError(record.id)

        # The record stays disputed; the lock on the account is what is final.
        account.chargeback(ref, self.withdrawal_chargeback_policy)


# Factory function for dependency injection
def get_transaction_manager(
    transaction_repo: TransactionRepository,
    account_repo: AccountRepository,
    withdrawal_chargeback_policy: WithdrawalChargebackPolicy = WithdrawalChargebackPolicy.reverse,
) -> TransactionManager:
    return TransactionManager(transaction_repo, account_repo, withdrawal_chargeback_policy)
