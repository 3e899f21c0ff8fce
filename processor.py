import asyncio
from typing import List, Optional, TextIO, Tuple

import structlog

from codec import read_transactions, write_snapshots
from config import Settings, get_settings
from exceptions import InputOutputError, TransactionRejectedError
from models import AccountSnapshot
from repositories import InMemoryAccountRepository, InMemoryTransactionRepository
from services import TransactionManager, get_transaction_manager

logger = structlog.get_logger()

_END_OF_STREAM = None


async def _decode_into(stream: TextIO, path: str, queue: asyncio.Queue) -> int:
    """Feed decoded records into the queue, in file order."""
    decoded = 0
    try:
        for record in read_transactions(stream):
            await queue.put(record)
            decoded += 1
    except OSError as e:
        raise InputOutputError(path, e.strerror or str(e)) from e
    finally:
        await queue.put(_END_OF_STREAM)
    return decoded


async def _apply_from(queue: asyncio.Queue, manager: TransactionManager) -> Tuple[int, int]:
    """Apply queued records one at a time until the end marker."""
    applied = 0
    rejected = 0
    while True:
        record = await queue.get()
        if record is _END_OF_STREAM:
            return applied, rejected
        try:
            await manager.process(record)
        except TransactionRejectedError:
            # Already logged by the manager; the run goes on.
            rejected += 1
        else:
            applied += 1


async def run_txn_processor(
    path: str,
    writer: TextIO,
    settings: Optional[Settings] = None,
) -> List[AccountSnapshot]:
    """
    Process the csv file at `path` and write final account states to `writer`.

    Per-record failures are logged and skipped. InputOutputError is raised if
    the file cannot be opened or read, DeserializationError if it is not a
    usable csv, SerializationError if the output cannot be written.
    """
    settings = settings or get_settings()

    transaction_repo = InMemoryTransactionRepository()
    account_repo = InMemoryAccountRepository()
    manager = get_transaction_manager(
        transaction_repo, account_repo, settings.withdrawal_chargeback_policy
    )

    try:
        stream = open(path, newline="", encoding="utf-8-sig")
    except OSError as e:
        raise InputOutputError(str(path), e.strerror or str(e)) from e

    logger.info("Run started", path=str(path))

    # Unbounded unless queue_max_size is set; the input is finite.
    queue: asyncio.Queue = asyncio.Queue(maxsize=settings.queue_max_size)
    with stream:
        producer = asyncio.create_task(_decode_into(stream, str(path), queue))
        consumer = asyncio.create_task(_apply_from(queue, manager))
        try:
            decoded, (applied, rejected) = await asyncio.gather(producer, consumer)
        except BaseException:
            producer.cancel()
            consumer.cancel()
            raise

    accounts = await account_repo.list_accounts()
    snapshots = sorted(
        (entry.as_snapshot(client_id) for client_id, entry in accounts),
        key=lambda snapshot: snapshot.client,
    )
    write_snapshots(snapshots, writer, settings.output_precision)

    logger.info(
        "Run completed",
        path=str(path),
        records=decoded,
        applied=applied,
        rejected=rejected,
        accounts=len(snapshots),
        transactions_stored=await transaction_repo.get_transactions_count(),
    )
    return snapshots
