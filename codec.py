import csv
from decimal import InvalidOperation
from typing import Iterable, Iterator, TextIO

import structlog
from pydantic import ValidationError

from exceptions import DeserializationError, SerializationError
from models import DEFAULT_OUTPUT_PRECISION, AccountSnapshot, TransactionRecord

logger = structlog.get_logger()

INPUT_COLUMNS = ("type", "client", "tx", "amount")
REQUIRED_COLUMNS = ("type", "client", "tx")
OUTPUT_COLUMNS = ["client", "available", "held", "total", "locked"]


def decode_row(row: dict, line_num: int) -> TransactionRecord:
    """Build a record from one csv row, trimming whitespace around every cell."""
    values = {}
    for column in INPUT_COLUMNS:
        value = row.get(column)
        if isinstance(value, str):
            value = value.strip()
        values[column] = value

    try:
        return TransactionRecord.model_validate(values)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in e.errors()
        )
        raise DeserializationError(
            f"Invalid record at line {line_num}: {problems}", line_num=line_num
        ) from e


def read_transactions(stream: TextIO) -> Iterator[TransactionRecord]:
    """
    Decode transaction records from a csv stream with a header row.

    Column order follows the header, extra columns are ignored and a missing
    trailing amount cell reads as no amount. Rows that do not decode are
    logged and skipped. A malformed stream or a header without the required
    columns raises a fatal DeserializationError.
    """
    reader = csv.DictReader(stream, skipinitialspace=True)
    try:
        fieldnames = reader.fieldnames
    except (csv.Error, UnicodeDecodeError) as e:
        raise DeserializationError(f"Malformed csv header: {e}", line_num=1, fatal=True) from e
    if fieldnames is None:
        return

    reader.fieldnames = [name.strip().lower() for name in fieldnames]
    missing = [column for column in REQUIRED_COLUMNS if column not in reader.fieldnames]
    if missing:
        raise DeserializationError(
            f"Missing required columns: {', '.join(missing)}", line_num=1, fatal=True
        )

    while True:
        try:
            row = next(reader)
        except StopIteration:
            return
        except (csv.Error, UnicodeDecodeError) as e:
            raise DeserializationError(
                f"Malformed csv at line {reader.line_num}: {e}",
                line_num=reader.line_num,
                fatal=True,
            ) from e

        try:
            record = decode_row(row, reader.line_num)
        except DeserializationError as e:
            logger.warning(
                "Skipping undecodable record",
                line_num=e.line_num,
                error_code=e.code,
                error=str(e),
            )
            continue
        yield record


def write_snapshots(
    snapshots: Iterable[AccountSnapshot],
    writer: TextIO,
    precision: int = DEFAULT_OUTPUT_PRECISION,
) -> None:
    csvwriter = csv.DictWriter(writer, fieldnames=OUTPUT_COLUMNS, lineterminator="\n")
    try:
        csvwriter.writeheader()
        for snapshot in snapshots:
            csvwriter.writerow(snapshot.to_row(precision))
        writer.flush()
    except (OSError, ValueError, csv.Error, InvalidOperation) as e:
        raise SerializationError(f"Failed serializing account snapshots: {e}") from e
