from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from enum import Enum
from typing import Optional
from decimal import Decimal, ROUND_DOWN


U16_MAX = 65535
U32_MAX = 4294967295

# Snapshots compare equal when every amount is within this distance.
AMOUNT_TOLERANCE = Decimal("0.0001")
DEFAULT_OUTPUT_PRECISION = 4


class TransactionType(str, Enum):
    deposit = "deposit"
    withdrawal = "withdrawal"
    dispute = "dispute"
    resolve = "resolve"
    chargeback = "chargeback"


class StoredTransactionType(str, Enum):
    deposit = "deposit"
    withdrawal = "withdrawal"


class WithdrawalChargebackPolicy(str, Enum):
    """What a chargeback against a disputed withdrawal does to `available`."""

    reverse = "reverse"  # held -= amount, available += amount
    retain = "retain"    # held -= amount only


class TransactionRecord(BaseModel):
    """One decoded input row. `type` and `tx` are accepted as aliases."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: int = Field(..., alias="tx", ge=0, le=U32_MAX, description="Transaction identifier")
    kind: TransactionType = Field(..., alias="type", description="Transaction type")
    client: int = Field(..., ge=0, le=U16_MAX, description="Client identifier")
    amount: Optional[Decimal] = Field(
        default=None,
        gt=0,
        description="Amount, present only for deposits and withdrawals",
    )

    @field_validator('kind', mode='before')
    @classmethod
    def normalize_kind(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator('amount', mode='before')
    @classmethod
    def empty_amount_is_absent(cls, v):
        if isinstance(v, str):
            v = v.strip()
            if not v:
                return None
        return v


class StoredTransaction(BaseModel):
    """An accepted deposit or withdrawal, kept for later dispute handling."""

    client: int = Field(..., ge=0, le=U16_MAX)
    kind: StoredTransactionType
    amount: Decimal
    disputed: bool = False


def truncate_amount(value: Decimal, places: int = DEFAULT_OUTPUT_PRECISION) -> str:
    """Render `value` truncated toward zero to `places` fractional digits."""
    quantum = Decimal(1).scaleb(-places)
    truncated = value.quantize(quantum, rounding=ROUND_DOWN).normalize()
    if truncated == 0:
        truncated = Decimal(0)
    return format(truncated, "f")


class AccountSnapshot(BaseModel):
    """Read-only projection of one client's ledger entry, as emitted."""

    model_config = ConfigDict(frozen=True)

    client: int = Field(..., ge=0, le=U16_MAX)
    available: Decimal
    held: Decimal
    total: Decimal
    locked: bool

    @field_serializer('available', 'held', 'total')
    def serialize_amount(self, value: Decimal, info) -> str:
        places = DEFAULT_OUTPUT_PRECISION
        if info.context:
            places = info.context.get("precision", places)
        return truncate_amount(value, places)

    @field_serializer('locked')
    def serialize_locked(self, value: bool) -> str:
        return "true" if value else "false"

    def to_row(self, precision: int = DEFAULT_OUTPUT_PRECISION) -> dict:
        return self.model_dump(context={"precision": precision})

    def __eq__(self, other):
        if not isinstance(other, AccountSnapshot):
            return NotImplemented
        return (
            self.client == other.client
            and self.locked == other.locked
            and abs(self.available - other.available) <= AMOUNT_TOLERANCE
            and abs(self.held - other.held) <= AMOUNT_TOLERANCE
            and abs(self.total - other.total) <= AMOUNT_TOLERANCE
        )

    def __hash__(self):
        return hash((self.client, self.locked))
