"""
Core data models using Pydantic for validation and serialization.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from plasmacore.constants import (
    BLOCK_OFFSET,
    ETH_CURRENCY,
    EXIT_ID_MASK,
    EXIT_PRIORITY_EXITABLE_AT_SHIFT,
    NULL_METADATA,
    PAYMENT_TX_TYPE,
    TX_OFFSET,
)


class TxStatus(str, Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    EXITED = "Exited"


def _lower_hex(v: str) -> str:
    if not isinstance(v, str) or not v.startswith("0x"):
        raise ValueError(f"Expected 0x-prefixed hex string, got {v!r}")
    return v.lower()


def encode_utxo_pos(blknum: int, txindex: int, oindex: int) -> int:
    return blknum * BLOCK_OFFSET + txindex * TX_OFFSET + oindex


def decode_utxo_pos(utxo_pos: int) -> tuple[int, int, int]:
    blknum, rest = divmod(utxo_pos, BLOCK_OFFSET)
    txindex, oindex = divmod(rest, TX_OFFSET)
    return blknum, txindex, oindex


class Utxo(BaseModel):
    """An unspent child chain output as reported by the watcher."""

    model_config = ConfigDict(frozen=True)

    owner: str
    currency: str
    amount: int = Field(..., ge=0)
    blknum: int = Field(..., ge=0)
    txindex: int = Field(default=0, ge=0)
    oindex: int = Field(default=0, ge=0)
    creating_txhash: str | None = None

    @field_validator("owner", "currency")
    @classmethod
    def normalize_address(cls, v: str) -> str:
        return _lower_hex(v)

    @property
    def utxo_pos(self) -> int:
        return encode_utxo_pos(self.blknum, self.txindex, self.oindex)


class Payment(BaseModel):
    """A transaction output: `amount` of `currency` paid to `owner`."""

    model_config = ConfigDict(frozen=True)

    owner: str
    currency: str
    amount: int = Field(..., ge=0)

    @field_validator("owner", "currency")
    @classmethod
    def normalize_address(cls, v: str) -> str:
        return _lower_hex(v)


class FeeInfo(BaseModel):
    """One entry of the child chain fee schedule."""

    currency: str
    amount: int = Field(..., ge=0)
    subunit_to_unit: int = 1_000_000_000_000_000_000
    pegged_amount: int | None = None
    pegged_currency: str | None = None
    updated_at: str | None = None

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return _lower_hex(v)


class ExitData(BaseModel):
    """Proof material needed to start a standard exit for one output."""

    utxo_pos: int
    txbytes: str
    proof: str


@dataclass(frozen=True)
class TransactionBody:
    """
    Unsigned payment transaction.

    The fee is not an output: it is the difference between inputs and
    outputs in the fee currency, kept here for reference.
    """

    inputs: tuple[Utxo, ...]
    outputs: tuple[Payment, ...]
    fee: Payment
    metadata: str = NULL_METADATA
    tx_type: int = PAYMENT_TX_TYPE
    tx_data: int = 0


@dataclass(frozen=True)
class TokenInfo:
    currency: str
    symbol: str
    name: str
    decimals: int

    @property
    def is_eth(self) -> bool:
        return self.currency == ETH_CURRENCY


@dataclass
class ExitQueueEntry:
    """Single entry in a root chain exit priority queue."""

    priority: int
    exitable_at: int
    exit_id: int
    currency: str

    @classmethod
    def from_priority(cls, priority: int, currency: str) -> ExitQueueEntry:
        return cls(
            priority=priority,
            exitable_at=priority >> EXIT_PRIORITY_EXITABLE_AT_SHIFT,
            exit_id=priority & EXIT_ID_MASK,
            currency=currency,
        )


@dataclass
class ExitQueue:
    currency: str
    queue: list[ExitQueueEntry] = field(default_factory=list)
