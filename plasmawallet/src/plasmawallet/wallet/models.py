"""
Wallet data models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from plasmacore.models import TokenInfo, TxStatus, Utxo
from plasmawallet.providers.base import ProviderKind


@dataclass(frozen=True)
class Account:
    """The account bound from a signing provider. Replaced, never mutated."""

    address: str
    network_id: int
    provider_kind: ProviderKind

    def matches(self, address: str | None) -> bool:
        return address is not None and self.address.lower() == address.lower()


@dataclass
class BlockInfo:
    blknum: int
    timestamp: int


@dataclass
class SubmittedTransaction:
    """A transaction accepted by the child chain, not yet in a block seen by the watcher."""

    txhash: str
    blknum: int
    txindex: int
    block: BlockInfo
    metadata: str | None
    status: TxStatus = TxStatus.PENDING


@dataclass
class DepositRecord:
    depositor: str
    token: str
    amount: int
    blknum: int
    block_number: int
    transaction_hash: str
    status: TxStatus
    pending_percentage: int
    token_info: TokenInfo | None = None


@dataclass
class ExitRecord:
    owner: str
    exit_id: int
    block_number: int
    transaction_hash: str
    status: TxStatus
    pending_percentage: int | None = None


@dataclass
class Deposits:
    eth: list[DepositRecord] = field(default_factory=list)
    erc20: list[DepositRecord] = field(default_factory=list)


@dataclass
class Exits:
    pending: list[ExitRecord] = field(default_factory=list)
    exited: list[ExitRecord] = field(default_factory=list)


@dataclass
class GasEstimate:
    """Gas prices in wei."""

    slow: int
    normal: int
    fast: int


@dataclass
class ChainStatus:
    connection: bool
    byzantine: bool
    seconds_since_last_sync: int
    last_seen_block: int


@dataclass
class Balance:
    currency: str
    amount: int
    token: TokenInfo | None = None


@dataclass
class Balances:
    rootchain: list[Balance] = field(default_factory=list)
    childchain: list[Balance] = field(default_factory=list)


@dataclass
class UtxoWithToken:
    utxo: Utxo
    token: TokenInfo | None = None


@dataclass
class ChildChainTransaction:
    """A watcher transaction record with its metadata decoded."""

    txhash: str
    metadata: str
    raw: dict[str, Any] = field(default_factory=dict)
