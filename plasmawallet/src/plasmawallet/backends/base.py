"""
Base chain backend interfaces.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from plasmacore.models import ExitData, ExitQueueEntry, FeeInfo, Utxo


class EventSource(str, Enum):
    """Root chain contracts whose past events the wallet reads."""

    ETH_VAULT = "eth_vault"
    ERC20_VAULT = "erc20_vault"
    PAYMENT_EXIT_GAME = "payment_exit_game"


@dataclass
class EventLog:
    event: str
    block_number: int
    transaction_hash: str
    args: dict[str, Any] = field(default_factory=dict)


@dataclass
class TxOptions:
    """Root chain transaction parameters."""

    from_address: str
    gas_price: int
    gas: int | None = None

    def to_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {"from": self.from_address, "gasPrice": int(self.gas_price)}
        if self.gas is not None:
            params["gas"] = self.gas
        return params


@dataclass
class TransactionReceipt:
    transaction_hash: str
    block_number: int
    status: int
    gas_used: int = 0


@dataclass
class SubmitResult:
    txhash: str
    blknum: int
    txindex: int


class ChildChain(ABC):
    """
    Abstract child chain interface.
    Implementations talk to a watcher that indexes the child chain.
    """

    @abstractmethod
    async def get_utxos(self, address: str) -> list[Utxo]:
        """Get UTXOs owned by address"""

    @abstractmethod
    async def get_balance(self, address: str) -> list[dict[str, Any]]:
        """Get balance per currency, as [{"currency": ..., "amount": ...}]"""

    @abstractmethod
    async def get_transactions(self, address: str) -> list[dict[str, Any]]:
        """Get transactions involving address, newest first"""

    @abstractmethod
    async def get_fees(self) -> dict[str, list[FeeInfo]]:
        """Get the fee schedule keyed by transaction type"""

    @abstractmethod
    async def get_exit_data(self, utxo: Utxo) -> ExitData:
        """Get the proof needed to start a standard exit for utxo"""

    @abstractmethod
    async def submit_transaction(self, signed_tx: str) -> SubmitResult:
        """Submit an RLP encoded signed transaction"""

    @abstractmethod
    async def status(self) -> dict[str, Any]:
        """Get watcher status (byzantine events, sync state)"""

    async def close(self) -> None:
        """Close backend connection"""
        pass


class RootChain(ABC):
    """
    Abstract root chain interface.
    Write methods return once the transaction is mined.
    """

    @abstractmethod
    async def deposit(
        self, deposit_tx: str, amount: int, currency: str, tx_options: TxOptions
    ) -> TransactionReceipt:
        """Deposit into the vault for currency"""

    @abstractmethod
    async def approve_token(
        self, erc20_address: str, amount: int, tx_options: TxOptions
    ) -> TransactionReceipt:
        """Approve the ERC20 vault to spend amount of a token"""

    @abstractmethod
    async def get_eth_vault(self) -> str:
        """Get ETH vault address"""

    @abstractmethod
    async def get_erc20_vault(self) -> str:
        """Get ERC20 vault address"""

    @abstractmethod
    async def get_payment_exit_game(self) -> str:
        """Get payment exit game address"""

    @abstractmethod
    async def start_standard_exit(
        self, utxo_pos: int, output_tx: str, inclusion_proof: str, tx_options: TxOptions
    ) -> TransactionReceipt:
        """Start a standard exit for an output"""

    @abstractmethod
    async def process_exits(
        self, token: str, exit_id: int, max_exits: int, tx_options: TxOptions
    ) -> TransactionReceipt:
        """Process up to max_exits exits from the token's queue"""

    @abstractmethod
    async def add_token(self, token: str, tx_options: TxOptions) -> TransactionReceipt:
        """Create an exit queue for token"""

    @abstractmethod
    async def has_token(self, token: str) -> bool:
        """Check whether an exit queue exists for token"""

    @abstractmethod
    async def get_exit_queue(self, token: str) -> list[ExitQueueEntry]:
        """Get the token's exit queue in priority order"""

    @abstractmethod
    async def get_past_events(
        self,
        source: EventSource,
        event_name: str,
        argument_filters: dict[str, Any],
        from_block: int = 0,
    ) -> list[EventLog]:
        """Get past events emitted by a root chain contract"""

    @abstractmethod
    async def get_eth_balance(self, address: str) -> int:
        """Get ETH balance in wei"""

    @abstractmethod
    async def get_erc20_balance(self, token: str, address: str) -> int:
        """Get ERC20 balance in token subunits"""

    @abstractmethod
    async def get_erc20_allowance(self, token: str, owner: str, spender: str) -> int:
        """Get ERC20 allowance granted by owner to spender"""

    @abstractmethod
    async def get_token_metadata(self, token: str) -> tuple[str, str, int]:
        """Get (symbol, name, decimals) of an ERC20 token"""

    @abstractmethod
    async def get_block_number(self) -> int:
        """Get current root chain height"""

    async def close(self) -> None:
        """Close backend connection"""
        pass
