"""
Plasma wallet service.

Single entry point wiring the account binder, child chain watcher and the
root chain components together. Constructed explicitly from a
PlasmaConfig, one instance per process.
"""

from __future__ import annotations

import time
from collections.abc import Sequence

from loguru import logger

from plasmacore.constants import ETH_CURRENCY
from plasmacore.models import ExitQueue, FeeInfo, Utxo
from plasmacore.transaction import decode_metadata
from plasmawallet.backends.base import ChildChain, TransactionReceipt
from plasmawallet.backends.watcher import WatcherChildChain
from plasmawallet.config import PlasmaConfig
from plasmawallet.wallet.account import AccountBinder
from plasmawallet.wallet.deposits import DepositManager
from plasmawallet.wallet.exits import ExitQueueManager
from plasmawallet.wallet.gas import GasOracle
from plasmawallet.wallet.models import (
    Balance,
    Balances,
    ChainStatus,
    ChildChainTransaction,
    Deposits,
    Exits,
    GasEstimate,
    SubmittedTransaction,
    UtxoWithToken,
)
from plasmawallet.wallet.signing import SigningAdapter
from plasmawallet.wallet.tokens import TokenResolver
from plasmawallet.wallet.tracking import DepositTracker, ExitTracker
from plasmawallet.wallet.transactions import TransactionBuilder

# Watcher reports these for every exitable output, they are not byzantine
IGNORED_BYZANTINE_EVENTS = frozenset({"piggyback_available"})


class PlasmaService:
    def __init__(
        self,
        config: PlasmaConfig,
        binder: AccountBinder | None = None,
        child_chain: ChildChain | None = None,
        gas_oracle: GasOracle | None = None,
        signer: SigningAdapter | None = None,
    ):
        self.config = config
        self.binder = binder or AccountBinder(config)
        self.child_chain = child_chain or WatcherChildChain(
            config.watcher_url, timeout=config.request_timeout
        )

        self.tokens = TokenResolver(self.binder)
        self.signer = signer or SigningAdapter(self.binder)
        self.transactions = TransactionBuilder(self.binder, self.child_chain, self.signer)
        self.deposit_tracker = DepositTracker(self.binder, self.tokens)
        self.exit_tracker = ExitTracker(self.binder)
        self.exit_queues = ExitQueueManager(
            self.binder, self.child_chain, exit_gas_limit=config.exit_gas_limit
        )
        self.depositor = DepositManager(self.binder)
        self.gas_oracle = gas_oracle or GasOracle(
            self.binder, config.gas_station_url, timeout=config.request_timeout
        )

        # Last root chain height seen by get_eth_stats
        self.current_block: int | None = None

    # Binding

    async def bind_in_page_provider(self) -> bool:
        return await self.binder.bind_in_page_provider()

    async def bind_remote_session_provider(self) -> bool:
        return await self.binder.bind_remote_session_provider()

    async def initialize_account(self) -> bool:
        return await self.binder.initialize_account()

    # Read paths

    async def check_status(self) -> ChainStatus:
        status = await self.child_chain.status()

        events = status.get("byzantine_events")
        byzantine = [e for e in events or [] if e.get("event") not in IGNORED_BYZANTINE_EVENTS]
        last_seen = int(status.get("last_seen_eth_block_timestamp") or 0)

        chain_status = ChainStatus(
            connection=events is not None,
            byzantine=bool(byzantine),
            seconds_since_last_sync=int(time.time()) - last_seen,
            last_seen_block=int(status.get("last_seen_eth_block_number") or 0),
        )
        if chain_status.byzantine:
            logger.warning(f"Watcher reports {len(byzantine)} byzantine events")
        return chain_status

    async def get_all_transactions(self) -> list[ChildChainTransaction]:
        account = self.binder.require_account()
        raw_transactions = await self.child_chain.get_transactions(account.address)

        currencies = [
            tx_input["currency"]
            for tx in raw_transactions
            for tx_input in tx.get("inputs") or []
            if tx_input.get("currency")
        ]
        await self.tokens.get_tokens(currencies)

        return [
            ChildChainTransaction(
                txhash=tx.get("txhash", ""),
                metadata=_decode_metadata(tx.get("metadata")),
                raw=tx,
            )
            for tx in raw_transactions
        ]

    async def get_balances(self) -> Balances:
        account = self.binder.require_account()
        root_chain = self.binder.require_root_chain()

        childchain = await self.child_chain.get_balance(account.address)
        tokens = await self.tokens.get_tokens(
            [ETH_CURRENCY, *(item["currency"] for item in childchain)]
        )

        balances = Balances(
            childchain=[
                Balance(item["currency"], item["amount"], tokens.get(item["currency"]))
                for item in childchain
            ]
        )

        eth_balance = await root_chain.get_eth_balance(account.address)
        balances.rootchain.append(Balance(ETH_CURRENCY, eth_balance, tokens[ETH_CURRENCY]))

        for item in childchain:
            currency = item["currency"]
            if currency == ETH_CURRENCY:
                continue
            try:
                amount = await root_chain.get_erc20_balance(currency, account.address)
            except Exception as e:
                logger.warning(f"Failed to fetch root chain balance of {currency}: {e}")
                continue
            balances.rootchain.append(Balance(currency, amount, tokens.get(currency)))

        balances.rootchain.sort(key=lambda b: b.currency)
        balances.childchain.sort(key=lambda b: b.currency)
        return balances

    async def get_utxos(self) -> list[UtxoWithToken]:
        account = self.binder.require_account()
        utxos = await self.child_chain.get_utxos(account.address)
        tokens = await self.tokens.get_tokens(u.currency for u in utxos)
        return [UtxoWithToken(utxo=u, token=tokens.get(u.currency)) for u in utxos]

    async def get_eth_stats(self) -> int | None:
        try:
            self.current_block = await self.binder.require_root_chain().get_block_number()
        except Exception as e:
            logger.warning(f"Failed to fetch root chain block number: {e}")
            return None
        return self.current_block

    async def get_deposits(self, current_block: int | None = None) -> Deposits:
        if current_block is None:
            current_block = await self.get_eth_stats()
        if current_block is None:
            return Deposits()
        return await self.deposit_tracker.get_deposits(current_block)

    async def get_exits(self, current_block: int | None = None) -> Exits:
        if current_block is None:
            current_block = await self.get_eth_stats()
        if current_block is None:
            return Exits()
        return await self.exit_tracker.get_exits(current_block)

    async def get_gas_price(self) -> GasEstimate:
        return await self.gas_oracle.estimate()

    async def fetch_fees(self) -> list[FeeInfo]:
        return await self.transactions.fetch_fees()

    # Child chain transactions

    async def transfer(
        self,
        recipient: str,
        amount: int,
        currency: str,
        fee_currency: str,
        metadata: str | None = None,
    ) -> SubmittedTransaction:
        return await self.transactions.transfer(recipient, amount, currency, fee_currency, metadata)

    async def merge_utxos(self, utxos: Sequence[Utxo]) -> SubmittedTransaction:
        return await self.transactions.merge_utxos(utxos)

    # Root chain transactions

    async def deposit_eth(self, amount: int, gas_price: int) -> TransactionReceipt:
        return await self.depositor.deposit_eth(amount, gas_price)

    async def deposit_erc20(self, amount: int, currency: str, gas_price: int) -> TransactionReceipt:
        return await self.depositor.deposit_erc20(amount, currency, gas_price)

    async def check_allowance(self, currency: str) -> int:
        return await self.exit_queues.check_allowance(currency)

    async def approve_erc20(self, amount: int, currency: str, gas_price: int) -> TransactionReceipt:
        return await self.exit_queues.set_allowance(amount, currency, gas_price)

    async def reset_approval(self, amount: int, currency: str, gas_price: int) -> TransactionReceipt:
        return await self.exit_queues.reset_allowance(amount, currency, gas_price)

    async def exit_utxo(self, utxo: Utxo, gas_price: int) -> TransactionReceipt:
        return await self.exit_queues.exit_utxo(utxo, gas_price)

    async def has_exit_queue(self, token: str) -> bool:
        return await self.exit_queues.has_queue(token)

    async def get_exit_queue(self, currency: str) -> ExitQueue:
        return await self.exit_queues.get_queue(currency)

    async def add_exit_queue(self, token: str, gas_price: int) -> TransactionReceipt:
        return await self.exit_queues.add_queue(token, gas_price)

    async def process_exits(self, max_exits: int, currency: str, gas_price: int) -> TransactionReceipt:
        return await self.exit_queues.process_queue(max_exits, currency, gas_price)

    async def close(self) -> None:
        await self.gas_oracle.close()
        await self.child_chain.close()
        await self.binder.close()


def _decode_metadata(metadata: str | None) -> str:
    if not metadata:
        return ""
    try:
        return decode_metadata(metadata)
    except ValueError:
        # Not hex, return as reported
        return metadata
