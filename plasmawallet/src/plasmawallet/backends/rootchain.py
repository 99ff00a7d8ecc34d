"""
Root chain backend using web3.py.

All calls are routed through the bound signing provider, so transactions
are signed by the user's wallet and reads hit whatever node the wallet
is connected to.
"""

from __future__ import annotations

import json
from typing import Any

from eth_utils import to_bytes
from loguru import logger
from web3 import AsyncWeb3, Web3
from web3.providers import AsyncBaseProvider
from web3.types import RPCEndpoint, RPCResponse

from plasmacore.constants import (
    ERC20_VAULT_ID,
    ETH_CURRENCY,
    ETH_VAULT_ID,
    PAYMENT_TX_TYPE,
)
from plasmacore.models import ExitQueueEntry
from plasmawallet.backends.abi import (
    ERC20_ABI,
    ERC20_VAULT_ABI,
    ETH_VAULT_ABI,
    PAYMENT_EXIT_GAME_ABI,
    PLASMA_FRAMEWORK_ABI,
    PRIORITY_QUEUE_ABI,
)
from plasmawallet.backends.base import (
    EventLog,
    EventSource,
    RootChain,
    TransactionReceipt,
    TxOptions,
)
from plasmawallet.errors import ProviderRpcError, TransactionReverted
from plasmawallet.providers.base import SigningProvider

# How long to wait for a submitted root chain transaction to be mined (seconds)
DEFAULT_RECEIPT_TIMEOUT = 600.0


class ProviderBridge(AsyncBaseProvider):
    """web3.py provider that forwards every request to a SigningProvider."""

    def __init__(self, signing_provider: SigningProvider):
        super().__init__()
        self.signing_provider = signing_provider
        self._request_id = 0

    async def make_request(self, method: RPCEndpoint, params: Any) -> RPCResponse:
        self._request_id += 1
        try:
            # Byte values (tx hashes, calldata) go out as 0x hex, as on the wire
            wire_params = json.loads(Web3.to_json(list(params or [])))
            result = await self.signing_provider.send_rpc(str(method), wire_params)
        except ProviderRpcError as e:
            return {
                "jsonrpc": "2.0",
                "id": self._request_id,
                "error": {"code": e.code, "message": e.message},
            }  # type: ignore[typeddict-item]
        return {"jsonrpc": "2.0", "id": self._request_id, "result": result}

    async def is_connected(self, show_traceback: bool = False) -> bool:
        try:
            await self.signing_provider.send_rpc("eth_chainId", [])
            return True
        except Exception:
            if show_traceback:
                raise
            return False


def _vault_id(token: str) -> int:
    return ETH_VAULT_ID if token.lower() == ETH_CURRENCY else ERC20_VAULT_ID


def _receipt(raw: Any) -> TransactionReceipt:
    return TransactionReceipt(
        transaction_hash=Web3.to_hex(raw["transactionHash"]),
        block_number=int(raw["blockNumber"]),
        status=int(raw.get("status", 1)),
        gas_used=int(raw.get("gasUsed", 0)),
    )


class Web3RootChain(RootChain):
    """Plasma framework contracts on the root chain."""

    def __init__(
        self,
        signing_provider: SigningProvider,
        plasma_address: str,
        receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT,
    ):
        self.w3 = AsyncWeb3(ProviderBridge(signing_provider))
        self.plasma_address = Web3.to_checksum_address(plasma_address)
        self.receipt_timeout = receipt_timeout
        self.framework = self.w3.eth.contract(address=self.plasma_address, abi=PLASMA_FRAMEWORK_ABI)
        self._addresses: dict[EventSource, str] = {}

    async def _address_of(self, source: EventSource) -> str:
        if source not in self._addresses:
            if source == EventSource.ETH_VAULT:
                address = await self.framework.functions.vaults(ETH_VAULT_ID).call()
            elif source == EventSource.ERC20_VAULT:
                address = await self.framework.functions.vaults(ERC20_VAULT_ID).call()
            else:
                address = await self.framework.functions.exitGames(PAYMENT_TX_TYPE).call()
            self._addresses[source] = Web3.to_checksum_address(address)
            logger.debug(f"Resolved {source.value} at {self._addresses[source]}")
        return self._addresses[source]

    async def _contract(self, source: EventSource) -> Any:
        abi = {
            EventSource.ETH_VAULT: ETH_VAULT_ABI,
            EventSource.ERC20_VAULT: ERC20_VAULT_ABI,
            EventSource.PAYMENT_EXIT_GAME: PAYMENT_EXIT_GAME_ABI,
        }[source]
        return self.w3.eth.contract(address=await self._address_of(source), abi=abi)

    def _erc20(self, token: str) -> Any:
        return self.w3.eth.contract(address=Web3.to_checksum_address(token), abi=ERC20_ABI)

    async def _transact(
        self, function: Any, tx_options: TxOptions, value: int = 0
    ) -> TransactionReceipt:
        params = tx_options.to_params()
        params["from"] = Web3.to_checksum_address(params["from"])
        if value:
            params["value"] = value

        tx_hash = await function.transact(params)
        logger.info(f"Sent root chain transaction {Web3.to_hex(tx_hash)}, waiting for receipt...")
        raw = await self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        receipt = _receipt(raw)
        if receipt.status != 1:
            logger.error(f"Transaction {receipt.transaction_hash} reverted")
            raise TransactionReverted(receipt.transaction_hash, receipt.block_number)
        logger.info(f"Transaction {receipt.transaction_hash} mined in block {receipt.block_number}")
        return receipt

    async def deposit(
        self, deposit_tx: str, amount: int, currency: str, tx_options: TxOptions
    ) -> TransactionReceipt:
        if currency.lower() == ETH_CURRENCY:
            vault = await self._contract(EventSource.ETH_VAULT)
            return await self._transact(
                vault.functions.deposit(to_bytes(hexstr=deposit_tx)), tx_options, value=amount
            )
        vault = await self._contract(EventSource.ERC20_VAULT)
        return await self._transact(vault.functions.deposit(to_bytes(hexstr=deposit_tx)), tx_options)

    async def approve_token(
        self, erc20_address: str, amount: int, tx_options: TxOptions
    ) -> TransactionReceipt:
        spender = await self.get_erc20_vault()
        token = self._erc20(erc20_address)
        return await self._transact(token.functions.approve(spender, int(amount)), tx_options)

    async def get_eth_vault(self) -> str:
        return await self._address_of(EventSource.ETH_VAULT)

    async def get_erc20_vault(self) -> str:
        return await self._address_of(EventSource.ERC20_VAULT)

    async def get_payment_exit_game(self) -> str:
        return await self._address_of(EventSource.PAYMENT_EXIT_GAME)

    async def start_standard_exit(
        self, utxo_pos: int, output_tx: str, inclusion_proof: str, tx_options: TxOptions
    ) -> TransactionReceipt:
        exit_game = await self._contract(EventSource.PAYMENT_EXIT_GAME)
        bond = await exit_game.functions.startStandardExitBondSize().call()
        args = (int(utxo_pos), to_bytes(hexstr=output_tx), to_bytes(hexstr=inclusion_proof))
        return await self._transact(
            exit_game.functions.startStandardExit(args), tx_options, value=int(bond)
        )

    async def process_exits(
        self, token: str, exit_id: int, max_exits: int, tx_options: TxOptions
    ) -> TransactionReceipt:
        function = self.framework.functions.processExits(
            _vault_id(token), Web3.to_checksum_address(token), int(exit_id), int(max_exits)
        )
        return await self._transact(function, tx_options)

    async def add_token(self, token: str, tx_options: TxOptions) -> TransactionReceipt:
        function = self.framework.functions.addExitQueue(
            _vault_id(token), Web3.to_checksum_address(token)
        )
        return await self._transact(function, tx_options)

    async def has_token(self, token: str) -> bool:
        return bool(
            await self.framework.functions.hasExitQueue(
                _vault_id(token), Web3.to_checksum_address(token)
            ).call()
        )

    async def get_exit_queue(self, token: str) -> list[ExitQueueEntry]:
        currency = token.lower()
        key = Web3.solidity_keccak(
            ["uint256", "address"], [_vault_id(currency), Web3.to_checksum_address(currency)]
        )
        queue_address = await self.framework.functions.exitsQueues(key).call()
        queue = self.w3.eth.contract(
            address=Web3.to_checksum_address(queue_address), abi=PRIORITY_QUEUE_ABI
        )
        heap = await queue.functions.heapList().call()

        # heapList()[0] is a placeholder kept by the binary heap
        return [ExitQueueEntry.from_priority(int(p), currency) for p in heap[1:]]

    async def get_past_events(
        self,
        source: EventSource,
        event_name: str,
        argument_filters: dict[str, Any],
        from_block: int = 0,
    ) -> list[EventLog]:
        contract = await self._contract(source)
        filters = {
            name: Web3.to_checksum_address(value)
            if isinstance(value, str) and Web3.is_address(value)
            else value
            for name, value in argument_filters.items()
        }
        event = getattr(contract.events, event_name)
        logs = await event().get_logs(argument_filters=filters, from_block=from_block)
        return [
            EventLog(
                event=log["event"],
                block_number=int(log["blockNumber"]),
                transaction_hash=Web3.to_hex(log["transactionHash"]),
                args=dict(log["args"]),
            )
            for log in logs
        ]

    async def get_eth_balance(self, address: str) -> int:
        return int(await self.w3.eth.get_balance(Web3.to_checksum_address(address)))

    async def get_erc20_balance(self, token: str, address: str) -> int:
        balance = await self._erc20(token).functions.balanceOf(
            Web3.to_checksum_address(address)
        ).call()
        return int(balance)

    async def get_erc20_allowance(self, token: str, owner: str, spender: str) -> int:
        allowance = await self._erc20(token).functions.allowance(
            Web3.to_checksum_address(owner), Web3.to_checksum_address(spender)
        ).call()
        return int(allowance)

    async def get_token_metadata(self, token: str) -> tuple[str, str, int]:
        contract = self._erc20(token)
        symbol = await contract.functions.symbol().call()
        name = await contract.functions.name().call()
        decimals = await contract.functions.decimals().call()
        return str(symbol), str(name), int(decimals)

    async def get_block_number(self) -> int:
        return int(await self.w3.eth.block_number)
