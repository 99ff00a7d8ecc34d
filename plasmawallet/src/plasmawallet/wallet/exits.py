"""
Exits, exit queues and token allowances on the root chain.

Queue listing is a read path and degrades to an empty queue. Everything
else here is an explicit user action, so failures reach the caller.
"""

from __future__ import annotations

from dataclasses import replace

from loguru import logger

from plasmacore.constants import EXIT_GAS_LIMIT
from plasmacore.models import ExitQueue, Utxo
from plasmawallet.backends.base import ChildChain, TransactionReceipt
from plasmawallet.errors import AllowanceCheckError
from plasmawallet.wallet.account import AccountBinder


class ExitQueueManager:
    def __init__(
        self,
        binder: AccountBinder,
        child_chain: ChildChain,
        exit_gas_limit: int = EXIT_GAS_LIMIT,
    ):
        self.binder = binder
        self.child_chain = child_chain
        self.exit_gas_limit = exit_gas_limit

    async def has_queue(self, token: str) -> bool:
        return await self.binder.require_root_chain().has_token(token)

    async def get_queue(self, currency: str) -> ExitQueue:
        currency = currency.lower()
        try:
            entries = await self.binder.require_root_chain().get_exit_queue(currency)
        except Exception as e:
            logger.warning(f"Getting the exit queue for {currency} failed: {e}")
            entries = []

        return ExitQueue(
            currency=currency,
            queue=[replace(entry, currency=currency) for entry in entries],
        )

    async def add_queue(self, token: str, gas_price: int) -> TransactionReceipt:
        logger.info(f"Adding exit queue for {token}")
        return await self.binder.require_root_chain().add_token(
            token, self.binder.tx_options(gas_price)
        )

    async def process_queue(self, max_exits: int, currency: str, gas_price: int) -> TransactionReceipt:
        logger.info(f"Processing up to {max_exits} exits for {currency}")
        return await self.binder.require_root_chain().process_exits(
            currency, 0, max_exits, self.binder.tx_options(gas_price)
        )

    async def exit_utxo(self, utxo: Utxo, gas_price: int) -> TransactionReceipt:
        """
        Start a standard exit for `utxo`.

        Some providers fail to estimate gas for this call. A failed first
        attempt is retried once with an explicit gas limit.
        """
        root_chain = self.binder.require_root_chain()
        exit_data = await self.child_chain.get_exit_data(utxo)

        try:
            return await root_chain.start_standard_exit(
                exit_data.utxo_pos,
                exit_data.txbytes,
                exit_data.proof,
                self.binder.tx_options(gas_price),
            )
        except Exception as e:
            logger.warning(
                f"Standard exit for {utxo.utxo_pos} failed ({e}), "
                f"retrying with gas limit {self.exit_gas_limit}"
            )

        return await root_chain.start_standard_exit(
            exit_data.utxo_pos,
            exit_data.txbytes,
            exit_data.proof,
            self.binder.tx_options(gas_price, gas=self.exit_gas_limit),
        )

    async def check_allowance(self, currency: str) -> int:
        """Allowance the bound account has granted the ERC20 vault."""
        account = self.binder.require_account()
        root_chain = self.binder.require_root_chain()
        try:
            vault = await root_chain.get_erc20_vault()
            return await root_chain.get_erc20_allowance(currency, account.address, vault)
        except Exception as e:
            raise AllowanceCheckError("Error checking deposit allowance for ERC20") from e

    async def set_allowance(self, amount: int, currency: str, gas_price: int) -> TransactionReceipt:
        logger.info(f"Approving {amount} of {currency} for the ERC20 vault")
        return await self.binder.require_root_chain().approve_token(
            currency, int(amount), self.binder.tx_options(gas_price)
        )

    async def reset_allowance(
        self, amount: int, currency: str, gas_price: int
    ) -> TransactionReceipt:
        """
        Set the allowance to zero, then to `amount`.

        Some tokens reject changing a non-zero allowance to another non-zero
        value. The zero approval is mined before the second one is sent.
        """
        root_chain = self.binder.require_root_chain()
        tx_options = self.binder.tx_options(gas_price)

        logger.info(f"Resetting {currency} allowance to zero")
        await root_chain.approve_token(currency, 0, tx_options)

        logger.info(f"Approving {amount} of {currency} for the ERC20 vault")
        return await root_chain.approve_token(currency, int(amount), tx_options)
