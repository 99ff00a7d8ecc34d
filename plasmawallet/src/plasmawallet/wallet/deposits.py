"""
Deposits from the root chain into the child chain.
"""

from __future__ import annotations

from loguru import logger

from plasmacore.constants import ETH_CURRENCY
from plasmacore.transaction import encode_deposit
from plasmawallet.backends.base import TransactionReceipt
from plasmawallet.wallet.account import AccountBinder


class DepositManager:
    def __init__(self, binder: AccountBinder):
        self.binder = binder

    async def deposit_eth(self, amount: int, gas_price: int) -> TransactionReceipt:
        return await self._deposit(int(amount), ETH_CURRENCY, gas_price)

    async def deposit_erc20(self, amount: int, currency: str, gas_price: int) -> TransactionReceipt:
        """Deposit an ERC20 token. The vault must already have enough allowance."""
        return await self._deposit(int(amount), currency.lower(), gas_price)

    async def _deposit(self, amount: int, currency: str, gas_price: int) -> TransactionReceipt:
        account = self.binder.require_account()
        deposit_tx = encode_deposit(account.address, amount, currency)
        logger.info(f"Depositing {amount} of {currency} from {account.address}")
        return await self.binder.require_root_chain().deposit(
            deposit_tx, amount, currency, self.binder.tx_options(gas_price)
        )
