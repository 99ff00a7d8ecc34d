"""
Injected (local) signing provider.

Talks JSON-RPC over HTTP to a wallet running next to the client, such as
a desktop wallet's local RPC endpoint or a node with unlocked accounts.
Account switches in the wallet are picked up by polling eth_accounts.
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from plasmawallet.errors import MethodNotSupported, ProviderRpcError, ProviderUnavailable
from plasmawallet.providers.base import (
    DEFAULT_POLL_INTERVAL,
    DEFAULT_RPC_TIMEOUT,
    AccountsChanged,
    ProviderKind,
    SigningProvider,
    json_rpc_call,
)


class InjectedProvider(SigningProvider):
    kind = ProviderKind.IN_PAGE

    def __init__(
        self,
        rpc_url: str = "http://127.0.0.1:1248",
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        timeout: float = DEFAULT_RPC_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ):
        super().__init__(poll_interval=poll_interval)
        self.rpc_url = rpc_url.rstrip("/")
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self._accounts: list[str] = []

    async def send_rpc(self, method: str, params: list[Any] | None = None) -> Any:
        self._request_id += 1
        try:
            return await json_rpc_call(
                self.client, self.rpc_url, method, params or [], self._request_id
            )
        except httpx.TimeoutException as e:
            logger.error(f"Provider RPC call timed out: {method} - {e}")
            raise
        except httpx.HTTPError as e:
            logger.error(f"Provider RPC call failed: {method} - {e}")
            raise

    async def activate(self) -> None:
        try:
            try:
                accounts = await self.send_rpc("eth_requestAccounts", [])
            except MethodNotSupported:
                # Older wallets expose their accounts without an approval step
                accounts = await self.send_rpc("eth_accounts", [])
        except (httpx.HTTPError, ProviderRpcError) as e:
            raise ProviderUnavailable(f"No injected provider at {self.rpc_url}: {e}") from e

        if not accounts:
            raise ProviderUnavailable(f"Injected provider at {self.rpc_url} exposes no accounts")

        self._accounts = list(accounts)
        logger.info(f"Injected provider enabled at {self.rpc_url}")
        self._start_watching()

    async def _poll(self) -> None:
        accounts = await self.get_accounts()
        if [a.lower() for a in accounts] != [a.lower() for a in self._accounts]:
            logger.debug("Injected provider reported an account change")
            self._accounts = accounts
            await self.emit(AccountsChanged(tuple(accounts)))

    async def close(self) -> None:
        await super().close()
        await self.client.aclose()
