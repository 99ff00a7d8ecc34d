"""
Account binding.

Activates a signing provider, derives the active account and network,
and reacts to provider events. Every other wallet component reads the
bound account and root chain handle from here.
"""

from __future__ import annotations

import functools
import os
import sys
from collections.abc import Callable

from loguru import logger

from plasmawallet.backends.base import RootChain, TxOptions
from plasmawallet.backends.rootchain import Web3RootChain
from plasmawallet.config import PlasmaConfig
from plasmawallet.errors import (
    AccountDivergence,
    NetworkMismatch,
    NotBoundError,
    ProviderRpcError,
    ProviderUnavailable,
)
from plasmawallet.providers.base import (
    AccountsChanged,
    ProviderEvent,
    SessionClosed,
    SigningProvider,
)
from plasmawallet.providers.injected import InjectedProvider
from plasmawallet.providers.remote_session import RemoteSessionProvider
from plasmawallet.wallet.models import Account

Reloader = Callable[[str], None]
ProviderFactory = Callable[[], SigningProvider]
RootChainFactory = Callable[[SigningProvider], RootChain]


def reload_process(reason: str) -> None:
    """Replace the running process with a fresh copy of itself."""
    logger.warning(f"Reloading: {reason}")
    os.execv(sys.executable, [sys.executable, *sys.argv])


class AccountBinder:
    def __init__(
        self,
        config: PlasmaConfig,
        in_page_factory: ProviderFactory | None = None,
        remote_session_factory: ProviderFactory | None = None,
        root_chain_factory: RootChainFactory | None = None,
        reloader: Reloader = reload_process,
    ):
        self.config = config
        self.reload = reloader

        self._in_page_factory = in_page_factory or (
            lambda: InjectedProvider(
                rpc_url=config.rpc_url,
                poll_interval=config.account_poll_interval,
                timeout=config.request_timeout,
            )
        )
        self._remote_session_factory = remote_session_factory or (
            lambda: RemoteSessionProvider(
                bridge_url=config.session_bridge_url,
                rpc_url=config.rpc_proxy_url,
                chain_id=config.expected_network_id,
                poll_interval=config.account_poll_interval,
                timeout=config.request_timeout,
            )
        )
        self._root_chain_factory = root_chain_factory or (
            lambda provider: Web3RootChain(
                provider, config.plasma_address, receipt_timeout=config.receipt_timeout
            )
        )

        self.provider: SigningProvider | None = None
        self.account: Account | None = None
        self.root_chain: RootChain | None = None

    async def bind_in_page_provider(self) -> bool:
        return await self._bind(self._in_page_factory())

    async def bind_remote_session_provider(self) -> bool:
        return await self._bind(self._remote_session_factory())

    async def _bind(self, provider: SigningProvider) -> bool:
        try:
            await provider.activate()
        except (ProviderUnavailable, ProviderRpcError) as e:
            logger.warning(f"Failed to enable {provider.kind.value} provider: {e}")
            await provider.close()
            return False

        if self.provider is not None and self.provider is not provider:
            await self.provider.close()

        self.provider = provider
        self.account = None
        self.root_chain = None
        provider.subscribe(functools.partial(handle_provider_event, self))
        logger.info(f"Bound {provider.kind.value} provider")
        return True

    async def initialize_account(self) -> bool:
        """
        Read the provider's account and network.

        Returns True only when the provider is on the configured network.
        """
        if self.provider is None:
            logger.error("No provider bound, call a bind method first")
            return False
        provider = self.provider

        try:
            accounts = await provider.get_accounts()
            network_id = await provider.get_network_id()
            if not accounts:
                logger.error("Provider exposes no accounts")
                return False
            root_chain = self._root_chain_factory(provider)
        except Exception as e:
            logger.error(f"Failed to initialize account: {e}")
            return False

        self.root_chain = root_chain
        self.account = Account(
            address=accounts[0],
            network_id=network_id,
            provider_kind=provider.kind,
        )

        if network_id != self.config.expected_network_id:
            logger.error(str(NetworkMismatch(self.config.expected_network_id, network_id)))
            return False

        logger.info(f"Account {self.account.address} bound on network {network_id}")
        return True

    def require_account(self) -> Account:
        if self.account is None:
            raise NotBoundError("No account bound")
        return self.account

    def require_provider(self) -> SigningProvider:
        if self.provider is None:
            raise NotBoundError("No signing provider bound")
        return self.provider

    def require_root_chain(self) -> RootChain:
        if self.root_chain is None:
            raise NotBoundError("Root chain not initialized")
        return self.root_chain

    def tx_options(self, gas_price: int, gas: int | None = None) -> TxOptions:
        return TxOptions(
            from_address=self.require_account().address, gas_price=int(gas_price), gas=gas
        )

    async def close(self) -> None:
        if self.root_chain is not None:
            await self.root_chain.close()
        if self.provider is not None:
            await self.provider.close()


async def handle_provider_event(binder: AccountBinder, event: ProviderEvent) -> None:
    """
    React to an asynchronous provider event.

    A switched account or a closed session cannot be migrated in place:
    the process is reloaded instead.
    """
    if isinstance(event, SessionClosed):
        logger.info(f"Provider session closed: {event.reason or 'no reason given'}")
        binder.reload("provider session closed")
        return

    if isinstance(event, AccountsChanged):
        reported = event.accounts[0] if event.accounts else None
        if reported is None or binder.account is None:
            return
        if not binder.account.matches(reported):
            divergence = AccountDivergence(
                f"Provider switched account from {binder.account.address} to {reported}"
            )
            logger.warning(str(divergence))
            binder.reload(str(divergence))
