"""
Typed data signing across provider kinds.

Providers differ in which structured-data signing methods they implement.
Signing is an ordered list of strategies: each one either returns a
signature, raises SigningMethodUnsupported to hand over to the next
strategy, or raises anything else to abort.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Any

from loguru import logger
from web3 import Web3

from plasmacore.transaction import typed_data_hash
from plasmawallet.errors import (
    InvalidRpcResponse,
    MethodNotSupported,
    SigningMethodUnsupported,
)
from plasmawallet.providers.base import ProviderKind, SigningProvider
from plasmawallet.wallet.account import AccountBinder


class SigningStrategy(ABC):
    name: str

    @abstractmethod
    async def sign(self, provider: SigningProvider, account: str, typed_data: dict[str, Any]) -> str:
        """Return a hex signature, or raise SigningMethodUnsupported"""

    async def _request(self, provider: SigningProvider, method: str, params: list[Any]) -> str:
        try:
            signature = await provider.send_rpc(method, params)
        except (MethodNotSupported, InvalidRpcResponse) as e:
            raise SigningMethodUnsupported(f"{self.name}: {e}") from e
        if not isinstance(signature, str) or not signature.startswith("0x"):
            raise SigningMethodUnsupported(f"{self.name}: invalid signature {signature!r}")
        return signature


class SessionTypedDataStrategy(SigningStrategy):
    """Structured data signature requested through a remote session."""

    name = "eth_signTypedData"

    async def sign(self, provider: SigningProvider, account: str, typed_data: dict[str, Any]) -> str:
        return await self._request(provider, "eth_signTypedData", [account, typed_data])


class TypedDataV3Strategy(SigningStrategy):
    name = "eth_signTypedData_v3"

    async def sign(self, provider: SigningProvider, account: str, typed_data: dict[str, Any]) -> str:
        return await self._request(
            provider,
            "eth_signTypedData_v3",
            [Web3.to_checksum_address(account), json.dumps(typed_data)],
        )


class HashSignStrategy(SigningStrategy):
    """Plain eth_sign over the EIP-712 digest of the typed data."""

    name = "eth_sign"

    async def sign(self, provider: SigningProvider, account: str, typed_data: dict[str, Any]) -> str:
        digest = typed_data_hash(typed_data)
        return await self._request(
            provider,
            "eth_sign",
            [Web3.to_checksum_address(account), Web3.to_hex(digest)],
        )


def default_strategies(kind: ProviderKind) -> list[SigningStrategy]:
    if kind == ProviderKind.REMOTE_SESSION:
        return [SessionTypedDataStrategy()]
    return [TypedDataV3Strategy(), HashSignStrategy()]


class SigningAdapter:
    """Produces a signature valid for a typed payload, best method first."""

    def __init__(
        self,
        binder: AccountBinder,
        strategies: dict[ProviderKind, list[SigningStrategy]] | None = None,
    ):
        self.binder = binder
        self._strategies = strategies or {}

    def strategies_for(self, kind: ProviderKind) -> list[SigningStrategy]:
        return self._strategies.get(kind) or default_strategies(kind)

    async def sign(self, typed_data: dict[str, Any]) -> str:
        provider = self.binder.require_provider()
        account = self.binder.require_account().address

        for strategy in self.strategies_for(provider.kind):
            try:
                signature = await strategy.sign(provider, account, typed_data)
                logger.debug(f"Signed typed data with {strategy.name}")
                return signature
            except SigningMethodUnsupported as e:
                logger.debug(f"Signing method unavailable, trying next: {e}")

        raise SigningMethodUnsupported(
            f"No signing method supported by the {provider.kind.value} provider"
        )
