"""
Token metadata lookups, cached per currency.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable

from loguru import logger

from plasmacore.constants import ETH_CURRENCY
from plasmacore.models import TokenInfo
from plasmawallet.wallet.account import AccountBinder

ETH_TOKEN = TokenInfo(currency=ETH_CURRENCY, symbol="ETH", name="Ether", decimals=18)


class TokenResolver:
    def __init__(self, binder: AccountBinder):
        self.binder = binder
        self._cache: dict[str, TokenInfo] = {}

    async def get_token(self, currency: str) -> TokenInfo:
        key = currency.lower()
        if key == ETH_CURRENCY:
            return ETH_TOKEN
        if key in self._cache:
            return self._cache[key]

        try:
            symbol, name, decimals = await self.binder.require_root_chain().get_token_metadata(key)
        except Exception as e:
            # Not cached, so the next lookup tries again
            logger.warning(f"Failed to fetch token metadata for {key}: {e}")
            return TokenInfo(currency=key, symbol="UNKNOWN", name="Unknown token", decimals=0)

        token = TokenInfo(currency=key, symbol=symbol, name=name, decimals=decimals)
        self._cache[key] = token
        return token

    async def get_tokens(self, currencies: Iterable[str]) -> dict[str, TokenInfo]:
        """Resolve several currencies concurrently, keyed by lower-case currency."""
        unique = list(dict.fromkeys(c.lower() for c in currencies))
        tokens = await asyncio.gather(*(self.get_token(c) for c in unique))
        return dict(zip(unique, tokens, strict=True))
