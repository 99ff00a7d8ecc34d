"""
Gas price estimation with fallbacks.

Sources are tried in order and the first one that answers wins:
1. Gas station service (reports tenths of a gwei)
2. The bound provider's own eth_gasPrice oracle
3. Hardcoded defaults
"""

from __future__ import annotations

import httpx
from eth_utils import to_int
from loguru import logger

from plasmacore.constants import (
    DEFAULT_FAST_GAS_PRICE,
    DEFAULT_NORMAL_GAS_PRICE,
    DEFAULT_SLOW_GAS_PRICE,
    GAS_STATION_SCALE,
    GAS_STATION_URL,
    MIN_SLOW_GAS_PRICE,
)
from plasmawallet.wallet.account import AccountBinder
from plasmawallet.wallet.models import GasEstimate

# Timeout for the gas station request (seconds)
DEFAULT_GAS_STATION_TIMEOUT = 10.0


class GasOracle:
    def __init__(
        self,
        binder: AccountBinder,
        gas_station_url: str = GAS_STATION_URL,
        timeout: float = DEFAULT_GAS_STATION_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ):
        self.binder = binder
        self.gas_station_url = gas_station_url
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def estimate(self) -> GasEstimate:
        try:
            return await self._from_gas_station()
        except Exception as e:
            logger.debug(f"Gas station unavailable: {e}")

        try:
            return await self._from_provider()
        except Exception as e:
            logger.debug(f"Provider gas price oracle unavailable: {e}")

        logger.info("Using default gas prices")
        return GasEstimate(
            slow=DEFAULT_SLOW_GAS_PRICE,
            normal=DEFAULT_NORMAL_GAS_PRICE,
            fast=DEFAULT_FAST_GAS_PRICE,
        )

    async def _from_gas_station(self) -> GasEstimate:
        response = await self.client.get(self.gas_station_url)
        response.raise_for_status()
        data = response.json()

        estimate = GasEstimate(
            slow=round(data["safeLow"] * GAS_STATION_SCALE),
            normal=round(data["average"] * GAS_STATION_SCALE),
            fast=round(data["fast"] * GAS_STATION_SCALE),
        )
        logger.debug(f"Gas station estimate: {estimate}")
        return estimate

    async def _from_provider(self) -> GasEstimate:
        result = await self.binder.require_provider().send_rpc("eth_gasPrice", [])
        median = to_int(hexstr=result) if isinstance(result, str) else int(result)

        estimate = GasEstimate(
            slow=max(median // 2, MIN_SLOW_GAS_PRICE),
            normal=median,
            fast=median * 5,
        )
        logger.debug(f"Provider oracle estimate: {estimate}")
        return estimate

    async def close(self) -> None:
        await self.client.aclose()
