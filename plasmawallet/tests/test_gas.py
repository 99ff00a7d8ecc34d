"""
Tests for gas price estimation.
"""

import httpx
import pytest

from plasmawallet.errors import ProviderRpcError
from plasmawallet.wallet.gas import GasOracle


def station_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def station_down(request: httpx.Request) -> httpx.Response:
    return httpx.Response(503)


class TestGasOracle:
    @pytest.mark.asyncio
    async def test_gas_station_estimate(self, binder, provider) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"safeLow": 10, "average": 20.5, "fast": 40})

        oracle = GasOracle(binder, "https://gas.example/api.json", client=station_client(handler))

        estimate = await oracle.estimate()

        assert estimate.slow == 1_000_000_000
        assert estimate.normal == 2_050_000_000
        assert estimate.fast == 4_000_000_000
        provider.send_rpc.assert_not_awaited()
        await oracle.close()

    @pytest.mark.asyncio
    async def test_falls_back_to_provider(self, binder, provider) -> None:
        provider.send_rpc.return_value = hex(4_000_000_000)
        oracle = GasOracle(binder, client=station_client(station_down))

        estimate = await oracle.estimate()

        provider.send_rpc.assert_awaited_once_with("eth_gasPrice", [])
        assert estimate.slow == 2_000_000_000
        assert estimate.normal == 4_000_000_000
        assert estimate.fast == 20_000_000_000
        await oracle.close()

    @pytest.mark.asyncio
    async def test_provider_slow_price_floor(self, binder, provider) -> None:
        provider.send_rpc.return_value = hex(1_000_000_000)
        oracle = GasOracle(binder, client=station_client(station_down))

        estimate = await oracle.estimate()

        assert estimate.slow == 1_000_000_000
        assert estimate.normal == 1_000_000_000
        assert estimate.fast == 5_000_000_000
        await oracle.close()

    @pytest.mark.asyncio
    async def test_malformed_station_response_falls_back(self, binder, provider) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"unexpected": True})

        provider.send_rpc.return_value = hex(3_000_000_000)
        oracle = GasOracle(binder, client=station_client(handler))

        estimate = await oracle.estimate()

        assert estimate.normal == 3_000_000_000
        await oracle.close()

    @pytest.mark.asyncio
    async def test_defaults_when_everything_fails(self, binder, provider) -> None:
        provider.send_rpc.side_effect = ProviderRpcError("eth_gasPrice", -32000, "unavailable")
        oracle = GasOracle(binder, client=station_client(station_down))

        estimate = await oracle.estimate()

        assert (estimate.slow, estimate.normal, estimate.fast) == (
            1_000_000_000,
            2_000_000_000,
            10_000_000_000,
        )
        await oracle.close()

    @pytest.mark.asyncio
    async def test_defaults_without_provider(self, config) -> None:
        from plasmawallet.wallet.account import AccountBinder

        oracle = GasOracle(AccountBinder(config), client=station_client(station_down))

        estimate = await oracle.estimate()

        assert estimate.normal == 2_000_000_000
        await oracle.close()
