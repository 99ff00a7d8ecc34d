"""
Tests for the injected and remote session signing providers.
"""

import json

import httpx
import pytest
from conftest import ALICE, BOB
from hexbytes import HexBytes

from plasmawallet.backends.rootchain import ProviderBridge
from plasmawallet.errors import (
    InvalidRpcResponse,
    MethodNotSupported,
    ProviderRpcError,
    ProviderUnavailable,
)
from plasmawallet.providers.base import AccountsChanged, SessionClosed, parse_rpc_response
from plasmawallet.providers.injected import InjectedProvider
from plasmawallet.providers.remote_session import RemoteSessionProvider


def rpc_client(results: dict) -> httpx.AsyncClient:
    """Mock JSON-RPC endpoint. ProviderRpcError values are answered as RPC errors."""

    def handler(request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        value = results.get(payload["method"], MethodNotSupported("", -32601, "Method not found"))
        if isinstance(value, ProviderRpcError):
            error = {"code": value.code, "message": value.message}
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "error": error})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": value})

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class Recorder:
    def __init__(self):
        self.events = []

    async def __call__(self, event) -> None:
        self.events.append(event)


class TestParseRpcResponse:
    def test_result(self) -> None:
        assert parse_rpc_response("eth_chainId", {"id": 1, "result": "0x1"}) == "0x1"

    def test_method_not_found(self) -> None:
        with pytest.raises(MethodNotSupported):
            parse_rpc_response("eth_sign", {"error": {"code": -32601, "message": "nope"}})

    def test_method_not_found_by_message(self) -> None:
        with pytest.raises(MethodNotSupported):
            parse_rpc_response(
                "eth_signTypedData_v3",
                {"error": {"code": -32000, "message": "The method eth_signTypedData_v3 does not exist"}},
            )

    def test_other_error(self) -> None:
        with pytest.raises(ProviderRpcError) as exc_info:
            parse_rpc_response("eth_sign", {"error": {"code": 4001, "message": "User rejected"}})
        assert not isinstance(exc_info.value, MethodNotSupported)
        assert exc_info.value.code == 4001

    def test_invalid_response(self) -> None:
        with pytest.raises(InvalidRpcResponse):
            parse_rpc_response("eth_sign", "garbage")


class TestInjectedProvider:
    @pytest.mark.asyncio
    async def test_activate(self) -> None:
        provider = InjectedProvider(
            "http://wallet.test", client=rpc_client({"eth_requestAccounts": [ALICE]})
        )

        await provider.activate()

        assert provider._accounts == [ALICE]
        await provider.close()

    @pytest.mark.asyncio
    async def test_activate_falls_back_to_eth_accounts(self) -> None:
        provider = InjectedProvider("http://wallet.test", client=rpc_client({"eth_accounts": [ALICE]}))

        await provider.activate()

        assert provider._accounts == [ALICE]
        await provider.close()

    @pytest.mark.asyncio
    async def test_activate_without_accounts(self) -> None:
        provider = InjectedProvider(
            "http://wallet.test", client=rpc_client({"eth_requestAccounts": []})
        )

        with pytest.raises(ProviderUnavailable):
            await provider.activate()
        await provider.close()

    @pytest.mark.asyncio
    async def test_activate_unreachable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        provider = InjectedProvider(
            "http://wallet.test", client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
        )

        with pytest.raises(ProviderUnavailable):
            await provider.activate()
        await provider.close()

    @pytest.mark.asyncio
    async def test_network_id(self) -> None:
        provider = InjectedProvider("http://wallet.test", client=rpc_client({"eth_chainId": "0x4"}))
        assert await provider.get_network_id() == 4
        await provider.close()

    @pytest.mark.asyncio
    async def test_poll_emits_account_change(self) -> None:
        results = {"eth_requestAccounts": [ALICE], "eth_accounts": [ALICE]}
        provider = InjectedProvider("http://wallet.test", poll_interval=60, client=rpc_client(results))
        recorder = Recorder()
        provider.subscribe(recorder)
        await provider.activate()

        await provider._poll()
        assert recorder.events == []

        results["eth_accounts"] = [BOB]
        await provider._poll()
        assert recorder.events == [AccountsChanged((BOB,))]
        await provider.close()

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_stop_others(self) -> None:
        provider = InjectedProvider("http://wallet.test", client=rpc_client({}))
        recorder = Recorder()

        async def failing(event) -> None:
            raise RuntimeError("boom")

        provider.subscribe(failing)
        provider.subscribe(recorder)
        await provider.emit(SessionClosed("test"))

        assert recorder.events == [SessionClosed("test")]
        await provider.close()


class FakeBridge:
    """Session bridge plus RPC proxy behind one mock transport."""

    def __init__(self, statuses: list[str], accounts: list[str] | None = None):
        self.statuses = statuses
        self.accounts = accounts if accounts is not None else [ALICE]
        self.requests: list[dict] = []
        self.proxied: list[dict] = []
        self.deleted = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if request.url.host == "proxy.test":
            payload = json.loads(request.content)
            self.proxied.append(payload)
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": "0x10"})
        if path == "/v1/sessions" and request.method == "POST":
            return httpx.Response(200, json={"id": "s1", "uri": "wc:s1@1"})
        if path == "/v1/sessions/s1" and request.method == "GET":
            status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
            return httpx.Response(
                200, json={"status": status, "accounts": self.accounts, "chainId": 1}
            )
        if path == "/v1/sessions/s1" and request.method == "DELETE":
            self.deleted = True
            return httpx.Response(204)
        if path == "/v1/sessions/s1/requests":
            payload = json.loads(request.content)
            self.requests.append(payload)
            return httpx.Response(
                200, json={"jsonrpc": "2.0", "id": payload["id"], "result": "0x" + "5e" * 65}
            )
        return httpx.Response(404)

    def provider(self, poll_interval: float = 60) -> RemoteSessionProvider:
        return RemoteSessionProvider(
            bridge_url="http://bridge.test",
            rpc_url="http://proxy.test",
            chain_id=1,
            poll_interval=poll_interval,
            client=httpx.AsyncClient(transport=httpx.MockTransport(self.handler)),
        )


class TestRemoteSessionProvider:
    @pytest.mark.asyncio
    async def test_activate_waits_for_approval(self) -> None:
        bridge = FakeBridge(["pending", "approved"])
        provider = bridge.provider(poll_interval=0.01)

        await provider.activate()

        assert provider.session_id == "s1"
        assert provider.pairing_uri == "wc:s1@1"
        assert await provider.get_accounts() == [ALICE]
        assert await provider.get_network_id() == 1
        await provider.close()
        assert bridge.deleted

    @pytest.mark.asyncio
    async def test_rejected_session(self) -> None:
        provider = FakeBridge(["rejected"]).provider()

        with pytest.raises(ProviderUnavailable):
            await provider.activate()
        await provider.close()

    @pytest.mark.asyncio
    async def test_approved_without_accounts(self) -> None:
        provider = FakeBridge(["approved"], accounts=[]).provider()

        with pytest.raises(ProviderUnavailable):
            await provider.activate()
        await provider.close()

    @pytest.mark.asyncio
    async def test_routes_signing_through_session(self) -> None:
        bridge = FakeBridge(["approved"])
        provider = bridge.provider()
        await provider.activate()

        signature = await provider.send_rpc("eth_signTypedData", [ALICE, {"message": {}}])
        block = await provider.send_rpc("eth_blockNumber", [])

        assert signature == "0x" + "5e" * 65
        assert [r["method"] for r in bridge.requests] == ["eth_signTypedData"]
        assert block == "0x10"
        assert [p["method"] for p in bridge.proxied] == ["eth_blockNumber"]
        await provider.close()

    @pytest.mark.asyncio
    async def test_poll_emits_session_closed(self) -> None:
        bridge = FakeBridge(["approved", "closed"])
        provider = bridge.provider()
        recorder = Recorder()
        provider.subscribe(recorder)
        await provider.activate()

        await provider._poll()

        assert recorder.events == [SessionClosed("closed")]
        with pytest.raises(ProviderUnavailable):
            await provider.send_rpc("eth_sign", [ALICE, "0x00"])
        await provider.close()
        assert not bridge.deleted

    @pytest.mark.asyncio
    async def test_poll_emits_account_change(self) -> None:
        bridge = FakeBridge(["approved"])
        provider = bridge.provider()
        recorder = Recorder()
        provider.subscribe(recorder)
        await provider.activate()

        bridge.accounts = [BOB]
        await provider._poll()

        assert recorder.events == [AccountsChanged((BOB,))]
        await provider.close()


class TestProviderBridge:
    @pytest.mark.asyncio
    async def test_forwards_requests(self, provider) -> None:
        provider.send_rpc.return_value = "0x10"

        response = await ProviderBridge(provider).make_request("eth_blockNumber", [])

        provider.send_rpc.assert_awaited_once_with("eth_blockNumber", [])
        assert response["result"] == "0x10"

    @pytest.mark.asyncio
    async def test_rpc_errors_become_error_responses(self, provider) -> None:
        provider.send_rpc.side_effect = ProviderRpcError("eth_call", 3, "execution reverted")

        response = await ProviderBridge(provider).make_request("eth_call", [{}, "latest"])

        assert response["error"] == {"code": 3, "message": "execution reverted"}

    @pytest.mark.asyncio
    async def test_bytes_params_are_sent_as_hex(self, provider) -> None:
        provider.send_rpc.return_value = None

        await ProviderBridge(provider).make_request(
            "eth_getTransactionReceipt", [HexBytes("0x" + "ab" * 32)]
        )

        provider.send_rpc.assert_awaited_once_with("eth_getTransactionReceipt", ["0x" + "ab" * 32])
