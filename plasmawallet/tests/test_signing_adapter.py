"""
Tests for typed data signing and its fallback chain.
"""

import json

import pytest
from conftest import ALICE, PLASMA_ADDRESS, make_utxo
from web3 import Web3

from plasmacore.constants import NULL_METADATA
from plasmacore.transaction import create_merge_body, get_typed_data, typed_data_hash
from plasmawallet.errors import (
    InvalidRpcResponse,
    MethodNotSupported,
    ProviderRpcError,
    SigningMethodUnsupported,
)
from plasmawallet.providers.base import ProviderKind
from plasmawallet.wallet.signing import (
    HashSignStrategy,
    SessionTypedDataStrategy,
    SigningAdapter,
    TypedDataV3Strategy,
    default_strategies,
)

SIGNATURE = "0x" + "5e" * 65


@pytest.fixture
def typed_data():
    body = create_merge_body(ALICE, [make_utxo(5), make_utxo(3, txindex=1)], NULL_METADATA)
    return get_typed_data(body, PLASMA_ADDRESS)


class TestDefaultStrategies:
    def test_in_page(self) -> None:
        strategies = default_strategies(ProviderKind.IN_PAGE)
        assert [type(s) for s in strategies] == [TypedDataV3Strategy, HashSignStrategy]

    def test_remote_session(self) -> None:
        strategies = default_strategies(ProviderKind.REMOTE_SESSION)
        assert [type(s) for s in strategies] == [SessionTypedDataStrategy]


class TestSigningAdapter:
    @pytest.mark.asyncio
    async def test_in_page_uses_typed_data_v3(self, binder, provider, typed_data) -> None:
        provider.send_rpc.return_value = SIGNATURE

        assert await SigningAdapter(binder).sign(typed_data) == SIGNATURE

        method, params = provider.send_rpc.call_args.args
        assert method == "eth_signTypedData_v3"
        assert params[0] == Web3.to_checksum_address(ALICE)
        assert json.loads(params[1]) == typed_data

    @pytest.mark.asyncio
    async def test_falls_back_to_hash_signing(self, binder, provider, typed_data) -> None:
        provider.send_rpc.side_effect = [
            MethodNotSupported("eth_signTypedData_v3", -32601, "Method not found"),
            SIGNATURE,
        ]

        assert await SigningAdapter(binder).sign(typed_data) == SIGNATURE

        method, params = provider.send_rpc.call_args.args
        assert method == "eth_sign"
        assert params == [
            Web3.to_checksum_address(ALICE),
            Web3.to_hex(typed_data_hash(typed_data)),
        ]

    @pytest.mark.asyncio
    async def test_invalid_response_falls_back(self, binder, provider, typed_data) -> None:
        provider.send_rpc.side_effect = [
            InvalidRpcResponse("eth_signTypedData_v3", "invalid", "Invalid JSON RPC response"),
            SIGNATURE,
        ]

        assert await SigningAdapter(binder).sign(typed_data) == SIGNATURE
        assert provider.send_rpc.await_count == 2

    @pytest.mark.asyncio
    async def test_non_hex_result_falls_back(self, binder, provider, typed_data) -> None:
        provider.send_rpc.side_effect = [None, SIGNATURE]
        assert await SigningAdapter(binder).sign(typed_data) == SIGNATURE

    @pytest.mark.asyncio
    async def test_all_methods_unsupported(self, binder, provider, typed_data) -> None:
        provider.send_rpc.side_effect = MethodNotSupported("eth_sign", -32601, "Method not found")

        with pytest.raises(SigningMethodUnsupported):
            await SigningAdapter(binder).sign(typed_data)

    @pytest.mark.asyncio
    async def test_user_rejection_is_not_retried(self, binder, provider, typed_data) -> None:
        provider.send_rpc.side_effect = ProviderRpcError(
            "eth_signTypedData_v3", 4001, "User denied message signature"
        )

        with pytest.raises(ProviderRpcError):
            await SigningAdapter(binder).sign(typed_data)
        assert provider.send_rpc.await_count == 1

    @pytest.mark.asyncio
    async def test_remote_session_signs_through_session(
        self, binder, provider, typed_data
    ) -> None:
        provider.kind = ProviderKind.REMOTE_SESSION
        provider.send_rpc.return_value = SIGNATURE

        assert await SigningAdapter(binder).sign(typed_data) == SIGNATURE
        provider.send_rpc.assert_awaited_once_with("eth_signTypedData", [ALICE, typed_data])

    @pytest.mark.asyncio
    async def test_custom_strategies(self, binder, provider, typed_data) -> None:
        provider.send_rpc.return_value = SIGNATURE
        adapter = SigningAdapter(binder, strategies={ProviderKind.IN_PAGE: [HashSignStrategy()]})

        await adapter.sign(typed_data)

        assert provider.send_rpc.call_args.args[0] == "eth_sign"
