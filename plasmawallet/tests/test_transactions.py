"""
Tests for child chain transfers and merges.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
import rlp
from conftest import ALICE, BOB, TOKEN, make_utxo

from plasmacore.constants import ETH_CURRENCY
from plasmacore.models import FeeInfo, TxStatus
from plasmacore.transaction import InsufficientFunds, UnsupportedFeeToken, decode_metadata
from plasmawallet.backends.base import SubmitResult
from plasmawallet.wallet.transactions import TransactionBuilder, order_utxos

SIGNATURE = "0x" + "5e" * 65


@pytest.fixture
def signer() -> MagicMock:
    mock = MagicMock()
    mock.sign = AsyncMock(return_value=SIGNATURE)
    return mock


@pytest.fixture
def builder(binder, child_chain, signer) -> TransactionBuilder:
    child_chain.get_fees = AsyncMock(
        return_value={
            "1": [FeeInfo(currency=ETH_CURRENCY, amount=10)],
            "2": [FeeInfo(currency=TOKEN, amount=1)],
        }
    )
    child_chain.submit_transaction = AsyncMock(
        return_value=SubmitResult(txhash="0x" + "ab" * 32, blknum=3000, txindex=1)
    )
    return TransactionBuilder(binder, child_chain, signer)


def submitted_tx(child_chain) -> list:
    signed = child_chain.submit_transaction.call_args.args[0]
    return rlp.decode(bytes.fromhex(signed.removeprefix("0x")))


def test_order_utxos_largest_first():
    utxos = [make_utxo(3, txindex=0), make_utxo(5, txindex=1), make_utxo(3, txindex=2)]
    ordered = order_utxos(utxos)
    assert [u.amount for u in ordered] == [5, 3, 3]
    assert [u.txindex for u in ordered] == [1, 0, 2]


class TestFetchFees:
    @pytest.mark.asyncio
    async def test_uses_payment_schedule(self, builder) -> None:
        fees = await builder.fetch_fees()
        assert fees == [FeeInfo(currency=ETH_CURRENCY, amount=10)]

    @pytest.mark.asyncio
    async def test_missing_schedule(self, builder, child_chain) -> None:
        child_chain.get_fees.return_value = {}
        assert await builder.fetch_fees() == []


class TestTransfer:
    @pytest.mark.asyncio
    async def test_transfer(self, builder, child_chain, signer) -> None:
        child_chain.get_utxos = AsyncMock(
            return_value=[make_utxo(20, txindex=0), make_utxo(100, txindex=1)]
        )

        result = await builder.transfer(BOB, 50, ETH_CURRENCY, ETH_CURRENCY, metadata="rent")

        assert result.txhash == "0x" + "ab" * 32
        assert result.blknum == 3000
        assert result.block.blknum == 3000
        assert result.metadata == "rent"
        assert result.status == TxStatus.PENDING
        signer.sign.assert_awaited_once()

        sigs, _, inputs, outputs, _, metadata = submitted_tx(child_chain)
        # Largest UTXO alone covers 50 + 10
        assert len(inputs) == 1
        assert sigs == [bytes.fromhex(SIGNATURE[2:])]
        assert outputs[0][1][0] == bytes.fromhex(BOB[2:])
        assert int.from_bytes(outputs[0][1][2], "big") == 50
        assert int.from_bytes(outputs[1][1][2], "big") == 40
        assert decode_metadata("0x" + metadata.hex()) == "rent"

    @pytest.mark.asyncio
    async def test_signature_per_input(self, builder, child_chain) -> None:
        child_chain.get_utxos = AsyncMock(
            return_value=[make_utxo(30, txindex=i) for i in range(3)]
        )

        await builder.transfer(BOB, 70, ETH_CURRENCY, ETH_CURRENCY)

        sigs, _, inputs, _, _, _ = submitted_tx(child_chain)
        assert len(inputs) == 3
        assert sigs == [bytes.fromhex(SIGNATURE[2:])] * 3

    @pytest.mark.asyncio
    async def test_unsupported_fee_token(self, builder, child_chain, signer) -> None:
        child_chain.get_utxos = AsyncMock(return_value=[make_utxo(100)])

        with pytest.raises(UnsupportedFeeToken) as exc_info:
            await builder.transfer(BOB, 50, ETH_CURRENCY, TOKEN)

        assert str(exc_info.value) == f"{TOKEN} is not a supported fee token."
        signer.sign.assert_not_awaited()
        child_chain.submit_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_insufficient_funds(self, builder, child_chain) -> None:
        child_chain.get_utxos = AsyncMock(return_value=[make_utxo(55)])

        with pytest.raises(InsufficientFunds):
            await builder.transfer(BOB, 50, ETH_CURRENCY, ETH_CURRENCY)
        child_chain.submit_transaction.assert_not_awaited()


class TestMerge:
    @pytest.mark.asyncio
    async def test_merge_utxos(self, builder, child_chain) -> None:
        utxos = [make_utxo(5, txindex=0), make_utxo(3, txindex=1), make_utxo(2, txindex=2)]

        result = await builder.merge_utxos(utxos)

        assert result.metadata == "Merge UTXOs"
        sigs, _, inputs, outputs, _, metadata = submitted_tx(child_chain)
        assert len(inputs) == 3
        assert len(sigs) == 3
        assert len(set(sigs)) == 1
        assert len(outputs) == 1
        assert outputs[0][1][0] == bytes.fromhex(ALICE[2:])
        assert int.from_bytes(outputs[0][1][2], "big") == 10
        assert decode_metadata("0x" + metadata.hex()) == "Merge UTXOs"

    @pytest.mark.asyncio
    async def test_merge_does_not_fetch_fees(self, builder, child_chain) -> None:
        await builder.merge_utxos([make_utxo(5, txindex=0), make_utxo(3, txindex=1)])
        child_chain.get_fees.assert_not_awaited()
