"""
Child chain payment transactions.

Builds, signs and submits:
- Transfers: one payment plus change, fee from the published fee schedule
- Merges: consolidation of several UTXOs of one currency, zero fee

Submissions carry no idempotency key. Retrying after a timeout can
resubmit inputs that were already broadcast, so callers should re-fetch
UTXOs before retrying.
"""

from __future__ import annotations

import time
from collections.abc import Sequence

from loguru import logger

from plasmacore.constants import MERGE_METADATA, NULL_METADATA
from plasmacore.models import FeeInfo, Payment, TransactionBody, Utxo
from plasmacore.transaction import (
    build_signed_transaction,
    create_merge_body,
    create_transaction_body,
    encode_metadata,
    find_fee,
    get_typed_data,
)
from plasmawallet.backends.base import ChildChain
from plasmawallet.wallet.account import AccountBinder
from plasmawallet.wallet.models import BlockInfo, SubmittedTransaction
from plasmawallet.wallet.signing import SigningAdapter


def order_utxos(utxos: Sequence[Utxo]) -> list[Utxo]:
    """Largest first, so fewer inputs are consumed. Equal amounts keep their order."""
    return sorted(utxos, key=lambda u: u.amount, reverse=True)


class TransactionBuilder:
    def __init__(
        self,
        binder: AccountBinder,
        child_chain: ChildChain,
        signer: SigningAdapter,
    ):
        self.binder = binder
        self.child_chain = child_chain
        self.signer = signer

    async def fetch_fees(self) -> list[FeeInfo]:
        fees = await self.child_chain.get_fees()
        return fees.get(self.binder.config.fee_schedule_version, [])

    async def transfer(
        self,
        recipient: str,
        amount: int,
        currency: str,
        fee_currency: str,
        metadata: str | None = None,
    ) -> SubmittedTransaction:
        """
        Pay `amount` of `currency` to `recipient`.

        Raises:
            UnsupportedFeeToken: If `fee_currency` is not in the fee schedule
            InsufficientFunds: If the account's UTXOs cannot cover payment and fee
        """
        account = self.binder.require_account()

        utxos = order_utxos(await self.child_chain.get_utxos(account.address))
        fee_info = find_fee(await self.fetch_fees(), fee_currency)

        payment = Payment(owner=recipient, currency=currency, amount=int(amount))
        fee = Payment(owner=account.address, currency=fee_info.currency, amount=fee_info.amount)

        body = create_transaction_body(
            from_address=account.address,
            from_utxos=utxos,
            payments=[payment],
            fee=fee,
            metadata=encode_metadata(metadata) if metadata else NULL_METADATA,
        )
        logger.info(
            f"Transferring {amount} of {payment.currency} to {payment.owner} "
            f"({len(body.inputs)} inputs, fee {fee.amount} {fee.currency})"
        )
        return await self._sign_and_submit(body, metadata)

    async def merge_utxos(self, utxos: Sequence[Utxo]) -> SubmittedTransaction:
        """Consolidate `utxos`, which must share one currency, into a single output."""
        account = self.binder.require_account()

        body = create_merge_body(account.address, utxos, encode_metadata(MERGE_METADATA))
        logger.info(f"Merging {len(body.inputs)} UTXOs of {body.outputs[0].currency}")
        return await self._sign_and_submit(body, MERGE_METADATA)

    async def _sign_and_submit(
        self, body: TransactionBody, metadata: str | None
    ) -> SubmittedTransaction:
        typed_data = get_typed_data(body, self.binder.config.plasma_address)
        signature = await self.signer.sign(typed_data)

        # All inputs belong to the bound account, so one signature covers each of them
        signatures = [signature] * len(body.inputs)

        signed_tx = build_signed_transaction(body, signatures)
        result = await self.child_chain.submit_transaction(signed_tx)

        return SubmittedTransaction(
            txhash=result.txhash,
            blknum=result.blknum,
            txindex=result.txindex,
            block=BlockInfo(blknum=result.blknum, timestamp=int(time.time())),
            metadata=metadata,
        )
