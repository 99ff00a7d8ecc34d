"""
Payment transaction assembly and encoding.

Builds the unsigned payment transaction from:
- The sender's UTXOs (consumed in the order given)
- The requested payments and the fee
- Optional 32 byte metadata

and produces the EIP-712 typed data to sign plus the RLP encoding
submitted to the child chain.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

import rlp
from eth_account.messages import encode_typed_data
from eth_utils import keccak, to_bytes

from plasmacore.constants import (
    DOMAIN_NAME,
    DOMAIN_SALT,
    DOMAIN_VERSION,
    ETH_CURRENCY,
    MAX_INPUTS,
    MAX_OUTPUTS,
    NULL_ADDRESS,
    NULL_METADATA,
    PAYMENT_OUTPUT_TYPE,
    PAYMENT_TX_TYPE,
)
from plasmacore.models import FeeInfo, Payment, TransactionBody, Utxo


class TransactionBuildError(Exception):
    pass


class UnsupportedFeeToken(TransactionBuildError):
    def __init__(self, currency: str):
        super().__init__(f"{currency} is not a supported fee token.")
        self.currency = currency


class InsufficientFunds(TransactionBuildError):
    def __init__(self, currency: str, needed: int, available: int):
        super().__init__(f"Insufficient funds in {currency}: need {needed}, have {available}")
        self.currency = currency
        self.needed = needed
        self.available = available


class TransactionLimitExceeded(TransactionBuildError):
    pass


def _hex_bytes(value: str) -> bytes | None:
    if not value.startswith("0x"):
        return None
    try:
        return to_bytes(hexstr=value)
    except ValueError:
        return None


def encode_metadata(text: str) -> str:
    """Left-pad metadata into a 32 byte hex string.

    0x-prefixed hex is taken as raw bytes, anything else as UTF-8 text.
    """
    raw = _hex_bytes(text)
    if raw is None:
        raw = text.encode("utf-8")
    if len(raw) > 32:
        raise ValueError(f"Metadata exceeds 32 bytes: {len(raw)}")
    return "0x" + raw.hex().rjust(64, "0")


def decode_metadata(metadata: str | None) -> str:
    if not metadata:
        return ""
    raw = bytes.fromhex(metadata.removeprefix("0x")).lstrip(b"\x00")
    return raw.decode("utf-8", errors="replace")


def find_fee(fees: Iterable[FeeInfo], currency: str) -> FeeInfo:
    """Look up the fee for `currency` in a fee schedule."""
    wanted = currency.lower()
    for fee in fees:
        if fee.currency == wanted:
            return fee
    raise UnsupportedFeeToken(currency)


def _check_limits(inputs: Sequence[Utxo], outputs: Sequence[Payment]) -> None:
    if not inputs:
        raise TransactionBuildError("Transaction needs at least one input")
    if len(inputs) > MAX_INPUTS:
        raise TransactionLimitExceeded(f"Too many inputs: {len(inputs)} > {MAX_INPUTS}")
    if len(outputs) > MAX_OUTPUTS:
        raise TransactionLimitExceeded(f"Too many outputs: {len(outputs)} > {MAX_OUTPUTS}")


def create_transaction_body(
    from_address: str,
    from_utxos: Sequence[Utxo],
    payments: Sequence[Payment],
    fee: Payment,
    metadata: str = NULL_METADATA,
) -> TransactionBody:
    """
    Assemble a payment transaction.

    For every currency needed by the payments and the fee, UTXOs are taken
    in the order given until the amount is covered. Any surplus goes back
    to `from_address` as a change output.

    Raises:
        InsufficientFunds: If a currency cannot be covered
        TransactionLimitExceeded: If the result has too many inputs or outputs
    """
    owner = from_address.lower()

    needed: dict[str, int] = {}
    for payment in payments:
        needed[payment.currency] = needed.get(payment.currency, 0) + payment.amount
    if fee.amount > 0:
        needed[fee.currency] = needed.get(fee.currency, 0) + fee.amount

    inputs: list[Utxo] = []
    change: list[Payment] = []

    for currency, target in needed.items():
        total = 0
        for utxo in from_utxos:
            if total >= target:
                break
            if utxo.currency != currency:
                continue
            inputs.append(utxo)
            total += utxo.amount

        if total < target:
            raise InsufficientFunds(currency, target, total)
        if total > target:
            change.append(Payment(owner=owner, currency=currency, amount=total - target))

    outputs = [*payments, *change]
    _check_limits(inputs, outputs)

    return TransactionBody(
        inputs=tuple(inputs),
        outputs=tuple(outputs),
        fee=fee,
        metadata=encode_metadata(metadata),
    )


def create_merge_body(owner: str, utxos: Sequence[Utxo], metadata: str) -> TransactionBody:
    """
    Consolidate `utxos` into one output paying their exact sum back to `owner`.

    All inputs are consumed and the fee is zero.
    """
    if not utxos:
        raise ValueError("No UTXOs to merge")
    currencies = {utxo.currency for utxo in utxos}
    if len(currencies) != 1:
        raise ValueError(f"Cannot merge UTXOs of different currencies: {sorted(currencies)}")

    payment = Payment(
        owner=owner,
        currency=utxos[0].currency,
        amount=sum(utxo.amount for utxo in utxos),
    )
    _check_limits(utxos, [payment])

    return TransactionBody(
        inputs=tuple(utxos),
        outputs=(payment,),
        fee=Payment(owner=owner, currency=ETH_CURRENCY, amount=0),
        metadata=encode_metadata(metadata),
    )


_EIP712_TYPES: dict[str, list[dict[str, str]]] = {
    "EIP712Domain": [
        {"name": "name", "type": "string"},
        {"name": "version", "type": "string"},
        {"name": "verifyingContract", "type": "address"},
        {"name": "salt", "type": "bytes32"},
    ],
    "Transaction": [
        {"name": "txType", "type": "uint256"},
        *({"name": f"input{i}", "type": "Input"} for i in range(MAX_INPUTS)),
        *({"name": f"output{i}", "type": "Output"} for i in range(MAX_OUTPUTS)),
        {"name": "txData", "type": "uint256"},
        {"name": "metadata", "type": "bytes32"},
    ],
    "Input": [
        {"name": "blknum", "type": "uint256"},
        {"name": "txindex", "type": "uint256"},
        {"name": "oindex", "type": "uint256"},
    ],
    "Output": [
        {"name": "outputType", "type": "uint256"},
        {"name": "outputGuard", "type": "bytes20"},
        {"name": "currency", "type": "address"},
        {"name": "amount", "type": "uint256"},
    ],
}

_EMPTY_INPUT = {"blknum": 0, "txindex": 0, "oindex": 0}
_EMPTY_OUTPUT = {"outputType": 0, "outputGuard": NULL_ADDRESS, "currency": NULL_ADDRESS, "amount": 0}


def get_typed_data(body: TransactionBody, verifying_contract: str) -> dict[str, Any]:
    """Build the EIP-712 typed data a provider signs for `body`."""
    message: dict[str, Any] = {"txType": body.tx_type}

    for i in range(MAX_INPUTS):
        if i < len(body.inputs):
            utxo = body.inputs[i]
            message[f"input{i}"] = {
                "blknum": utxo.blknum,
                "txindex": utxo.txindex,
                "oindex": utxo.oindex,
            }
        else:
            message[f"input{i}"] = dict(_EMPTY_INPUT)

    for i in range(MAX_OUTPUTS):
        if i < len(body.outputs):
            output = body.outputs[i]
            message[f"output{i}"] = {
                "outputType": PAYMENT_OUTPUT_TYPE,
                "outputGuard": output.owner,
                "currency": output.currency,
                "amount": output.amount,
            }
        else:
            message[f"output{i}"] = dict(_EMPTY_OUTPUT)

    message["txData"] = body.tx_data
    message["metadata"] = body.metadata

    return {
        "types": _EIP712_TYPES,
        "domain": {
            "name": DOMAIN_NAME,
            "version": DOMAIN_VERSION,
            "verifyingContract": verifying_contract.lower(),
            "salt": DOMAIN_SALT,
        },
        "primaryType": "Transaction",
        "message": message,
    }


def typed_data_hash(typed_data: dict[str, Any]) -> bytes:
    """EIP-712 digest of `typed_data`: keccak256(0x19 || 0x01 || domainSeparator || hashStruct)."""
    signable = encode_typed_data(full_message=typed_data)
    return keccak(b"\x19" + signable.version + signable.header + signable.body)


def _encode_input(utxo: Utxo) -> bytes:
    return utxo.utxo_pos.to_bytes(32, "big")


def _encode_output(output: Payment) -> list[Any]:
    return [
        PAYMENT_OUTPUT_TYPE,
        [to_bytes(hexstr=output.owner), to_bytes(hexstr=output.currency), output.amount],
    ]


def encode_transaction(body: TransactionBody, signatures: Sequence[str] | None = None) -> bytes:
    """RLP encode `body`, prefixed with the signature list when given."""
    fields: list[Any] = [
        body.tx_type,
        [_encode_input(utxo) for utxo in body.inputs],
        [_encode_output(output) for output in body.outputs],
        body.tx_data,
        to_bytes(hexstr=body.metadata),
    ]
    if signatures is not None:
        fields.insert(0, [to_bytes(hexstr=sig) for sig in signatures])
    return rlp.encode(fields)


def build_signed_transaction(body: TransactionBody, signatures: Sequence[str]) -> str:
    if len(signatures) != len(body.inputs):
        raise TransactionBuildError(
            f"Expected {len(body.inputs)} signatures, got {len(signatures)}"
        )
    return "0x" + encode_transaction(body, signatures).hex()


def encode_deposit(owner: str, amount: int, currency: str = ETH_CURRENCY) -> str:
    """RLP encoded deposit transaction: no inputs, one output to `owner`."""
    output = Payment(owner=owner, currency=currency, amount=amount)
    encoded = rlp.encode(
        [
            PAYMENT_TX_TYPE,
            [],
            [_encode_output(output)],
            0,
            to_bytes(hexstr=NULL_METADATA),
        ]
    )
    return "0x" + encoded.hex()
