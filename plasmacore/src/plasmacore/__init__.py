"""
plasmacore - Core library for the plasma bridge wallet

Provides protocol constants, data models, finality math and
payment transaction encoding. Performs no I/O.
"""

__version__ = "0.3.0"

from plasmacore.constants import (
    DEPOSIT_FINALITY,
    ETH_CURRENCY,
    EXIT_FINALITY,
    FEE_SCHEDULE_VERSION,
    MERGE_METADATA,
    NULL_METADATA,
)
from plasmacore.finality import finality_status, pending_percentage
from plasmacore.models import (
    ExitData,
    ExitQueue,
    ExitQueueEntry,
    FeeInfo,
    Payment,
    TokenInfo,
    TransactionBody,
    TxStatus,
    Utxo,
    decode_utxo_pos,
    encode_utxo_pos,
)
from plasmacore.transaction import (
    InsufficientFunds,
    TransactionBuildError,
    TransactionLimitExceeded,
    UnsupportedFeeToken,
    build_signed_transaction,
    create_merge_body,
    create_transaction_body,
    decode_metadata,
    encode_deposit,
    encode_metadata,
    find_fee,
    get_typed_data,
    typed_data_hash,
)

__all__ = [
    "DEPOSIT_FINALITY",
    "ETH_CURRENCY",
    "EXIT_FINALITY",
    "ExitData",
    "ExitQueue",
    "ExitQueueEntry",
    "FEE_SCHEDULE_VERSION",
    "FeeInfo",
    "InsufficientFunds",
    "MERGE_METADATA",
    "NULL_METADATA",
    "Payment",
    "TokenInfo",
    "TransactionBody",
    "TransactionBuildError",
    "TransactionLimitExceeded",
    "TxStatus",
    "UnsupportedFeeToken",
    "Utxo",
    "build_signed_transaction",
    "create_merge_body",
    "create_transaction_body",
    "decode_metadata",
    "decode_utxo_pos",
    "encode_deposit",
    "encode_metadata",
    "encode_utxo_pos",
    "finality_status",
    "find_fee",
    "get_typed_data",
    "pending_percentage",
    "typed_data_hash",
]
