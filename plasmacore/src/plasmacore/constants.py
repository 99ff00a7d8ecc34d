"""
Plasma protocol and bridge constants.

Finality thresholds follow the watcher's own defaults:
- DEPOSIT_FINALITY: root chain confirmations before a deposit is spendable
- EXIT_FINALITY: root chain confirmations before a started exit is final
"""

from __future__ import annotations

# The root chain's native asset is addressed as the zero address everywhere
ETH_CURRENCY = "0x0000000000000000000000000000000000000000"
NULL_ADDRESS = ETH_CURRENCY

# 32 zero bytes, hex encoded
NULL_METADATA = "0x" + "00" * 32

# Vault ids registered in the plasma framework
ETH_VAULT_ID = 1
ERC20_VAULT_ID = 2

# Payment transaction v1
PAYMENT_TX_TYPE = 1
PAYMENT_OUTPUT_TYPE = 1
MAX_INPUTS = 4
MAX_OUTPUTS = 4

# utxo_pos = blknum * BLOCK_OFFSET + txindex * TX_OFFSET + oindex
BLOCK_OFFSET = 1_000_000_000
TX_OFFSET = 10_000

# Confirmations required on the root chain
DEPOSIT_FINALITY = 10
EXIT_FINALITY = 12

# The fee schedule is keyed by transaction type
FEE_SCHEDULE_VERSION = "1"

MERGE_METADATA = "Merge UTXOs"

# Explicit gas limit used when the provider cannot estimate a standard exit
EXIT_GAS_LIMIT = 6_000_000

# Gas station reports prices in tenths of a gwei
GAS_STATION_SCALE = 100_000_000
GAS_STATION_URL = "https://ethgasstation.info/json/ethgasAPI.json"

# Provider oracle floor and hardcoded fallbacks (wei)
MIN_SLOW_GAS_PRICE = 1_000_000_000
DEFAULT_SLOW_GAS_PRICE = 1_000_000_000
DEFAULT_NORMAL_GAS_PRICE = 2_000_000_000
DEFAULT_FAST_GAS_PRICE = 10_000_000_000

# EIP-712 domain of the plasma framework
DOMAIN_NAME = "OMG Network"
DOMAIN_VERSION = "1"
DOMAIN_SALT = "0xfad5c7f626d80f9256ef01929f3beb96e058b8b4b0e3fe52d84f054c0e2a7a83"

# Priority queue entries pack (exitable_at << 214) | (tx_pos << 160) | exit_id
EXIT_PRIORITY_EXITABLE_AT_SHIFT = 214
EXIT_ID_MASK = (1 << 160) - 1
