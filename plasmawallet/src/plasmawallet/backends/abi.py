"""
Minimal ABI fragments for the root chain contracts the wallet calls.
"""

from __future__ import annotations

from typing import Any


def _fn(
    name: str,
    inputs: list[tuple[str, str]],
    outputs: list[str] | None = None,
    mutability: str = "view",
) -> dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": "", "type": t} for t in outputs or []],
        "stateMutability": mutability,
    }


def _event(name: str, inputs: list[tuple[str, str, bool]]) -> dict[str, Any]:
    return {
        "type": "event",
        "name": name,
        "anonymous": False,
        "inputs": [{"name": n, "type": t, "indexed": indexed} for n, t, indexed in inputs],
    }


PLASMA_FRAMEWORK_ABI: list[dict[str, Any]] = [
    _fn("vaults", [("vaultId", "uint256")], ["address"]),
    _fn("exitGames", [("txType", "uint256")], ["address"]),
    _fn("exitsQueues", [("key", "bytes32")], ["address"]),
    _fn("hasExitQueue", [("vaultId", "uint256"), ("token", "address")], ["bool"]),
    _fn("addExitQueue", [("vaultId", "uint256"), ("token", "address")], mutability="nonpayable"),
    _fn(
        "processExits",
        [
            ("vaultId", "uint256"),
            ("token", "address"),
            ("topExitId", "uint160"),
            ("maxExitsToProcess", "uint256"),
        ],
        mutability="nonpayable",
    ),
]

_DEPOSIT_CREATED = _event(
    "DepositCreated",
    [
        ("depositor", "address", True),
        ("blknum", "uint256", True),
        ("token", "address", True),
        ("amount", "uint256", False),
    ],
)

ETH_VAULT_ABI: list[dict[str, Any]] = [
    _fn("deposit", [("depositTx", "bytes")], mutability="payable"),
    _DEPOSIT_CREATED,
]

ERC20_VAULT_ABI: list[dict[str, Any]] = [
    _fn("deposit", [("depositTx", "bytes")], mutability="nonpayable"),
    _DEPOSIT_CREATED,
]

PAYMENT_EXIT_GAME_ABI: list[dict[str, Any]] = [
    {
        "type": "function",
        "name": "startStandardExit",
        "inputs": [
            {
                "name": "args",
                "type": "tuple",
                "components": [
                    {"name": "utxoPos", "type": "uint256"},
                    {"name": "rlpOutputTx", "type": "bytes"},
                    {"name": "outputTxInclusionProof", "type": "bytes"},
                ],
            }
        ],
        "outputs": [],
        "stateMutability": "payable",
    },
    _fn("startStandardExitBondSize", [], ["uint128"]),
    _event("ExitStarted", [("owner", "address", True), ("exitId", "uint160", False)]),
    _event("ExitFinalized", [("exitId", "uint160", True)]),
]

PRIORITY_QUEUE_ABI: list[dict[str, Any]] = [
    _fn("heapList", [], ["uint256[]"]),
]

ERC20_ABI: list[dict[str, Any]] = [
    _fn("balanceOf", [("owner", "address")], ["uint256"]),
    _fn("allowance", [("owner", "address"), ("spender", "address")], ["uint256"]),
    _fn(
        "approve",
        [("spender", "address"), ("amount", "uint256")],
        ["bool"],
        mutability="nonpayable",
    ),
    _fn("symbol", [], ["string"]),
    _fn("name", [], ["string"]),
    _fn("decimals", [], ["uint8"]),
]
