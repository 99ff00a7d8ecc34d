"""
Chain backend implementations.

Available backends:
- WatcherChildChain: child chain data and submission through a watcher
- Web3RootChain: plasma framework contracts via web3.py over the signing provider
"""

from plasmawallet.backends.base import (
    ChildChain,
    EventLog,
    EventSource,
    RootChain,
    SubmitResult,
    TransactionReceipt,
    TxOptions,
)
from plasmawallet.backends.rootchain import ProviderBridge, Web3RootChain
from plasmawallet.backends.watcher import WatcherChildChain

__all__ = [
    "ChildChain",
    "EventLog",
    "EventSource",
    "ProviderBridge",
    "RootChain",
    "SubmitResult",
    "TransactionReceipt",
    "TxOptions",
    "WatcherChildChain",
    "Web3RootChain",
]
