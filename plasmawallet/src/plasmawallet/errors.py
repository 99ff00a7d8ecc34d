"""
Wallet error types.
"""

from __future__ import annotations


class PlasmaWalletError(Exception):
    pass


class ProviderUnavailable(PlasmaWalletError):
    """No signing provider could be reached or activated."""


class NetworkMismatch(PlasmaWalletError):
    """The provider is connected to a different network than configured."""

    def __init__(self, expected: int, actual: int):
        super().__init__(f"Provider network {actual} does not match expected {expected}")
        self.expected = expected
        self.actual = actual


class AccountDivergence(PlasmaWalletError):
    """The provider reports a different active account than the bound one."""


class NotBoundError(PlasmaWalletError):
    """An operation needs a bound account but none is bound."""


class ProviderRpcError(PlasmaWalletError):
    """JSON-RPC error returned by a signing provider."""

    def __init__(self, method: str, code: int | str, message: str):
        super().__init__(f"RPC error {code} in {method}: {message}")
        self.method = method
        self.code = code
        self.message = message


class MethodNotSupported(ProviderRpcError):
    """The provider does not implement the requested RPC method."""


class InvalidRpcResponse(ProviderRpcError):
    """The provider answered with something that is not a JSON-RPC response."""


class SigningMethodUnsupported(PlasmaWalletError):
    """A signing strategy cannot be used with the bound provider."""


class WatcherError(PlasmaWalletError):
    """The child chain watcher returned an unsuccessful response."""

    def __init__(self, endpoint: str, code: str, description: str = ""):
        super().__init__(f"Watcher error in {endpoint}: {code} {description}".rstrip())
        self.endpoint = endpoint
        self.code = code
        self.description = description


class AllowanceCheckError(PlasmaWalletError):
    pass


class TransactionReverted(PlasmaWalletError):
    """A root chain transaction was mined but reverted."""

    def __init__(self, transaction_hash: str, block_number: int):
        super().__init__(f"Transaction {transaction_hash} reverted in block {block_number}")
        self.transaction_hash = transaction_hash
        self.block_number = block_number
