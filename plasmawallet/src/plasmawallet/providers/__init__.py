"""
Signing provider implementations.

Available providers:
- InjectedProvider: local wallet reached over JSON-RPC/HTTP
- RemoteSessionProvider: wallet on another device, reached through a session bridge
"""

from plasmawallet.providers.base import (
    AccountsChanged,
    ProviderEvent,
    ProviderKind,
    SessionClosed,
    SigningProvider,
)
from plasmawallet.providers.injected import InjectedProvider
from plasmawallet.providers.remote_session import RemoteSessionProvider

__all__ = [
    "AccountsChanged",
    "InjectedProvider",
    "ProviderEvent",
    "ProviderKind",
    "RemoteSessionProvider",
    "SessionClosed",
    "SigningProvider",
]
