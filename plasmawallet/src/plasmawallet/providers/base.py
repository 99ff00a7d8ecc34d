"""
Base signing provider interface.

A signing provider holds the user's keys and exposes a JSON-RPC surface.
The wallet never sees key material: it asks the provider for accounts,
signatures and transaction submission.
"""

from __future__ import annotations

import asyncio
import contextlib
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx
from loguru import logger

from plasmawallet.errors import InvalidRpcResponse, MethodNotSupported, ProviderRpcError

# Timeout for regular RPC calls (seconds)
DEFAULT_RPC_TIMEOUT = 30.0

# How often providers are polled for account and session changes (seconds)
DEFAULT_POLL_INTERVAL = 2.0

# JSON-RPC 2.0 "method not found"
METHOD_NOT_FOUND = -32601

# Error texts providers use when they lack a method
_UNSUPPORTED_MARKERS = (
    "does not exist",
    "is not available",
    "not supported",
    "method not found",
)


class ProviderKind(str, Enum):
    IN_PAGE = "in_page"
    REMOTE_SESSION = "remote_session"


@dataclass(frozen=True)
class AccountsChanged:
    accounts: tuple[str, ...]


@dataclass(frozen=True)
class SessionClosed:
    reason: str = ""


ProviderEvent = AccountsChanged | SessionClosed
EventHandler = Callable[[ProviderEvent], Awaitable[None]]


def parse_rpc_response(method: str, data: Any) -> Any:
    """
    Extract the result of a JSON-RPC response.

    Raises:
        InvalidRpcResponse: If `data` is not a JSON-RPC response
        MethodNotSupported: If the provider lacks `method`
        ProviderRpcError: On any other RPC error
    """
    if not isinstance(data, dict) or ("result" not in data and "error" not in data):
        raise InvalidRpcResponse(method, "invalid", f"Invalid JSON RPC response: {data!r}")

    error = data.get("error")
    if error:
        if isinstance(error, dict):
            code = error.get("code", "unknown")
            message = str(error.get("message", error))
        else:
            code, message = "unknown", str(error)

        lowered = message.lower()
        if code == METHOD_NOT_FOUND or any(marker in lowered for marker in _UNSUPPORTED_MARKERS):
            raise MethodNotSupported(method, code, message)
        raise ProviderRpcError(method, code, message)

    return data.get("result")


async def json_rpc_call(
    client: httpx.AsyncClient,
    url: str,
    method: str,
    params: list[Any],
    request_id: int,
) -> Any:
    """
    POST a JSON-RPC request and return its result.

    Raises:
        httpx.HTTPError: On connection/timeout errors
        ProviderRpcError: On RPC errors (see parse_rpc_response)
    """
    payload = {
        "jsonrpc": "2.0",
        "id": request_id,
        "method": method,
        "params": params,
    }
    response = await client.post(url, json=payload)
    response.raise_for_status()

    try:
        data = response.json()
    except ValueError as e:
        raise InvalidRpcResponse(method, "invalid", "Invalid JSON RPC response") from e

    return parse_rpc_response(method, data)


class SigningProvider(ABC):
    """
    Abstract signing provider.

    Variants share one capability set (activate, get_accounts,
    get_network_id, send_rpc, subscribe) and are chosen once at bind time.
    """

    kind: ProviderKind

    def __init__(self, poll_interval: float = DEFAULT_POLL_INTERVAL):
        self.poll_interval = poll_interval
        self._handlers: list[EventHandler] = []
        self._request_id = 0
        self._watch_task: asyncio.Task[None] | None = None

    @abstractmethod
    async def activate(self) -> None:
        """Connect to the provider and get the user's approval.

        Raises ProviderUnavailable when there is no provider or the user declines."""

    @abstractmethod
    async def send_rpc(self, method: str, params: list[Any] | None = None) -> Any:
        """Send a JSON-RPC request to the provider, returns its result"""

    async def get_accounts(self) -> list[str]:
        accounts = await self.send_rpc("eth_accounts", [])
        return list(accounts or [])

    async def get_network_id(self) -> int:
        chain_id = await self.send_rpc("eth_chainId", [])
        if isinstance(chain_id, str):
            return int(chain_id, 16) if chain_id.startswith("0x") else int(chain_id)
        return int(chain_id)

    def subscribe(self, handler: EventHandler) -> None:
        self._handlers.append(handler)

    async def emit(self, event: ProviderEvent) -> None:
        for handler in list(self._handlers):
            try:
                await handler(event)
            except Exception as e:
                logger.error(f"Provider event handler failed for {type(event).__name__}: {e}")

    def _start_watching(self) -> None:
        if self._watch_task is None or self._watch_task.done():
            self._watch_task = asyncio.create_task(self._watch_loop())

    async def _watch_loop(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            try:
                await self._poll()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.debug(f"Provider poll failed: {e}")

    async def _poll(self) -> None:
        """Check the provider for changes and emit events. No-op by default."""

    async def close(self) -> None:
        if self._watch_task is not None:
            self._watch_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._watch_task
            self._watch_task = None
