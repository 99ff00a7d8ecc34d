"""
Remote session signing provider.

The wallet lives on another device (typically a phone) and is reached
through a session bridge:

1. The client opens a session and shows the pairing URI to the user
2. The user approves the session in their wallet
3. Account and signing requests are relayed through the session, while
   read-only chain queries go straight to an RPC proxy

The session can be closed from the wallet side at any time. Session state
is polled so that closure and account switches are noticed.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
from loguru import logger

from plasmawallet.errors import ProviderUnavailable
from plasmawallet.providers.base import (
    DEFAULT_POLL_INTERVAL,
    DEFAULT_RPC_TIMEOUT,
    AccountsChanged,
    ProviderKind,
    SessionClosed,
    SigningProvider,
    json_rpc_call,
    parse_rpc_response,
)

# Methods that need the user's keys and therefore go through the session
SESSION_METHODS = frozenset(
    {
        "eth_accounts",
        "eth_requestAccounts",
        "eth_sendTransaction",
        "eth_sign",
        "personal_sign",
        "eth_signTypedData",
        "eth_signTypedData_v3",
        "eth_signTypedData_v4",
    }
)

# Session states reported by the bridge that end the session
_TERMINAL_STATES = ("rejected", "closed", "expired")

# How long the user has to approve a pairing request (seconds)
DEFAULT_APPROVAL_TIMEOUT = 120.0


class RemoteSessionProvider(SigningProvider):
    kind = ProviderKind.REMOTE_SESSION

    def __init__(
        self,
        bridge_url: str,
        rpc_url: str,
        chain_id: int,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        approval_timeout: float = DEFAULT_APPROVAL_TIMEOUT,
        timeout: float = DEFAULT_RPC_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ):
        super().__init__(poll_interval=poll_interval)
        self.bridge_url = bridge_url.rstrip("/")
        self.rpc_url = rpc_url.rstrip("/")
        self.chain_id = chain_id
        self.approval_timeout = approval_timeout
        self.client = client or httpx.AsyncClient(timeout=timeout)

        self.session_id: str | None = None
        self.pairing_uri: str | None = None
        self._accounts: list[str] = []
        self._session_chain_id: int | None = None
        self._closed = False

    async def _bridge_call(
        self,
        method: str,
        endpoint: str,
        data: dict[str, Any] | None = None,
    ) -> Any:
        """Make an API call to the session bridge."""
        url = f"{self.bridge_url}/{endpoint}"

        try:
            if method == "GET":
                response = await self.client.get(url)
            elif method == "POST":
                response = await self.client.post(url, json=data)
            elif method == "DELETE":
                response = await self.client.delete(url)
            else:
                raise ValueError(f"Unsupported HTTP method: {method}")

            response.raise_for_status()
            return response.json() if response.content else None

        except httpx.HTTPError as e:
            logger.error(f"Session bridge call failed: {endpoint} - {e}")
            raise

    async def activate(self) -> None:
        try:
            session = await self._bridge_call("POST", "v1/sessions", {"chainId": self.chain_id})
            self.session_id = session["id"]
            self.pairing_uri = session.get("uri")
            logger.info(f"Approve the session in your wallet. Pairing URI: {self.pairing_uri}")

            state = await self._wait_for_approval()
        except (httpx.HTTPError, KeyError, TypeError, AttributeError) as e:
            raise ProviderUnavailable(f"Remote session could not be opened: {e}") from e

        self._apply_state(state)
        if not self._accounts:
            raise ProviderUnavailable("Remote session approved without accounts")

        self._closed = False
        logger.info(f"Remote session {self.session_id} approved")
        self._start_watching()

    async def _wait_for_approval(self) -> dict[str, Any]:
        loop = asyncio.get_running_loop()
        start_time = loop.time()

        while True:
            state = await self._bridge_call("GET", f"v1/sessions/{self.session_id}")
            status = state.get("status")

            if status == "approved":
                return state
            if status in _TERMINAL_STATES:
                raise ProviderUnavailable(f"Remote session {status}")

            if loop.time() - start_time > self.approval_timeout:
                raise ProviderUnavailable("Timed out waiting for remote session approval")

            await asyncio.sleep(self.poll_interval)

    def _apply_state(self, state: dict[str, Any]) -> None:
        self._accounts = list(state.get("accounts") or [])
        chain_id = state.get("chainId")
        self._session_chain_id = int(chain_id) if chain_id is not None else None

    async def send_rpc(self, method: str, params: list[Any] | None = None) -> Any:
        self._request_id += 1
        payload_params = params or []

        if method not in SESSION_METHODS:
            return await json_rpc_call(
                self.client, self.rpc_url, method, payload_params, self._request_id
            )

        if self.session_id is None or self._closed:
            raise ProviderUnavailable("No open remote session")

        data = await self._bridge_call(
            "POST",
            f"v1/sessions/{self.session_id}/requests",
            {
                "jsonrpc": "2.0",
                "id": self._request_id,
                "method": method,
                "params": payload_params,
            },
        )
        return parse_rpc_response(method, data)

    async def get_accounts(self) -> list[str]:
        return list(self._accounts)

    async def get_network_id(self) -> int:
        if self._session_chain_id is not None:
            return self._session_chain_id
        return await super().get_network_id()

    async def _poll(self) -> None:
        if self.session_id is None or self._closed:
            return

        state = await self._bridge_call("GET", f"v1/sessions/{self.session_id}")
        status = state.get("status")

        if status != "approved":
            self._closed = True
            logger.info(f"Remote session {self.session_id} ended: {status}")
            await self.emit(SessionClosed(reason=str(status)))
            return

        previous = [a.lower() for a in self._accounts]
        self._apply_state(state)
        if [a.lower() for a in self._accounts] != previous:
            await self.emit(AccountsChanged(tuple(self._accounts)))

    async def close(self) -> None:
        await super().close()
        if self.session_id is not None and not self._closed:
            try:
                await self._bridge_call("DELETE", f"v1/sessions/{self.session_id}")
            except httpx.HTTPError as e:
                logger.debug(f"Failed to close remote session: {e}")
            self._closed = True
        await self.client.aclose()
