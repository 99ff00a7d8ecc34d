"""
Child chain backend using the watcher HTTP API.

Every watcher endpoint is a JSON POST answering with an envelope:
{"success": bool, "data": ...}. On failure `data` carries an error
object with `code` and `description`.
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from plasmacore.models import ExitData, FeeInfo, Utxo
from plasmawallet.backends.base import ChildChain, SubmitResult
from plasmawallet.errors import WatcherError

# Timeout for regular watcher calls (seconds)
DEFAULT_WATCHER_TIMEOUT = 30.0

# Maximum page size the watcher accepts for transaction listings
TRANSACTION_PAGE_LIMIT = 100


class WatcherChildChain(ChildChain):
    """Child chain access through a watcher (informational API)."""

    def __init__(
        self,
        watcher_url: str = "http://127.0.0.1:7534",
        timeout: float = DEFAULT_WATCHER_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ):
        self.watcher_url = watcher_url.rstrip("/")
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def _api_call(self, endpoint: str, data: dict[str, Any] | None = None) -> Any:
        """
        Call a watcher endpoint and unwrap its envelope.

        Raises:
            WatcherError: If the watcher reports an unsuccessful call
            httpx.HTTPError: On connection/timeout errors
        """
        url = f"{self.watcher_url}/{endpoint}"

        try:
            response = await self.client.post(url, json=data or {})
            response.raise_for_status()
            body = response.json()

        except httpx.TimeoutException as e:
            logger.error(f"Watcher call timed out: {endpoint} - {e}")
            raise
        except httpx.HTTPError as e:
            logger.error(f"Watcher call failed: {endpoint} - {e}")
            raise

        if not isinstance(body, dict) or not body.get("success"):
            error = body.get("data") if isinstance(body, dict) else None
            error = error if isinstance(error, dict) else {}
            raise WatcherError(
                endpoint,
                str(error.get("code", "unknown")),
                str(error.get("description", "")),
            )

        return body.get("data")

    async def get_utxos(self, address: str) -> list[Utxo]:
        data = await self._api_call("account.get_utxos", {"address": address})
        utxos = [Utxo.model_validate(item) for item in data or []]
        logger.debug(f"Found {len(utxos)} UTXOs for {address}")
        return utxos

    async def get_balance(self, address: str) -> list[dict[str, Any]]:
        data = await self._api_call("account.get_balance", {"address": address})
        return [
            {"currency": item["currency"].lower(), "amount": int(item["amount"])}
            for item in data or []
        ]

    async def get_transactions(self, address: str) -> list[dict[str, Any]]:
        data = await self._api_call(
            "transaction.all", {"address": address, "limit": TRANSACTION_PAGE_LIMIT}
        )
        return list(data or [])

    async def get_fees(self) -> dict[str, list[FeeInfo]]:
        data = await self._api_call("fees.all")
        return {
            tx_type: [FeeInfo.model_validate(item) for item in items]
            for tx_type, items in (data or {}).items()
        }

    async def get_exit_data(self, utxo: Utxo) -> ExitData:
        data = await self._api_call("utxo.get_exit_data", {"utxo_pos": utxo.utxo_pos})
        return ExitData.model_validate(data)

    async def submit_transaction(self, signed_tx: str) -> SubmitResult:
        try:
            data = await self._api_call("transaction.submit", {"transaction": signed_tx})
        except Exception as e:
            logger.error(f"Failed to submit transaction: {e}")
            raise

        result = SubmitResult(
            txhash=data["txhash"],
            blknum=int(data["blknum"]),
            txindex=int(data["txindex"]),
        )
        logger.info(f"Submitted transaction: {result.txhash} (block {result.blknum})")
        return result

    async def status(self) -> dict[str, Any]:
        return await self._api_call("status.get")

    async def close(self) -> None:
        await self.client.aclose()
