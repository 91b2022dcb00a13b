"""
Privacy Cash Client Ledger Connection

Minimal async JSON-RPC client handed to the engine for reads and broadcast.
"""

from __future__ import annotations
import base64
import itertools
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from privacy_cash.constants import (
    DEFAULT_COMMITMENT,
    DEFAULT_HTTP_TIMEOUT_SEC,
)
from privacy_cash.core.types import PublicKey
from privacy_cash.errors import LedgerQueryError

logger = logging.getLogger(__name__)


class LedgerConnection:
    """JSON-RPC 2.0 connection to a ledger node."""

    def __init__(
        self,
        rpc_url: str,
        commitment: str = DEFAULT_COMMITMENT,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SEC,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.rpc_url = rpc_url
        self.commitment = commitment
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._ids = itertools.count(1)

    def __repr__(self) -> str:
        return f"LedgerConnection({self.rpc_url}, commitment={self.commitment})"

    async def rpc(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """
        Issue one JSON-RPC call.

        Raises:
            LedgerQueryError: transport failure, HTTP error or RPC error object
        """
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or [],
        }
        try:
            resp = await self._client.post(self.rpc_url, json=payload)
        except httpx.HTTPError as e:
            raise LedgerQueryError(f"{method} failed: {e}") from e

        if resp.status_code != 200:
            raise LedgerQueryError(
                f"{method} returned HTTP {resp.status_code}",
                status_code=resp.status_code,
            )

        try:
            body = resp.json()
        except ValueError as e:
            raise LedgerQueryError(f"{method} returned malformed JSON") from e

        if not isinstance(body, dict):
            raise LedgerQueryError(f"{method} returned unexpected payload")
        if body.get("error"):
            error = body["error"]
            raise LedgerQueryError(f"{method} error {error.get('code')}: {error.get('message')}")
        return body.get("result")

    def _config(self, **extra: Any) -> Dict[str, Any]:
        config: Dict[str, Any] = {"commitment": self.commitment}
        config.update(extra)
        return config

    async def get_balance(self, address: PublicKey) -> int:
        """Public balance in lamports."""
        result = await self.rpc("getBalance", [address.to_base58(), self._config()])
        return int(result["value"])

    async def get_account_info(self, address: PublicKey) -> Optional[Dict[str, Any]]:
        """Account info, or None when the account does not exist."""
        result = await self.rpc(
            "getAccountInfo",
            [address.to_base58(), self._config(encoding="base64")]
        )
        return result["value"] if result else None

    async def get_latest_blockhash(self) -> str:
        result = await self.rpc("getLatestBlockhash", [self._config()])
        return result["value"]["blockhash"]

    async def send_transaction(self, raw: bytes, skip_preflight: bool = False) -> str:
        """Broadcast a serialized signed transaction, returning its signature."""
        encoded = base64.b64encode(raw).decode("ascii")
        signature = await self.rpc(
            "sendTransaction",
            [encoded, {"encoding": "base64", "skipPreflight": skip_preflight,
                       "preflightCommitment": self.commitment}]
        )
        logger.info(f"Transaction submitted: {signature}")
        return signature

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()


ConnectionProvider = Callable[[], Awaitable[LedgerConnection]]


def static_provider(connection: LedgerConnection) -> ConnectionProvider:
    """Provider that always resolves to the same connection."""
    async def provide() -> LedgerConnection:
        return connection
    return provide
