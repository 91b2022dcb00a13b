"""
Privacy Cash Client Note Indexer

Ledger-query capability: encrypted outputs emitted after a given offset.
"""

from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from privacy_cash.constants import (
    RELAYER_API_URL,
    DEFAULT_HTTP_TIMEOUT_SEC,
    TOKENS,
)
from privacy_cash.core.types import (
    AssetDescriptor,
    EncryptedOutput,
    FungibleToken,
    NotePage,
)
from privacy_cash.errors import LedgerQueryError

logger = logging.getLogger(__name__)


class NoteSource(ABC):
    """Returns encrypted outputs in emission order."""

    @abstractmethod
    async def fetch_notes(self, asset: AssetDescriptor, after: int, limit: int) -> NotePage:
        """
        Fetch up to limit outputs with position > after.

        Raises:
            LedgerQueryError: transport or protocol failure
        """

    async def close(self) -> None:
        """Release resources."""


def token_param(asset: AssetDescriptor) -> Optional[str]:
    """Indexer token parameter: registry name when known, otherwise the mint."""
    if not isinstance(asset, FungibleToken):
        return None
    for token in TOKENS:
        if token.mint == asset.mint:
            return token.name
    return asset.mint


class RelayerNoteSource(NoteSource):
    """
    HTTP indexer client.

    GET /utxos/range?start=<after>&end=<after+limit>[&token=<name>]
    -> {"encrypted_outputs": ["<hex>", ...], "hasMore": bool}
    """

    def __init__(
        self,
        base_url: str = RELAYER_API_URL,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SEC,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def fetch_notes(self, asset: AssetDescriptor, after: int, limit: int) -> NotePage:
        params: Dict[str, Any] = {"start": after, "end": after + limit}
        token = token_param(asset)
        if token is not None:
            params["token"] = token

        try:
            resp = await self._client.get(f"{self.base_url}/utxos/range", params=params)
        except httpx.HTTPError as e:
            raise LedgerQueryError(f"Indexer request failed: {e}") from e

        if resp.status_code != 200:
            raise LedgerQueryError(
                f"Indexer returned HTTP {resp.status_code}",
                status_code=resp.status_code,
            )

        try:
            data = resp.json()
            blobs = [bytes.fromhex(item) for item in data["encrypted_outputs"]]
            has_more = bool(data.get("hasMore", False))
        except (ValueError, KeyError, TypeError) as e:
            raise LedgerQueryError(f"Malformed indexer response: {e}") from e

        logger.debug(f"Fetched {len(blobs)} outputs for {asset} after {after}")
        return NotePage(
            outputs=tuple(
                EncryptedOutput(position=after + i + 1, data=blob)
                for i, blob in enumerate(blobs)
            ),
            has_more=has_more,
        )

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
