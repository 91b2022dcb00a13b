"""
Privacy Cash Client Network Tests
"""

import base64
import json

import httpx
import pytest

from privacy_cash.constants import USDC_MINT
from privacy_cash.core.types import NATIVE, asset_for_mint
from privacy_cash.errors import LedgerQueryError
from privacy_cash.network.indexer import RelayerNoteSource, token_param
from privacy_cash.network.rpc import LedgerConnection, static_provider


def mock_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestRelayerNoteSource:
    """Tests for RelayerNoteSource."""

    def test_token_param(self, other_keypair):
        """Test registry tokens use their name, others their mint."""
        assert token_param(NATIVE) is None
        assert token_param(asset_for_mint(USDC_MINT)) == "usdc"
        custom = asset_for_mint(other_keypair.public_key)
        assert token_param(custom) == custom.mint

    @pytest.mark.asyncio
    async def test_fetch_page(self):
        """Test query parameters and output positions."""
        seen = []

        def handler(request):
            seen.append(request.url)
            return httpx.Response(200, json={"encrypted_outputs": ["aa", "bbcc"], "hasMore": True})

        async with mock_client(handler) as client:
            source = RelayerNoteSource("https://relayer.test/", client=client)
            page = await source.fetch_notes(asset_for_mint(USDC_MINT), after=10, limit=5)

        assert seen[0].path == "/utxos/range"
        assert seen[0].params["start"] == "10"
        assert seen[0].params["end"] == "15"
        assert seen[0].params["token"] == "usdc"
        assert [o.position for o in page.outputs] == [11, 12]
        assert [o.data for o in page.outputs] == [b"\xaa", b"\xbb\xcc"]
        assert page.has_more

    @pytest.mark.asyncio
    async def test_native_has_no_token(self):
        """Test native queries omit the token parameter."""
        def handler(request):
            assert "token" not in request.url.params
            return httpx.Response(200, json={"encrypted_outputs": []})

        async with mock_client(handler) as client:
            page = await RelayerNoteSource("https://relayer.test", client=client).fetch_notes(
                NATIVE, 0, 100
            )
        assert page.outputs == ()
        assert not page.has_more

    @pytest.mark.asyncio
    async def test_http_error(self):
        """Test non-200 responses."""
        async with mock_client(lambda request: httpx.Response(502)) as client:
            source = RelayerNoteSource("https://relayer.test", client=client)
            with pytest.raises(LedgerQueryError) as exc:
                await source.fetch_notes(NATIVE, 0, 10)
        assert exc.value.details == {"status_code": 502}

    @pytest.mark.asyncio
    async def test_malformed_body(self):
        """Test bad hex and missing fields."""
        bodies = [{"encrypted_outputs": ["zz"]}, {"hasMore": False}, ["not", "a", "dict"]]
        for body in bodies:
            async with mock_client(lambda request: httpx.Response(200, json=body)) as client:
                source = RelayerNoteSource("https://relayer.test", client=client)
                with pytest.raises(LedgerQueryError):
                    await source.fetch_notes(NATIVE, 0, 10)

    @pytest.mark.asyncio
    async def test_transport_error(self):
        """Test connection failures."""
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with mock_client(handler) as client:
            with pytest.raises(LedgerQueryError):
                await RelayerNoteSource("https://relayer.test", client=client).fetch_notes(NATIVE, 0, 10)


class TestLedgerConnection:
    """Tests for LedgerConnection."""

    @pytest.mark.asyncio
    async def test_get_balance(self, keypair):
        """Test JSON-RPC request shape and result."""
        def handler(request):
            body = json.loads(request.content)
            assert body["method"] == "getBalance"
            assert body["params"][0] == keypair.public_key.to_base58()
            assert body["params"][1] == {"commitment": "confirmed"}
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": {"value": 42}})

        async with mock_client(handler) as client:
            connection = LedgerConnection("https://rpc.test", client=client)
            assert await connection.get_balance(keypair.public_key) == 42

    @pytest.mark.asyncio
    async def test_rpc_error(self):
        """Test RPC error objects raise."""
        def handler(request):
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1,
                                             "error": {"code": -32602, "message": "invalid params"}})

        async with mock_client(handler) as client:
            connection = LedgerConnection("https://rpc.test", client=client)
            with pytest.raises(LedgerQueryError, match="invalid params"):
                await connection.get_latest_blockhash()

    @pytest.mark.asyncio
    async def test_send_transaction(self):
        """Test transactions are sent base64 encoded."""
        def handler(request):
            body = json.loads(request.content)
            assert base64.b64decode(body["params"][0]) == b"\x01\x02"
            assert body["params"][1]["encoding"] == "base64"
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": "5igSig"})

        async with mock_client(handler) as client:
            connection = LedgerConnection("https://rpc.test", client=client)
            assert await connection.send_transaction(b"\x01\x02") == "5igSig"

    @pytest.mark.asyncio
    async def test_missing_account(self, keypair):
        """Test absent accounts map to None."""
        def handler(request):
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": {"value": None}})

        async with mock_client(handler) as client:
            connection = LedgerConnection("https://rpc.test", client=client)
            assert await connection.get_account_info(keypair.public_key) is None

    @pytest.mark.asyncio
    async def test_static_provider(self):
        """Test the provider always yields the same connection."""
        async with mock_client(lambda request: httpx.Response(200)) as client:
            connection = LedgerConnection("https://rpc.test", client=client)
            provide = static_provider(connection)
            assert await provide() is connection
            assert await provide() is connection
