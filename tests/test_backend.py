"""Tests for the swap backend client and the dry-run backend."""

import json
import pytest
from decimal import Decimal

import httpx

from swapchat.errors import BackendError
from swapchat.services.backend import OrderParams, ProphetBackendClient
from swapchat.services.dry_run import DryRunBackend

BASE_URL = "https://backend.test/v1/Prophet"


def make_params() -> OrderParams:
    return OrderParams(
        transaction_hash="tx1",
        from_token="KAS",
        to_token="PINTL",
        amount="10",
        from_address="kaspa:abc",
        public_key="pub",
    )


def client_for(handler) -> ProphetBackendClient:
    return ProphetBackendClient(BASE_URL, transport=httpx.MockTransport(handler))


class TestProphetBackendClient:
    """Tests for the HTTP client against a mock transport."""

    @pytest.mark.asyncio
    async def test_get_quote_posts_pair(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"quote": {"outAmount": "100"}})

        data = await client_for(handler).get_quote("KAS", "PINTL", "10")

        assert seen["url"] == f"{BASE_URL}/quote"
        assert seen["body"] == {"fromToken": "KAS", "toToken": "PINTL", "amount": "10"}
        assert data["quote"]["outAmount"] == "100"

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        client = client_for(lambda request: httpx.Response(503, text="down"))

        with pytest.raises(BackendError) as exc_info:
            await client.get_order_status("o1")

        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(BackendError):
            await client_for(handler).get_order_status("o1")

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        client = client_for(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(BackendError):
            await client.get_order_status("o1")

    @pytest.mark.asyncio
    async def test_available_tokens(self):
        def handler(request):
            assert request.method == "GET"
            assert request.url.path.endswith("/assets/KAS")
            return httpx.Response(
                200,
                json={"assets": [{"symbol": "pintl", "decimals": 8}, {"symbol": "NACHO"}, {}]},
            )

        tokens = await client_for(handler).get_available_tokens()

        assert [t.symbol for t in tokens] == ["PINTL", "NACHO"]
        assert tokens[1].decimals == 8

    @pytest.mark.asyncio
    async def test_swap_status_by_tx_hash(self):
        def handler(request):
            assert request.method == "GET"
            assert request.url.path.endswith("/swapStatus/tx1")
            return httpx.Response(200, json={"status": "pending", "txHash": "tx1"})

        data = await client_for(handler).get_swap_status("tx1")

        assert data["status"] == "pending"

    @pytest.mark.asyncio
    async def test_place_order_prepares_signs_and_submits(self):
        calls = []

        def handler(request):
            body = json.loads(request.content)
            calls.append((request.url.path, body))
            if request.url.path.endswith("/prepare-order"):
                return httpx.Response(
                    200,
                    json={"status": "prepared", "messageHash": "mh", "orderParams": {"id": 7}},
                )
            return httpx.Response(200, json={"orderId": "o-7", "status": "submitted"})

        async def sign(message):
            return f"sig({message})"

        result = await client_for(handler).place_order(make_params(), sign)

        assert result == {"orderId": "o-7", "status": "submitted"}
        prepare_body = calls[0][1]
        assert prepare_body["transactionHash"] == "tx1"
        assert prepare_body["fromAddress"] == "kaspa:abc"
        assert calls[1][1] == {
            "orderParams": {"id": 7},
            "fromAddress": "kaspa:abc",
            "publicKey": "pub",
            "signature": "sig(mh)",
        }

    @pytest.mark.asyncio
    async def test_place_order_rejects_unprepared(self):
        client = client_for(
            lambda request: httpx.Response(200, json={"status": "error", "error": "Amount too small"})
        )

        async def sign(message):
            return "sig"

        with pytest.raises(BackendError, match="Amount too small"):
            await client.place_order(make_params(), sign)

    @pytest.mark.asyncio
    async def test_place_order_signing_failure(self):
        client = client_for(
            lambda request: httpx.Response(200, json={"status": "prepared", "messageHash": "mh"})
        )

        async def sign(message):
            raise RuntimeError("user rejected")

        with pytest.raises(BackendError, match="Failed to sign order"):
            await client.place_order(make_params(), sign)


class TestDryRunBackend:
    """Tests for the simulated backend."""

    @pytest.mark.asyncio
    async def test_quote_shape(self):
        backend = DryRunBackend(fee_percent=Decimal("0"))
        backend.set_price("PINTL", Decimal("2"))

        data = await backend.get_quote("KAS", "PINTL", "10")

        assert data["quote"]["outAmount"] == str(5 * 10**8)
        assert data["quote"]["chainDecimal"] == 8

    @pytest.mark.asyncio
    async def test_unknown_pair(self):
        with pytest.raises(BackendError):
            await DryRunBackend().get_quote("KAS", "NOPE", "1")

    @pytest.mark.asyncio
    async def test_order_lifecycle(self):
        backend = DryRunBackend()

        async def sign(message):
            return "sig"

        result = await backend.place_order(make_params(), sign)
        order_id = result["orderId"]

        statuses = [(await backend.get_order_status(order_id))["status"] for _ in range(3)]

        assert result["status"] == "submitted"
        assert statuses == ["pending", "completed", "completed"]
        assert (await backend.get_order_status("missing"))["status"] == "unknown"
