"""Unit tests for the Horizon client against a local aiohttp server."""

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from ledger_bridge.services.ledger_client.horizon import (
    HorizonClient,
    payment_record_to_event,
)
from ledger_bridge.services.ledger_client.types import SignedTransaction
from ledger_bridge.utils.exceptions import (
    AccountNotFoundError,
    LedgerStreamError,
    LedgerTimeoutError,
    SubmissionRejectedError,
)


BASE_ACCOUNT = "G" + "A" * 55
SENDER = "G" + "Z" * 55
NEW_ACCOUNT = "G" + "C" * 55

RECORDS = [
    {
        "id": "1",
        "paging_token": "1",
        "type": "payment",
        "to": BASE_ACCOUNT,
        "from": SENDER,
        "asset_type": "native",
        "amount": "100.0000000",
        "transaction_hash": "a" * 64,
        "transaction": {"memo_type": "text", "memo": "cust42"},
    },
    {
        "id": "2",
        "paging_token": "2",
        "type": "create_account",
        "account": BASE_ACCOUNT,
        "funder": SENDER,
        "starting_balance": "5.0000000",
        "transaction_hash": "b" * 64,
        "transaction": {"memo_type": "none"},
    },
    {"id": "broken", "type": "payment", "to": BASE_ACCOUNT},
    {
        "id": "3",
        "paging_token": "3",
        "type": "payment",
        "to": BASE_ACCOUNT,
        "from": SENDER,
        "asset_type": "credit_alphanum4",
        "asset_code": "USDC",
        "amount": "1.0000000",
        "transaction_hash": "c" * 64,
    },
]


class TestPaymentRecordConversion:
    def test_payment_with_joined_memo(self):
        event = payment_record_to_event(RECORDS[0])

        assert event.paging_token == "1"
        assert event.to == BASE_ACCOUNT
        assert event.asset_type == "native"
        assert event.amount == "100.0000000"
        assert event.memo == "cust42"
        assert event.from_address == SENDER

    def test_create_account_is_native_payment(self):
        event = payment_record_to_event(RECORDS[1])

        assert event.to == BASE_ACCOUNT
        assert event.asset_type == "native"
        assert event.amount == "5.0000000"
        assert event.memo is None
        assert event.record_type == "create_account"

    def test_record_without_paging_token_dropped(self):
        assert payment_record_to_event(RECORDS[2]) is None

    @pytest.mark.parametrize(
        "transaction,memo",
        [
            ({"memo_type": "id", "memo": "4200017"}, "4200017"),
            ({"memo_type": "id", "memo": 4200017}, "4200017"),
            ({"memo_type": "hash", "memo": "AAAA"}, "AAAA"),
            ({"memo_type": "return", "memo": "AAAA"}, None),
            ({"memo_type": "none"}, None),
            ({}, None),
        ],
    )
    def test_memo_types(self, transaction, memo):
        record = dict(RECORDS[0], transaction=transaction)
        assert payment_record_to_event(record).memo == memo


@pytest_asyncio.fixture
async def horizon():
    """Local Horizon-like API."""
    state = {"payment_requests": [], "submitted": []}

    async def payments(request: web.Request) -> web.Response:
        state["payment_requests"].append(dict(request.query))
        cursor = request.query.get("cursor")
        records = [
            r for r in RECORDS
            if not cursor or (r.get("paging_token") and int(r["paging_token"]) > int(cursor))
        ]
        return web.json_response({"_embedded": {"records": records}})

    async def account(request: web.Request) -> web.Response:
        if request.match_info["address"] != BASE_ACCOUNT:
            return web.json_response({"status": 404}, status=404)
        return web.json_response({"account_id": BASE_ACCOUNT, "sequence": "4242"})

    async def transaction(request: web.Request) -> web.Response:
        tx_hash = request.match_info["tx_hash"]
        if tx_hash == "a" * 64:
            return web.json_response({"memo_type": "text", "memo": "cust42"})
        if tx_hash == "f" * 64:
            return web.json_response({"memo_type": "id", "memo": "4200017"})
        return web.json_response({"status": 404}, status=404)

    async def submit(request: web.Request) -> web.Response:
        form = await request.post()
        envelope = form["tx"]
        state["submitted"].append(envelope)
        if envelope == "ok":
            return web.json_response({"hash": "d" * 64, "ledger": 77})
        if envelope == "bad":
            return web.json_response(
                {
                    "title": "Transaction Failed",
                    "extras": {
                        "result_codes": {
                            "transaction": "tx_failed",
                            "operations": ["op_no_destination"],
                        }
                    },
                },
                status=400,
            )
        return web.Response(status=504, text="<html>Gateway Timeout</html>")

    app = web.Application()
    app.router.add_get("/accounts/{address}/payments", payments)
    app.router.add_get("/accounts/{address}", account)
    app.router.add_get("/transactions/{tx_hash}", transaction)
    app.router.add_post("/transactions", submit)

    server = TestServer(app)
    await server.start_server()
    client = HorizonClient(str(server.make_url("/")), poll_interval=0.01)

    yield client, state

    await client.close()
    await server.close()


class TestHorizonClient:
    @pytest.mark.asyncio
    async def test_subscribe_yields_events_after_cursor(self, horizon):
        client, state = horizon

        stream = client.subscribe(BASE_ACCOUNT, cursor="1")
        events = []
        async for event in stream:
            events.append(event)
            if len(events) == 2:
                break
        await stream.aclose()

        assert [e.paging_token for e in events] == ["2", "3"]
        assert events[1].asset_type == "credit_alphanum4"
        params = state["payment_requests"][0]
        assert params["cursor"] == "1"
        assert params["order"] == "asc"
        assert params["join"] == "transactions"

    @pytest.mark.asyncio
    async def test_subscribe_from_origin_skips_broken_records(self, horizon):
        client, state = horizon

        stream = client.subscribe(BASE_ACCOUNT)
        events = []
        async for event in stream:
            events.append(event)
            if len(events) == 3:
                break
        await stream.aclose()

        assert [e.paging_token for e in events] == ["1", "2", "3"]
        assert "cursor" not in state["payment_requests"][0]

    @pytest.mark.asyncio
    async def test_get_account(self, horizon):
        client, _ = horizon

        account = await client.get_account(BASE_ACCOUNT)

        assert account.sequence == 4242
        assert account.next_sequence() == 4243

    @pytest.mark.asyncio
    async def test_get_absent_account(self, horizon):
        client, _ = horizon

        with pytest.raises(AccountNotFoundError) as exc_info:
            await client.get_account(NEW_ACCOUNT)
        assert exc_info.value.address == NEW_ACCOUNT

    @pytest.mark.asyncio
    async def test_get_transaction_memo(self, horizon):
        client, _ = horizon

        assert await client.get_transaction_memo("a" * 64) == "cust42"
        assert await client.get_transaction_memo("f" * 64) == "4200017"
        with pytest.raises(LedgerStreamError):
            await client.get_transaction_memo("e" * 64)

    @pytest.mark.asyncio
    async def test_submit_success(self, horizon):
        client, state = horizon

        result = await client.submit(SignedTransaction(envelope="ok", hash="d" * 64))

        assert result.hash == "d" * 64
        assert result.ledger == 77
        assert state["submitted"] == ["ok"]

    @pytest.mark.asyncio
    async def test_submit_rejected(self, horizon):
        client, _ = horizon

        with pytest.raises(SubmissionRejectedError) as exc_info:
            await client.submit(SignedTransaction(envelope="bad", hash="d" * 64))

        assert exc_info.value.result_codes["operations"] == ["op_no_destination"]

    @pytest.mark.asyncio
    async def test_submit_gateway_timeout_is_ambiguous(self, horizon):
        client, _ = horizon

        with pytest.raises(LedgerTimeoutError):
            await client.submit(SignedTransaction(envelope="slow", hash="d" * 64))

    @pytest.mark.asyncio
    async def test_transport_errors(self):
        client = HorizonClient("http://127.0.0.1:1", request_timeout=2)
        try:
            with pytest.raises(LedgerStreamError):
                await client.get_account(BASE_ACCOUNT)
            with pytest.raises(LedgerTimeoutError):
                await client.submit(SignedTransaction(envelope="ok", hash="d" * 64))
        finally:
            await client.close()
