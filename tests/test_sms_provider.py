"""Tests for the SMS-Activate wire parsing and client."""

from __future__ import annotations

from decimal import Decimal

import httpx
import pytest

from zepno.errors import (
    InsufficientProviderBalance,
    InvalidCredentials,
    NoNumbersAvailable,
    ProviderSentinelError,
    ProviderServerError,
    ProviderUnavailable,
)
from zepno.services.sms_provider import (
    Acknowledgement,
    Lease,
    PollState,
    ProviderBalance,
    SmsActivateClient,
    StatusPoll,
    parse_response,
)

BASE_URL = "https://provider.test/stubs/handler_api.php"


def _client(reply: str | None = None, status: int = 200, calls: list | None = None):
    """Client whose transport answers every request with *reply*."""

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(dict(request.url.params))
        return httpx.Response(status, text=reply or "")

    return SmsActivateClient("secret-key", BASE_URL, transport=httpx.MockTransport(handler))


# ──────────────────────────────────────────────────────────
# parse_response
# ──────────────────────────────────────────────────────────
def test_parse_number():
    assert parse_response("ACCESS_NUMBER:12345:79998887766") == Lease("12345", "79998887766")


def test_parse_balance():
    assert parse_response("ACCESS_BALANCE:123.45") == ProviderBalance(Decimal("123.45"))


def test_parse_status_ok():
    assert parse_response("STATUS_OK:483920") == StatusPoll(PollState.CODE_RECEIVED, "483920")


@pytest.mark.parametrize(
    "text", ["STATUS_WAIT_CODE", "STATUS_WAIT_RETRY:1234", "STATUS_WAIT_RESEND"]
)
def test_parse_wait_variants(text):
    assert parse_response(text) == StatusPoll(PollState.WAITING)


def test_parse_cancel_and_ack():
    assert parse_response("STATUS_CANCEL") == StatusPoll(PollState.CANCELED)
    assert parse_response("ACCESS_CANCEL") == Acknowledgement("ACCESS_CANCEL")


@pytest.mark.parametrize(
    "text,exc_type",
    [
        ("NO_NUMBERS", NoNumbersAvailable),
        ("NO_BALANCE", InsufficientProviderBalance),
        ("BAD_KEY", InvalidCredentials),
        ("ERROR_SQL", ProviderServerError),
    ],
)
def test_parse_error_sentinels(text, exc_type):
    with pytest.raises(exc_type) as info:
        parse_response(text)
    assert info.value.raw == text


def test_parse_json_and_raw_fallback():
    assert parse_response('{"fl": {"cost": 20}}') == {"fl": {"cost": 20}}
    assert parse_response("BAD_SERVICE") == "BAD_SERVICE"


def test_parse_malformed_number_is_raw_text():
    assert parse_response("ACCESS_NUMBER:123") == "ACCESS_NUMBER:123"


# ──────────────────────────────────────────────────────────
# Client
# ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_lease_number_sends_action_and_key():
    calls: list = []
    client = _client("ACCESS_NUMBER:555:919876543210", calls=calls)

    lease = await client.lease_number("fl", "22")

    assert lease == Lease("555", "919876543210")
    assert calls == [
        {"api_key": "secret-key", "action": "getNumber", "service": "fl", "country": "22"}
    ]


@pytest.mark.asyncio
async def test_lease_number_no_numbers():
    with pytest.raises(NoNumbersAvailable):
        await _client("NO_NUMBERS").lease_number("fl", "22")


@pytest.mark.asyncio
async def test_unexpected_sentinel_is_an_error():
    with pytest.raises(ProviderSentinelError) as info:
        await _client("WRONG_SERVICE").lease_number("xx", "22")
    assert info.value.raw == "WRONG_SERVICE"
    assert type(info.value) is ProviderSentinelError


@pytest.mark.asyncio
async def test_poll_status_code_received():
    poll = await _client("STATUS_OK:483920").poll_status("555")
    assert poll.state is PollState.CODE_RECEIVED
    assert poll.code == "483920"


@pytest.mark.asyncio
async def test_poll_status_rejects_non_status_reply():
    with pytest.raises(ProviderSentinelError):
        await _client("ACCESS_READY").poll_status("555")


@pytest.mark.asyncio
async def test_set_status_cancel():
    calls: list = []
    ack = await _client("ACCESS_CANCEL", calls=calls).set_status("555", 8)
    assert ack.sentinel == "ACCESS_CANCEL"
    assert calls[0]["status"] == "8"
    assert calls[0]["id"] == "555"


@pytest.mark.asyncio
async def test_get_balance():
    assert await _client("ACCESS_BALANCE:42.10").get_balance() == Decimal("42.10")


@pytest.mark.asyncio
async def test_fetch_prices_flat_and_nested():
    flat = await _client('{"fl": {"cost": 18.5, "count": 3}, "zp": {"count": 0}}').fetch_prices("22")
    assert flat == {"fl": Decimal("18.5")}

    nested = await _client('{"22": {"zp": {"cost": 30}}}').fetch_prices("22")
    assert nested == {"zp": Decimal("30")}


@pytest.mark.asyncio
async def test_http_error_status_is_unavailable():
    with pytest.raises(ProviderUnavailable):
        await _client("oops", status=502).poll_status("1")


@pytest.mark.asyncio
async def test_network_error_is_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = SmsActivateClient("k", BASE_URL, transport=httpx.MockTransport(handler))
    with pytest.raises(ProviderUnavailable):
        await client.get_balance()
