"""SMS-Activate client — async HTTP wrapper around the number-leasing API.

Every action is a single ``GET`` against one handler URL with ``action``
and ``api_key`` in the query string.  The provider answers with one of:

* a bare sentinel (``NO_NUMBERS``, ``BAD_KEY``, ``STATUS_CANCEL`` …)
* a colon-delimited sentinel (``ACCESS_NUMBER:<id>:<msisdn>``,
  ``ACCESS_BALANCE:<amount>``, ``STATUS_OK:<code>``)
* JSON (price lists)

:func:`parse_response` turns the body into a typed value; each client
method then checks it got the shape it asked for and raises
:class:`~zepno.errors.ProviderSentinelError` otherwise.
"""

from __future__ import annotations

import enum
import json
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx

from zepno.errors import (
    InsufficientProviderBalance,
    InvalidCredentials,
    NoNumbersAvailable,
    ProviderSentinelError,
    ProviderServerError,
    ProviderUnavailable,
)

logger = logging.getLogger(__name__)

# setStatus codes
STATUS_READY = 1
STATUS_CANCEL = 8

_ERROR_SENTINELS: dict[str, tuple[type[ProviderSentinelError], str]] = {
    "NO_NUMBERS": (NoNumbersAvailable, "No phone numbers available for this service"),
    "NO_BALANCE": (InsufficientProviderBalance, "Insufficient balance in provider account"),
    "BAD_KEY": (InvalidCredentials, "Invalid provider API key"),
    "ERROR_SQL": (ProviderServerError, "Database error on provider server"),
}

_WAIT_SENTINELS = ("STATUS_WAIT_CODE", "STATUS_WAIT_RETRY", "STATUS_WAIT_RESEND")

_ACKNOWLEDGEMENTS = frozenset(
    {"ACCESS_READY", "ACCESS_RETRY_GET", "ACCESS_ACTIVATION", "ACCESS_CANCEL"}
)


class PollState(str, enum.Enum):
    WAITING = "waiting_for_code"
    CODE_RECEIVED = "code_received"
    CANCELED = "canceled"


@dataclass(frozen=True)
class Lease:
    """A number checked out from the provider."""

    lease_id: str
    phone_number: str


@dataclass(frozen=True)
class ProviderBalance:
    amount: Decimal


@dataclass(frozen=True)
class StatusPoll:
    state: PollState
    code: str | None = None


@dataclass(frozen=True)
class Acknowledgement:
    sentinel: str


ProviderReply = Lease | ProviderBalance | StatusPoll | Acknowledgement | dict | list | str


def parse_response(text: str) -> ProviderReply:
    """Parse a raw provider body into a typed reply.

    Raises the matching :class:`ProviderSentinelError` subclass for the
    known error sentinels.  Unrecognised plain text is returned as-is.
    """
    text = text.strip()

    if text in _ERROR_SENTINELS:
        exc_type, message = _ERROR_SENTINELS[text]
        raise exc_type(message, raw=text)

    if text.startswith("ACCESS_BALANCE:"):
        try:
            return ProviderBalance(amount=Decimal(text.split(":", 1)[1]))
        except InvalidOperation:
            return text

    if text.startswith("ACCESS_NUMBER:"):
        parts = text.split(":")
        if len(parts) >= 3 and parts[1] and parts[2]:
            return Lease(lease_id=parts[1], phone_number=parts[2])
        return text

    if text.startswith("STATUS_OK:"):
        code = text.split(":", 1)[1]
        if code:
            return StatusPoll(state=PollState.CODE_RECEIVED, code=code)
        return text

    if text == "STATUS_CANCEL":
        return StatusPoll(state=PollState.CANCELED)

    if text.split(":", 1)[0] in _WAIT_SENTINELS:
        return StatusPoll(state=PollState.WAITING)

    if text in _ACKNOWLEDGEMENTS:
        return Acknowledgement(sentinel=text)

    try:
        return json.loads(text)
    except ValueError:
        return text


def _unexpected(action: str, reply: Any, raw: str) -> ProviderSentinelError:
    logger.error("Unexpected provider reply to %s: %r", action, raw)
    return ProviderSentinelError(f"Unexpected provider response to {action}: {raw}", raw=raw)


class SmsActivateClient:
    """Async HTTP wrapper around the SMS-Activate handler API."""

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = timeout
        self._transport = transport

    async def _request(self, action: str, **params: str) -> tuple[Any, str]:
        """Issue one provider call and return ``(parsed, raw_text)``."""
        query = {"api_key": self._api_key, "action": action, **params}
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                resp = await client.get(self._base_url, params=query)
        except httpx.HTTPError as exc:
            logger.warning("Provider request %s failed: %s", action, exc)
            raise ProviderUnavailable(f"SMS provider unreachable: {exc}") from exc

        if resp.status_code != 200:
            logger.error("Provider %s returned %s %s", action, resp.status_code, resp.text)
            raise ProviderUnavailable(
                f"SMS provider returned HTTP {resp.status_code}"
            )

        text = resp.text.strip()
        logger.debug("Provider %s → %s", action, text[:200])
        return parse_response(text), text

    # ── Catalog ──────────────────────────────────────────

    async def fetch_prices(self, country_code: str) -> dict[str, Decimal]:
        """Return ``{service_code: cost}`` for *country_code*."""
        reply, raw = await self._request("getPrices", country=country_code)
        if not isinstance(reply, dict):
            raise _unexpected("getPrices", reply, raw)

        # Newer API versions nest the table under the country code.
        table = reply.get(country_code, reply)
        if not isinstance(table, dict):
            raise _unexpected("getPrices", reply, raw)

        prices: dict[str, Decimal] = {}
        for code, entry in table.items():
            if not isinstance(entry, dict) or "cost" not in entry:
                continue
            try:
                prices[code] = Decimal(str(entry["cost"]))
            except InvalidOperation:
                logger.warning("Ignoring unparseable cost for %s: %r", code, entry["cost"])
        return prices

    async def get_balance(self) -> Decimal:
        """Return the provider account balance."""
        reply, raw = await self._request("getBalance")
        if not isinstance(reply, ProviderBalance):
            raise _unexpected("getBalance", reply, raw)
        return reply.amount

    # ── Activations ──────────────────────────────────────

    async def lease_number(self, service_code: str, country_code: str) -> Lease:
        """Check out a number for *service_code*."""
        reply, raw = await self._request(
            "getNumber", service=service_code, country=country_code
        )
        if not isinstance(reply, Lease):
            raise _unexpected("getNumber", reply, raw)
        logger.info("Leased number %s (activation %s)", reply.phone_number, reply.lease_id)
        return reply

    async def poll_status(self, lease_id: str) -> StatusPoll:
        """Ask whether the OTP for *lease_id* has arrived."""
        reply, raw = await self._request("getStatus", id=lease_id)
        if not isinstance(reply, StatusPoll):
            raise _unexpected("getStatus", reply, raw)
        return reply

    async def set_status(self, lease_id: str, status: int) -> Acknowledgement:
        """Signal the provider: ``1`` ready for SMS, ``8`` cancel activation."""
        reply, raw = await self._request("setStatus", id=lease_id, status=str(status))
        if not isinstance(reply, Acknowledgement):
            raise _unexpected("setStatus", reply, raw)
        return reply
