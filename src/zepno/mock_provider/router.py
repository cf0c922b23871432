"""Mock SMS provider — speaks the SMS-Activate handler protocol for local runs.

Point ``SMS_ACTIVATE_BASE_URL`` at
``http://localhost:8000/mock/sms-activate/stubs/handler_api.php``.

Supported actions
-----------------
getBalance, getPrices, getNumber, getStatus, setStatus (1 = ready, 8 = cancel)
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from zepno.mock_provider.lease_store import RECEIVED, LeaseStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/mock/sms-activate", tags=["mock-provider"])

# Shared lease store (in-memory singleton)
_lease_store = LeaseStore()

MOCK_API_KEY = "mock-key"

MOCK_PRICES = {
    "fl": {"cost": 20, "count": 142},
    "zp": {"cost": 25, "count": 87},
}


def _text(body: str) -> PlainTextResponse:
    return PlainTextResponse(body)


@router.get("/stubs/handler_api.php")
async def handler_api(
    action: str = Query(...),
    api_key: str = Query(""),
    service: str | None = Query(None),
    country: str | None = Query(None),
    id: str | None = Query(None),
    status: str | None = Query(None),
) -> Response:
    """Dispatch one provider action."""
    if api_key != MOCK_API_KEY:
        return _text("BAD_KEY")

    if action == "getBalance":
        return _text(f"ACCESS_BALANCE:{_lease_store.balance:.2f}")

    if action == "getPrices":
        return JSONResponse({country or "22": MOCK_PRICES})

    if action == "getNumber":
        if service not in MOCK_PRICES:
            return _text("BAD_SERVICE")
        lease = _lease_store.lease(service)
        return _text(f"ACCESS_NUMBER:{lease.lease_id}:{lease.number}")

    if action == "getStatus":
        lease = _lease_store.get(id or "")
        if lease is None:
            return _text("NO_ACTIVATION")
        if lease.status == RECEIVED:
            return _text(f"{RECEIVED}:{lease.code}")
        return _text(lease.status)

    if action == "setStatus":
        if status == "1":
            return _text("ACCESS_READY" if _lease_store.mark_ready(id or "") else "BAD_STATUS")
        if status == "8":
            return _text("ACCESS_CANCEL" if _lease_store.cancel(id or "") else "BAD_STATUS")
        return _text("BAD_STATUS")

    logger.info("Mock provider: unsupported action %s", action)
    return _text("BAD_ACTION")
