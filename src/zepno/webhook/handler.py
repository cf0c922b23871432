"""Razorpay webhook handler — credits wallets on captured payments."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Header, Request

from zepno.api.deps import get_webhook_processor
from zepno.services.payments import PaymentWebhookProcessor

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhook"])


# ──────────────────────────────────────────────────────────────
# POST /webhooks/razorpay — Payment events
# ──────────────────────────────────────────────────────────────
@router.post("/webhooks/razorpay")
async def razorpay_webhook(
    request: Request,
    x_razorpay_signature: str | None = Header(None),
    processor: PaymentWebhookProcessor = Depends(get_webhook_processor),
) -> dict:
    """Process a Razorpay event.

    The signature is checked against the raw body before anything is
    parsed.  Expected payload structure (simplified)::

        {
          "event": "payment.captured",
          "payload": {
            "payment": {
              "entity": {
                "id": "pay_29QQoUBi66xm2f",
                "amount": 50000,
                "notes": { "user_id": "…" }
              }
            }
          }
        }

    Redelivered events are acknowledged without crediting twice.
    """
    body = await request.body()
    outcome = await processor.handle(body, x_razorpay_signature)
    return {
        "success": True,
        "event": outcome.event,
        "credited": outcome.credited,
        "duplicate": outcome.duplicate,
    }
