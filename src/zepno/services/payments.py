"""Razorpay integration — top-up QR codes and the payment webhook."""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from zepno.database.repository import UserRepository
from zepno.errors import (
    InvalidAmount,
    PaymentGatewayError,
    WebhookPayloadInvalid,
    WebhookSignatureInvalid,
)
from zepno.models.money import from_paise, to_paise
from zepno.models.transaction import Transaction
from zepno.services.email_service import EmailService
from zepno.services.locks import KeyedLock
from zepno.services.wallet import WalletLedger

logger = logging.getLogger(__name__)

TOPUP_PURPOSE = "Wallet top-up"
QR_VALIDITY_SECONDS = 3600


def verify_signature(body: bytes, signature: str | None, secret: str) -> None:
    """Check Razorpay's ``X-Razorpay-Signature`` (hex HMAC-SHA256 of the raw body).

    Raises ``WebhookSignatureInvalid`` when the header is missing or wrong.
    """
    if not signature:
        raise WebhookSignatureInvalid("Missing Razorpay signature")
    if not secret:
        raise WebhookSignatureInvalid("Webhook secret is not configured")
    expected = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    if not hmac.compare_digest(expected, signature):
        raise WebhookSignatureInvalid("Razorpay signature mismatch")


@dataclass
class CapturedPayment:
    payment_id: str
    user_id: str
    amount: Decimal


@dataclass
class WebhookOutcome:
    event: str
    credited: bool = False
    duplicate: bool = False
    transaction: Transaction | None = None


def parse_captured_payment(payload: dict[str, Any]) -> CapturedPayment:
    """Pull the fields we need out of a ``payment.captured`` event."""
    try:
        entity = payload["payload"]["payment"]["entity"]
        notes = entity.get("notes") or {}
        user_id = notes.get("user_id") or notes.get("userId")
        payment_id = entity["id"]
        paise = int(entity["amount"])
    except (KeyError, TypeError, ValueError) as exc:
        raise WebhookPayloadInvalid(f"Malformed payment.captured payload: {exc}") from exc
    if not user_id:
        raise WebhookPayloadInvalid(f"Payment {payment_id} carries no user id in notes")
    return CapturedPayment(
        payment_id=payment_id,
        user_id=str(user_id),
        amount=from_paise(paise),
    )


class PaymentWebhookProcessor:
    """Verifies and applies Razorpay webhook deliveries."""

    def __init__(
        self,
        db_session: AsyncSession,
        webhook_secret: str,
        user_locks: KeyedLock | None = None,
        email_service: EmailService | None = None,
    ) -> None:
        self._db = db_session
        self._secret = webhook_secret
        self._user_locks = user_locks
        self._email = email_service

    async def handle(self, body: bytes, signature: str | None) -> WebhookOutcome:
        verify_signature(body, signature, self._secret)

        try:
            payload = json.loads(body)
        except ValueError as exc:
            raise WebhookPayloadInvalid("Webhook body is not JSON") from exc

        if not isinstance(payload, dict):
            raise WebhookPayloadInvalid("Webhook body is not a JSON object")

        event = payload.get("event", "")
        if event != "payment.captured":
            logger.info("Ignoring Razorpay event %s", event or "<none>")
            return WebhookOutcome(event=event)

        payment = parse_captured_payment(payload)
        ledger = WalletLedger(self._db, payment.user_id, self._user_locks)
        txn, created = await ledger.credit_once(
            payment.amount, TOPUP_PURPOSE, payment_id=payment.payment_id
        )
        duplicate = not created

        if duplicate:
            logger.info("Duplicate delivery of payment %s ignored", payment.payment_id)
        else:
            logger.info(
                "Payment %s credited %s to %s",
                payment.payment_id,
                payment.amount,
                payment.user_id,
            )
            await self._send_receipt(ledger, payment.amount)
        return WebhookOutcome(
            event=event, credited=not duplicate, duplicate=duplicate, transaction=txn
        )

    async def _send_receipt(self, ledger: WalletLedger, amount: Decimal) -> None:
        if self._email is None:
            return
        user = await UserRepository(self._db).find_by_id(ledger.user_id)
        if user is None:
            return
        balance = await ledger.get_balance()
        await self._email.send_topup_receipt(user.email, user.name, amount, balance)


@dataclass
class TopupQr:
    qr_id: str
    image_url: str
    amount: Decimal


class RazorpayClient:
    """Thin async wrapper over the Razorpay REST API."""

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        base_url: str = "https://api.razorpay.com/v1",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._auth = (key_id, key_secret)
        self._base_url = base_url.rstrip("/")
        self._transport = transport

    async def create_topup_qr(
        self, user_id: str, amount: Decimal, min_amount: Decimal = Decimal("1")
    ) -> TopupQr:
        """Create a single-use, fixed-amount UPI QR that tops up *user_id*."""
        if amount < min_amount:
            raise InvalidAmount(f"Minimum top-up is {min_amount}")

        payload = {
            "type": "upi_qr",
            "name": "Zepno Wallet",
            "usage": "single_use",
            "fixed_amount": True,
            "payment_amount": to_paise(amount),
            "description": "Add funds to Zepno wallet",
            "close_by": int(time.time()) + QR_VALIDITY_SECONDS,
            "notes": {"user_id": user_id, "purpose": "wallet_topup"},
        }
        url = f"{self._base_url}/payments/qr_codes"
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                resp = await client.post(url, json=payload, auth=self._auth)
        except httpx.HTTPError as exc:
            logger.exception("QR creation request error: %s", exc)
            raise PaymentGatewayError("Payment gateway unreachable") from exc

        if resp.status_code not in (200, 201):
            logger.error("QR creation failed: %s %s", resp.status_code, resp.text)
            raise PaymentGatewayError(f"Payment gateway returned HTTP {resp.status_code}")

        data = resp.json()
        logger.info("Top-up QR %s created for %s (%s)", data["id"], user_id, amount)
        return TopupQr(qr_id=data["id"], image_url=data["image_url"], amount=amount)
