"""Public API — catalog, OTP sessions and wallet.

Endpoints
---------
GET  /services                          → service catalog
GET  /services/{service_id}             → one service
GET  /users/{user_id}/sessions          → user's OTP sessions
POST /users/{user_id}/sessions          → buy a number
POST /sessions/{lease_id}/refresh       → poll the provider once
POST /sessions/{lease_id}/cancel        → cancel an activation
GET  /users/{user_id}/wallet            → balance
GET  /users/{user_id}/transactions      → ledger history
POST /users/{user_id}/wallet/topup      → create a top-up QR code
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from zepno.api.deps import get_catalog, get_orchestrator, get_razorpay
from zepno.api.schemas import (
    OtpSessionOut,
    PurchaseRequest,
    ServiceOut,
    SessionResultOut,
    TopupOut,
    TopupRequest,
    TransactionOut,
    WalletOut,
)
from zepno.config import settings
from zepno.models.otp_session import OtpSession
from zepno.services.catalog import ServiceCatalog
from zepno.services.orchestrator import OperationResult, SessionOrchestrator
from zepno.services.payments import RazorpayClient

logger = logging.getLogger(__name__)

router = APIRouter(tags=["otp"])


def _session_result(result: OperationResult[OtpSession]) -> SessionResultOut:
    return SessionResultOut(
        success=result.success,
        data=OtpSessionOut.model_validate(result.data) if result.data is not None else None,
        error=result.error,
        error_code=result.error_code,
    )


# ── Catalog ──────────────────────────────────────────────

@router.get("/services", response_model=list[ServiceOut])
async def list_services(catalog: ServiceCatalog = Depends(get_catalog)):
    return [ServiceOut.from_service(svc) for svc in await catalog.list_services()]


@router.get("/services/{service_id}", response_model=ServiceOut)
async def get_service(service_id: str, catalog: ServiceCatalog = Depends(get_catalog)):
    return ServiceOut.from_service(await catalog.get_service(service_id))


# ── Sessions ─────────────────────────────────────────────

@router.get("/users/{user_id}/sessions", response_model=list[OtpSessionOut])
async def list_sessions(
    user_id: str, orchestrator: SessionOrchestrator = Depends(get_orchestrator)
):
    result = await orchestrator.list_sessions(user_id)
    return [OtpSessionOut.model_validate(s) for s in result.data or []]


@router.post("/users/{user_id}/sessions", response_model=SessionResultOut)
async def purchase_number(
    user_id: str,
    body: PurchaseRequest,
    orchestrator: SessionOrchestrator = Depends(get_orchestrator),
):
    logger.info("Purchase request: user=%s service=%s", user_id, body.service_id)
    return _session_result(await orchestrator.purchase(user_id, body.service_id))


@router.post("/sessions/{lease_id}/refresh", response_model=SessionResultOut)
async def refresh_session(
    lease_id: str, orchestrator: SessionOrchestrator = Depends(get_orchestrator)
):
    return _session_result(await orchestrator.refresh(lease_id))


@router.post("/sessions/{lease_id}/cancel", response_model=SessionResultOut)
async def cancel_session(
    lease_id: str, orchestrator: SessionOrchestrator = Depends(get_orchestrator)
):
    logger.info("Cancel request for %s", lease_id)
    return _session_result(await orchestrator.cancel(lease_id))


# ── Wallet ───────────────────────────────────────────────

@router.get("/users/{user_id}/wallet", response_model=WalletOut)
async def get_wallet(
    user_id: str, orchestrator: SessionOrchestrator = Depends(get_orchestrator)
):
    balance = await orchestrator.ledger(user_id).get_balance()
    return WalletOut(user_id=user_id, balance=balance)


@router.get("/users/{user_id}/transactions", response_model=list[TransactionOut])
async def list_transactions(
    user_id: str, orchestrator: SessionOrchestrator = Depends(get_orchestrator)
):
    ledger = orchestrator.ledger(user_id)
    await ledger.get_balance()  # 404 for unknown users
    return [TransactionOut.model_validate(t) for t in await ledger.list_transactions()]


@router.post("/users/{user_id}/wallet/topup", response_model=TopupOut)
async def create_topup(
    user_id: str,
    body: TopupRequest,
    orchestrator: SessionOrchestrator = Depends(get_orchestrator),
    razorpay: RazorpayClient = Depends(get_razorpay),
):
    await orchestrator.ledger(user_id).get_balance()
    qr = await razorpay.create_topup_qr(user_id, body.amount, settings.topup_min_amount)
    return TopupOut(qr_id=qr.qr_id, qr_code=qr.image_url, amount=qr.amount)
