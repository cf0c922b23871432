"""Request / response models for the public HTTP API."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from zepno.models.otp_session import SessionStatus
from zepno.models.transaction import TransactionType
from zepno.services.catalog import Service


class ServiceOut(BaseModel):
    id: str
    name: str
    price: Decimal
    is_active: bool
    description: str | None = None
    icon: str
    icon_asset: str

    @classmethod
    def from_service(cls, svc: Service) -> ServiceOut:
        return cls(
            id=svc.id,
            name=svc.name,
            price=svc.price,
            is_active=svc.is_active,
            description=svc.description,
            icon=svc.icon.value,
            icon_asset=svc.icon_asset,
        )


class OtpSessionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    service_id: str
    operator_id: str
    number: str
    otp: str | None
    session_token: str
    status: SessionStatus
    created_at: datetime


class SessionResultOut(BaseModel):
    """Orchestrator outcome; failures are reported inline, not as HTTP errors."""

    success: bool
    data: OtpSessionOut | None = None
    error: str | None = None
    error_code: str | None = None


class PurchaseRequest(BaseModel):
    service_id: str


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    type: TransactionType
    amount: Decimal
    purpose: str
    payment_id: str | None = None
    created_at: datetime


class WalletOut(BaseModel):
    user_id: str
    balance: Decimal


class TopupRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)


class TopupOut(BaseModel):
    qr_id: str
    qr_code: str
    amount: Decimal


class ErrorResponse(BaseModel):
    error: str
    code: str
