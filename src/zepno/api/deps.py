"""FastAPI dependency providers — the only place settings reach services."""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from zepno.config import settings
from zepno.database.engine import get_session
from zepno.services.catalog import ServiceCatalog
from zepno.services.email_service import EmailService
from zepno.services.locks import KeyedLock
from zepno.services.orchestrator import SessionOrchestrator
from zepno.services.payments import PaymentWebhookProcessor, RazorpayClient
from zepno.services.sms_provider import SmsActivateClient

# ── Shared instances (created once, reused across requests) ──
user_locks = KeyedLock()
session_locks = KeyedLock()


@lru_cache
def get_provider() -> SmsActivateClient:
    return SmsActivateClient(
        api_key=settings.sms_activate_api_key,
        base_url=settings.sms_activate_base_url,
        timeout=settings.provider_timeout_seconds,
    )


@lru_cache
def get_catalog() -> ServiceCatalog:
    return ServiceCatalog(
        price_source=get_provider(),
        country_code=settings.sms_country_code,
        cache_seconds=settings.catalog_cache_seconds,
        retry_seconds=settings.catalog_retry_seconds,
    )


@lru_cache
def get_razorpay() -> RazorpayClient:
    return RazorpayClient(
        key_id=settings.razorpay_key_id,
        key_secret=settings.razorpay_key_secret,
        base_url=settings.razorpay_base_url,
    )


@lru_cache
def get_email_service() -> EmailService:
    return EmailService(
        hostname=settings.smtp_host,
        port=settings.smtp_port,
        sender=settings.email_from,
        app_name=settings.app_name,
        username=settings.smtp_username,
        password=settings.smtp_password,
    )


def get_orchestrator(
    db: AsyncSession = Depends(get_session),
    provider: SmsActivateClient = Depends(get_provider),
    catalog: ServiceCatalog = Depends(get_catalog),
) -> SessionOrchestrator:
    return SessionOrchestrator(
        db_session=db,
        provider=provider,
        catalog=catalog,
        country_code=settings.sms_country_code,
        user_locks=user_locks,
        session_locks=session_locks,
    )


def get_webhook_processor(
    db: AsyncSession = Depends(get_session),
    email_service: EmailService = Depends(get_email_service),
) -> PaymentWebhookProcessor:
    return PaymentWebhookProcessor(
        db_session=db,
        webhook_secret=settings.razorpay_webhook_secret,
        user_locks=user_locks,
        email_service=email_service,
    )
