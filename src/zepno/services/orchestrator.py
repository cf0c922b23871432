"""Session orchestrator — ties a wallet debit to a number lease.

Purchase flow
-------------
1. **Quote**  — resolve the service, refuse early if the wallet can't
   cover the price (no provider call is made).
2. **Lease**  — check out a number; a provider failure aborts with the
   wallet untouched.
3. **Commit** — debit the wallet and record the session in one database
   transaction.  If either fails the fresh lease is cancelled with the
   provider so no unpaid number stays active.

``refresh`` and ``cancel`` act on one session at a time, serialised per
lease id.  Every public method returns an :class:`OperationResult`;
provider and ledger errors never escape as exceptions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from zepno.errors import (
    InsufficientBalance,
    ProviderError,
    ServiceNotFound,
    ServiceUnavailable,
    SessionAlreadyTerminal,
    SessionNotFound,
    SessionPersistenceError,
    UserNotFound,
    ZepnoError,
)
from zepno.models.otp_session import DEFAULT_OPERATOR_ID, OtpSession, SessionStatus
from zepno.services.catalog import ServiceCatalog
from zepno.services.locks import KeyedLock
from zepno.services.session_store import OtpSessionStore
from zepno.services.sms_provider import STATUS_CANCEL, STATUS_READY, PollState, SmsActivateClient
from zepno.services.wallet import WalletLedger

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Errors that are part of normal operation and become failed results.
_RECOVERABLE = (
    ProviderError,
    InsufficientBalance,
    UserNotFound,
    ServiceNotFound,
    ServiceUnavailable,
    SessionNotFound,
    SessionAlreadyTerminal,
)


@dataclass
class OperationResult(Generic[T]):
    """Value object returned to the HTTP layer after every operation."""

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def ok(cls, data: T) -> OperationResult[T]:
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, exc: ZepnoError, data: Any = None) -> OperationResult[T]:
        return cls(success=False, data=data, error=exc.message, error_code=exc.code)


class SessionOrchestrator:
    """Coordinates the catalog, provider, wallet and session store."""

    def __init__(
        self,
        db_session: AsyncSession,
        provider: SmsActivateClient,
        catalog: ServiceCatalog,
        country_code: str,
        user_locks: KeyedLock | None = None,
        session_locks: KeyedLock | None = None,
    ) -> None:
        self._db = db_session
        self._provider = provider
        self._catalog = catalog
        self._country = country_code
        self._user_locks = user_locks or KeyedLock()
        self._session_locks = session_locks or KeyedLock()
        self._store = OtpSessionStore(db_session)

    def ledger(self, user_id: str) -> WalletLedger:
        return WalletLedger(self._db, user_id, self._user_locks)

    # ── Purchase ─────────────────────────────────────────

    async def purchase(self, user_id: str, service_id: str) -> OperationResult[OtpSession]:
        """Buy a number for *service_id* on behalf of *user_id*."""
        ledger = self.ledger(user_id)
        try:
            service = await self._catalog.get_service(service_id)
            if not service.is_active:
                raise ServiceUnavailable(f"{service.name} is currently unavailable")

            balance = await ledger.get_balance()
            if balance < service.price:
                raise InsufficientBalance(
                    "Insufficient balance. Please add funds to your wallet."
                )

            lease = await self._provider.lease_number(service.code, self._country)
        except _RECOVERABLE as exc:
            logger.info("Purchase of %s by %s refused: %s", service_id, user_id, exc)
            return OperationResult.fail(exc)

        otp_session = self._store.prepare(
            OtpSession(
                id=lease.lease_id,
                user_id=user_id,
                service_id=service.id,
                operator_id=DEFAULT_OPERATOR_ID,
                number=lease.phone_number,
                otp=None,
                session_token=lease.lease_id,
                status=SessionStatus.PENDING,
            )
        )
        try:
            # Debit and session row commit together.
            await ledger.debit(
                service.price, f"OTP for {service.name}", extra_rows=(otp_session,)
            )
        except _RECOVERABLE as exc:
            logger.warning(
                "Debit failed after lease %s for %s, releasing number: %s",
                lease.lease_id,
                user_id,
                exc,
            )
            await self._release_lease(lease.lease_id)
            return OperationResult.fail(exc)
        except SQLAlchemyError as exc:
            logger.exception(
                "Could not record lease %s for %s, releasing number", lease.lease_id, user_id
            )
            await self._release_lease(lease.lease_id)
            return OperationResult.fail(
                SessionPersistenceError(f"Could not record session {lease.lease_id}: {exc}")
            )

        logger.info(
            "Session %s created for user %s (%s)", otp_session.id, user_id, otp_session.number
        )

        try:
            await self._provider.set_status(lease.lease_id, STATUS_READY)
        except ProviderError as exc:
            logger.warning("Could not mark lease %s ready: %s", lease.lease_id, exc)

        return OperationResult.ok(otp_session)

    # ── Poll / cancel ────────────────────────────────────

    async def refresh(self, lease_id: str) -> OperationResult[OtpSession]:
        """Poll the provider once and apply the result."""
        async with self._session_locks.hold(lease_id):
            try:
                otp_session = await self._pending_session(lease_id)
            except _RECOVERABLE as exc:
                return OperationResult.fail(exc, data=await self._store.find(lease_id))

            try:
                poll = await self._provider.poll_status(lease_id)
            except ProviderError as exc:
                logger.warning("Status poll for %s failed: %s", lease_id, exc)
                return OperationResult.fail(exc, data=otp_session)

            if poll.state is PollState.CODE_RECEIVED:
                otp_session = await self._store.update_status(
                    lease_id, SessionStatus.SUCCESS, otp=poll.code
                )
            elif poll.state is PollState.CANCELED:
                otp_session = await self._store.update_status(
                    lease_id, SessionStatus.CANCELED
                )
            return OperationResult.ok(otp_session)

    async def cancel(self, lease_id: str) -> OperationResult[OtpSession]:
        """Cancel the activation with the provider, then locally."""
        async with self._session_locks.hold(lease_id):
            try:
                await self._pending_session(lease_id)
                await self._provider.set_status(lease_id, STATUS_CANCEL)
            except _RECOVERABLE as exc:
                logger.info("Cancel of %s refused: %s", lease_id, exc)
                return OperationResult.fail(exc, data=await self._store.find(lease_id))

            otp_session = await self._store.update_status(lease_id, SessionStatus.CANCELED)
            return OperationResult.ok(otp_session)

    async def list_sessions(self, user_id: str) -> OperationResult[list[OtpSession]]:
        return OperationResult.ok(await self._store.list_by_user(user_id))

    async def get_session(self, lease_id: str) -> OperationResult[OtpSession]:
        otp_session = await self._store.find(lease_id)
        if otp_session is None:
            return OperationResult.fail(SessionNotFound(f"Session {lease_id} not found"))
        return OperationResult.ok(otp_session)

    # ── Private helpers ──────────────────────────────────

    async def _pending_session(self, lease_id: str) -> OtpSession:
        otp_session = await self._store.find(lease_id)
        if otp_session is None:
            raise SessionNotFound(f"Session {lease_id} not found")
        if otp_session.status.is_terminal:
            raise SessionAlreadyTerminal(
                f"Session {lease_id} is already {otp_session.status.value}"
            )
        return otp_session

    async def _release_lease(self, lease_id: str) -> None:
        try:
            await self._provider.set_status(lease_id, STATUS_CANCEL)
        except ProviderError:
            logger.exception("Failed to cancel unpaid lease %s; it stays active", lease_id)
