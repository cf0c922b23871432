"""OTP session store — durable record of leased numbers and their status."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from zepno.errors import SessionAlreadyTerminal, SessionNotFound
from zepno.models.otp_session import OtpSession, SessionStatus

logger = logging.getLogger(__name__)


class OtpSessionStore:
    """Database-backed store keyed by the provider's activation id.

    Status only ever moves ``pending → success`` or ``pending → canceled``;
    :meth:`update_status` raises on any attempt to leave a terminal state.
    Callers that poll and update concurrently are expected to serialise
    per session id (see ``SessionOrchestrator``).
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @staticmethod
    def prepare(otp_session: OtpSession) -> OtpSession:
        """Fill in defaults without touching the database.

        The result can be inserted together with other writes (for example
        the purchase debit) so both commit or neither does.
        """
        if otp_session.status is None:
            otp_session.status = SessionStatus.PENDING
        if not otp_session.session_token:
            otp_session.session_token = otp_session.id
        return otp_session

    async def create(self, otp_session: OtpSession) -> OtpSession:
        """Persist a freshly leased session."""
        self._session.add(self.prepare(otp_session))
        await self._session.commit()
        logger.info(
            "Session %s created for user %s (%s)",
            otp_session.id,
            otp_session.user_id,
            otp_session.number,
        )
        return otp_session

    async def find(self, lease_id: str) -> OtpSession | None:
        return await self._session.get(OtpSession, lease_id)

    async def list_by_user(self, user_id: str) -> list[OtpSession]:
        """All sessions owned by *user_id*, newest first."""
        stmt = (
            select(OtpSession)
            .where(OtpSession.user_id == user_id)
            .order_by(OtpSession.created_at.desc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def update_status(
        self, lease_id: str, new_status: SessionStatus, otp: str | None = None
    ) -> OtpSession:
        """Move a pending session to *new_status*.

        Raises
        ------
        SessionNotFound
            No session with this id.
        SessionAlreadyTerminal
            The session is already ``success`` or ``canceled``.
        ValueError
            ``otp`` given for a non-success status, or missing for success.
        """
        if (new_status is SessionStatus.SUCCESS) != (otp is not None):
            raise ValueError("An OTP must accompany, and only accompany, status 'success'")

        otp_session = await self.find(lease_id)
        if otp_session is None:
            raise SessionNotFound(f"Session {lease_id} not found")
        if otp_session.status.is_terminal:
            raise SessionAlreadyTerminal(
                f"Session {lease_id} is already {otp_session.status.value}"
            )
        if new_status is SessionStatus.PENDING:
            return otp_session

        otp_session.status = new_status
        otp_session.otp = otp
        await self._session.commit()
        logger.info("Session %s → %s", lease_id, new_status.value)
        return otp_session
