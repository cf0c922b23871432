"""SQLAlchemy OtpSession model — one leased number and its OTP status."""

import enum
from datetime import UTC, datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from zepno.models.user import Base

DEFAULT_OPERATOR_ID = "1"


class SessionStatus(str, enum.Enum):
    PENDING = "pending"
    SUCCESS = "success"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self is not SessionStatus.PENDING


class OtpSession(Base):
    """A number leased from the SMS provider for a single verification.

    The primary key is the provider-issued activation id; ``session_token``
    mirrors it.  ``otp`` is only ever set together with
    ``status == success``.
    """

    __tablename__ = "otp_sessions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False
    )
    service_id: Mapped[str] = mapped_column(String(32), nullable=False)
    operator_id: Mapped[str] = mapped_column(
        String(32), nullable=False, default=DEFAULT_OPERATOR_ID
    )
    number: Mapped[str] = mapped_column(String(32), nullable=False)
    otp: Mapped[str | None] = mapped_column(String(32), nullable=True)
    session_token: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[SessionStatus] = mapped_column(
        Enum(SessionStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=SessionStatus.PENDING,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC)
    )

    __table_args__ = (Index("ix_otp_sessions_user_id", "user_id"),)

    def __repr__(self) -> str:
        return (
            f"<OtpSession id={self.id} number={self.number!r} "
            f"status={self.status.value}>"
        )
