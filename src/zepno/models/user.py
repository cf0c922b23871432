"""SQLAlchemy User model."""

import uuid
from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import BigInteger, Boolean, DateTime, Index, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from zepno.models.money import from_paise, to_paise


class Base(DeclarativeBase):
    """Shared declarative base for all ORM models."""


class User(Base):
    """A wallet holder.

    Identity and authentication live with the identity provider; this row
    only mirrors the id and carries the wallet balance, held in integer
    paise so SQL arithmetic on it is exact.  The balance is written
    exclusively by :class:`~zepno.services.wallet.WalletLedger`.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    email: Mapped[str] = mapped_column(String(256), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    # Whole paise; see `balance` for the rupee value.
    balance_paise: Mapped[int] = mapped_column(
        "balance", BigInteger, nullable=False, default=0
    )
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC)
    )

    __table_args__ = (Index("ix_users_email", "email"),)

    @property
    def balance(self) -> Decimal:
        return from_paise(self.balance_paise or 0)

    @balance.setter
    def balance(self, value: Decimal) -> None:
        self.balance_paise = to_paise(value)

    def __repr__(self) -> str:
        return f"<User id={self.id} name={self.name!r} balance={self.balance}>"
