"""SQLAlchemy Transaction model — append-only wallet ledger entries."""

import enum
import uuid
from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import BigInteger, DateTime, Enum, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from zepno.models.money import from_paise, to_paise
from zepno.models.user import Base


class TransactionType(str, enum.Enum):
    CREDIT = "credit"
    DEBIT = "debit"


class Transaction(Base):
    """One credit or debit against a user's wallet.

    Rows are inserted in the same database transaction that adjusts
    ``users.balance`` and are never updated or deleted afterwards.
    """

    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False
    )
    type: Mapped[TransactionType] = mapped_column(
        Enum(TransactionType, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    amount_paise: Mapped[int] = mapped_column("amount", BigInteger, nullable=False)
    purpose: Mapped[str] = mapped_column(String(256), nullable=False)
    payment_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True, unique=True, doc="Gateway payment id for top-ups"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC)
    )

    __table_args__ = (Index("ix_transactions_user_id", "user_id"),)

    @property
    def amount(self) -> Decimal:
        return from_paise(self.amount_paise)

    @amount.setter
    def amount(self, value: Decimal) -> None:
        self.amount_paise = to_paise(value)

    def __repr__(self) -> str:
        return (
            f"<Transaction id={self.id} user={self.user_id} "
            f"{self.type.value} {self.amount}>"
        )
