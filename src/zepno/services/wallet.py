"""Wallet ledger — balance and transaction log for a single user.

Each credit or debit adjusts ``users.balance`` and appends a
``transactions`` row inside one database transaction, so the stored
balance always equals credits minus debits.  Amounts are applied as
integer paise, so the SQL-side sufficiency check matches `get_balance`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from decimal import Decimal, InvalidOperation

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from zepno.errors import InsufficientBalance, InvalidAmount, UserNotFound
from zepno.models.money import from_paise, to_paise
from zepno.models.transaction import Transaction, TransactionType
from zepno.models.user import User
from zepno.services.locks import KeyedLock

logger = logging.getLogger(__name__)


class WalletLedger:
    """Ledger operations scoped to one user id.

    Parameters
    ----------
    session:
        An active async database session.  Every mutating call commits
        (or rolls back) on it.
    user_id:
        The wallet owner.
    locks:
        Process-wide lock table; mutations for the same user are
        serialised through it.  A private table is used when omitted.
    """

    def __init__(
        self, session: AsyncSession, user_id: str, locks: KeyedLock | None = None
    ) -> None:
        self._session = session
        self._user_id = user_id
        self._locks = locks or KeyedLock()

    @property
    def user_id(self) -> str:
        return self._user_id

    # ── Reads ────────────────────────────────────────────

    async def get_balance(self) -> Decimal:
        stmt = select(User.balance_paise).where(User.id == self._user_id)
        paise = (await self._session.execute(stmt)).scalar_one_or_none()
        if paise is None:
            raise UserNotFound(f"User {self._user_id} not found")
        return from_paise(paise)

    async def list_transactions(self) -> list[Transaction]:
        """All ledger entries for this user, newest first."""
        stmt = (
            select(Transaction)
            .where(Transaction.user_id == self._user_id)
            .order_by(Transaction.created_at.desc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def reconcile(self) -> tuple[Decimal, Decimal]:
        """Return ``(stored_balance, credits - debits)`` for auditing."""
        stored = await self.get_balance()
        signed = case(
            (Transaction.type == TransactionType.CREDIT, Transaction.amount_paise),
            else_=-Transaction.amount_paise,
        )
        stmt = select(func.coalesce(func.sum(signed), 0)).where(
            Transaction.user_id == self._user_id
        )
        derived = (await self._session.execute(stmt)).scalar_one()
        return stored, from_paise(derived)

    # ── Mutations ────────────────────────────────────────

    async def credit(
        self, amount: Decimal, purpose: str, payment_id: str | None = None
    ) -> Transaction:
        """Add *amount* to the wallet.

        When *payment_id* has already been recorded the existing
        transaction is returned and the balance is left untouched, which
        makes gateway webhook redelivery harmless.
        """
        txn, _ = await self.credit_once(amount, purpose, payment_id)
        return txn

    async def credit_once(
        self, amount: Decimal, purpose: str, payment_id: str | None = None
    ) -> tuple[Transaction, bool]:
        """Like :meth:`credit`, also reporting whether a new entry was written."""
        amount = _validate_amount(amount)

        async with self._locks.hold(self._user_id):
            if payment_id is not None:
                existing = await self._find_by_payment_id(payment_id)
                if existing is not None:
                    logger.info("Payment %s already credited, skipping", payment_id)
                    return existing, False

            stmt = (
                update(User)
                .where(User.id == self._user_id)
                .values(balance_paise=User.balance_paise + to_paise(amount))
                .execution_options(synchronize_session=False)
            )
            try:
                result = await self._session.execute(stmt)
                if result.rowcount == 0:
                    raise UserNotFound(f"User {self._user_id} not found")
                txn = self._append(TransactionType.CREDIT, amount, purpose, payment_id)
                await self._session.commit()
            except IntegrityError:
                # Concurrent delivery of the same payment won the race.
                await self._session.rollback()
                existing = await self._find_by_payment_id(payment_id) if payment_id else None
                if existing is None:
                    raise
                return existing, False
            except Exception:
                await self._session.rollback()
                raise

        logger.info("Credited %s to %s (%s)", amount, self._user_id, purpose)
        return txn, True

    async def debit(
        self, amount: Decimal, purpose: str, extra_rows: Iterable[object] = ()
    ) -> Transaction:
        """Take *amount* from the wallet or raise ``InsufficientBalance``.

        *extra_rows* are inserted in the same database transaction as the
        debit: either the debit and every row are committed, or nothing is.
        """
        amount = _validate_amount(amount)
        paise = to_paise(amount)

        async with self._locks.hold(self._user_id):
            stmt = (
                update(User)
                .where(User.id == self._user_id, User.balance_paise >= paise)
                .values(balance_paise=User.balance_paise - paise)
                .execution_options(synchronize_session=False)
            )
            try:
                result = await self._session.execute(stmt)
                if result.rowcount == 0:
                    await self._session.rollback()
                    balance = await self.get_balance()
                    raise InsufficientBalance(
                        f"Insufficient balance: {balance} available, {amount} required"
                    )
                txn = self._append(TransactionType.DEBIT, amount, purpose, None)
                self._session.add_all(extra_rows)
                await self._session.commit()
            except InsufficientBalance:
                raise
            except Exception:
                await self._session.rollback()
                raise

        logger.info("Debited %s from %s (%s)", amount, self._user_id, purpose)
        return txn

    # ── Private helpers ──────────────────────────────────

    def _append(
        self,
        kind: TransactionType,
        amount: Decimal,
        purpose: str,
        payment_id: str | None,
    ) -> Transaction:
        txn = Transaction(
            user_id=self._user_id,
            type=kind,
            amount=amount,
            purpose=purpose,
            payment_id=payment_id,
        )
        self._session.add(txn)
        return txn

    async def _find_by_payment_id(self, payment_id: str) -> Transaction | None:
        stmt = select(Transaction).where(Transaction.payment_id == payment_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()


def _validate_amount(amount: Decimal) -> Decimal:
    try:
        amount = Decimal(str(amount))
    except InvalidOperation as exc:
        raise InvalidAmount(f"Amount is not a number: {amount!r}") from exc
    if not amount.is_finite() or amount <= 0:
        raise InvalidAmount(f"Amount must be positive, got {amount}")
    if to_paise(amount) == 0:
        raise InvalidAmount(f"Amount is less than one paisa: {amount}")
    return from_paise(to_paise(amount))
