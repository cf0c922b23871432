"""Seed script — populates the database with sample wallet holders."""

import asyncio
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from zepno.database.engine import async_session_factory, init_db
from zepno.database.repository import UserRepository
from zepno.models.user import User
from zepno.services.wallet import WalletLedger

SAMPLE_USERS = [
    # (id, email, name, opening credit)
    ("11111111-1111-1111-1111-111111111111", "alice@example.com", "Alice Johnson", Decimal("100")),
    ("22222222-2222-2222-2222-222222222222", "bob@example.com", "Bob Smith", Decimal("20")),
    ("33333333-3333-3333-3333-333333333333", "carol@example.com", "Carol Davis", Decimal("0")),
]


async def seed() -> None:
    """Insert sample users and credit their opening balances."""
    await init_db()
    async with async_session_factory() as session:
        session: AsyncSession
        repo = UserRepository(session)
        created = 0
        for user_id, email, name, opening in SAMPLE_USERS:
            if await repo.find_by_email(email) is not None:
                continue
            session.add(User(id=user_id, email=email, name=name))
            await session.commit()
            if opening > 0:
                await WalletLedger(session, user_id).credit(opening, "Opening balance")
            created += 1
    print(f"✅ Seeded {created} users into the database.")


if __name__ == "__main__":
    asyncio.run(seed())
