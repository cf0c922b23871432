"""Shared fixtures — a fresh in-memory database per test."""

from __future__ import annotations

from decimal import Decimal

import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from zepno.models.registry import metadata
from zepno.models.user import User


@pytest_asyncio.fixture
async def db_session():
    """Create tables in a fresh in-memory DB and yield a session."""
    engine = create_async_engine("sqlite+aiosqlite://", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        yield session

    await engine.dispose()


@pytest_asyncio.fixture
async def make_user(db_session):
    """Factory inserting a user with a given starting balance."""
    counter = 0

    async def _make(balance: str = "0", name: str = "Test User") -> User:
        nonlocal counter
        counter += 1
        user = User(
            email=f"user{counter}@example.com",
            name=name,
            balance=Decimal(balance),
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _make
