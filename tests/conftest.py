from collections.abc import AsyncIterator, Callable
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from prismcards.api.auth import get_identity_verifier
from prismcards.db.database import get_session
from prismcards.main import app
from prismcards.models.db import Base
from prismcards.models.schemas import CardInput
from prismcards.services.identity import Identity

ALICE = Identity(user_id="alice", email="alice@example.com")
BOB = Identity(user_id="bob", email="bob@example.com")
ADMIN = Identity(user_id="admin", email="admin@example.com")

TOKENS = {
    "alice-token": ALICE,
    "bob-token": BOB,
    "admin-token": ADMIN,
}


class FakeVerifier:
    """Resolves a fixed set of test tokens."""

    async def verify(self, token: str) -> Identity | None:
        return TOKENS.get(token)


@pytest.fixture
async def async_engine():
    """Create an in-memory SQLite engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory) -> AsyncIterator[AsyncSession]:
    """Provide a database session for tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory) -> AsyncIterator[AsyncClient]:
    """Provide an async test client with overridden session and identity provider."""

    async def override_get_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_identity_verifier] = FakeVerifier

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def make_card() -> Callable[..., CardInput]:
    """Factory for valid card payloads."""

    def _make(**overrides: Any) -> CardInput:
        data: dict[str, Any] = {
            "id": "card-1",
            "sport": "Basketball",
            "player": "Victor Wembanyama",
            "year": 2023,
            "brand": "Panini",
            "series": "Prizm",
            "insert": "Base",
            "purchase_price": 100.0,
            "current_value": 100.0,
        }
        data.update(overrides)
        return CardInput(**data)

    return _make


@pytest.fixture
def card_payload() -> Callable[..., dict[str, Any]]:
    """Factory for card JSON bodies."""

    def _make(**overrides: Any) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": "card-1",
            "sport": "Basketball",
            "player": "Victor Wembanyama",
            "year": 2023,
            "brand": "Panini",
            "series": "Prizm",
            "insert": "Base",
            "purchase_price": 100.0,
            "current_value": 100.0,
        }
        data.update(overrides)
        return data

    return _make
