"""Tests for tier API endpoints."""

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from prismcards.models.enums import UserTier
from prismcards.services.unlock_keys import INVALID_KEY, UnlockKeyLedger

ALICE = {"Authorization": "Bearer alice-token"}
BOB = {"Authorization": "Bearer bob-token"}


async def create_key(factory: async_sessionmaker[AsyncSession], **kwargs) -> str:
    async with factory() as session:
        unlock_key = await UnlockKeyLedger(session).create_unlock_key(UserTier.UNLIMITED, **kwargs)
        await session.commit()
        return unlock_key.key


class TestProfile:
    async def test_profile_created_on_first_read(self, client: AsyncClient) -> None:
        response = await client.get("/tier/profile", headers=ALICE)

        assert response.status_code == 200
        data = response.json()
        assert data["user_id"] == "alice"
        assert data["email"] == "alice@example.com"
        assert data["tier"] == "free"
        assert data["card_limit"] == 30

    async def test_profile_requires_token(self, client: AsyncClient) -> None:
        response = await client.get("/tier/profile")

        assert response.status_code == 401


class TestCanAddCard:
    async def test_empty_collection(self, client: AsyncClient) -> None:
        response = await client.get("/tier/can-add-card", headers=ALICE)

        assert response.status_code == 200
        assert response.json() == {"allowed": True, "limit": 30, "current": 0, "message": None}


class TestRedeemKey:
    async def test_redeem_success(
        self, client: AsyncClient, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        key = await create_key(session_factory, card_limit=100)

        response = await client.post("/tier/redeem-key", json={"key": key}, headers=ALICE)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "Successfully unlocked 100 cards!"
        assert data["profile"]["card_limit"] == 100
        assert data["profile"]["unlock_key"] == key

        profile = await client.get("/tier/profile", headers=ALICE)
        assert profile.json()["tier"] == "unlimited"

    async def test_unknown_key_answers_400_with_reason(self, client: AsyncClient) -> None:
        response = await client.post(
            "/tier/redeem-key", json={"key": "PRISM-0000-0000-0000"}, headers=ALICE
        )

        assert response.status_code == 400
        assert response.json() == {"success": False, "message": INVALID_KEY, "profile": None}

    async def test_missing_key(self, client: AsyncClient) -> None:
        response = await client.post("/tier/redeem-key", json={}, headers=ALICE)

        assert response.status_code == 400
        assert response.json()["failure"]["kind"] == "missing_required"

    async def test_blank_key(self, client: AsyncClient) -> None:
        response = await client.post("/tier/redeem-key", json={"key": "   "}, headers=ALICE)

        assert response.status_code == 400
        assert response.json()["failure"]["message"] == "Unlock key is required"

    async def test_single_use_key(
        self, client: AsyncClient, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        key = await create_key(session_factory, card_limit=50, max_uses=1)
        await client.post("/tier/redeem-key", json={"key": key}, headers=ALICE)

        response = await client.post("/tier/redeem-key", json={"key": key}, headers=BOB)

        assert response.status_code == 400
        assert response.json()["success"] is False


class TestPublicConfig:
    async def test_no_auth_needed(self, client: AsyncClient) -> None:
        response = await client.get("/tier/config")

        assert response.status_code == 200
        assert response.json() == {"default_card_limit": 30}
