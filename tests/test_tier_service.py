"""Tests for profile creation and the card-limit check."""

from collections.abc import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from prismcards.config import UNLIMITED, settings
from prismcards.models.enums import UserTier
from prismcards.models.schemas import CardInput
from prismcards.services.card_repository import CardRepository
from prismcards.services.system_config import SystemConfigStore
from prismcards.services.tier import EntitlementResolver, is_unlimited, limit_reached_message

MakeCard = Callable[..., CardInput]


class TestGetUserProfile:
    async def test_new_user_gets_free_tier_with_default_limit(self, session: AsyncSession) -> None:
        profile = await EntitlementResolver(session).get_user_profile("alice", "alice@example.com")

        assert profile.tier == UserTier.FREE
        assert profile.card_limit == settings.default_card_limit
        assert profile.whitelisted is False
        assert profile.unlock_key is None

    async def test_profile_created_once(self, session: AsyncSession) -> None:
        resolver = EntitlementResolver(session)

        first = await resolver.get_user_profile("alice", "alice@example.com")
        second = await resolver.get_user_profile("alice", "alice@example.com")

        assert first is second

    async def test_email_is_lowercased(self, session: AsyncSession) -> None:
        profile = await EntitlementResolver(session).get_user_profile("alice", " Alice@Example.COM ")

        assert profile.email == "alice@example.com"

    async def test_whitelisted_email_gets_unlimited(self, session: AsyncSession) -> None:
        await SystemConfigStore(session).add_to_whitelist("alice@example.com")

        profile = await EntitlementResolver(session).get_user_profile("alice", "ALICE@example.com")

        assert profile.tier == UserTier.UNLIMITED
        assert profile.card_limit == UNLIMITED
        assert profile.whitelisted is True

    async def test_limit_is_snapshotted_at_creation(self, session: AsyncSession) -> None:
        """Changing the default later does not move existing profiles."""
        store = SystemConfigStore(session)
        await store.update_config(default_card_limit=10)
        resolver = EntitlementResolver(session)
        profile = await resolver.get_user_profile("alice", "alice@example.com")

        await store.update_config(default_card_limit=50)

        assert profile.card_limit == 10
        newcomer = await resolver.get_user_profile("bob", "bob@example.com")
        assert newcomer.card_limit == 50


class TestCanAddCard:
    async def test_allowed_under_limit(self, session: AsyncSession, make_card: MakeCard) -> None:
        await SystemConfigStore(session).update_config(default_card_limit=2)
        await CardRepository(session).save_card(make_card(id="c1"), "alice")

        check = await EntitlementResolver(session).can_add_card("alice", "alice@example.com")

        assert check.allowed is True
        assert check.limit == 2
        assert check.current == 1
        assert check.message is None

    async def test_denied_at_limit(self, session: AsyncSession, make_card: MakeCard) -> None:
        await SystemConfigStore(session).update_config(default_card_limit=2)
        repo = CardRepository(session)
        await repo.save_card(make_card(id="c1"), "alice")
        await repo.save_card(make_card(id="c2"), "alice")

        check = await EntitlementResolver(session).can_add_card("alice", "alice@example.com")

        assert check.allowed is False
        assert check.current == 2
        assert check.message == limit_reached_message(2)

    async def test_watchlist_cards_do_not_count(
        self, session: AsyncSession, make_card: MakeCard
    ) -> None:
        await SystemConfigStore(session).update_config(default_card_limit=1)
        repo = CardRepository(session)
        for i in range(5):
            await repo.save_card(make_card(id=f"w{i}", watchlist=True), "alice")

        check = await EntitlementResolver(session).can_add_card("alice", "alice@example.com")

        assert check.allowed is True
        assert check.current == 0

    async def test_unlimited_always_allowed(
        self, session: AsyncSession, make_card: MakeCard
    ) -> None:
        await SystemConfigStore(session).add_to_whitelist("alice@example.com")
        repo = CardRepository(session)
        for i in range(3):
            await repo.save_card(make_card(id=f"c{i}"), "alice")

        check = await EntitlementResolver(session).can_add_card("alice", "alice@example.com")

        assert check.allowed is True
        assert check.limit == UNLIMITED
        assert check.current == 0

    async def test_other_owners_cards_ignored(
        self, session: AsyncSession, make_card: MakeCard
    ) -> None:
        await SystemConfigStore(session).update_config(default_card_limit=1)
        await CardRepository(session).save_card(make_card(id="b1"), "bob")

        check = await EntitlementResolver(session).can_add_card("alice", "alice@example.com")

        assert check.allowed is True


class TestIsUnlimited:
    async def test_free_tier_with_unlimited_limit(self, session: AsyncSession) -> None:
        profile = await EntitlementResolver(session).get_user_profile("alice", "alice@example.com")
        profile.card_limit = UNLIMITED

        assert is_unlimited(profile) is True

    async def test_free_tier_with_numeric_limit(self, session: AsyncSession) -> None:
        profile = await EntitlementResolver(session).get_user_profile("alice", "alice@example.com")

        assert is_unlimited(profile) is False


def test_limit_reached_message() -> None:
    assert limit_reached_message(30) == (
        "You've reached your limit of 30 cards. Upgrade to add more cards."
    )
