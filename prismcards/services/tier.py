"""
Entitlement resolver.

Decides whether a user may add another portfolio card, reconciling tier,
whitelist membership and unlock-key grants into one effective limit.

Profiles are created lazily on first read. The tier is seeded from the
whitelist at that moment and free users snapshot the default limit then:
later changes to the default do not move existing profiles.

The limit check is advisory. Nothing ties it transactionally to the insert
that follows, so two concurrent requests can both pass and overshoot the
limit by one.
"""

import logging
from typing import assert_never

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from prismcards.config import UNLIMITED
from prismcards.models.db import UserProfileDB
from prismcards.models.enums import UserTier
from prismcards.models.tier import CardLimitCheck
from prismcards.services.card_repository import CardRepository
from prismcards.services.system_config import SystemConfigStore

logger = logging.getLogger(__name__)


def limit_reached_message(limit: int) -> str:
    return f"You've reached your limit of {limit} cards. Upgrade to add more cards."


def is_unlimited(profile: UserProfileDB) -> bool:
    """True if the profile has no card ceiling."""
    tier = UserTier(profile.tier)
    match tier:
        case UserTier.UNLIMITED:
            return True
        case UserTier.FREE:
            return profile.card_limit == UNLIMITED
        case _:
            assert_never(tier)


class EntitlementResolver:
    """Profile lifecycle and card-limit checks."""

    def __init__(self, session: AsyncSession, config_store: SystemConfigStore | None = None) -> None:
        self.session = session
        self.config_store = config_store or SystemConfigStore(session)

    async def find_profile(self, user_id: str) -> UserProfileDB | None:
        result = await self.session.execute(
            select(UserProfileDB).where(UserProfileDB.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_user_profile(self, user_id: str, email: str) -> UserProfileDB:
        """Get a user's profile, creating it on first access."""
        profile = await self.find_profile(user_id)
        if profile:
            return profile

        config = await self.config_store.get_config()
        normalized = email.strip().lower()
        whitelisted = normalized in config.email_whitelist

        profile = UserProfileDB(
            user_id=user_id,
            email=normalized,
            tier=UserTier.UNLIMITED if whitelisted else UserTier.FREE,
            card_limit=UNLIMITED if whitelisted else config.default_card_limit,
            whitelisted=whitelisted,
        )
        self.session.add(profile)
        await self.session.flush()
        logger.info(
            "Created profile for %s (tier=%s, limit=%d)",
            user_id,
            profile.tier.value,
            profile.card_limit,
        )
        return profile

    async def can_add_card(self, user_id: str, email: str) -> CardLimitCheck:
        """
        Check whether one more portfolio card fits under the user's limit.

        Watchlist cards never count against the limit.
        """
        profile = await self.get_user_profile(user_id, email)

        if is_unlimited(profile):
            return CardLimitCheck(allowed=True, limit=UNLIMITED, current=0)

        current = await CardRepository(self.session).count_portfolio_cards(user_id)
        logger.debug("Portfolio count for %s: %d/%d", user_id, current, profile.card_limit)

        if current >= profile.card_limit:
            logger.warning("Card limit reached for %s (%d)", user_id, profile.card_limit)
            return CardLimitCheck(
                allowed=False,
                limit=profile.card_limit,
                current=current,
                message=limit_reached_message(profile.card_limit),
            )

        return CardLimitCheck(allowed=True, limit=profile.card_limit, current=current)
