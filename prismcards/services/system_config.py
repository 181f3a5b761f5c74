"""
Admin config store.

Global tier defaults live in a single row that is read, modified and
written back with no concurrency control. Whitelist changes cascade to an
existing profile with the same email:
- adding promotes the profile to unlimited immediately
- removing demotes it to free at the current default limit, unless the
  profile has redeemed an unlock key (a key grant outranks the whitelist)
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from prismcards.config import UNLIMITED, settings
from prismcards.models.db import SystemConfigDB, UserProfileDB
from prismcards.models.enums import UserTier
from prismcards.models.failure import InvalidInputError

logger = logging.getLogger(__name__)

CONFIG_KEY = "main"


def normalize_email(email: str) -> str:
    """Lower-case and trim an email, rejecting obviously malformed ones."""
    normalized = email.strip().lower()
    local, _, domain = normalized.partition("@")
    if not local or not domain:
        raise InvalidInputError("Invalid email address", detail=email)
    return normalized


def _validate_card_limit(limit: int) -> None:
    if limit < 1:
        raise InvalidInputError("Default card limit must be at least 1", detail=str(limit))


class SystemConfigStore:
    """Read and mutate the singleton system config."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_config(self) -> SystemConfigDB:
        """Get the config row, creating it with defaults on first access."""
        result = await self.session.execute(
            select(SystemConfigDB).where(SystemConfigDB.config_key == CONFIG_KEY)
        )
        config = result.scalar_one_or_none()
        if config:
            return config

        config = SystemConfigDB(
            config_key=CONFIG_KEY,
            default_card_limit=settings.default_card_limit,
            email_whitelist=[],
            admin_emails=[],
        )
        self.session.add(config)
        await self.session.flush()
        logger.info("Created system config (default limit %d)", config.default_card_limit)
        return config

    async def update_config(
        self,
        default_card_limit: int | None = None,
        email_whitelist: list[str] | None = None,
        admin_emails: list[str] | None = None,
    ) -> SystemConfigDB:
        """
        Overwrite the given fields. Fields left as None are unchanged.

        Replacing the whitelist wholesale does not cascade to profiles;
        use add_to_whitelist / remove_from_whitelist for that.
        """
        if default_card_limit is not None:
            _validate_card_limit(default_card_limit)
        whitelist = _dedupe(email_whitelist) if email_whitelist is not None else None
        admins = _dedupe(admin_emails) if admin_emails is not None else None

        config = await self.get_config()
        if default_card_limit is not None:
            config.default_card_limit = default_card_limit
        if whitelist is not None:
            config.email_whitelist = whitelist
        if admins is not None:
            config.admin_emails = admins
        await self.session.flush()
        logger.info("System config updated")
        return config

    async def is_whitelisted(self, email: str) -> bool:
        config = await self.get_config()
        return email.strip().lower() in config.email_whitelist

    async def is_admin(self, email: str) -> bool:
        config = await self.get_config()
        return email.strip().lower() in config.admin_emails

    async def _profile_by_email(self, email: str) -> UserProfileDB | None:
        result = await self.session.execute(
            select(UserProfileDB).where(UserProfileDB.email == email).limit(1)
        )
        return result.scalar_one_or_none()

    async def add_to_whitelist(self, email: str) -> SystemConfigDB:
        """Whitelist an email and promote its existing profile, if any."""
        normalized = normalize_email(email)
        config = await self.get_config()

        if normalized in config.email_whitelist:
            return config

        config.email_whitelist = [*config.email_whitelist, normalized]
        logger.info("Added %s to whitelist", normalized)

        profile = await self._profile_by_email(normalized)
        if profile:
            profile.tier = UserTier.UNLIMITED
            profile.card_limit = UNLIMITED
            profile.whitelisted = True
            logger.info("Promoted profile %s to unlimited", profile.user_id)

        await self.session.flush()
        return config

    async def remove_from_whitelist(self, email: str) -> SystemConfigDB:
        """Remove an email from the whitelist and demote its profile unless key-unlocked."""
        normalized = normalize_email(email)
        config = await self.get_config()

        config.email_whitelist = [e for e in config.email_whitelist if e != normalized]
        logger.info("Removed %s from whitelist", normalized)

        profile = await self._profile_by_email(normalized)
        if profile and not profile.unlock_key:
            profile.tier = UserTier.FREE
            profile.card_limit = config.default_card_limit
            profile.whitelisted = False
            logger.info(
                "Demoted profile %s to free (%d cards)", profile.user_id, config.default_card_limit
            )

        await self.session.flush()
        return config

    async def add_admin(self, email: str) -> SystemConfigDB:
        """Grant admin access; admins are also whitelisted."""
        normalized = normalize_email(email)
        config = await self.get_config()

        if normalized not in config.admin_emails:
            config.admin_emails = [*config.admin_emails, normalized]
            logger.info("Added %s to admin list", normalized)

        return await self.add_to_whitelist(normalized)


def _dedupe(emails: list[str]) -> list[str]:
    """Normalize emails, keeping first-seen order."""
    seen: list[str] = []
    for email in emails:
        normalized = normalize_email(email)
        if normalized not in seen:
            seen.append(normalized)
    return seen
