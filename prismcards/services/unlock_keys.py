"""
Unlock-key ledger.

Promotional keys grant a tier and card limit. A profile can hold at most one
distinct key over its lifetime; submitting the key it already holds again is
harmless and does not consume another use.

Redemption outcomes are returned as `RedemptionResult`, never raised: an
expired or exhausted key is a normal, user-facing answer.

Usage counting is read-modify-write without locking. Two users redeeming
the last slot at the same moment can both succeed.
"""

import logging
import secrets
import string
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from prismcards.config import UNLIMITED, settings
from prismcards.models.db import UnlockKeyDB
from prismcards.models.enums import UserTier
from prismcards.models.failure import InvalidInputError
from prismcards.models.tier import RedemptionResult
from prismcards.services.tier import EntitlementResolver

logger = logging.getLogger(__name__)

KEY_ALPHABET = string.digits + string.ascii_uppercase
KEY_GROUPS = 3
KEY_GROUP_LENGTH = 4

# Redemption failure messages
INVALID_KEY = "Invalid unlock key"
DEACTIVATED_KEY = "This unlock key has been deactivated"
EXPIRED_KEY = "This unlock key has expired"
EXHAUSTED_KEY = "This unlock key has reached its usage limit"
DIFFERENT_KEY_USED = "You have already used a different unlock key"


def generate_key_string(prefix: str | None = None) -> str:
    """Random key in the form PREFIX-XXXX-XXXX-XXXX over 0-9A-Z."""
    prefix = prefix or settings.unlock_key_prefix
    groups = [
        "".join(secrets.choice(KEY_ALPHABET) for _ in range(KEY_GROUP_LENGTH))
        for _ in range(KEY_GROUPS)
    ]
    return "-".join([prefix, *groups])


def _as_utc(moment: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


def is_expired(unlock_key: UnlockKeyDB, now: datetime | None = None) -> bool:
    if unlock_key.expires_at is None:
        return False
    now = now or datetime.now(UTC)
    return _as_utc(unlock_key.expires_at) < now


def is_exhausted(unlock_key: UnlockKeyDB) -> bool:
    if unlock_key.max_uses == UNLIMITED:
        return False
    return unlock_key.used_count >= unlock_key.max_uses


def _validate_limit(name: str, value: int) -> None:
    if value != UNLIMITED and value < 1:
        raise InvalidInputError(f"{name} must be -1 (unlimited) or at least 1", detail=str(value))


class UnlockKeyLedger:
    """Create, redeem and deactivate unlock keys."""

    def __init__(self, session: AsyncSession, resolver: EntitlementResolver | None = None) -> None:
        self.session = session
        self.resolver = resolver or EntitlementResolver(session)

    async def get_key(self, key: str) -> UnlockKeyDB | None:
        result = await self.session.execute(select(UnlockKeyDB).where(UnlockKeyDB.key == key))
        return result.scalar_one_or_none()

    async def redeem_unlock_key(self, user_id: str, email: str, key: str) -> RedemptionResult:
        """
        Redeem a key for a user.

        Checks, in order: key exists, is active, is not expired, has uses
        left. The usage check is skipped when the profile already holds
        this very key.
        """
        key = key.strip().upper()
        unlock_key = await self.get_key(key)

        if unlock_key is None:
            logger.warning("Rejected unknown unlock key for %s", user_id)
            return RedemptionResult(success=False, message=INVALID_KEY)

        if not unlock_key.active:
            logger.warning("Rejected deactivated key %s for %s", key, user_id)
            return RedemptionResult(success=False, message=DEACTIVATED_KEY)

        if is_expired(unlock_key):
            logger.warning("Rejected expired key %s for %s", key, user_id)
            return RedemptionResult(success=False, message=EXPIRED_KEY)

        profile = await self.resolver.get_user_profile(user_id, email)
        is_new_redemption = profile.unlock_key != key

        if is_new_redemption and is_exhausted(unlock_key):
            logger.warning("Rejected exhausted key %s for %s", key, user_id)
            return RedemptionResult(success=False, message=EXHAUSTED_KEY)

        if profile.unlock_key and is_new_redemption:
            logger.warning("User %s already redeemed %s", user_id, profile.unlock_key)
            return RedemptionResult(success=False, message=DIFFERENT_KEY_USED)

        profile.tier = unlock_key.tier
        profile.card_limit = unlock_key.card_limit
        profile.unlock_key = key

        if is_new_redemption:
            unlock_key.used_count += 1

        await self.session.flush()
        logger.info(
            "User %s redeemed %s (new=%s, uses=%d)",
            user_id,
            key,
            is_new_redemption,
            unlock_key.used_count,
        )

        amount = "unlimited" if unlock_key.card_limit == UNLIMITED else str(unlock_key.card_limit)
        return RedemptionResult(
            success=True,
            message=f"Successfully unlocked {amount} cards!",
            profile=profile,
        )

    async def create_unlock_key(
        self,
        tier: UserTier,
        card_limit: int,
        max_uses: int | None = None,
        expires_at: datetime | None = None,
    ) -> UnlockKeyDB:
        """
        Create a new active key.

        The generated string is checked against existing keys before insert
        and regenerated on collision, up to `unlock_key_max_attempts` times.
        """
        _validate_limit("card_limit", card_limit)
        if max_uses is None:
            max_uses = UNLIMITED
        _validate_limit("max_uses", max_uses)

        for _ in range(settings.unlock_key_max_attempts):
            key = generate_key_string()
            if await self.get_key(key) is None:
                break
            logger.warning("Generated unlock key collided with an existing key, retrying")
        else:
            raise RuntimeError("Could not generate a unique unlock key")

        unlock_key = UnlockKeyDB(
            key=key,
            tier=tier,
            card_limit=card_limit,
            max_uses=max_uses,
            used_count=0,
            active=True,
            expires_at=_as_utc(expires_at) if expires_at else None,
        )
        self.session.add(unlock_key)
        await self.session.flush()
        logger.info("Created unlock key %s (tier=%s, limit=%d)", key, tier.value, card_limit)
        return unlock_key

    async def list_unlock_keys(self) -> list[UnlockKeyDB]:
        """All keys, newest first."""
        result = await self.session.execute(
            select(UnlockKeyDB).order_by(UnlockKeyDB.created_at.desc())
        )
        return list(result.scalars().all())

    async def deactivate_unlock_key(self, key: str) -> UnlockKeyDB | None:
        """
        Soft-disable a key. Returns None if the key does not exist.

        Profiles that already redeemed it keep their tier and limit.
        """
        unlock_key = await self.get_key(key.strip().upper())
        if unlock_key is None:
            return None

        unlock_key.active = False
        await self.session.flush()
        logger.info("Deactivated unlock key %s", unlock_key.key)
        return unlock_key
