from dataclasses import dataclass

from prismcards.models.db import UserProfileDB


@dataclass(frozen=True, slots=True)
class CardLimitCheck:
    """
    Answer to "may this user add one more portfolio card?".

    Attributes:
        allowed: True if another card fits under the limit
        limit: Effective card limit (-1 for unlimited)
        current: Portfolio cards counted against the limit (0 when unlimited)
        message: Human-readable denial reason, only set when not allowed
    """

    allowed: bool
    limit: int
    current: int
    message: str | None = None


@dataclass
class RedemptionResult:
    """Outcome of an unlock-key redemption. Failures are not exceptions."""

    success: bool
    message: str
    profile: UserProfileDB | None = None
