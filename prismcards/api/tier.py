"""
Tier API endpoints.

Profile lookup, card-limit checks and unlock-key redemption for the
calling user.
"""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from prismcards.api.auth import CurrentIdentity
from prismcards.db.database import get_session
from prismcards.models.enums import UserTier
from prismcards.models.failure import FailureKind, KnownError
from prismcards.services.system_config import SystemConfigStore
from prismcards.services.tier import EntitlementResolver
from prismcards.services.unlock_keys import UnlockKeyLedger

router = APIRouter(prefix="/tier", tags=["tier"])


class ProfileResponse(BaseModel):
    """A user's tier state."""

    model_config = ConfigDict(from_attributes=True)

    user_id: str
    email: str
    tier: UserTier
    card_limit: int = Field(..., description="-1 means unlimited")
    unlock_key: str | None = None
    whitelisted: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CanAddCardResponse(BaseModel):
    allowed: bool
    limit: int
    current: int
    message: str | None = None


class RedeemKeyRequest(BaseModel):
    key: str | None = Field(default=None, examples=["PRISM-AB12-CD34-EF56"])


class RedeemKeyResponse(BaseModel):
    success: bool
    message: str
    profile: ProfileResponse | None = None


class PublicConfigResponse(BaseModel):
    default_card_limit: int


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(
    identity: CurrentIdentity,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> ProfileResponse:
    """The caller's profile, created on first access."""
    profile = await EntitlementResolver(session).get_user_profile(
        identity.user_id, identity.email
    )
    return ProfileResponse.model_validate(profile)


@router.get("/can-add-card", response_model=CanAddCardResponse)
async def can_add_card(
    identity: CurrentIdentity,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CanAddCardResponse:
    """Whether the caller has room for one more portfolio card."""
    check = await EntitlementResolver(session).can_add_card(identity.user_id, identity.email)
    return CanAddCardResponse(
        allowed=check.allowed,
        limit=check.limit,
        current=check.current,
        message=check.message,
    )


@router.post(
    "/redeem-key",
    response_model=RedeemKeyResponse,
    responses={400: {"model": RedeemKeyResponse}},
)
async def redeem_key(
    request: RedeemKeyRequest,
    identity: CurrentIdentity,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> RedeemKeyResponse | JSONResponse:
    """
    Redeem an unlock key.

    A rejected key answers 400 with `success: false` and the reason; it is
    an expected outcome, not an error.
    """
    if not request.key or not request.key.strip():
        raise KnownError(
            kind=FailureKind.MISSING_REQUIRED,
            message="Unlock key is required",
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    result = await UnlockKeyLedger(session).redeem_unlock_key(
        identity.user_id, identity.email, request.key
    )
    response = RedeemKeyResponse(
        success=result.success,
        message=result.message,
        profile=ProfileResponse.model_validate(result.profile) if result.profile else None,
    )
    if not result.success:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=response.model_dump(mode="json"),
        )
    return response


@router.get("/config", response_model=PublicConfigResponse)
async def get_public_config(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> PublicConfigResponse:
    """Public tier defaults. No authentication required."""
    config = await SystemConfigStore(session).get_config()
    return PublicConfigResponse(default_card_limit=config.default_card_limit)
