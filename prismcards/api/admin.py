"""
Admin API endpoints.

System config, whitelist and unlock-key management. Every endpoint
requires the caller's email to be on the admin list.
"""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from prismcards.api.auth import require_admin
from prismcards.db.database import get_session
from prismcards.models.enums import UserTier
from prismcards.services.system_config import SystemConfigStore
from prismcards.services.unlock_keys import UnlockKeyLedger

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


class SystemConfigResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    default_card_limit: int
    email_whitelist: list[str] = Field(default_factory=list)
    admin_emails: list[str] = Field(default_factory=list)


class SystemConfigUpdateRequest(BaseModel):
    """Fields to overwrite. Omitted fields are unchanged."""

    default_card_limit: int | None = None
    email_whitelist: list[str] | None = None
    admin_emails: list[str] | None = None


class EmailRequest(BaseModel):
    email: str = Field(..., min_length=3, examples=["collector@example.com"])


class UnlockKeyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    key: str
    tier: UserTier
    card_limit: int
    max_uses: int
    used_count: int
    active: bool
    expires_at: datetime | None = None
    created_at: datetime | None = None


class CreateUnlockKeyRequest(BaseModel):
    tier: UserTier = UserTier.UNLIMITED
    card_limit: int = Field(..., description="-1 means unlimited")
    max_uses: int | None = Field(default=None, description="Omit or -1 for unlimited uses")
    expires_at: datetime | None = None


class DeactivateKeyRequest(BaseModel):
    key: str


@router.get("/config", response_model=SystemConfigResponse)
async def get_config(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> SystemConfigResponse:
    config = await SystemConfigStore(session).get_config()
    return SystemConfigResponse.model_validate(config)


@router.put("/config", response_model=SystemConfigResponse)
async def update_config(
    request: SystemConfigUpdateRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> SystemConfigResponse:
    config = await SystemConfigStore(session).update_config(
        default_card_limit=request.default_card_limit,
        email_whitelist=request.email_whitelist,
        admin_emails=request.admin_emails,
    )
    return SystemConfigResponse.model_validate(config)


@router.post("/whitelist/add", response_model=SystemConfigResponse)
async def add_to_whitelist(
    request: EmailRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> SystemConfigResponse:
    """Whitelist an email. An existing profile is promoted immediately."""
    config = await SystemConfigStore(session).add_to_whitelist(request.email)
    return SystemConfigResponse.model_validate(config)


@router.post("/whitelist/remove", response_model=SystemConfigResponse)
async def remove_from_whitelist(
    request: EmailRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> SystemConfigResponse:
    """Remove an email. Its profile is demoted unless it redeemed a key."""
    config = await SystemConfigStore(session).remove_from_whitelist(request.email)
    return SystemConfigResponse.model_validate(config)


@router.get("/unlock-keys", response_model=list[UnlockKeyResponse])
async def list_unlock_keys(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> list[UnlockKeyResponse]:
    keys = await UnlockKeyLedger(session).list_unlock_keys()
    return [UnlockKeyResponse.model_validate(key) for key in keys]


@router.post("/unlock-keys/create", response_model=UnlockKeyResponse)
async def create_unlock_key(
    request: CreateUnlockKeyRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> UnlockKeyResponse:
    unlock_key = await UnlockKeyLedger(session).create_unlock_key(
        tier=request.tier,
        card_limit=request.card_limit,
        max_uses=request.max_uses,
        expires_at=request.expires_at,
    )
    return UnlockKeyResponse.model_validate(unlock_key)


@router.post("/unlock-keys/deactivate", response_model=UnlockKeyResponse)
async def deactivate_unlock_key(
    request: DeactivateKeyRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> UnlockKeyResponse:
    """Soft-disable a key. Profiles that already redeemed it are unaffected."""
    unlock_key = await UnlockKeyLedger(session).deactivate_unlock_key(request.key)
    if unlock_key is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unlock key not found")
    return UnlockKeyResponse.model_validate(unlock_key)
