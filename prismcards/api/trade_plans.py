"""
Trade plan API endpoints.

Plans are owned by the caller and built only from the caller's cards.
"""

from datetime import datetime
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from prismcards.api.auth import CurrentIdentity
from prismcards.db.database import get_session
from prismcards.models.enums import Currency, TradePlanStatus
from prismcards.models.schemas import TradePlanInput
from prismcards.services.trade_plans import TradePlanRepository

router = APIRouter(prefix="/trade-plans", tags=["trade-plans"])


class TradePlanResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    plan_name: str
    target_value: float | None = None
    target_card: dict[str, Any] | None = None
    bundle_cards: list[dict[str, Any]] = Field(default_factory=list)
    cash_amount: float | None = None
    cash_currency: Currency | None = None
    total_bundle_value: float
    notes: str | None = None
    status: TradePlanStatus
    completed_transaction_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class StatusChangeRequest(BaseModel):
    status: TradePlanStatus
    completed_transaction_id: str | None = None


class DeleteResponse(BaseModel):
    success: bool = True


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Trade plan not found")


@router.get("", response_model=list[TradePlanResponse])
async def list_plans(
    identity: CurrentIdentity,
    session: Annotated[AsyncSession, Depends(get_session)],
    plan_status: Annotated[TradePlanStatus | None, Query(alias="status")] = None,
) -> list[TradePlanResponse]:
    plans = await TradePlanRepository(session).list_plans(identity.user_id, plan_status)
    return [TradePlanResponse.model_validate(plan) for plan in plans]


@router.post("", response_model=TradePlanResponse)
async def create_plan(
    plan: TradePlanInput,
    identity: CurrentIdentity,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> TradePlanResponse:
    created = await TradePlanRepository(session).create_plan(identity.user_id, plan)
    return TradePlanResponse.model_validate(created)


@router.get("/{plan_id}", response_model=TradePlanResponse)
async def get_plan(
    plan_id: int,
    identity: CurrentIdentity,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> TradePlanResponse:
    plan = await TradePlanRepository(session).get_plan(plan_id, identity.user_id)
    if plan is None:
        raise _not_found()
    return TradePlanResponse.model_validate(plan)


@router.post("/{plan_id}/status", response_model=TradePlanResponse)
async def change_status(
    plan_id: int,
    request: StatusChangeRequest,
    identity: CurrentIdentity,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> TradePlanResponse:
    """Complete or cancel a pending plan."""
    plan = await TradePlanRepository(session).set_status(
        plan_id,
        identity.user_id,
        request.status,
        completed_transaction_id=request.completed_transaction_id,
    )
    if plan is None:
        raise _not_found()
    return TradePlanResponse.model_validate(plan)


@router.delete("/{plan_id}", response_model=DeleteResponse)
async def delete_plan(
    plan_id: int,
    identity: CurrentIdentity,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> DeleteResponse:
    deleted = await TradePlanRepository(session).delete_plan(plan_id, identity.user_id)
    if not deleted:
        raise _not_found()
    return DeleteResponse(success=True)
