"""
Trade plans.

A plan bundles some of a user's cards (optionally plus cash) towards a
target card or value. Each bundled card's current value is snapshotted when
the plan is created, so later price updates do not move the plan's total.
"""

import logging
from typing import Any, assert_never

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from prismcards.models.db import CardDB, TradePlanDB
from prismcards.models.enums import TradePlanStatus
from prismcards.models.failure import FailureKind, InvalidInputError, KnownError
from prismcards.models.schemas import TradePlanInput
from prismcards.services.card_repository import CardRepository

logger = logging.getLogger(__name__)


class InvalidTransitionError(KnownError):
    """Raised when a plan that is no longer pending is asked to change status."""

    def __init__(self, current: TradePlanStatus, requested: TradePlanStatus):
        self.current = current
        self.requested = requested
        super().__init__(
            kind=FailureKind.INVALID_TRANSITION,
            message=f"Cannot mark a {current.value} plan as {requested.value}",
            suggestion="Only pending plans can be completed or cancelled.",
            status_code=409,
        )


def can_transition(current: TradePlanStatus, requested: TradePlanStatus) -> bool:
    match current:
        case TradePlanStatus.PENDING:
            return requested in (TradePlanStatus.COMPLETED, TradePlanStatus.CANCELLED)
        case TradePlanStatus.COMPLETED | TradePlanStatus.CANCELLED:
            return False
        case _:
            assert_never(current)


def snapshot_card(card: CardDB) -> dict[str, Any]:
    """Freeze the parts of a card a plan needs to display later."""
    grade = None
    if card.graded and card.grade_company:
        grade = f"{card.grade_company} {card.grade_value or ''}".strip()
    return {
        "card_id": card.id,
        "current_value_at_plan_time": card.current_value,
        "card_snapshot": {
            "player": card.player,
            "year": str(card.year),
            "set": f"{card.brand} {card.series}".strip(),
            "parallel": card.parallel,
            "grade": grade,
            "image_url": card.image_url,
        },
    }


class TradePlanRepository:
    """Owner-scoped CRUD over trade plans."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_plan(self, user_id: str, plan: TradePlanInput) -> TradePlanDB:
        """
        Create a pending plan from the owner's cards.

        Raises InvalidInputError if any bundled card id is not one of the
        owner's cards.
        """
        cards = CardRepository(self.session)
        bundle: list[dict[str, Any]] = []
        for card_id in plan.bundle_card_ids:
            card = await cards.get_card(card_id, user_id)
            if card is None:
                raise InvalidInputError(f"Card '{card_id}' not found in your collection")
            bundle.append(snapshot_card(card))

        db_plan = TradePlanDB(
            user_id=user_id,
            plan_name=plan.plan_name,
            target_value=plan.target_value,
            target_card=plan.target_card.model_dump() if plan.target_card else None,
            bundle_cards=bundle,
            cash_amount=plan.cash_amount,
            cash_currency=plan.cash_currency,
            total_bundle_value=sum(entry["current_value_at_plan_time"] for entry in bundle),
            notes=plan.notes,
            status=TradePlanStatus.PENDING,
        )
        self.session.add(db_plan)
        await self.session.flush()
        logger.info("Created trade plan %d for user %s", db_plan.id, user_id)
        return db_plan

    async def get_plan(self, plan_id: int, user_id: str) -> TradePlanDB | None:
        result = await self.session.execute(
            select(TradePlanDB).where(TradePlanDB.id == plan_id, TradePlanDB.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def list_plans(
        self, user_id: str, status: TradePlanStatus | None = None
    ) -> list[TradePlanDB]:
        """A user's plans, newest first, optionally filtered by status."""
        query = select(TradePlanDB).where(TradePlanDB.user_id == user_id)
        if status is not None:
            query = query.where(TradePlanDB.status == status)
        result = await self.session.execute(
            query.order_by(TradePlanDB.created_at.desc(), TradePlanDB.id.desc())
        )
        return list(result.scalars().all())

    async def set_status(
        self,
        plan_id: int,
        user_id: str,
        status: TradePlanStatus,
        completed_transaction_id: str | None = None,
    ) -> TradePlanDB | None:
        """
        Complete or cancel a pending plan.

        Returns None if the plan does not exist. Raises InvalidTransitionError
        if the plan is not pending.
        """
        plan = await self.get_plan(plan_id, user_id)
        if plan is None:
            return None

        current = TradePlanStatus(plan.status)
        if not can_transition(current, status):
            raise InvalidTransitionError(current, status)

        plan.status = status
        if status == TradePlanStatus.COMPLETED:
            plan.completed_transaction_id = completed_transaction_id
        await self.session.flush()
        logger.info("Trade plan %d marked %s", plan_id, status.value)
        return plan

    async def delete_plan(self, plan_id: int, user_id: str) -> bool:
        """Delete a plan. Returns False if it did not exist."""
        plan = await self.get_plan(plan_id, user_id)
        if plan is None:
            return False
        await self.session.delete(plan)
        await self.session.flush()
        return True
