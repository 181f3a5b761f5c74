"""
Card API endpoints.

Owner-scoped card CRUD and price-history mutations. New portfolio cards
are checked against the caller's card limit before they are stored.
"""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from prismcards.api.auth import CurrentIdentity
from prismcards.db.database import get_session
from prismcards.models.enums import Currency, SoldVia
from prismcards.models.failure import FailureKind, KnownError
from prismcards.models.schemas import CardInput
from prismcards.services.card_repository import CardRepository
from prismcards.services.tier import EntitlementResolver

router = APIRouter(prefix="/cards", tags=["cards"])


class PriceObservationResponse(BaseModel):
    """One price-history entry."""

    id: str
    date: str
    value: float
    platform: str | None = None
    parallel: str | None = None
    grade: str | None = None
    serial_number: str | None = None


class CardResponse(BaseModel):
    """A stored card as returned to its owner."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str

    sport: str
    player: str
    year: int
    brand: str
    series: str
    insert: str
    parallel: str | None = None
    serial_number: str | None = None

    purchase_price: float
    currency: Currency
    purchase_date: str | None = None
    acquisition_source: str | None = None
    acquisition_source_other: str | None = None
    current_value: float
    price_history: list[PriceObservationResponse] = Field(default_factory=list)

    graded: bool = False
    grade_company: str | None = None
    grade_value: str | None = None
    auto_grade: str | None = None
    cert_number: str | None = None

    sold: bool = False
    sold_price: float | None = None
    sold_date: str | None = None
    sold_via: SoldVia | None = None

    watchlist: bool | None = False
    never_trade: bool = False

    image_url: str | None = None
    notes: str | None = None
    bulk_group_id: str | None = None

    created_at: datetime | None = None
    updated_at: datetime | None = None


class PriceUpdateRequest(BaseModel):
    """A new or replacement price observation."""

    price: float = Field(..., description="Observed value in the card's currency")
    date: str | None = Field(
        default=None,
        description="ISO timestamp of the observation; defaults to now for new entries",
    )
    platform: str | None = None
    parallel: str | None = None
    grade: str | None = None
    serial_number: str | None = None


class MarkSoldRequest(BaseModel):
    """Record that a card left the collection."""

    sold_price: float
    sold_via: SoldVia = SoldVia.SALE
    sold_date: str | None = None


class DeleteResponse(BaseModel):
    success: bool = True


def _invalid_date(error: ValueError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=f"Invalid date: {error}",
    )


@router.get("", response_model=list[CardResponse])
async def list_cards(
    identity: CurrentIdentity,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> list[CardResponse]:
    """All of the caller's cards. Order is unspecified."""
    cards = await CardRepository(session).get_cards(identity.user_id)
    return [CardResponse.model_validate(card) for card in cards]


@router.post("", response_model=CardResponse)
async def save_card(
    card: CardInput,
    identity: CurrentIdentity,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CardResponse:
    """
    Create or replace a card.

    Adding a new portfolio card (or moving a watchlist card into the
    portfolio) requires room under the caller's card limit. Watchlist cards
    and edits of existing portfolio cards are never limited.
    """
    repository = CardRepository(session)
    existing = await repository.get_card(card.id, identity.user_id)
    adds_portfolio_card = not card.watchlist and (existing is None or bool(existing.watchlist))

    if adds_portfolio_card:
        check = await EntitlementResolver(session).can_add_card(identity.user_id, identity.email)
        if not check.allowed:
            raise KnownError(
                kind=FailureKind.CARD_LIMIT_REACHED,
                message=check.message or "Card limit reached",
                detail=f"{check.current}/{check.limit}",
                suggestion="Redeem an unlock key or add the card to your watchlist.",
                status_code=status.HTTP_403_FORBIDDEN,
            )

    try:
        saved = await repository.save_card(card, identity.user_id)
    except ValueError as e:
        raise _invalid_date(e) from e
    return CardResponse.model_validate(saved)


@router.delete("/{card_id}", response_model=DeleteResponse)
async def delete_card(
    card_id: str,
    identity: CurrentIdentity,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> DeleteResponse:
    """Delete a card. Deleting a card that does not exist still succeeds."""
    await CardRepository(session).delete_card(card_id, identity.user_id)
    return DeleteResponse(success=True)


@router.post("/{card_id}/price", response_model=CardResponse)
async def update_price(
    card_id: str,
    request: PriceUpdateRequest,
    identity: CurrentIdentity,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CardResponse:
    """Append a price observation."""
    try:
        updated = await CardRepository(session).update_price(
            card_id,
            identity.user_id,
            request.price,
            date=request.date,
            platform=request.platform,
            parallel=request.parallel,
            grade=request.grade,
            serial_number=request.serial_number,
        )
    except ValueError as e:
        raise _invalid_date(e) from e

    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Card not found")
    return CardResponse.model_validate(updated)


@router.put("/{card_id}/price/{entry_ref}", response_model=CardResponse)
async def edit_price_entry(
    card_id: str,
    entry_ref: str,
    request: PriceUpdateRequest,
    identity: CurrentIdentity,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CardResponse:
    """Replace a price-history entry, addressed by its id or exact date."""
    try:
        updated = await CardRepository(session).edit_price_entry(
            card_id,
            identity.user_id,
            entry_ref,
            request.price,
            date=request.date,
            platform=request.platform,
            parallel=request.parallel,
            grade=request.grade,
            serial_number=request.serial_number,
        )
    except ValueError as e:
        raise _invalid_date(e) from e

    if updated is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Card or price entry not found"
        )
    return CardResponse.model_validate(updated)


@router.delete("/{card_id}/price/{entry_ref}", response_model=CardResponse)
async def delete_price_entry(
    card_id: str,
    entry_ref: str,
    identity: CurrentIdentity,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CardResponse:
    """Remove a price-history entry, addressed by its id or exact date."""
    updated = await CardRepository(session).delete_price_entry(
        card_id, identity.user_id, entry_ref
    )
    if updated is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Card or price entry not found"
        )
    return CardResponse.model_validate(updated)


@router.post("/{card_id}/sold", response_model=CardResponse)
async def mark_sold(
    card_id: str,
    request: MarkSoldRequest,
    identity: CurrentIdentity,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CardResponse:
    """Record a sale or trade of a card."""
    try:
        updated = await CardRepository(session).mark_sold(
            card_id,
            identity.user_id,
            request.sold_price,
            request.sold_via,
            sold_date=request.sold_date,
        )
    except ValueError as e:
        raise _invalid_date(e) from e

    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Card not found")
    return CardResponse.model_validate(updated)
