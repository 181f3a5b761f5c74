"""
Card repository.

Owner-scoped CRUD over card records. Every query is filtered by both the
card id and the owner's user id, so no operation can reach another user's
card even when client-assigned ids collide.

Price mutations load the whole card, run the valuation store over its
history and write the card back in the same session.
"""

import logging
from typing import assert_never

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from prismcards.models.card import PriceObservation, ValuationResult, new_observation_id
from prismcards.models.db import CardDB
from prismcards.models.enums import SoldVia
from prismcards.models.schemas import CardInput
from prismcards.services.valuation import (
    append_observation,
    delete_observation,
    edit_observation,
    normalize_timestamp,
    sort_history,
)

logger = logging.getLogger(__name__)


def history_of(card: CardDB) -> list[PriceObservation]:
    """Decode a card's stored price history."""
    return [PriceObservation.from_dict(entry) for entry in card.price_history or []]


class CardRepository:
    """CRUD over cards, always scoped by (id, user_id)."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # --- Reads ---

    async def get_cards(self, user_id: str) -> list[CardDB]:
        """All cards owned by a user. Order is unspecified."""
        result = await self.session.execute(select(CardDB).where(CardDB.user_id == user_id))
        return list(result.scalars().all())

    async def get_card(self, card_id: str, user_id: str) -> CardDB | None:
        """Get one card, or None if this owner has no card with that id."""
        result = await self.session.execute(
            select(CardDB).where(CardDB.id == card_id, CardDB.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def count_portfolio_cards(self, user_id: str) -> int:
        """
        Count cards that count against the tier limit.

        Watchlist cards are excluded. Rows with no watchlist value
        predate the flag and count as portfolio cards.
        """
        result = await self.session.execute(
            select(func.count())
            .select_from(CardDB)
            .where(
                CardDB.user_id == user_id,
                or_(CardDB.watchlist.is_(None), CardDB.watchlist.is_(False)),
            )
        )
        return int(result.scalar_one())

    # --- Writes ---

    async def save_card(self, card: CardInput, user_id: str) -> CardDB:
        """
        Insert or replace a card.

        If this owner already has a card with the same id, all fields are
        overwritten. The owner is taken from `user_id` only.
        """
        values = card.model_dump(exclude={"id", "price_history"})
        history = sort_history(
            [
                PriceObservation(
                    date=normalize_timestamp(entry.date),
                    value=entry.value,
                    id=entry.id or new_observation_id(),
                    platform=entry.platform,
                    parallel=entry.parallel,
                    grade=entry.grade,
                    serial_number=entry.serial_number,
                )
                for entry in card.price_history
            ]
        )
        values["price_history"] = [obs.to_dict() for obs in history]

        existing = await self.get_card(card.id, user_id)
        if existing:
            for field_name, value in values.items():
                setattr(existing, field_name, value)
            await self.session.flush()
            logger.info("Updated card %s for user %s", card.id, user_id)
            return existing

        db_card = CardDB(id=card.id, user_id=user_id, **values)
        self.session.add(db_card)
        await self.session.flush()
        logger.info("Created card %s for user %s", card.id, user_id)
        return db_card

    async def delete_card(self, card_id: str, user_id: str) -> bool:
        """
        Delete a card. Idempotent.

        Returns True if a row was removed, False if there was nothing to delete.
        """
        result = await self.session.execute(
            delete(CardDB).where(CardDB.id == card_id, CardDB.user_id == user_id)
        )
        # rowcount is available on DELETE results; type stubs incomplete for async
        deleted = int(result.rowcount) > 0  # type: ignore[attr-defined]
        if deleted:
            logger.info("Deleted card %s for user %s", card_id, user_id)
        return deleted

    async def mark_sold(
        self,
        card_id: str,
        user_id: str,
        sold_price: float,
        sold_via: SoldVia,
        sold_date: str | None = None,
    ) -> CardDB | None:
        """Record a sale or trade. Returns None if the card does not exist."""
        card = await self.get_card(card_id, user_id)
        if card is None:
            return None

        card.sold = True
        card.sold_price = sold_price
        card.sold_via = sold_via
        card.sold_date = normalize_timestamp(sold_date)
        await self.session.flush()

        match sold_via:
            case SoldVia.SALE:
                action = "sold"
            case SoldVia.TRADE:
                action = "traded"
            case _:
                assert_never(sold_via)
        logger.info("Card %s %s by user %s for %s", card_id, action, user_id, sold_price)
        return card

    # --- Price history ---

    async def _store_valuation(self, card: CardDB, result: ValuationResult) -> CardDB:
        card.price_history = result.history_dicts()
        # Sold cards keep the value they were disposed at
        if not card.sold:
            card.current_value = result.current_value
        await self.session.flush()
        return card

    async def update_price(
        self,
        card_id: str,
        user_id: str,
        value: float,
        date: str | None = None,
        platform: str | None = None,
        parallel: str | None = None,
        grade: str | None = None,
        serial_number: str | None = None,
    ) -> CardDB | None:
        """
        Append a price observation.

        `date` defaults to now. Returns None if the card does not exist.
        """
        card = await self.get_card(card_id, user_id)
        if card is None:
            return None

        observation = PriceObservation(
            date=normalize_timestamp(date),
            value=value,
            platform=platform,
            parallel=parallel,
            grade=grade,
            serial_number=serial_number,
        )
        result = append_observation(history_of(card), card.current_value, card.parallel, observation)
        return await self._store_valuation(card, result)

    async def delete_price_entry(self, card_id: str, user_id: str, ref: str) -> CardDB | None:
        """
        Remove one history entry, addressed by id or exact date.

        Returns None if the card or the entry does not exist.
        """
        card = await self.get_card(card_id, user_id)
        if card is None:
            return None

        result = delete_observation(history_of(card), card.current_value, card.parallel, ref)
        if result is None:
            return None
        return await self._store_valuation(card, result)

    async def edit_price_entry(
        self,
        card_id: str,
        user_id: str,
        ref: str,
        value: float,
        date: str | None = None,
        platform: str | None = None,
        parallel: str | None = None,
        grade: str | None = None,
        serial_number: str | None = None,
    ) -> CardDB | None:
        """
        Replace one history entry, addressed by id or exact date.

        Returns None if the card or the entry does not exist.
        """
        card = await self.get_card(card_id, user_id)
        if card is None:
            return None

        result = edit_observation(
            history_of(card),
            card.current_value,
            card.parallel,
            ref,
            value,
            date=date,
            platform=platform,
            parallel=parallel,
            grade=grade,
            serial_number=serial_number,
        )
        if result is None:
            return None
        return await self._store_valuation(card, result)
