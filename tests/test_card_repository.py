"""Tests for owner-scoped card persistence and price mutations."""

from collections.abc import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from prismcards.models.enums import SoldVia
from prismcards.models.schemas import CardInput, PriceObservationIn
from prismcards.services.card_repository import CardRepository, history_of

D1 = "2024-01-01T00:00:00.000Z"
D2 = "2024-02-01T00:00:00.000Z"
D3 = "2024-03-01T00:00:00.000Z"

MakeCard = Callable[..., CardInput]


class TestSaveCard:
    async def test_save_creates_card(self, session: AsyncSession, make_card: MakeCard) -> None:
        repo = CardRepository(session)

        card = await repo.save_card(make_card(), "alice")

        assert card.id == "card-1"
        assert card.user_id == "alice"
        assert card.current_value == 100.0

    async def test_save_twice_overwrites(self, session: AsyncSession, make_card: MakeCard) -> None:
        """Saving the same (id, owner) again replaces the record."""
        repo = CardRepository(session)

        await repo.save_card(make_card(player="Old Name"), "alice")
        await session.commit()
        await repo.save_card(make_card(player="New Name", current_value=150.0), "alice")
        await session.commit()

        cards = await repo.get_cards("alice")
        assert len(cards) == 1
        assert cards[0].player == "New Name"
        assert cards[0].current_value == 150.0

    async def test_owner_comes_from_argument_only(self, make_card: MakeCard) -> None:
        """A client-sent user_id is dropped from the input model."""
        card = CardInput(**{**make_card().model_dump(), "user_id": "mallory"})

        assert "user_id" not in card.model_dump()

    async def test_history_sorted_and_given_ids(
        self, session: AsyncSession, make_card: MakeCard
    ) -> None:
        repo = CardRepository(session)
        payload = make_card(
            price_history=[
                PriceObservationIn(date=D3, value=30.0),
                PriceObservationIn(date="2024-01-01", value=10.0),
            ]
        )

        card = await repo.save_card(payload, "alice")

        history = history_of(card)
        assert [o.date for o in history] == [D1, D3]
        assert all(o.id for o in history)

    async def test_same_id_different_owners_are_separate(
        self, session: AsyncSession, make_card: MakeCard
    ) -> None:
        repo = CardRepository(session)

        await repo.save_card(make_card(player="Alice Card"), "alice")
        await repo.save_card(make_card(player="Bob Card"), "bob")
        await session.commit()

        alice_card = await repo.get_card("card-1", "alice")
        bob_card = await repo.get_card("card-1", "bob")
        assert alice_card is not None and alice_card.player == "Alice Card"
        assert bob_card is not None and bob_card.player == "Bob Card"


class TestOwnerIsolation:
    async def test_get_cards_only_returns_owner_cards(
        self, session: AsyncSession, make_card: MakeCard
    ) -> None:
        repo = CardRepository(session)
        await repo.save_card(make_card(id="a1"), "alice")
        await repo.save_card(make_card(id="a2"), "alice")
        await repo.save_card(make_card(id="b1"), "bob")
        await session.commit()

        cards = await repo.get_cards("alice")

        assert {c.id for c in cards} == {"a1", "a2"}
        assert all(c.user_id == "alice" for c in cards)

    async def test_delete_never_touches_other_owner(
        self, session: AsyncSession, make_card: MakeCard
    ) -> None:
        repo = CardRepository(session)
        await repo.save_card(make_card(), "alice")
        await session.commit()

        deleted = await repo.delete_card("card-1", "bob")
        await session.commit()

        assert deleted is False
        assert await repo.get_card("card-1", "alice") is not None

    async def test_price_update_scoped_to_owner(
        self, session: AsyncSession, make_card: MakeCard
    ) -> None:
        repo = CardRepository(session)
        await repo.save_card(make_card(), "alice")
        await session.commit()

        assert await repo.update_price("card-1", "bob", 500.0) is None


class TestDeleteCard:
    async def test_delete_existing(self, session: AsyncSession, make_card: MakeCard) -> None:
        repo = CardRepository(session)
        await repo.save_card(make_card(), "alice")
        await session.commit()

        assert await repo.delete_card("card-1", "alice") is True
        assert await repo.get_card("card-1", "alice") is None

    async def test_delete_is_idempotent(self, session: AsyncSession, make_card: MakeCard) -> None:
        repo = CardRepository(session)
        await repo.save_card(make_card(), "alice")
        await session.commit()

        await repo.delete_card("card-1", "alice")
        assert await repo.delete_card("card-1", "alice") is False


class TestPriceMutations:
    async def test_update_price_appends_and_sets_current(
        self, session: AsyncSession, make_card: MakeCard
    ) -> None:
        repo = CardRepository(session)
        await repo.save_card(make_card(), "alice")

        card = await repo.update_price("card-1", "alice", 180.0, date=D2, platform="eBay")

        assert card is not None
        assert card.current_value == 180.0
        history = history_of(card)
        assert len(history) == 1
        assert history[0].platform == "eBay"

    async def test_update_price_defaults_to_now(
        self, session: AsyncSession, make_card: MakeCard
    ) -> None:
        repo = CardRepository(session)
        await repo.save_card(make_card(price_history=[PriceObservationIn(date=D1, value=90.0)]), "alice")

        card = await repo.update_price("card-1", "alice", 120.0)

        assert card is not None
        assert card.current_value == 120.0
        assert history_of(card)[-1].value == 120.0

    async def test_backdated_update_keeps_current(
        self, session: AsyncSession, make_card: MakeCard
    ) -> None:
        repo = CardRepository(session)
        await repo.save_card(
            make_card(
                current_value=30.0,
                price_history=[
                    PriceObservationIn(date=D1, value=10.0),
                    PriceObservationIn(date=D3, value=30.0),
                ],
            ),
            "alice",
        )

        card = await repo.update_price("card-1", "alice", 20.0, date=D2)

        assert card is not None
        assert [o.date for o in history_of(card)] == [D1, D2, D3]
        assert card.current_value == 30.0

    async def test_parallel_gated_update(self, session: AsyncSession, make_card: MakeCard) -> None:
        repo = CardRepository(session)
        await repo.save_card(make_card(parallel="Silver", current_value=100.0), "alice")

        gold = await repo.update_price("card-1", "alice", 900.0, date=D1, parallel="Gold")
        assert gold is not None and gold.current_value == 100.0

        silver = await repo.update_price("card-1", "alice", 150.0, date=D2, parallel="Silver")
        assert silver is not None and silver.current_value == 150.0

    async def test_delete_price_entry_recomputes(
        self, session: AsyncSession, make_card: MakeCard
    ) -> None:
        repo = CardRepository(session)
        await repo.save_card(
            make_card(
                current_value=20.0,
                price_history=[
                    PriceObservationIn(date=D1, value=10.0, parallel="A"),
                    PriceObservationIn(date=D2, value=20.0, parallel="B"),
                ],
            ),
            "alice",
        )

        card = await repo.delete_price_entry("card-1", "alice", D2)

        assert card is not None
        assert card.current_value == 10.0

    async def test_delete_missing_entry_returns_none(
        self, session: AsyncSession, make_card: MakeCard
    ) -> None:
        repo = CardRepository(session)
        await repo.save_card(make_card(), "alice")

        assert await repo.delete_price_entry("card-1", "alice", D1) is None

    async def test_edit_price_entry_by_id(self, session: AsyncSession, make_card: MakeCard) -> None:
        repo = CardRepository(session)
        await repo.save_card(make_card(), "alice")
        card = await repo.update_price("card-1", "alice", 50.0, date=D1)
        assert card is not None
        entry_id = history_of(card)[0].id

        edited = await repo.edit_price_entry("card-1", "alice", entry_id, 55.0, grade="PSA 9")

        assert edited is not None
        assert edited.current_value == 55.0
        assert history_of(edited)[0].grade == "PSA 9"

    async def test_edit_unknown_card_returns_none(self, session: AsyncSession) -> None:
        repo = CardRepository(session)

        assert await repo.edit_price_entry("missing", "alice", D1, 1.0) is None

    async def test_sold_card_keeps_current_value(
        self, session: AsyncSession, make_card: MakeCard
    ) -> None:
        repo = CardRepository(session)
        await repo.save_card(make_card(current_value=100.0), "alice")
        await repo.mark_sold("card-1", "alice", 140.0, SoldVia.SALE)

        card = await repo.update_price("card-1", "alice", 300.0, date=D2)

        assert card is not None
        assert card.current_value == 100.0
        assert len(history_of(card)) == 1


class TestMarkSold:
    async def test_mark_sold_records_disposition(
        self, session: AsyncSession, make_card: MakeCard
    ) -> None:
        repo = CardRepository(session)
        await repo.save_card(make_card(), "alice")

        card = await repo.mark_sold("card-1", "alice", 250.0, SoldVia.TRADE, sold_date="2024-05-01")

        assert card is not None
        assert card.sold is True
        assert card.sold_price == 250.0
        assert card.sold_via == SoldVia.TRADE
        assert card.sold_date == "2024-05-01T00:00:00.000Z"

    async def test_mark_sold_missing_card(self, session: AsyncSession) -> None:
        assert await CardRepository(session).mark_sold("x", "alice", 1.0, SoldVia.SALE) is None


class TestCountPortfolioCards:
    async def test_watchlist_cards_not_counted(
        self, session: AsyncSession, make_card: MakeCard
    ) -> None:
        repo = CardRepository(session)
        await repo.save_card(make_card(id="c1"), "alice")
        await repo.save_card(make_card(id="c2"), "alice")
        await repo.save_card(make_card(id="w1", watchlist=True), "alice")
        await repo.save_card(make_card(id="b1"), "bob")
        await session.commit()

        assert await repo.count_portfolio_cards("alice") == 2

    async def test_null_watchlist_counts_as_portfolio(
        self, session: AsyncSession, make_card: MakeCard
    ) -> None:
        repo = CardRepository(session)
        card = await repo.save_card(make_card(), "alice")
        card.watchlist = None
        await session.commit()

        assert await repo.count_portfolio_cards("alice") == 1
