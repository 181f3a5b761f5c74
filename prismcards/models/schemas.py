"""
Input DTOs accepted from clients.

These models deliberately have no owner field: the owner of a card or plan
is always the authenticated identity, passed separately to the service.
Unknown keys (including any client-sent `user_id`) are ignored.
"""

from pydantic import BaseModel, ConfigDict, Field

from prismcards.models.enums import Currency, SoldVia


class PriceObservationIn(BaseModel):
    """A price-history entry as sent by a client."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    date: str = Field(..., description="ISO timestamp of the observation")
    value: float
    platform: str | None = None
    parallel: str | None = None
    grade: str | None = None
    serial_number: str | None = None


class CardInput(BaseModel):
    """Full card record for create-or-replace."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1, description="Client-assigned card id")

    sport: str
    player: str
    year: int
    brand: str
    series: str
    insert: str = ""
    parallel: str | None = None
    serial_number: str | None = None

    purchase_price: float
    currency: Currency = Currency.USD
    purchase_date: str | None = None
    acquisition_source: str | None = None
    acquisition_source_other: str | None = None
    current_value: float
    price_history: list[PriceObservationIn] = Field(default_factory=list)

    graded: bool = False
    grade_company: str | None = None
    grade_value: str | None = None
    auto_grade: str | None = None
    cert_number: str | None = None

    sold: bool = False
    sold_price: float | None = None
    sold_date: str | None = None
    sold_via: SoldVia | None = None

    watchlist: bool = False
    never_trade: bool = False

    image_url: str | None = None
    notes: str | None = None
    bulk_group_id: str | None = None


class TargetCard(BaseModel):
    """Descriptor of a card (owned or wanted) frozen into a trade plan."""

    player: str
    year: str
    set: str
    parallel: str | None = None
    grade: str | None = None
    image_url: str | None = None


class TradePlanInput(BaseModel):
    """A new trade plan. Bundle cards are referenced by the owner's card ids."""

    model_config = ConfigDict(extra="ignore")

    plan_name: str = Field(..., min_length=1)
    bundle_card_ids: list[str] = Field(..., min_length=1)
    target_value: float | None = None
    target_card: TargetCard | None = None
    cash_amount: float | None = None
    cash_currency: Currency | None = None
    notes: str | None = None
