"""
SQLAlchemy ORM models for persistent storage.

Cards keep their price history as a JSON list on the card row: every price
mutation reads the whole card, rewrites the list and saves the row.
"""

from datetime import UTC, datetime
from enum import Enum as PyEnum
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    Float,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from prismcards.models.enums import Currency, SoldVia, TradePlanStatus, UserTier


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _enum(enum_cls: type[PyEnum]) -> Enum:
    """Store enum values (not member names) as plain strings."""
    return Enum(
        enum_cls,
        native_enum=False,
        length=20,
        values_callable=lambda members: [m.value for m in members],
    )


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class CardDB(Base):
    """
    One owned (or watched) collectible card.

    The primary key is (id, user_id): ids are assigned by clients and are
    only unique within one owner's collection.
    """

    __tablename__ = "cards"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(255), primary_key=True, index=True)

    # Classification
    sport: Mapped[str] = mapped_column(String(50))
    player: Mapped[str] = mapped_column(String(255))
    year: Mapped[int] = mapped_column(Integer)
    brand: Mapped[str] = mapped_column(String(255))
    series: Mapped[str] = mapped_column(String(255))
    insert: Mapped[str] = mapped_column(String(255), default="")
    parallel: Mapped[str | None] = mapped_column(String(255), nullable=True)
    serial_number: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Economics
    purchase_price: Mapped[float] = mapped_column(Float)
    currency: Mapped[Currency] = mapped_column(_enum(Currency), default=Currency.USD)
    purchase_date: Mapped[str | None] = mapped_column(String(64), nullable=True)
    acquisition_source: Mapped[str | None] = mapped_column(String(100), nullable=True)
    acquisition_source_other: Mapped[str | None] = mapped_column(String(255), nullable=True)
    current_value: Mapped[float] = mapped_column(Float)
    price_history: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)

    # Grading
    graded: Mapped[bool] = mapped_column(Boolean, default=False)
    grade_company: Mapped[str | None] = mapped_column(String(50), nullable=True)
    grade_value: Mapped[str | None] = mapped_column(String(20), nullable=True)
    auto_grade: Mapped[str | None] = mapped_column(String(20), nullable=True)
    cert_number: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Disposition
    sold: Mapped[bool] = mapped_column(Boolean, default=False)
    sold_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    sold_date: Mapped[str | None] = mapped_column(String(64), nullable=True)
    sold_via: Mapped[SoldVia | None] = mapped_column(_enum(SoldVia), nullable=True)

    # Flags (NULL watchlist is treated as a portfolio card)
    watchlist: Mapped[bool | None] = mapped_column(Boolean, nullable=True, default=False)
    never_trade: Mapped[bool] = mapped_column(Boolean, default=False)

    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    bulk_group_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    def __repr__(self) -> str:
        return f"<CardDB(id={self.id}, user_id={self.user_id}, player={self.player})>"


class UserProfileDB(Base):
    """Tier and card-limit state for one authenticated user."""

    __tablename__ = "user_profiles"

    user_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    email: Mapped[str] = mapped_column(String(320), index=True)
    tier: Mapped[UserTier] = mapped_column(_enum(UserTier), default=UserTier.FREE)
    # -1 means unlimited
    card_limit: Mapped[int] = mapped_column(Integer, default=30)
    unlock_key: Mapped[str | None] = mapped_column(String(64), nullable=True)
    whitelisted: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    def __repr__(self) -> str:
        return f"<UserProfileDB(user_id={self.user_id}, tier={self.tier}, limit={self.card_limit})>"


class UnlockKeyDB(Base):
    """A promotional key granting a tier and card limit."""

    __tablename__ = "unlock_keys"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    tier: Mapped[UserTier] = mapped_column(_enum(UserTier))
    card_limit: Mapped[int] = mapped_column(Integer)
    # -1 means unlimited uses
    max_uses: Mapped[int] = mapped_column(Integer, default=-1)
    used_count: Mapped[int] = mapped_column(Integer, default=0)
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    def __repr__(self) -> str:
        return f"<UnlockKeyDB(key={self.key}, used={self.used_count}/{self.max_uses})>"


class SystemConfigDB(Base):
    """Singleton row of global tier defaults, keyed by config_key='main'."""

    __tablename__ = "system_config"

    config_key: Mapped[str] = mapped_column(String(50), primary_key=True, default="main")
    default_card_limit: Mapped[int] = mapped_column(Integer, default=30)
    email_whitelist: Mapped[list[str]] = mapped_column(JSON, default=list)
    admin_emails: Mapped[list[str]] = mapped_column(JSON, default=list)

    def __repr__(self) -> str:
        return f"<SystemConfigDB(default_card_limit={self.default_card_limit})>"


class TradePlanDB(Base):
    """A planned trade: a bundle of owned cards (plus cash) towards a target."""

    __tablename__ = "trade_plans"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    plan_name: Mapped[str] = mapped_column(String(255))
    target_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    target_card: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    bundle_cards: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    cash_amount: Mapped[float | None] = mapped_column(Float, nullable=True)
    cash_currency: Mapped[Currency | None] = mapped_column(_enum(Currency), nullable=True)
    total_bundle_value: Mapped[float] = mapped_column(Float, default=0.0)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[TradePlanStatus] = mapped_column(
        _enum(TradePlanStatus), default=TradePlanStatus.PENDING, index=True
    )
    completed_transaction_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    def __repr__(self) -> str:
        return f"<TradePlanDB(id={self.id}, name={self.plan_name}, status={self.status})>"
