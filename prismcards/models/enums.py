"""Closed value sets shared by the ORM, services and API schemas."""

from enum import Enum


class UserTier(str, Enum):
    """Entitlement class governing the card-count ceiling."""

    FREE = "free"
    UNLIMITED = "unlimited"


class SoldVia(str, Enum):
    """How a card left the collection."""

    SALE = "sale"
    TRADE = "trade"


class Currency(str, Enum):
    USD = "USD"
    CNY = "CNY"


class TradePlanStatus(str, Enum):
    """Lifecycle of a trade plan. Only PENDING plans can change status."""

    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
