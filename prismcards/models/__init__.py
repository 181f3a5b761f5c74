from prismcards.models.card import PriceObservation, ValuationResult
from prismcards.models.enums import Currency, SoldVia, TradePlanStatus, UserTier
from prismcards.models.failure import (
    FailureDetail,
    FailureKind,
    FailureResponse,
    InvalidInputError,
    KnownError,
    NotAdminError,
    NotAuthenticatedError,
)
from prismcards.models.schemas import CardInput, PriceObservationIn, TradePlanInput
from prismcards.models.tier import CardLimitCheck, RedemptionResult

__all__ = [
    "CardInput",
    "CardLimitCheck",
    "Currency",
    "FailureDetail",
    "FailureKind",
    "FailureResponse",
    "InvalidInputError",
    "KnownError",
    "NotAdminError",
    "NotAuthenticatedError",
    "PriceObservation",
    "PriceObservationIn",
    "RedemptionResult",
    "SoldVia",
    "TradePlanInput",
    "TradePlanStatus",
    "UserTier",
    "ValuationResult",
]
