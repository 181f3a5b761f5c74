"""
PrismCards services.

Business logic for card valuation, entitlements and unlock keys.
"""

from prismcards.services.card_repository import CardRepository
from prismcards.services.identity import Identity, IdentityVerifier
from prismcards.services.system_config import SystemConfigStore
from prismcards.services.tier import EntitlementResolver
from prismcards.services.trade_plans import TradePlanRepository
from prismcards.services.unlock_keys import UnlockKeyLedger

__all__ = [
    "CardRepository",
    "EntitlementResolver",
    "Identity",
    "IdentityVerifier",
    "SystemConfigStore",
    "TradePlanRepository",
    "UnlockKeyLedger",
]
