from prismcards.api.admin import router as admin_router
from prismcards.api.cards import router as cards_router
from prismcards.api.health import router as health_router
from prismcards.api.tier import router as tier_router
from prismcards.api.trade_plans import router as trade_plans_router

__all__ = [
    "admin_router",
    "cards_router",
    "health_router",
    "tier_router",
    "trade_plans_router",
]
