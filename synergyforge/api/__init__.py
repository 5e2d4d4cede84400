from synergyforge.api.associations import router as associations_router
from synergyforge.api.batch import router as batch_router
from synergyforge.api.cards import router as cards_router
from synergyforge.api.decks import router as decks_router
from synergyforge.api.health import router as health_router

__all__ = [
    "associations_router",
    "batch_router",
    "cards_router",
    "decks_router",
    "health_router",
]
