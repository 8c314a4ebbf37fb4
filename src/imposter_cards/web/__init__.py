"""HTTP endpoints for imposter-cards."""

from imposter_cards.web.controllers import LobbyController, create_router
from imposter_cards.web.health import HealthController

__all__ = ["HealthController", "LobbyController", "create_router"]
