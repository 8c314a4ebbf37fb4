"""Business logic services for imposter-cards."""

from imposter_cards.services.game import LeaveResult, RoomRegistry

__all__ = ["LeaveResult", "RoomRegistry"]
