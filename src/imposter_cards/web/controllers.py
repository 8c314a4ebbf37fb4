"""REST endpoints for looking up rooms and prompt categories."""

from __future__ import annotations

from typing import Any, ClassVar

from litestar import Controller, Router, get

from imposter_cards.game.views import serialize_room
from imposter_cards.services.game import RoomRegistry  # noqa: TC001


class LobbyController(Controller):
    """Read-only lobby endpoints.

    Rooms are created and played over the WebSocket; these routes let a
    client check a code before joining and list the categories to offer.
    """

    path = ""
    tags: ClassVar[list[str]] = ["Lobby"]

    @get("/rooms/{code:str}")
    async def get_room(self, code: str, registry: RoomRegistry) -> dict[str, Any]:
        """Get the sanitized snapshot of a room.

        Args:
            code: The 4-digit room code.
            registry: Room registry (injected).

        Returns:
            The room snapshot.

        Raises:
            RoomNotFoundError: If no live room has the code (404).
        """
        return serialize_room(registry.get_room(code))

    @get("/categories")
    async def list_categories(self, registry: RoomRegistry) -> dict[str, list[str]]:
        """List the prompt categories a round can be started with."""
        return {"categories": registry.prompts.categories()}


def create_router(path: str = "/api") -> Router:
    """Create the REST router.

    Args:
        path: Base path for the routes.

    Returns:
        Router with the lobby endpoints.
    """
    return Router(path=path, route_handlers=[LobbyController])
