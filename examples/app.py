"""Minimal example showing imposter-cards usage with Litestar.

This example demonstrates how to embed the imposter-cards server in your own
Litestar application using the plugin system.

The application will:
    - Create a RoomRegistry with the built-in PromptBank
    - Mount the lobby REST endpoints at /api and the health probes
    - Serve the room WebSocket at /ws
    - Sweep rooms older than 30 minutes every 5 minutes

Running the Application:
    python examples/app.py

Then visit:
    - http://127.0.0.1:8000/schema - OpenAPI documentation
    - http://127.0.0.1:8000/api/categories - Prompt categories

Example WebSocket Session (any WebSocket client, e.g. websocat):
    websocat ws://127.0.0.1:8000/ws
    {"type": "create_room", "name": "Alice", "requestId": 1}
    {"type": "list_categories", "requestId": 2}

    # From two more clients, with the code from the first ack
    {"type": "join_room", "code": "4821", "name": "Bob"}

    # Back on the host's socket
    {"type": "start_game", "category": "food", "requestId": 3}
"""

from __future__ import annotations

from datetime import timedelta

from litestar import Litestar, get

from imposter_cards import ImposterConfig, ImposterPlugin, RoomRegistry
from imposter_cards.core.logging import configure_logging


@get("/rooms/count")
async def room_count(registry: RoomRegistry) -> dict[str, int]:
    """Number of live rooms, read from the injected registry."""
    return {"rooms": registry.room_count}


configure_logging(debug=True)

app = Litestar(
    route_handlers=[room_count],
    plugins=[
        ImposterPlugin(
            ImposterConfig(
                # Mount REST routes at /api
                api_path="/api",
                # Serve the room WebSocket at /ws
                ws_path="/ws",
                # Sweep rooms older than 30 minutes, every 5 minutes
                room_max_age=timedelta(minutes=30),
                cleanup_interval_seconds=300,
            )
        )
    ],
    debug=True,
)

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host="127.0.0.1",
        port=8000,
        log_level="info",
    )
