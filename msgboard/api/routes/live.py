"""
api/routes/live.py
------------------
WS /ws — live change notifications.

The server pushes the seven board event types and nothing else. Clients are
not expected to send anything; inbound frames are read only so that a
disconnect is noticed, and are otherwise ignored. Mutations go through the
HTTP endpoints, never through this channel. Keep-alive is protocol-level
ping/pong handled by the ASGI server.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, WebSocket

from msgboard.dependencies import get_broadcaster
from msgboard.services.broadcaster import Broadcaster, LiveConnection

router = APIRouter(tags=["Live"])


@router.websocket("/ws")
async def live_channel(
    websocket: WebSocket,
    broadcaster: Annotated[Broadcaster, Depends(get_broadcaster)],
) -> None:
    client = websocket.client.host if websocket.client else None
    connection = LiveConnection(websocket, client=client)
    await broadcaster.attach(connection)
    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                break
    finally:
        await broadcaster.detach(connection)
