"""
services/broadcaster.py
-----------------------
Live-channel fan-out: connection registry, best-effort publishing and the
liveness sweep.

Connection lifecycle:  CONNECTING → OPEN → CLOSED
  - attach()  accepts the socket and registers it (OPEN).
  - detach()  unregisters it; safe to call more than once.
  - probe()   one heartbeat cycle. Connections that are already closed, or
              whose last send failed, are closed and dropped. Healthy
              connections are left alone and receive nothing.

The registry is an owned object handed to both the HTTP layer (through
BoardService) and the WebSocket accept loop via app.state; there is no
module-level client set.

publish() never raises. A failed or timed-out send is logged and the
connection is marked dead, so the next probe cycle removes it. The request
that triggered the event is never blocked or failed by a dead client.

Protocol-level ping/pong is the server's job: uvicorn runs it with
ws_ping_interval / ws_ping_timeout (see main.py). A peer that misses a pong
is closed by the server, the accept loop sees the disconnect and detaches
it. The channel itself only ever carries board events.
"""

import asyncio
import uuid
from enum import Enum as PyEnum
from typing import Any, Optional

from msgboard.core.logging import get_logger
from msgboard.schemas.event import BoardEvent

logger = get_logger(__name__)


class ConnectionState(str, PyEnum):
    connecting = "connecting"
    open = "open"
    closed = "closed"


class LiveConnection:
    """One client socket. `websocket` is a Starlette WebSocket (or a fake in tests)."""

    def __init__(self, websocket: Any, client: Optional[str] = None) -> None:
        self._ws = websocket
        self.id = uuid.uuid4().hex[:8]
        self.client = client or "-"
        self.state = ConnectionState.connecting
        self.is_alive = True

    async def accept(self) -> None:
        await self._ws.accept()
        self.state = ConnectionState.open

    async def send(self, frame: str) -> None:
        if self.state is not ConnectionState.open:
            raise RuntimeError(f"connection {self.id} is {self.state.value}")
        await self._ws.send_text(frame)

    def mark_closed(self) -> None:
        self.state = ConnectionState.closed

    async def close(self, code: int = 1000) -> None:
        if self.state is ConnectionState.closed:
            return
        self.state = ConnectionState.closed
        try:
            await self._ws.close(code=code)
        except (RuntimeError, OSError) as exc:
            # Peer already gone; the socket is unusable either way.
            logger.debug("Close on dead socket", connection=self.id, error=str(exc))

    def __repr__(self) -> str:
        return f"<LiveConnection id={self.id} state={self.state.value}>"


class ConnectionRegistry:
    """Lock-protected set of live connections."""

    def __init__(self) -> None:
        self._connections: set[LiveConnection] = set()
        self._lock = asyncio.Lock()

    async def add(self, connection: LiveConnection) -> None:
        async with self._lock:
            self._connections.add(connection)

    async def remove(self, connection: LiveConnection) -> bool:
        async with self._lock:
            if connection in self._connections:
                self._connections.discard(connection)
                return True
            return False

    async def snapshot(self) -> list[LiveConnection]:
        async with self._lock:
            return list(self._connections)

    def __len__(self) -> int:
        return len(self._connections)


class Broadcaster:

    def __init__(
        self,
        registry: ConnectionRegistry,
        heartbeat_interval: float = 30.0,
        send_timeout: float = 5.0,
    ) -> None:
        self.registry = registry
        self._interval = heartbeat_interval
        self._send_timeout = send_timeout

    # ── Connection lifecycle ─────────────────────────────────────────────────

    async def attach(self, connection: LiveConnection) -> None:
        await connection.accept()
        await self.registry.add(connection)
        logger.info(
            "Live connection opened",
            connection=connection.id,
            connections=len(self.registry),
        )

    async def detach(self, connection: LiveConnection) -> None:
        connection.mark_closed()
        if await self.registry.remove(connection):
            logger.info(
                "Live connection closed",
                connection=connection.id,
                connections=len(self.registry),
            )

    async def close_all(self) -> None:
        for connection in await self.registry.snapshot():
            await connection.close(code=1001)
            await self.registry.remove(connection)

    # ── Publishing ───────────────────────────────────────────────────────────

    async def publish(self, event: BoardEvent) -> int:
        """Send the event to every open connection. Returns the delivery count."""
        frame = event.to_wire()
        targets = [
            c for c in await self.registry.snapshot()
            if c.state is ConnectionState.open
        ]
        if not targets:
            return 0
        results = await asyncio.gather(*(self._deliver(c, frame) for c in targets))
        delivered = sum(results)
        logger.debug(
            "Event broadcast",
            event_type=event.type.value,
            delivered=delivered,
            failed=len(targets) - delivered,
        )
        return delivered

    async def _deliver(self, connection: LiveConnection, frame: str) -> bool:
        try:
            await asyncio.wait_for(connection.send(frame), timeout=self._send_timeout)
            return True
        except Exception as exc:
            connection.is_alive = False
            logger.warning(
                "Live delivery failed",
                connection=connection.id,
                error=repr(exc),
            )
            return False

    # ── Heartbeat ────────────────────────────────────────────────────────────

    async def probe(self) -> int:
        """Run one liveness cycle. Returns the number of connections dropped."""
        dropped = 0
        for connection in await self.registry.snapshot():
            if connection.state is ConnectionState.closed:
                await self.registry.remove(connection)
                continue
            if not connection.is_alive:
                logger.info("Dropping broken connection", connection=connection.id)
                await connection.close(code=1001)
                await self.registry.remove(connection)
                dropped += 1
        return dropped

    async def run_heartbeat(self) -> None:
        logger.info("Heartbeat started", interval_seconds=self._interval)
        try:
            while True:
                await asyncio.sleep(self._interval)
                try:
                    dropped = await self.probe()
                except Exception:
                    logger.error("Heartbeat cycle failed", exc_info=True)
                    continue
                if dropped:
                    logger.info(
                        "Heartbeat cycle",
                        dropped=dropped,
                        connections=len(self.registry),
                    )
        except asyncio.CancelledError:
            logger.info("Heartbeat stopped")
            raise
