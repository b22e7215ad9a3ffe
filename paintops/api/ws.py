"""WebSocket manager for real-time job updates.

Broadcasts for one job are throttled: at most one delivery window per
``min_interval`` seconds. The latest suppressed message of each event type
is delivered once the interval has elapsed.
"""

from __future__ import annotations

import asyncio
import json
import time
import uuid
from datetime import datetime, timezone

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from paintops.common.logging import get_logger
from paintops.config import settings

logger = get_logger("ws.manager")


class ConnectionManager:
    """Manages WebSocket connections grouped by job ID."""

    def __init__(self, min_interval: float | None = None):
        self.min_interval = (
            settings.REALTIME_MIN_INTERVAL_SECONDS if min_interval is None else min_interval
        )
        self._connections: dict[str, dict[str, WebSocket]] = {}  # job_id -> {conn_id: ws}
        self._last_sent: dict[str, float] = {}
        self._pending: dict[str, dict[str, str]] = {}  # job_id -> {event: newest message}
        self._trailing: dict[str, asyncio.Task] = {}

    async def connect(self, job_id: str, websocket: WebSocket) -> str:
        await websocket.accept()
        return self.register(job_id, websocket)

    def register(self, job_id: str, websocket: WebSocket) -> str:
        conn_id = uuid.uuid4().hex[:12]
        self._connections.setdefault(job_id, {})[conn_id] = websocket
        logger.info("WS connected: job=%s conn=%s (%d total)", job_id, conn_id, len(self._connections[job_id]))
        return conn_id

    def disconnect(self, job_id: str, conn_id: str):
        if job_id in self._connections:
            self._connections[job_id].pop(conn_id, None)
            if not self._connections[job_id]:
                del self._connections[job_id]
                self._last_sent.pop(job_id, None)
                self._pending.pop(job_id, None)
                task = self._trailing.pop(job_id, None)
                if task is not None:
                    task.cancel()
        logger.info("WS disconnected: job=%s conn=%s", job_id, conn_id)

    @staticmethod
    def _message(job_id: str, event: str, data: dict) -> str:
        return json.dumps({
            "event": event,
            "data": data,
            "job_id": job_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }, default=str)

    async def broadcast(self, job_id: str, event: str, data: dict):
        if job_id not in self._connections:
            return
        message = self._message(job_id, event, data)

        last = self._last_sent.get(job_id)
        elapsed = time.monotonic() - last if last is not None else None
        if elapsed is None or elapsed >= self.min_interval:
            await self._deliver(job_id, message)
            return

        # Throttled: keep the newest message per event type and flush them when the window closes
        pending = self._pending.setdefault(job_id, {})
        pending.pop(event, None)
        pending[event] = message
        if job_id not in self._trailing:
            self._trailing[job_id] = asyncio.create_task(
                self._flush_later(job_id, self.min_interval - elapsed)
            )

    async def _flush_later(self, job_id: str, delay: float):
        try:
            await asyncio.sleep(delay)
            for message in self._pending.pop(job_id, {}).values():
                await self._deliver(job_id, message)
        finally:
            self._trailing.pop(job_id, None)

    async def _deliver(self, job_id: str, message: str):
        self._last_sent[job_id] = time.monotonic()
        dead = []
        for conn_id, ws in list(self._connections.get(job_id, {}).items()):
            try:
                if ws.client_state == WebSocketState.CONNECTED:
                    await ws.send_text(message)
            except Exception:
                dead.append(conn_id)
        for conn_id in dead:
            self.disconnect(job_id, conn_id)

    async def send_personal(self, job_id: str, conn_id: str, event: str, data: dict):
        ws = self._connections.get(job_id, {}).get(conn_id)
        if ws is None:
            return
        try:
            if ws.client_state == WebSocketState.CONNECTED:
                await ws.send_text(self._message(job_id, event, data))
        except Exception:
            self.disconnect(job_id, conn_id)

    @property
    def active_connections(self) -> int:
        return sum(len(conns) for conns in self._connections.values())


# Global singleton
manager = ConnectionManager()
