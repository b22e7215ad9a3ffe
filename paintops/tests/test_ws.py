import asyncio
import json

import pytest
from starlette.websockets import WebSocketState

from paintops.api.ws import ConnectionManager


class FakeWebSocket:
    def __init__(self):
        self.client_state = WebSocketState.CONNECTED
        self.sent = []
        self.accepted = False

    async def accept(self):
        self.accepted = True

    async def send_text(self, message):
        self.sent.append(json.loads(message))


class BrokenWebSocket(FakeWebSocket):
    async def send_text(self, message):
        raise RuntimeError("connection reset")


@pytest.mark.asyncio
async def test_first_event_delivered_immediately():
    manager = ConnectionManager(min_interval=60)
    ws = FakeWebSocket()
    await manager.connect("job-1", ws)
    assert ws.accepted

    await manager.broadcast("job-1", "job.updated", {"phase": "Work Order"})
    assert len(ws.sent) == 1
    assert ws.sent[0]["event"] == "job.updated"
    assert ws.sent[0]["job_id"] == "job-1"


@pytest.mark.asyncio
async def test_burst_is_throttled_and_latest_delivered():
    manager = ConnectionManager(min_interval=0.05)
    ws = FakeWebSocket()
    manager.register("job-1", ws)

    await manager.broadcast("job-1", "job.updated", {"n": 1})
    await manager.broadcast("job-1", "job.updated", {"n": 2})
    await manager.broadcast("job-1", "job.updated", {"n": 3})
    assert [m["data"]["n"] for m in ws.sent] == [1]

    await asyncio.sleep(0.15)
    assert [m["data"]["n"] for m in ws.sent] == [1, 3]


@pytest.mark.asyncio
async def test_broadcast_without_subscribers_is_noop():
    manager = ConnectionManager(min_interval=0)
    await manager.broadcast("nobody", "job.updated", {})
    assert manager.active_connections == 0


@pytest.mark.asyncio
async def test_broken_connection_is_dropped():
    manager = ConnectionManager(min_interval=0)
    good, bad = FakeWebSocket(), BrokenWebSocket()
    manager.register("job-1", good)
    manager.register("job-1", bad)

    await manager.broadcast("job-1", "job.updated", {})
    assert len(good.sent) == 1
    assert manager.active_connections == 1


@pytest.mark.asyncio
async def test_last_disconnect_cancels_pending_flush():
    manager = ConnectionManager(min_interval=0.05)
    ws = FakeWebSocket()
    conn_id = manager.register("job-1", ws)

    await manager.broadcast("job-1", "job.updated", {"n": 1})
    await manager.broadcast("job-1", "job.updated", {"n": 2})
    manager.disconnect("job-1", conn_id)

    await asyncio.sleep(0.1)
    assert [m["data"]["n"] for m in ws.sent] == [1]


@pytest.mark.asyncio
async def test_throttled_events_of_different_types_all_delivered():
    manager = ConnectionManager(min_interval=0.05)
    ws = FakeWebSocket()
    manager.register("job-1", ws)

    await manager.broadcast("job-1", "job.updated", {"to_phase": "Pending Work Order"})
    await manager.broadcast("job-1", "job.updated", {"to_phase": "Work Order"})
    await manager.broadcast("job-1", "notification.created", {"title": "Extra charges approved"})
    assert [m["event"] for m in ws.sent] == ["job.updated"]

    await asyncio.sleep(0.15)
    assert [m["event"] for m in ws.sent] == ["job.updated", "job.updated", "notification.created"]
    assert ws.sent[1]["data"]["to_phase"] == "Work Order"
