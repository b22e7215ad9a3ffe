from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from paintops.api import deps
from paintops.api.ws import manager
from paintops.common.events import PENDING_EVENTS, publish_events, queue_event
from paintops.core.jobs.schemas import WorkOrderSubmit
from paintops.core.phases import service as phase_service


@pytest.fixture
def session_factory(test_engine, monkeypatch):
    factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    monkeypatch.setattr(deps, "async_session_factory", factory)
    return factory


@pytest.mark.asyncio
async def test_transition_is_not_broadcast_before_commit(db_session, job, sub_user):
    body = WorkOrderSubmit(has_extra_charges=True, extra_hours=Decimal("2"))
    with patch.object(manager, "broadcast", new_callable=AsyncMock) as broadcast:
        await phase_service.submit_work_order(db_session, job, body, sub_user)
        broadcast.assert_not_awaited()
        assert [e[1] for e in db_session.info[PENDING_EVENTS]] == ["job.updated"]

        assert await publish_events(db_session) == 1
        broadcast.assert_awaited_once()
        job_id, event, data = broadcast.await_args.args
        assert (job_id, event) == (str(job.id), "job.updated")
        assert data["to_phase"] == "Pending Work Order"
    assert PENDING_EVENTS not in db_session.info


@pytest.mark.asyncio
async def test_request_session_publishes_after_commit(session_factory):
    with patch.object(manager, "broadcast", new_callable=AsyncMock) as broadcast:
        gen = deps.get_db()
        session = await gen.__anext__()
        queue_event(session, "job-1", "job.updated", {"n": 1})
        broadcast.assert_not_awaited()

        with pytest.raises(StopAsyncIteration):
            await gen.__anext__()
        broadcast.assert_awaited_once_with("job-1", "job.updated", {"n": 1})


@pytest.mark.asyncio
async def test_failed_request_broadcasts_nothing(session_factory):
    with patch.object(manager, "broadcast", new_callable=AsyncMock) as broadcast:
        gen = deps.get_db()
        session = await gen.__anext__()
        queue_event(session, "job-1", "job.updated", {"n": 1})

        with pytest.raises(RuntimeError):
            await gen.athrow(RuntimeError("boom"))
        broadcast.assert_not_awaited()
        assert PENDING_EVENTS not in session.info
