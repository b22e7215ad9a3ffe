import asyncio

from paintops.common.logging import get_logger
from paintops.tasks.celery_app import app

logger = get_logger("tasks.agenda")


def _run_async(coro):
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@app.task(name="paintops.tasks.agenda_tasks.send_daily_agenda")
def send_daily_agenda():
    """Celery Beat task: email today's scheduled jobs to the agenda recipients."""
    logger.info("Sending daily agenda")

    async def _send():
        from paintops.core.notifications.agenda import send_daily_agenda as send
        from paintops.db.session import async_session_factory

        async with async_session_factory() as db:
            try:
                return await send(db)
            except Exception as e:
                logger.error("Daily agenda failed: %s", e)
                raise

    return _run_async(_send())
