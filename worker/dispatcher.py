import asyncio
import logging
from datetime import timedelta

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

from app.core.config import settings
from app.models.base import utcnow
from app.services.payments import stale_unlinked_intent_ids
from worker.celery_app import celery


log = logging.getLogger(__name__)

POLL_SECONDS = 60
BATCH_SIZE = 100
# abandoned checkouts are not chased forever
MAX_AGE = timedelta(days=1)


async def _tick():
    engine = create_async_engine(settings.database_url, pool_pre_ping=True)
    Session = async_sessionmaker(engine, expire_on_commit=False)

    now = utcnow()
    cutoff = now - timedelta(minutes=settings.stale_intent_minutes)
    async with Session() as db:
        ids = await stale_unlinked_intent_ids(
            db,
            older_than=cutoff,
            newer_than=cutoff - MAX_AGE,
            swept_before=now - timedelta(minutes=settings.stale_intent_recheck_minutes),
            limit=BATCH_SIZE,
        )

    await engine.dispose()

    log.info("tick: found %d unlinked payment intents older than %s", len(ids), cutoff.isoformat())
    for intent_id in ids:
        celery.send_task("worker.tasks.reconcile_payment_intent", args=[intent_id], queue="reconcile")

    return len(ids)


async def main():
    celery.connection().ensure_connection(max_retries=3)

    logging.basicConfig(level=settings.log_level)
    log.info("dispatcher: started")
    while True:
        try:
            await _tick()
        except Exception:
            log.exception("dispatcher: tick crashed")
        await asyncio.sleep(POLL_SECONDS)


if __name__ == "__main__":
    asyncio.run(main())
