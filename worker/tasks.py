import asyncio
import logging

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

from worker.celery_app import celery
from app.core.config import settings
import app.models  # noqa: F401  # ensures Models are registered
from app.gateways.registry import build_gateway
from app.services.errors import GatewayUnavailable, PaymentFlowError
from app.services.reconciler import reconcile_intent


log = logging.getLogger(__name__)


async def _reconcile_payment_intent(intent_id: str) -> str | None:
    engine = create_async_engine(settings.database_url, pool_pre_ping=True)
    Session = async_sessionmaker(engine, expire_on_commit=False)
    gateway = build_gateway(settings.payment_backend)

    try:
        async with Session() as db:
            outcome = await reconcile_intent(db, gateway=gateway, intent_id=intent_id)
    finally:
        await engine.dispose()

    log.info("reconcile %s: status=%s notice=%s", intent_id, outcome.status, outcome.notice)
    return outcome.notice


@celery.task(name="worker.tasks.reconcile_payment_intent", bind=True, max_retries=5)
def reconcile_payment_intent(self, intent_id: str) -> str | None:
    try:
        return asyncio.run(_reconcile_payment_intent(intent_id))
    except GatewayUnavailable as e:
        raise self.retry(exc=e, countdown=30 * (self.request.retries + 1))
    except PaymentFlowError as e:
        # not retryable; the intent is flagged or was never ours
        log.warning("reconcile %s gave up: %s (%s)", intent_id, e.code, e.message)
        return e.code
