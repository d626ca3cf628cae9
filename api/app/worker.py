"""Celery worker configuration.

The only scheduled job is the pending-reservation sweep. Reads never depend
on it having run; it just keeps stored statuses tidy.

    celery -A app.worker worker --beat
"""

import asyncio
import logging

from celery import Celery

from app.core.config import settings
from app.core.database import async_session_factory, engine
from app.services.reservations import expire_stale_reservations

logger = logging.getLogger(__name__)

celery_app = Celery(
    "courtslot",
    broker=settings.redis_url,
    backend=settings.redis_url,
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone=settings.timezone,
    enable_utc=True,
    beat_schedule={
        "expire-stale-reservations": {
            "task": "courtslot.expire_stale_reservations",
            "schedule": settings.expiry_sweep_minutes * 60.0,
        },
    },
)


async def _sweep(batch_size: int) -> list[int]:
    expired: list[int] = []
    try:
        async with async_session_factory() as db:
            while True:
                ids = await expire_stale_reservations(db, batch_size=batch_size)
                expired.extend(ids)
                if len(ids) < batch_size:
                    return expired
    finally:
        # Pooled connections belong to this run's event loop
        await engine.dispose()


@celery_app.task(name="courtslot.expire_stale_reservations")
def expire_stale_reservations_task(batch_size: int = 100) -> int:
    expired = asyncio.run(_sweep(batch_size))
    logger.info("Expiry sweep finished: %d reservations expired", len(expired))
    return len(expired)
