import uuid
from datetime import datetime
from typing import Optional
from redis.asyncio import Redis

from core.logger import logger
from core.config import settings
from models.base import utcnow
from models.attempt import CompletionTrigger
from db.session import AsyncSessionLocal
from services.attempt_store import AttemptStore
from services.attempt_service import AttemptService
from services.deadline import is_expired

SWEEP_LOCK_KEY = "quizengine:expiry_sweep:lock"

# Delete the lock only while it still carries this run's token
_RELEASE_LOCK_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""

async def expire_overdue_attempts(redis: Redis, now: Optional[datetime] = None, session_factory=None) -> int:
    """
    Periodic job: complete every timed attempt whose deadline has passed.

    Attempts would also be closed lazily on the next start/complete call; this
    keeps reporting accurate for learners who never come back. Completion goes
    through AttemptService.complete, so a sweep racing a learner's own submit
    is harmless. Returns the number of attempts this run completed.
    """
    session_factory = session_factory or AsyncSessionLocal
    now = now or utcnow()

    # Only one worker sweeps at a time
    token = uuid.uuid4().hex
    acquired = await redis.set(SWEEP_LOCK_KEY, token, nx=True, ex=settings.EXPIRY_SWEEP_LOCK_TTL_SECONDS)
    if not acquired:
        logger.debug("Expiry sweep skipped, another worker holds the lock")
        return 0

    expired_count = 0
    try:
        last_id = 0
        while True:
            async with session_factory() as db:
                page = await AttemptStore(db).list_timed_in_progress(
                    after_id=last_id, limit=settings.EXPIRY_SWEEP_BATCH_SIZE
                )
                overdue = [
                    a.id for a in page
                    if is_expired(a.time_limit_snapshot_minutes, a.started_at, now)
                ]
            if not page:
                break
            last_id = page[-1].id

            for attempt_id in overdue:
                # Each completion gets its own session so one failure doesn't poison the batch
                async with session_factory() as db:
                    try:
                        await AttemptService(db).complete(attempt_id, now=now, trigger=CompletionTrigger.TIMEOUT)
                        expired_count += 1
                    except Exception as e:
                        await db.rollback()
                        logger.error("Expiry sweep: failed to complete attempt", attempt_id=attempt_id, error=str(e))

            if len(page) < settings.EXPIRY_SWEEP_BATCH_SIZE:
                break
    finally:
        released = await redis.eval(_RELEASE_LOCK_SCRIPT, 1, SWEEP_LOCK_KEY, token)
        if not released:
            logger.warning("Expiry sweep lock expired before the run finished", lock_ttl=settings.EXPIRY_SWEEP_LOCK_TTL_SECONDS)

    if expired_count:
        logger.info("Expiry sweep completed overdue attempts", count=expired_count)
    else:
        logger.debug("Expiry sweep found nothing to do")
    return expired_count
