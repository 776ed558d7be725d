import asyncio
import sys
from redis.asyncio import Redis
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from core.config import settings
from core.logger import setup_logging, logger
from services.monitoring_service import expire_overdue_attempts

async def start_api():
    import uvicorn
    from api.main import app
    config = uvicorn.Config(app, host=settings.API_HOST, port=settings.API_PORT, log_level="info")
    server = uvicorn.Server(config)
    await server.serve()

def build_scheduler(redis: Redis) -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler(timezone="UTC")
    # Closes attempts whose deadline passed while the learner was away
    scheduler.add_job(
        expire_overdue_attempts,
        trigger="interval",
        seconds=settings.EXPIRY_SWEEP_INTERVAL_SECONDS,
        args=[redis],
        id=settings.EXPIRY_SWEEP_JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    return scheduler

async def run_worker(redis: Redis):
    scheduler = build_scheduler(redis)
    scheduler.start()
    logger.info("Expiry sweep scheduled", interval_seconds=settings.EXPIRY_SWEEP_INTERVAL_SECONDS)
    try:
        await asyncio.Event().wait()
    finally:
        scheduler.shutdown(wait=False)

async def main():
    # Parse mode from CLI args first
    mode = "all"
    if len(sys.argv) > 1:
        if "api" in sys.argv: mode = "api"
        elif "worker" in sys.argv: mode = "worker"

    setup_logging()

    if mode == "worker" and not settings.EXPIRY_SWEEP_ENABLED:
        logger.warning("Expiry sweep disabled, worker has nothing to run", env=settings.ENV)
        return

    if mode == "api" or not settings.EXPIRY_SWEEP_ENABLED:
        # For scaling, run 'uvicorn api.main:app' directly and one 'worker' process
        logger.info("Starting API Only Mode...", env=settings.ENV)
        await start_api()
        return

    redis = Redis.from_url(settings.REDIS_URL, decode_responses=True)
    try:
        if mode == "worker":
            logger.info("Starting Expiry Worker Mode...", env=settings.ENV)
            await run_worker(redis)
        else:  # mode == "all"
            logger.info("Starting All (API + Expiry Worker)...", env=settings.ENV)
            scheduler = build_scheduler(redis)
            scheduler.start()
            try:
                await start_api()
            finally:
                scheduler.shutdown(wait=False)
    finally:
        await redis.aclose()

if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        logger.info("Application stopped.")
