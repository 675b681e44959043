"""ARQ worker configuration.

Defines the worker settings including registered jobs,
cron schedules, and startup/shutdown hooks.
"""

from typing import Any, ClassVar

import structlog
from arq import cron

from clinic_core.config import settings
from clinic_core.core.database.session import build_engine, build_session_factory
from clinic_core.core.jobs.tasks import apply_subscription_transitions, cleanup_expired_tokens
from clinic_core.core.jobs.utils import get_redis_settings
from clinic_core.core.logging import configure_logging
from clinic_core.core.observability import setup_tracing, shutdown_tracing


async def startup(ctx: dict[str, Any]) -> None:
    """Initialize resources for the worker.

    Called once when the worker starts. Sets up the database
    engine and session factory used by jobs.

    Args:
        ctx: Worker context dict (shared across all jobs)
    """
    configure_logging()
    log = structlog.get_logger()
    log.info("worker_startup", environment=settings.environment)

    engine = build_engine(pool_size=5, max_overflow=10)
    session_factory = build_session_factory(engine)

    ctx["db_engine"] = engine
    ctx["db_session_factory"] = session_factory
    setup_tracing(engine=engine)

    log.info("worker_startup_complete")


async def shutdown(ctx: dict[str, Any]) -> None:
    """Cleanup resources when the worker stops.

    Args:
        ctx: Worker context dict
    """
    log = structlog.get_logger()
    log.info("worker_shutdown")

    engine = ctx.get("db_engine")
    if engine:
        await engine.dispose()
        log.info("database_engine_disposed")

    shutdown_tracing()
    log.info("worker_shutdown_complete")


class WorkerSettings:
    """ARQ worker settings.

    Run the worker with:
        arq clinic_core.core.jobs.worker.WorkerSettings
    """

    functions: ClassVar[list[Any]] = [
        apply_subscription_transitions,
        cleanup_expired_tokens,
    ]

    # Daily, server time; unique: one run per slot across workers
    cron_jobs: ClassVar[list[Any]] = [
        cron(
            apply_subscription_transitions,
            hour=settings.subscription_sweep_hour,
            minute=settings.subscription_sweep_minute,
            unique=True,
        ),
        cron(
            cleanup_expired_tokens,
            hour=settings.token_cleanup_hour,
            minute=0,
            unique=True,
        ),
    ]

    on_startup = startup
    on_shutdown = shutdown

    redis_settings = get_redis_settings()

    max_jobs = 10
    job_timeout = 300  # 5 minutes per job
    keep_result = 3600
    retry_jobs = False
