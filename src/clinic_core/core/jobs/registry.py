"""ARQ connection pool owned by the API process.

The API never runs jobs itself; it holds a pool so the readiness check
can see the Redis instance the worker schedules its crons on.
"""

import structlog
from arq import ArqRedis, create_pool
from redis.exceptions import RedisError

from clinic_core.core.jobs.utils import get_redis_settings


logger = structlog.get_logger()


class ArqPoolHolder:
    """Process-wide slot for the pool, set by the app lifespan."""

    pool: ArqRedis | None = None


async def init_arq_pool() -> ArqRedis:
    """Create the pool once; later calls return the same pool."""
    if ArqPoolHolder.pool is None:
        ArqPoolHolder.pool = await create_pool(get_redis_settings())
    return ArqPoolHolder.pool


async def get_arq_pool() -> ArqRedis:
    """Get the pool created at startup.

    Raises:
        RuntimeError: If pool not initialized
    """
    if ArqPoolHolder.pool is None:
        raise RuntimeError("ARQ pool not initialized. Call init_arq_pool() during startup.")
    return ArqPoolHolder.pool


async def check_arq_pool() -> str:
    """Ping Redis through the pool for the readiness check.

    Returns:
        "ok", or the name of the error that made the check fail
    """
    try:
        pool = await get_arq_pool()
        await pool.ping()
    except (RuntimeError, RedisError, OSError) as e:
        logger.warning("arq_pool_check_failed", error_type=type(e).__name__)
        return type(e).__name__
    return "ok"


async def close_arq_pool() -> None:
    """Close the pool at shutdown; a no-op when it was never opened."""
    if ArqPoolHolder.pool is not None:
        await ArqPoolHolder.pool.close()
        ArqPoolHolder.pool = None
