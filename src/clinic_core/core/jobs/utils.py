"""Redis connection settings shared by the ARQ pool and the worker."""

from arq.connections import RedisSettings

from clinic_core.config import settings


def get_redis_settings() -> RedisSettings:
    """ARQ ``RedisSettings`` parsed from ``settings.redis_url``."""
    return RedisSettings.from_dsn(str(settings.redis_url))
