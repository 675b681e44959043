"""Background job processing with ARQ.

Runs the daily subscription sweep and credential cleanup on a cron
schedule.
"""

from clinic_core.core.jobs.registry import (
    check_arq_pool,
    close_arq_pool,
    get_arq_pool,
    init_arq_pool,
)


__all__ = [
    "check_arq_pool",
    "close_arq_pool",
    "get_arq_pool",
    "init_arq_pool",
]
