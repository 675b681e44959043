"""Background job tasks.

Each task module defines async functions registered in the worker.
"""

from clinic_core.core.jobs.tasks.cleanup import cleanup_expired_tokens, purge_expired_credentials
from clinic_core.core.jobs.tasks.subscriptions import apply_subscription_transitions


__all__ = [
    "apply_subscription_transitions",
    "cleanup_expired_tokens",
    "purge_expired_credentials",
]
