"""Subscription transition task."""

from typing import Any

from clinic_core.core.observability import get_tracer
from clinic_core.modules.billing.transitions import SubscriptionTransitioner


tracer = get_tracer(__name__)


async def apply_subscription_transitions(ctx: dict[str, Any]) -> dict[str, Any]:
    """ARQ job: apply due plan changes and cancellations.

    Scheduled daily by the worker. Partial failures are contained by the
    transitioner; only a failure to list candidates fails the job.

    Args:
        ctx: Worker context containing the database session factory

    Returns:
        The sweep report as a dict
    """
    with tracer.start_as_current_span("subscription_sweep"):
        report = await SubscriptionTransitioner(ctx["db_session_factory"]).run()
    return report.as_dict()
