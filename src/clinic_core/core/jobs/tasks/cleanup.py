"""Cleanup tasks for expired credentials.

Deletes expired refresh tokens and invitation tokens. This is the
dedicated maintenance path for token hygiene; login and refresh also
purge expired refresh tokens opportunistically when
``purge_expired_tokens_on_auth`` is enabled.
"""

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_core.modules.staff.repos import InvitationTokenRepository, RefreshTokenRepository


log = structlog.get_logger()


async def purge_expired_credentials(
    session_factory: Callable[[], AsyncSession],
    now: datetime | None = None,
) -> dict[str, int]:
    """Delete expired refresh and invitation tokens in one transaction.

    Args:
        session_factory: Creates the session to run in
        now: Reference time (defaults to the current UTC time)

    Returns:
        Dict with count of deleted tokens by type
    """
    now = now or datetime.now(UTC)

    async with session_factory() as session:
        refresh_count = await RefreshTokenRepository(session).purge_expired(now)
        invitation_count = await InvitationTokenRepository(session).purge_expired(now)
        await session.commit()

    log.info(
        "cleanup_expired_tokens_complete",
        refresh_tokens_deleted=refresh_count,
        invitation_tokens_deleted=invitation_count,
    )

    return {
        "refresh_tokens_deleted": refresh_count,
        "invitation_tokens_deleted": invitation_count,
    }


async def cleanup_expired_tokens(ctx: dict[str, Any]) -> dict[str, int]:
    """ARQ job: clean up expired refresh and invitation tokens.

    Scheduled daily by the worker.

    Args:
        ctx: Worker context containing the database session factory
    """
    return await purge_expired_credentials(ctx["db_session_factory"])
