"""Permission decorators for route protection.

This module provides decorators that can be applied to FastAPI
routes to require module permissions.
"""

from collections.abc import Awaitable, Callable
from functools import wraps
from typing import TYPE_CHECKING, Any, ParamSpec, TypeVar, cast

import structlog

from clinic_core.core.errors import ForbiddenError, PermissionDeniedError
from clinic_core.core.permissions.models import ModuleName, PermissionAction
from clinic_core.core.permissions.resolver import PermissionResolver, SqlPermissionStore


if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from clinic_core.core.auth.schemas import AuthenticatedIdentity


logger = structlog.get_logger()

P = ParamSpec("P")
R = TypeVar("R")


def _get_identity_and_db(
    kwargs: dict[str, Any],
) -> tuple["AuthenticatedIdentity | None", "AsyncSession | None"]:
    """Extract the identity and db session from route kwargs."""
    identity = cast("AuthenticatedIdentity | None", kwargs.get("identity"))
    db = cast("AsyncSession | None", kwargs.get("db"))
    return identity, db


def require_permission(
    module: ModuleName | str,
    action: PermissionAction | str,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Decorator that requires a module permission to access a route.

    The route must declare ``identity: CurrentIdentity`` and
    ``db: DBSession`` parameters.

    Usage:
        @router.delete("/patients/{patient_id}")
        @require_permission(ModuleName.PATIENTS, PermissionAction.DELETE)
        async def delete_patient(patient_id: UUID, identity: CurrentIdentity, db: DBSession):
            ...

    Raises:
        PermissionDeniedError: If the identity lacks the permission
    """
    return require_any_permission([(module, action)])


def require_any_permission(
    permissions: list[tuple[ModuleName | str, PermissionAction | str]],
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Decorator that requires any one of the given module permissions.

    Usage:
        @router.get("/reports")
        @require_any_permission([("reports", "VIEW"), ("billing", "VIEW")])
        async def get_reports(identity: CurrentIdentity, db: DBSession):
            ...
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            identity, db = _get_identity_and_db(kwargs)

            if identity is None or db is None:
                raise ForbiddenError(
                    "Permission check failed",
                    error_code="permission_check_failed",
                )

            resolver = PermissionResolver(SqlPermissionStore(db))
            if not await resolver.allows_any(identity, permissions):
                perm_strs = [f"{m}:{a}" for m, a in permissions]
                logger.info(
                    "permission_denied",
                    staff_id=str(identity.staff_id),
                    required=perm_strs,
                )
                raise PermissionDeniedError(perm_strs)

            return await func(*args, **kwargs)

        return wrapper

    return decorator
