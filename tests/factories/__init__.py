"""Test data factories."""

from tests.factories.staff import (
    DEFAULT_PASSWORD,
    DEFAULT_PASSWORD_HASH,
    LoginRequestFactory,
    StaffUserFactory,
)
from tests.factories.tenant import SubscriptionFactory, TenantFactory


__all__ = [
    "DEFAULT_PASSWORD",
    "DEFAULT_PASSWORD_HASH",
    "LoginRequestFactory",
    "StaffUserFactory",
    "SubscriptionFactory",
    "TenantFactory",
]
