"""Identity, tenancy and entitlement core for a multi-tenant clinic platform."""

__version__ = "0.1.0"
