"""Tenants module - clinic accounts resolved per request.

Tenant administration belongs to the platform back office; this module
only provides the lookups used by tenant resolution and the
subscription sweep, so it has no routes.
"""

__module_info__ = {
    "name": "tenants",
    "version": "1.0.0",
    "description": "Clinic accounts and tenant lookups",
    "dependencies": [],
}
