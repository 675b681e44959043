"""Staff module - staff identities, invitations and permission records."""

__module_info__ = {
    "name": "staff",
    "version": "1.0.0",
    "description": "Staff onboarding and permission management",
    "dependencies": ["tenants"],
}
