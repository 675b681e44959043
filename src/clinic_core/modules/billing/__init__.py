"""Billing module - subscriptions and their scheduled transitions."""

__module_info__ = {
    "name": "billing",
    "version": "1.0.0",
    "description": "Subscription state and the daily transition sweep",
    "dependencies": ["tenants"],
}
