"""Observability: OpenTelemetry tracing."""

from clinic_core.core.observability.tracing import (
    get_tracer,
    setup_tracing,
    shutdown_tracing,
    tag_tenant,
)


__all__ = ["get_tracer", "setup_tracing", "shutdown_tracing", "tag_tenant"]
