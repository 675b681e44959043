"""OpenTelemetry tracing for the API and the sweep worker.

Spans go to ``OTLP_ENDPOINT`` when it is set, to the console in debug
mode, and nowhere otherwise. Request spans are tagged with the clinic
they were resolved to, so traces can be filtered per tenant.
"""

from typing import TYPE_CHECKING

import structlog
from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.redis import RedisInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from sqlalchemy.ext.asyncio import AsyncEngine

from clinic_core import __version__
from clinic_core.config import settings


if TYPE_CHECKING:
    from clinic_core.core.tenancy.context import TenantContext


log = structlog.get_logger()


def _build_provider() -> TracerProvider | None:
    """Create a tracer provider, or None when tracing is off."""
    resource = Resource.create(
        {
            "service.name": settings.app_name.lower().replace(" ", "-"),
            "service.version": __version__,
            "deployment.environment": settings.environment,
        }
    )
    provider = TracerProvider(resource=resource)

    if settings.otlp_endpoint:
        exporter = OTLPSpanExporter(
            endpoint=settings.otlp_endpoint,
            insecure=not settings.otlp_endpoint.startswith("https"),
        )
        provider.add_span_processor(BatchSpanProcessor(exporter))
        log.info("tracing_configured", exporter="otlp", endpoint=settings.otlp_endpoint)
    elif settings.debug:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        log.info("tracing_configured", exporter="console")
    else:
        log.info("tracing_disabled", reason="no OTLP_ENDPOINT configured")
        return None

    return provider


def setup_tracing(app: FastAPI | None = None, engine: AsyncEngine | None = None) -> bool:
    """Configure OpenTelemetry tracing.

    Instruments the FastAPI app (if given), the SQLAlchemy engine (if
    given) and Redis. Used by both the API and the worker.

    Returns:
        True if tracing was enabled
    """
    provider = _build_provider()
    if provider is None:
        return False

    trace.set_tracer_provider(provider)

    if app is not None:
        FastAPIInstrumentor.instrument_app(
            app,
            excluded_urls="health/.*,docs,redoc,openapi.json",
        )
        log.debug("instrumented_fastapi")

    if engine is not None:
        SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)
        log.debug("instrumented_sqlalchemy")

    RedisInstrumentor().instrument()
    log.debug("instrumented_redis")

    log.info("tracing_setup_complete")
    return True


def shutdown_tracing() -> None:
    """Flush pending spans and shut the provider down."""
    provider = trace.get_tracer_provider()
    if isinstance(provider, TracerProvider):
        provider.shutdown()


def get_tracer(name: str) -> trace.Tracer:
    """Get a tracer instance for manual span creation.

    Example:
        tracer = get_tracer(__name__)
        with tracer.start_as_current_span("subscription_sweep"):
            ...
    """
    return trace.get_tracer(name)


def tag_tenant(tenant: "TenantContext") -> None:
    """Record the resolved tenant on the current span, if one is recording."""
    span = trace.get_current_span()
    if span.is_recording():
        span.set_attribute("clinic.tenant_id", str(tenant.tenant_id))
        span.set_attribute("clinic.tenant_slug", tenant.slug)
