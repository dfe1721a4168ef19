"""
OpenTelemetry Instrumentation for the EC2 CPI adapter

Architectural Intent:
- Wraps every dispatched action in a span and records per-action metrics
- Exports to OTLP-compatible backends when an endpoint is configured;
  otherwise the API's no-op providers absorb everything

Security:
- Endpoint defaults to empty string (must be explicitly configured)
- Non-localhost http:// endpoints rejected unless insecure=True
- Validation in __post_init__ prevents accidental plaintext export
"""

from __future__ import annotations
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional
from urllib.parse import urlparse
import logging
import time

from opentelemetry import metrics, trace
from opentelemetry.trace import Status, StatusCode

from cpi_aws.domain.value_objects.action_result import ActionResult

logger = logging.getLogger(__name__)

INSTRUMENTATION_NAME = "cpi_aws"


@dataclass
class OTELConfig:
    endpoint: str = ""
    service_name: str = "cpi-aws"
    environment: str = "development"
    enable_traces: bool = True
    enable_metrics: bool = True
    insecure: bool = False

    def __post_init__(self) -> None:
        if self.endpoint:
            parsed = urlparse(self.endpoint)
            is_localhost = parsed.hostname in ("localhost", "127.0.0.1", "::1")
            if parsed.scheme == "http" and not is_localhost and not self.insecure:
                raise ValueError(
                    f"Non-localhost HTTP endpoint '{self.endpoint}' requires "
                    "insecure=True or use https://. "
                    "Set insecure=True to explicitly allow plaintext export."
                )


def configure_telemetry(config: OTELConfig) -> bool:
    """Install the OpenTelemetry SDK with OTLP exporters.

    Returns True when the SDK was installed. Without an endpoint, or without
    the optional SDK packages, the global no-op providers stay in place.
    """
    if not config.endpoint:
        logger.info("OTEL endpoint not configured, telemetry disabled")
        return False

    try:
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
        from opentelemetry.sdk.resources import Resource, SERVICE_NAME
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
            OTLPSpanExporter,
        )
        from opentelemetry.sdk.metrics import MeterProvider
        from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
        from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import (
            OTLPMetricExporter,
        )
    except ImportError:
        logger.warning("OpenTelemetry SDK not installed, telemetry disabled")
        return False

    resource = Resource(
        attributes={
            SERVICE_NAME: config.service_name,
            "environment": config.environment,
        }
    )

    if config.enable_traces:
        provider = TracerProvider(resource=resource)
        provider.add_span_processor(
            BatchSpanProcessor(
                OTLPSpanExporter(endpoint=config.endpoint, insecure=config.insecure)
            )
        )
        trace.set_tracer_provider(provider)

    if config.enable_metrics:
        reader = PeriodicExportingMetricReader(
            OTLPMetricExporter(endpoint=config.endpoint, insecure=config.insecure)
        )
        metrics.set_meter_provider(
            MeterProvider(resource=resource, metric_readers=[reader])
        )

    logger.info("OTEL export enabled (endpoint=%s)", config.endpoint)
    return True


class ActionTelemetry:
    """
    Per-action span and metrics recorder.

    Providers are looked up when the recorder is built, so tests can pass
    SDK providers with in-memory exporters.
    """

    def __init__(
        self,
        tracer_provider: Optional[Any] = None,
        meter_provider: Optional[Any] = None,
    ) -> None:
        self._tracer = trace.get_tracer(INSTRUMENTATION_NAME, tracer_provider=tracer_provider)
        meter = metrics.get_meter(INSTRUMENTATION_NAME, meter_provider=meter_provider)
        self._actions = meter.create_counter(
            "cpi.actions", unit="1", description="Dispatched CPI actions"
        )
        self._duration = meter.create_histogram(
            "cpi.action.duration_ms", unit="ms", description="CPI action wall time"
        )

    @asynccontextmanager
    async def action_span(self, action: str, region: str) -> AsyncIterator["ActionSpan"]:
        started = time.perf_counter()
        with self._tracer.start_as_current_span(
            f"cpi.{action}",
            attributes={"cpi.action": action, "cpi.region": region},
        ) as span:
            recorder = ActionSpan(span)
            try:
                yield recorder
            finally:
                attributes = {"cpi.action": action, "cpi.status": recorder.status}
                if recorder.error_kind:
                    attributes["cpi.error_kind"] = recorder.error_kind
                self._actions.add(1, attributes)
                self._duration.record(
                    (time.perf_counter() - started) * 1000.0, attributes
                )


class ActionSpan:
    def __init__(self, span: Any) -> None:
        self.span = span
        self.status = "unknown"
        self.error_kind = ""

    def record_result(self, result: ActionResult) -> None:
        self.status = result.status.value
        self.span.set_attribute("cpi.status", self.status)
        kind = result.error_kind
        if kind is not None:
            self.error_kind = kind.value
            self.span.set_attribute("cpi.error_kind", self.error_kind)
        if not result.ok:
            self.span.set_status(Status(StatusCode.ERROR, result.error.message))
