"""
Telemetry Infrastructure

Architectural Intent:
- OpenTelemetry integration for observability
- Per-action traces and metrics
"""

from cpi_aws.infrastructure.telemetry.otel_exporter import (
    ActionSpan,
    ActionTelemetry,
    OTELConfig,
    configure_telemetry,
)

__all__ = [
    "ActionSpan",
    "ActionTelemetry",
    "OTELConfig",
    "configure_telemetry",
]
