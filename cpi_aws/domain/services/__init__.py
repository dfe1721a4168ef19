"""
Domain Services Package

Architectural Intent:
- Pure translation services between EC2-native data and the CPI model
"""

from cpi_aws.domain.services.error_classifier import (
    classify,
    classify_code,
    describe_error,
    to_action_error,
)
from cpi_aws.domain.services.resource_mapper import (
    map_snapshot,
    map_volume,
    map_volumes,
    map_worker,
    map_workers,
    tags_to_dict,
)

__all__ = [
    "classify",
    "classify_code",
    "describe_error",
    "to_action_error",
    "map_snapshot",
    "map_volume",
    "map_volumes",
    "map_worker",
    "map_workers",
    "tags_to_dict",
]
