from cpi_aws.application.actions.catalog import (
    ACTIONS,
    ActionDefinition,
    ParamSpec,
    ParamType,
    get_action_definition,
    list_actions,
)
from cpi_aws.application.actions.validation import validate_parameters

__all__ = [
    "ACTIONS",
    "ActionDefinition",
    "ParamSpec",
    "ParamType",
    "get_action_definition",
    "list_actions",
    "validate_parameters",
]
