"""
Parameter Validation

Architectural Intent:
- Validates a raw parameter bag against an ActionDefinition before any
  backend call is issued (fail fast, no partial side effects)
- Produces a dict of typed values keyed by canonical parameter name
- Reports every problem at once through InvalidParametersError

Design Decisions:
- Scalar strings are coerced for integer/number/boolean parameters, so the
  CLI's key=value form and JSON hosts share one validator
- Empty strings count as absent unless the parameter allows them
- Unknown keys are ignored
"""

import math
from collections.abc import Mapping
from typing import Any, Optional

from cpi_aws.application.actions.catalog import ActionDefinition, ParamSpec, ParamType
from cpi_aws.domain.errors import InvalidParametersError

_TRUE = ("true", "1", "yes", "on")
_FALSE = ("false", "0", "no", "off")


class _Invalid(Exception):
    pass


def _lookup(spec: ParamSpec, params: Mapping[str, Any]) -> Any:
    for key in (spec.name, *spec.aliases):
        value = params.get(key)
        if value is None or (value == "" and not spec.allow_empty):
            continue
        return value
    return None


def _coerce_int(value: Any) -> int:
    if isinstance(value, bool):
        raise _Invalid("expected an integer, got a boolean")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise _Invalid(f"expected an integer, got {value!r}")


def _coerce_number(value: Any) -> float:
    if isinstance(value, bool):
        raise _Invalid("expected a number, got a boolean")
    number: Optional[float] = None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            pass
    if number is None:
        raise _Invalid(f"expected a number, got {value!r}")
    # Rejects inf and nan, including JSON Infinity/NaN.
    if not math.isfinite(number):
        raise _Invalid(f"expected a finite number, got {value!r}")
    return number


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
    raise _Invalid(f"expected a boolean, got {value!r}")


def _coerce_string(value: Any) -> str:
    if not isinstance(value, str):
        raise _Invalid(f"expected a string, got {type(value).__name__}")
    return value


def _coerce_string_map(value: Any) -> dict[str, str]:
    if not isinstance(value, Mapping):
        raise _Invalid(f"expected a mapping of string to string, got {type(value).__name__}")
    result: dict[str, str] = {}
    for key, item in value.items():
        if not isinstance(key, str) or not key:
            raise _Invalid(f"tag keys must be non-empty strings, got {key!r}")
        if not isinstance(item, str):
            raise _Invalid(f"value for key {key!r} must be a string, got {type(item).__name__}")
        result[key] = item
    return result


def _coerce_string_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
        return list(value)
    raise _Invalid(f"expected a list of strings, got {value!r}")


_COERCERS = {
    ParamType.STRING: _coerce_string,
    ParamType.INTEGER: _coerce_int,
    ParamType.NUMBER: _coerce_number,
    ParamType.BOOLEAN: _coerce_bool,
    ParamType.STRING_MAP: _coerce_string_map,
    ParamType.STRING_LIST: _coerce_string_list,
}


def validate_parameters(
    definition: ActionDefinition, params: Any
) -> dict[str, Any]:
    """
    Validate params for the given action.

    Returns a dict containing every declared parameter (absent optional ones
    set to their default, usually None). Raises InvalidParametersError.
    """
    if params is None:
        params = {}
    if not isinstance(params, Mapping):
        raise InvalidParametersError(
            [f"parameters must be a mapping, got {type(params).__name__}"],
            action=definition.name,
        )

    problems: list[str] = []
    values: dict[str, Any] = {}
    for spec in definition.parameters:
        raw = _lookup(spec, params)
        if raw is None:
            if spec.required:
                problems.append(f"missing required parameter '{spec.name}'")
            values[spec.name] = spec.default
            continue
        try:
            value = _COERCERS[spec.type](raw)
        except _Invalid as e:
            problems.append(f"parameter '{spec.name}': {e}")
            continue
        if spec.minimum is not None and value < spec.minimum:
            problems.append(f"parameter '{spec.name}' must be >= {spec.minimum:g}, got {value}")
            continue
        values[spec.name] = value

    if problems:
        raise InvalidParametersError(problems, action=definition.name)
    return values
