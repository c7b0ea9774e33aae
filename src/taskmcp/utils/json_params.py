"""Decoding of JSON-string tool arguments.

Some MCP clients send object and array arguments as JSON text. Tools wrapped
with ``json_convert`` receive them decoded, based on the parameter annotations.
"""

import functools
import inspect
import json
import logging
import types
from collections.abc import Callable
from typing import Any, TypeVar, Union, get_args, get_origin, get_type_hints

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def _container_types(annotation: Any) -> tuple[type, ...]:
    """The dict/list types an annotation accepts, looking through unions."""
    origin = get_origin(annotation)
    if origin in (types.UnionType, Union):
        found: tuple[type, ...] = ()
        for arg in get_args(annotation):
            found += _container_types(arg)
        return found
    base = origin or annotation
    if base in (dict, list):
        return (base,)
    return ()


def decode_json_argument(value: Any, annotation: Any, param_name: str) -> Any:
    """Decode ``value`` if it is JSON text standing in for a dict or list.

    Raises:
        ValueError: If the text is not valid JSON, or decodes to the wrong kind
    """
    expected = _container_types(annotation)
    if not expected or not isinstance(value, str):
        return value

    stripped = value.strip()
    if not stripped.startswith(("{", "[")):
        # Plain strings stay as they are when the parameter also accepts str
        return value

    try:
        parsed = json.loads(stripped)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in parameter '{param_name}': {e}") from e

    if not isinstance(parsed, expected):
        names = " or ".join(kind.__name__ for kind in expected)
        raise ValueError(f"Parameter '{param_name}' must be a {names}, got {type(parsed).__name__} from JSON")

    logger.debug(f"Decoded JSON string parameter {param_name} to {type(parsed).__name__}")
    return parsed


def json_convert(func: F) -> F:
    """Decorator decoding JSON-string arguments before calling ``func``.

    Invalid JSON produces an ``INVALID_INPUT`` error response instead of a call.
    """
    signature = inspect.signature(func)
    type_hints = get_type_hints(func)

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        bound_args = signature.bind(*args, **kwargs)
        bound_args.apply_defaults()

        converted_kwargs = {}
        for param_name, param_value in bound_args.arguments.items():
            if param_name not in type_hints:
                converted_kwargs[param_name] = param_value
                continue
            try:
                converted_kwargs[param_name] = decode_json_argument(param_value, type_hints[param_name], param_name)
            except ValueError as e:
                return {"error": {"code": "INVALID_INPUT", "message": str(e)}}

        return func(**converted_kwargs)

    return wrapper  # type: ignore
