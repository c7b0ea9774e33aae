"""Validation for workflow definitions and invocation inputs.

Both checks are JSON-Schema driven: invocation inputs are validated against
the workflow's ``inputSchema``, and raw definitions against
``WORKFLOW_DEFINITION_SCHEMA`` before the step-level checks run.
"""

import logging
from collections.abc import Iterable
from typing import Any

from jsonschema import Draft7Validator, ValidationError

from .models import InputSchema, WorkflowValidationError
from .step_registry import FIELD_ALIASES, STEP_TYPES
from .templates import RESERVED_NAMES, find_first_token

logger = logging.getLogger(__name__)

_BRANCH_SCHEMA = {"type": ["array", "null"], "items": {"$ref": "#/definitions/step"}}

# Structure shared by every workflow definition; per-kind fields are checked against STEP_TYPES
WORKFLOW_DEFINITION_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["name", "steps"],
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "description": {"type": "string"},
        "inputSchema": {"type": "object"},
        "input_schema": {"type": "object"},
        "steps": {"type": "array", "items": {"$ref": "#/definitions/step"}},
    },
    "definitions": {
        "step": {
            "type": "object",
            "required": ["type"],
            "properties": {
                "name": {"type": "string"},
                "type": {"type": "string", "minLength": 1},
                "then": _BRANCH_SCHEMA,
                "then_steps": _BRANCH_SCHEMA,
                "else": _BRANCH_SCHEMA,
                "else_steps": _BRANCH_SCHEMA,
            },
        }
    },
}

_definition_validator = Draft7Validator(WORKFLOW_DEFINITION_SCHEMA)


def _format_path(path: Iterable[Any]) -> str:
    """Render a jsonschema error path as ``steps[0].then[1]``."""
    location = ""
    for part in path:
        if isinstance(part, int):
            location += f"[{part}]"
        else:
            location += f".{part}" if location else str(part)
    return location


def _expected_type(error: ValidationError) -> str:
    expected = error.validator_value
    if isinstance(expected, list):
        return " or ".join(expected)
    article = "an" if str(expected)[0] in "aeiou" else "a"
    return f"{article} {expected}"


def _missing_fields(error: ValidationError) -> list[str]:
    instance = error.instance if isinstance(error.instance, dict) else {}
    return [name for name in error.validator_value if name not in instance]


def describe_definition_error(error: ValidationError) -> list[str]:
    """Turn a definition schema error into validator messages."""
    location = _format_path(error.absolute_path)
    if error.validator == "required":
        if not location:
            return [f"Missing required field: {name}" for name in _missing_fields(error)]
        return [f"{location}: missing required field '{name}'" for name in _missing_fields(error)]
    if error.validator == "type":
        if not location:
            return [f"Workflow must be {_expected_type(error)}"]
        if len(error.absolute_path) == 1:
            return [f"Workflow '{location}' must be {_expected_type(error)}"]
        return [f"{location} must be {_expected_type(error)}"]
    return [f"{location or 'workflow'}: {error.message}"]


def validate_inputs(schema: InputSchema, inputs: dict[str, Any]) -> None:
    """Validate invocation inputs against a workflow's input schema.

    Required fields must be present. Supplied fields declared in the schema must
    match their declared type. Undeclared fields pass through unchecked.

    Raises:
        WorkflowValidationError: On the first missing or mistyped field
    """
    if not isinstance(inputs, dict):
        raise WorkflowValidationError(f"Workflow inputs must be an object, got {type(inputs).__name__}")

    errors = list(Draft7Validator(schema.to_dict()).iter_errors(inputs))
    if not errors:
        return

    # Missing fields are reported before type problems
    errors.sort(key=lambda error: (error.validator != "required", len(error.absolute_path)))
    error = errors[0]

    if error.validator == "required" and not error.absolute_path:
        name = _missing_fields(error)[0]
        raise WorkflowValidationError(f"Missing required input field: {name}", field=name)

    field = str(error.absolute_path[0]) if error.absolute_path else None
    if error.validator == "type" and len(error.absolute_path) == 1:
        raise WorkflowValidationError(f"Input field '{field}' must be {_expected_type(error)}", field=field)

    location = _format_path(error.absolute_path) or "inputs"
    raise WorkflowValidationError(f"Input field '{location}' is invalid: {error.message}", field=field)


def get_field(step_data: dict[str, Any], field_name: str, default: Any = None) -> Any:
    """Read a step field under any of its accepted spellings."""
    for alias in FIELD_ALIASES.get(field_name, (field_name,)):
        if alias in step_data:
            return step_data[alias]
    return default


def has_field(step_data: dict[str, Any], field_name: str) -> bool:
    return any(alias in step_data for alias in FIELD_ALIASES.get(field_name, (field_name,)))


class WorkflowValidator:
    """Validates raw workflow definition data before it is parsed."""

    def __init__(self):
        self.errors: list[str] = []
        self.warnings: list[str] = []

    def validate(self, workflow: dict[str, Any]) -> bool:
        """Validate a workflow definition.

        Returns:
            True if valid, False otherwise
        """
        self.errors = []
        self.warnings = []

        for error in _definition_validator.iter_errors(workflow):
            self.errors.extend(describe_definition_error(error))

        if not isinstance(workflow, dict):
            return False

        name = workflow.get("name")
        self._validate_input_schema(workflow.get("inputSchema", workflow.get("input_schema")))

        steps = workflow.get("steps")
        if isinstance(steps, list):
            self._validate_steps(steps, "steps")

        for warning in self.warnings:
            logger.warning(f"Workflow '{name}': {warning}")

        return len(self.errors) == 0

    def get_validation_error(self) -> str:
        """Get a formatted error message for all validation errors."""
        return "; ".join(self.errors)

    def _validate_input_schema(self, schema: Any):
        if not isinstance(schema, dict):
            return

        # The input schema must itself be a valid Draft 7 schema
        for error in Draft7Validator(Draft7Validator.META_SCHEMA).iter_errors(schema):
            location = _format_path(error.absolute_path)
            self.errors.append(f"inputSchema{'.' + location if location else ''}: {error.message}")

        properties = schema.get("properties", {})
        required = schema.get("required", [])
        if isinstance(properties, dict) and isinstance(required, list):
            for field_name in required:
                if field_name not in properties:
                    self.warnings.append(f"Required input '{field_name}' is not declared in properties")

    def _validate_steps(self, steps: list[Any], path: str):
        for index, step in enumerate(steps):
            self._validate_step(step, f"{path}[{index}]")

    def _validate_step(self, step: Any, path: str):
        # Shape problems were already reported by the definition schema
        if not isinstance(step, dict) or not isinstance(step.get("type"), str) or not step["type"]:
            return

        step_type = step["type"]
        config = STEP_TYPES.get(step_type)
        if config is None:
            self.errors.append(f"{path}: unknown step type '{step_type}'")
            return

        for field_name in config["required_fields"]:
            if not has_field(step, field_name):
                self.errors.append(f"{path}: {step_type} step requires '{FIELD_ALIASES[field_name][0]}'")

        if step_type in ("log", "conditional", "call_tool"):
            self._validate_non_empty_strings(step, path, step_type)

        if step_type == "set_variable":
            self._validate_variable_name(get_field(step, "variable_name"), path)
        if step_type in ("call_tool", "create_object"):
            result_variable = get_field(step, "result_variable")
            if result_variable is not None:
                self._validate_variable_name(result_variable, path)

        if step_type == "call_tool":
            parameters = get_field(step, "parameters")
            if parameters is not None and not isinstance(parameters, dict):
                self.errors.append(f"{path}: call_tool parameters must be an object")

        if step_type == "conditional":
            for branch in ("then_steps", "else_steps"):
                branch_steps = get_field(step, branch)
                if isinstance(branch_steps, list):
                    self._validate_steps(branch_steps, f"{path}.{FIELD_ALIASES[branch][0]}")

        if step_type == "create_object":
            self._validate_object_properties(get_field(step, "properties"), path)

    def _validate_non_empty_strings(self, step: dict[str, Any], path: str, step_type: str):
        field_name = {"log": "message", "conditional": "condition", "call_tool": "tool_name"}[step_type]
        value = get_field(step, field_name)
        if value is not None and (not isinstance(value, str) or not value.strip()):
            self.errors.append(f"{path}: '{FIELD_ALIASES[field_name][0]}' must be a non-empty string")

    def _validate_variable_name(self, name: Any, path: str):
        if name is None:
            return
        if not isinstance(name, str) or not name.strip():
            self.errors.append(f"{path}: variable name must be a non-empty string")
        elif name in RESERVED_NAMES:
            self.errors.append(f"{path}: '{name}' is reserved and cannot be used as a variable name")
        elif "." in name:
            self.errors.append(f"{path}: variable name '{name}' cannot contain '.'")

    def _validate_object_properties(self, properties: Any, path: str):
        if properties is None:
            return
        if not isinstance(properties, dict):
            self.errors.append(f"{path}: create_object properties must be an object")
            return
        for key, mapping in properties.items():
            if not mapping:
                self.warnings.append(f"{path}: property '{key}' is disabled and will be ignored")
            elif isinstance(mapping, str) and find_first_token(mapping) is None and mapping != "true":
                self.warnings.append(
                    f"{path}: property '{key}' has no '{{{{input.<field>}}}}' mapping and will be asked of the agent"
                )
