"""Workflow loading from YAML files and from stored template records."""

import json
import logging
import re
from pathlib import Path
from typing import Any

import yaml

from ..yaml_loader import YAMLLoader
from .models import (
    InputSchema,
    UnknownStepTypeError,
    WorkflowDefinition,
    WorkflowDefinitionError,
    WorkflowNotFoundError,
    WorkflowStep,
)
from .step_registry import STEP_TYPES
from .validator import WorkflowValidator, get_field

logger = logging.getLogger(__name__)

# Stored template rows that are not executable steps
NON_STEP_TYPES = ("property", "start")


def parse_step(step_data: dict[str, Any], default_name: str) -> WorkflowStep:
    """Convert a raw step mapping into its step dataclass.

    Raises:
        UnknownStepTypeError: If the step kind is not registered
        WorkflowDefinitionError: If a required field is missing
    """
    if not isinstance(step_data, dict):
        raise WorkflowDefinitionError(f"Step '{default_name}' must be an object")

    step_type = step_data.get("type")
    name = str(step_data.get("name") or step_data.get("id") or default_name)
    config = STEP_TYPES.get(step_type)
    if config is None:
        raise UnknownStepTypeError(str(step_type), name)

    missing = object()
    values: dict[str, Any] = {}
    for field_name in config["required_fields"]:
        value = get_field(step_data, field_name, missing)
        if value is missing:
            raise WorkflowDefinitionError(f"{step_type} step '{name}' requires '{field_name}'")
        values[field_name] = value
    for field_name in config["optional_fields"]:
        value = get_field(step_data, field_name)
        if value is not None:
            values[field_name] = value

    if step_type == "conditional":
        for branch in ("then_steps", "else_steps"):
            values[branch] = [
                parse_step(child, f"{name}.{branch.split('_')[0]}.{index}")
                for index, child in enumerate(values.get(branch) or [])
            ]

    return config["step_class"](name=name, **values)


def parse_steps(steps_data: list[Any]) -> list[WorkflowStep]:
    return [parse_step(step_data, f"step_{index}") for index, step_data in enumerate(steps_data)]


def parse_workflow(data: dict[str, Any], loaded_from: str = "") -> WorkflowDefinition:
    """Validate and parse a raw workflow mapping.

    Raises:
        WorkflowDefinitionError: If the definition fails validation
    """
    validator = WorkflowValidator()
    if not validator.validate(data):
        raise WorkflowDefinitionError(f"Invalid workflow definition: {validator.get_validation_error()}")

    return WorkflowDefinition(
        name=data["name"],
        description=data.get("description", "") or "",
        input_schema=InputSchema.from_dict(data.get("inputSchema", data.get("input_schema"))),
        steps=tuple(parse_steps(data["steps"])),
        loaded_from=loaded_from,
    )


def build_input_schema_from_parameters(parameters: list[dict[str, Any]]) -> dict[str, Any]:
    """Build a JSON-Schema input schema from start-node parameter entries.

    Entries without a name or type are skipped.
    """
    properties: dict[str, Any] = {}
    required: list[str] = []

    for param in parameters or []:
        if not isinstance(param, dict) or not param.get("name") or not param.get("type"):
            continue
        properties[param["name"]] = {
            "type": param["type"],
            "description": param.get("description") or "",
        }
        if param.get("required") is True:
            required.append(param["name"])

    return {"type": "object", "properties": properties, "required": required}


def _tool_name_from(template_name: str) -> str:
    return re.sub(r"\s+", "_", template_name.strip().lower())


def _decode_config(config: Any, key: str) -> dict[str, Any]:
    """Step configs may be stored as JSON text."""
    if config is None:
        return {}
    if isinstance(config, str):
        try:
            config = json.loads(config)
        except json.JSONDecodeError as e:
            raise WorkflowDefinitionError(f"Step '{key}' has invalid JSON config: {e}") from e
    if not isinstance(config, dict):
        raise WorkflowDefinitionError(f"Step '{key}' config must be an object")
    return config


def load_from_template_records(template: dict[str, Any], properties: list[dict[str, Any]]) -> WorkflowDefinition:
    """Build a workflow from a stored workflow template and its step records.

    Step records carry ``key``, ``step_type``, ``step_config`` and
    ``execution_order``. A start record, when present, supplies the tool name,
    description and input parameters; otherwise the template metadata does.

    Raises:
        WorkflowDefinitionError: If the template is not a workflow or a step is malformed
    """
    template_id = template.get("id")
    if template.get("type", "workflow") != "workflow":
        raise WorkflowDefinitionError(f"Template {template_id} is not a workflow (type: {template.get('type')})")

    template_name = str(template.get("name") or f"workflow_{template_id}")
    start_node = next((prop for prop in properties if prop.get("step_type") == "start"), None)

    if start_node is not None:
        start_config = _decode_config(start_node.get("step_config"), start_node.get("key", "start"))
        name = start_config.get("tool_name") or _tool_name_from(template_name)
        description = (
            start_config.get("tool_description")
            or start_config.get("display_description")
            or template.get("description", "")
        )
        input_schema = build_input_schema_from_parameters(start_config.get("input_parameters", []))
    else:
        logger.debug(f"No start node for template {template_id}, using template metadata")
        metadata = _decode_config(template.get("metadata"), template_name)
        name = metadata.get("mcp_tool_name") or template_name
        description = template.get("description", "")
        input_schema = metadata.get("input_schema") or {}

    step_records = [
        prop for prop in properties
        if prop.get("step_type") and prop.get("step_type") not in NON_STEP_TYPES
    ]
    step_records.sort(key=lambda prop: prop.get("execution_order") or 0)

    steps_data = []
    for record in step_records:
        key = record.get("key", "")
        config = _decode_config(record.get("step_config"), key)
        steps_data.append({**config, "name": key, "type": record["step_type"]})

    logger.info(f"Loaded {len(steps_data)} executable steps for workflow template {template_id}")
    return parse_workflow(
        {"name": name, "description": description, "inputSchema": input_schema, "steps": steps_data},
        loaded_from=f"template:{template_id}",
    )


class WorkflowLoader:
    """Loads workflow definitions from a directory of YAML files."""

    def __init__(self, definitions_path: str | Path, yaml_loader: YAMLLoader | None = None):
        self.definitions_path = Path(definitions_path)
        self.yaml_loader = yaml_loader or YAMLLoader()

    def workflow_files(self) -> list[Path]:
        if not self.definitions_path.is_dir():
            return []
        files = list(self.definitions_path.glob("*.yaml")) + list(self.definitions_path.glob("*.yml"))
        return sorted(files)

    def load_file(self, file_path: str | Path) -> WorkflowDefinition:
        """Load and parse a single workflow file.

        Raises:
            WorkflowNotFoundError: If the file does not exist
            WorkflowDefinitionError: If the file is not a valid workflow
        """
        try:
            data = self.yaml_loader.load_yaml(file_path)
        except FileNotFoundError as e:
            raise WorkflowNotFoundError(f"Workflow file not found: {file_path}") from e
        except (yaml.YAMLError, ValueError) as e:
            raise WorkflowDefinitionError(f"Error loading workflow from {file_path}: {e}") from e

        return parse_workflow(data, loaded_from=str(file_path))

    def load(self, workflow_name: str) -> WorkflowDefinition:
        """Load a workflow by name.

        Looks for ``<name>.yaml`` / ``<name>.yml`` first, then for any file whose
        ``name`` field matches.
        """
        for suffix in (".yaml", ".yml"):
            candidate = self.definitions_path / f"{workflow_name}{suffix}"
            if candidate.exists():
                return self.load_file(candidate)

        for file_path in self.workflow_files():
            try:
                data = self.yaml_loader.load_yaml(file_path)
            except (yaml.YAMLError, ValueError) as e:
                logger.debug(f"Skipping unreadable workflow file {file_path}: {e}")
                continue
            if data.get("name") == workflow_name:
                return parse_workflow(data, loaded_from=str(file_path))

        raise WorkflowNotFoundError(f"Workflow '{workflow_name}' not found in {self.definitions_path}")

    def load_all(self) -> tuple[list[WorkflowDefinition], list[str]]:
        """Load every workflow in the directory.

        Returns:
            Loaded definitions and error messages for files that failed
        """
        workflows = []
        errors = []
        for file_path in self.workflow_files():
            try:
                workflows.append(self.load_file(file_path))
            except (WorkflowDefinitionError, WorkflowNotFoundError) as e:
                logger.warning(f"Skipping invalid workflow file {file_path}: {e}")
                errors.append(f"{file_path}: {e}")
        return workflows, errors

    def invalidate(self) -> int:
        return self.yaml_loader.invalidate_cache()
