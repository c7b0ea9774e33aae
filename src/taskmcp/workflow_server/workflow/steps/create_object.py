"""Object creation step processor.

The engine cannot create the object itself: the agent supplies the free-text
property values and the insert belongs to the host's entity handlers. The step
therefore builds a pause payload describing what the agent must fill in and
what is already known from the inputs, and sets it as the pause outcome.
"""

import logging
from typing import Any

from ..context import ExecutionContext
from ..models import CreateObjectStep, SchemaNotFoundError, WorkflowDefinitionError, WorkflowError
from ..templates import Interpolator, find_first_token

logger = logging.getLogger(__name__)

CREATE_OBJECT_ACTION = "create_object"


def is_mapping_expression(mapping: Any) -> bool:
    """True for a property mapping such as ``"{{input.title}}"``."""
    return isinstance(mapping, str) and find_first_token(mapping) is not None


def build_instruction(template_name: str, property_schemas: list[dict[str, Any]], property_values: dict[str, Any]) -> str:
    """Human-readable directive naming the agent's fields and the provided ones."""
    lines = [f"Create a new {template_name}."]
    if property_schemas:
        lines.append("Provide values for these properties:")
        for schema in property_schemas:
            description = f": {schema['description']}" if schema.get("description") else ""
            lines.append(f"- {schema['key']} ({schema['type']}){description}")
    else:
        lines.append("No additional properties are needed from you.")
    if property_values:
        provided = ", ".join(sorted(property_values))
        lines.append(f"Already provided from the workflow inputs: {provided}.")
    return "\n".join(lines)


class CreateObjectProcessor:
    """Builds the create_object pause payload."""

    def __init__(self, interpolator: Interpolator):
        self.interpolator = interpolator

    def process(self, step: CreateObjectStep, context: ExecutionContext, executor: Any) -> dict[str, Any]:
        if step.template_id in (None, ""):
            raise WorkflowDefinitionError("create_object step requires a templateId")

        if not isinstance(step.properties, dict):
            raise WorkflowDefinitionError("create_object step requires a properties mapping")

        schema_provider = executor.schema_provider
        if schema_provider is None:
            raise WorkflowError("A schema provider is required to execute create_object steps")

        template = schema_provider.get_template_schema(step.template_id)

        property_schemas: list[dict[str, Any]] = []
        property_values: dict[str, Any] = {}

        for key, mapping in step.properties.items():
            if not mapping:
                continue

            template_property = template.get_property(key)
            if template_property is None:
                raise SchemaNotFoundError(
                    f"Template '{template.name}' ({template.template_id}) has no property '{key}'"
                )

            if is_mapping_expression(mapping):
                property_values[key] = self.interpolator.interpolate(mapping, context)
            else:
                property_schemas.append(template_property.to_schema())

        payload = {
            "action": CREATE_OBJECT_ACTION,
            "template_id": template.template_id,
            "template_name": template.name,
            "property_schemas": property_schemas,
            "property_values": property_values,
            "instruction": build_instruction(template.name, property_schemas, property_values),
        }

        context.set_paused(payload)
        logger.info(
            f"[Workflow {step.name}] Paused for agent to create '{template.name}' "
            f"({len(property_schemas)} fields for agent, {len(property_values)} from inputs)"
        )

        return {
            "action": CREATE_OBJECT_ACTION,
            "template_id": template.template_id,
            "awaiting": [schema["key"] for schema in property_schemas],
        }
