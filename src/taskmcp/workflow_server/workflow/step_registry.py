"""Declarative configuration for workflow step types.

This registry defines every step kind the interpreter understands, the fields
each kind requires, and the spellings accepted for those fields when a
definition is loaded from YAML or from stored template records.
"""

from typing import Literal, TypedDict

from .models import (
    CallToolStep,
    ConditionalStep,
    CreateObjectStep,
    LogStep,
    ReturnStep,
    SetVariableStep,
    WorkflowStep,
)


class StepConfig(TypedDict):
    """Configuration for a workflow step type."""

    step_class: type[WorkflowStep]
    execution: Literal["server", "agent"]
    description: str
    required_fields: list[str]
    optional_fields: list[str]


# Registry of all workflow step types
STEP_TYPES: dict[str, StepConfig] = {
    "log": {
        "step_class": LogStep,
        "execution": "server",
        "description": "Append an interpolated message to the execution logs",
        "required_fields": ["message"],
        "optional_fields": [],
    },
    "set_variable": {
        "step_class": SetVariableStep,
        "execution": "server",
        "description": "Bind an interpolated value to a workflow variable",
        "required_fields": ["variable_name", "value"],
        "optional_fields": [],
    },
    "conditional": {
        "step_class": ConditionalStep,
        "execution": "server",
        "description": "Run the then or else branch depending on a condition",
        "required_fields": ["condition"],
        "optional_fields": ["then_steps", "else_steps"],
    },
    "call_tool": {
        "step_class": CallToolStep,
        "execution": "server",
        "description": "Invoke a named tool with interpolated parameters",
        "required_fields": ["tool_name", "parameters"],
        "optional_fields": ["result_variable"],
    },
    "return": {
        "step_class": ReturnStep,
        "execution": "server",
        "description": "Finish the workflow with an interpolated value",
        "required_fields": ["value"],
        "optional_fields": [],
    },
    "create_object": {
        "step_class": CreateObjectStep,
        "execution": "agent",
        "description": "Pause so the agent can create an object from a template",
        "required_fields": ["template_id", "properties"],
        "optional_fields": ["result_variable"],
    },
}

# Accepted spellings for each field, first match wins
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "message": ("message",),
    "variable_name": ("variableName", "variable_name"),
    "value": ("value",),
    "condition": ("condition",),
    "then_steps": ("then", "then_steps"),
    "else_steps": ("else", "else_steps"),
    "tool_name": ("toolName", "tool_name"),
    "parameters": ("parameters",),
    "result_variable": ("resultVariable", "result_variable"),
    "template_id": ("templateId", "template_id"),
    "properties": ("properties",),
}


def is_agent_step(step_type: str) -> bool:
    """Check whether a step kind hands control back to the agent."""
    config = STEP_TYPES.get(step_type)
    return config is not None and config["execution"] == "agent"
