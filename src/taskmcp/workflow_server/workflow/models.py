"""Workflow definition models for the task workflow engine."""

from dataclasses import dataclass, field
from typing import Any, ClassVar


class _Unset:
    """Marks a step value that was omitted, as opposed to an explicit null."""

    def __repr__(self):
        return "UNSET"


UNSET: Any = _Unset()


@dataclass
class InputSchema:
    """Minimal JSON-Schema-like description of a workflow's inputs."""

    properties: dict[str, dict[str, Any]] = field(default_factory=dict)
    required: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "InputSchema":
        """Build a schema from its JSON form, tolerating missing sections."""
        if not data:
            return cls()
        properties = data.get("properties") or {}
        required = data.get("required") or []
        if not isinstance(properties, dict):
            raise WorkflowDefinitionError("inputSchema.properties must be an object")
        if not isinstance(required, list):
            raise WorkflowDefinitionError("inputSchema.required must be a list")
        return cls(properties=dict(properties), required=[str(name) for name in required])

    def to_dict(self) -> dict[str, Any]:
        return {"type": "object", "properties": self.properties, "required": self.required}


@dataclass
class WorkflowStep:
    """Base class for all step kinds. Every step carries a name for logs and results."""

    type: ClassVar[str] = ""

    name: str

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "type": self.type}


@dataclass
class LogStep(WorkflowStep):
    type: ClassVar[str] = "log"

    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "message": self.message}


@dataclass
class SetVariableStep(WorkflowStep):
    type: ClassVar[str] = "set_variable"

    variable_name: str = ""
    value: Any = UNSET

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "variableName": self.variable_name, "value": self.value}


@dataclass
class ConditionalStep(WorkflowStep):
    type: ClassVar[str] = "conditional"

    condition: str = ""
    then_steps: list[WorkflowStep] = field(default_factory=list)
    else_steps: list[WorkflowStep] = field(default_factory=list)

    def branch(self, name: str) -> list[WorkflowStep]:
        """Return the step list for the "then" or "else" branch."""
        if name == "then":
            return self.then_steps
        if name == "else":
            return self.else_steps
        raise WorkflowDefinitionError(f"Unknown branch '{name}' for conditional step '{self.name}'")

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "condition": self.condition,
            "then": [step.to_dict() for step in self.then_steps],
            "else": [step.to_dict() for step in self.else_steps],
        }


@dataclass
class CallToolStep(WorkflowStep):
    type: ClassVar[str] = "call_tool"

    tool_name: str = ""
    parameters: dict[str, Any] = field(default_factory=dict)
    result_variable: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = {**super().to_dict(), "toolName": self.tool_name, "parameters": self.parameters}
        if self.result_variable:
            data["resultVariable"] = self.result_variable
        return data


@dataclass
class ReturnStep(WorkflowStep):
    type: ClassVar[str] = "return"

    value: Any = UNSET

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "value": self.value}


@dataclass
class CreateObjectStep(WorkflowStep):
    type: ClassVar[str] = "create_object"

    template_id: str | int = ""
    # property key -> True (agent fills it) or "{{input.x}}" (filled from inputs)
    properties: dict[str, Any] = field(default_factory=dict)
    result_variable: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = {**super().to_dict(), "templateId": self.template_id, "properties": self.properties}
        if self.result_variable:
            data["resultVariable"] = self.result_variable
        return data


@dataclass(frozen=True)
class WorkflowDefinition:
    """Complete, immutable definition of a workflow exposed as a named tool."""

    name: str
    description: str = ""
    input_schema: InputSchema = field(default_factory=InputSchema)
    steps: tuple[WorkflowStep, ...] = ()
    loaded_from: str = ""  # File path or template id where loaded

    def __post_init__(self):
        if not isinstance(self.steps, tuple):
            object.__setattr__(self, "steps", tuple(self.steps))

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema.to_dict(),
            "steps": [step.to_dict() for step in self.steps],
        }


class WorkflowError(Exception):
    """Base class for all workflow engine errors."""

    pass


class WorkflowDefinitionError(WorkflowError):
    """Raised when a workflow or one of its steps is malformed."""

    pass


class UnknownStepTypeError(WorkflowDefinitionError):
    """Raised when a step kind is not known to this interpreter."""

    def __init__(self, step_type: str, step_name: str | None = None):
        self.step_type = step_type
        self.step_name = step_name
        where = f" in step '{step_name}'" if step_name else ""
        super().__init__(f"Unknown step type: {step_type}{where}")


class WorkflowValidationError(WorkflowError):
    """Raised when invocation inputs fail the workflow's input schema."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class ToolExecutionError(WorkflowError):
    """Raised when the tool caller fails during a call_tool step."""

    def __init__(self, tool_name: str, message: str):
        super().__init__(f"Tool '{tool_name}' execution failed: {message}")
        self.tool_name = tool_name


class SchemaNotFoundError(WorkflowError):
    """Raised when a template has no property schema."""

    pass


class WorkflowNotFoundError(WorkflowError):
    """Raised when a workflow cannot be found."""

    pass


class WorkflowStateError(WorkflowError):
    """Raised when snapshot persistence or locking fails."""

    pass


class WorkflowExecutionError(WorkflowError):
    """Raised when a step fails; carries the partial execution context."""

    def __init__(self, message: str, step_name: str, step_type: str, context: Any = None):
        super().__init__(message)
        self.step_name = step_name
        self.step_type = step_type
        self.context = context
