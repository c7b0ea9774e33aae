"""Dataclass models for workflow server MCP tool output schemas."""

from dataclasses import dataclass, field, fields
from typing import Any


@dataclass
class RunWorkflowResponse:
    """Response schema for run_workflow tool."""

    workflow: str
    status: str  # "paused" | "completed" | "failed"
    invocation_id: str | None = None

    # Paused at a create_object step
    step: int | None = None  # 1-based position of the paused top-level step
    total_steps: int | None = None
    action: str | None = None
    template_id: str | None = None
    template_name: str | None = None
    property_schemas: list[dict[str, Any]] | None = None
    property_values: dict[str, Any] | None = None
    instruction: str | None = None
    next_action: str | None = None

    # Completed (step_results and logs are also filled for failures)
    steps_executed: int | None = None
    step_results: list[dict[str, Any]] | None = None
    logs: list[str] | None = None
    variables: dict[str, Any] | None = None
    result: Any | None = None

    error: dict[str, Any] | None = None

    @classmethod
    def from_result(
        cls, workflow: str, result: dict[str, Any], invocation_id: str | None = None
    ) -> "RunWorkflowResponse":
        """Build a response from a runner invocation result."""
        known = {f.name for f in fields(cls)}
        values = {key: value for key, value in result.items() if key in known}
        return cls(workflow=workflow, invocation_id=invocation_id, **values)


@dataclass
class ListWorkflowsResponse:
    """Response schema for list_workflows tool."""

    workflows: list[dict[str, Any]]
    total: int
    errors: list[str] = field(default_factory=list)  # Files that failed to load


@dataclass
class DescribeWorkflowResponse:
    """Response schema for describe_workflow tool."""

    workflow: str
    status: str  # "found" | "failed"
    description: str | None = None
    input_schema: dict[str, Any] | None = None
    steps: list[dict[str, Any]] | None = None
    loaded_from: str | None = None
    error: dict[str, Any] | None = None


@dataclass
class ReloadWorkflowsResponse:
    """Response schema for reload_workflows tool."""

    status: str  # "reloaded" | "failed"
    workflows: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    error: dict[str, Any] | None = None


@dataclass
class PausedWorkflowResponse:
    """Response schema for get_paused_workflow tool."""

    workflow: str
    status: str  # "paused" | "not_paused" | "failed"
    invocation_id: str | None = None
    paused_at_step: int | None = None
    version: int | None = None
    variables: dict[str, Any] | None = None
    step_results: list[dict[str, Any]] | None = None
    logs: list[str] | None = None
    error: dict[str, Any] | None = None


@dataclass
class CancelWorkflowResponse:
    """Response schema for cancel_workflow tool."""

    workflow: str
    status: str  # "cancelled" | "not_paused" | "failed"
    invocation_id: str | None = None
    error: dict[str, Any] | None = None


@dataclass
class HealthCheckResponse:
    """Response schema for health check tool."""

    status: str  # "healthy" | "unhealthy"
    components: dict[str, Any]
    timestamp: str | None = None
    error: str | None = None
