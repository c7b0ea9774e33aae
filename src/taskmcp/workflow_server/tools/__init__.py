"""Workflow server tools implementations."""

from typing import Any

from ...utils.json_params import json_convert
from ..models.workflow_models import (
    CancelWorkflowResponse,
    DescribeWorkflowResponse,
    HealthCheckResponse,
    ListWorkflowsResponse,
    PausedWorkflowResponse,
    ReloadWorkflowsResponse,
    RunWorkflowResponse,
)
from .health_check import health_check_impl
from .paused_workflows import cancel_workflow_impl, get_paused_workflow_impl
from .run_workflow import run_workflow_impl
from .workflow_catalog import describe_workflow_impl, list_workflows_impl, reload_workflows_impl


def register_workflow_tools(mcp, registry, runner, tool_caller=None, schema_provider=None):
    """Register workflow tools with the MCP server."""

    @mcp.tool
    @json_convert
    def run_workflow(
        workflow: str, inputs: dict[str, Any] | str | None = None, invocation_id: str | None = None
    ) -> RunWorkflowResponse:
        """Run a workflow, or continue it if it is paused.

        Use this tool when:
        - Starting one of the task workflows listed by list_workflows
        - Continuing a workflow that paused to ask you to create an object
        - Running several independent copies of a workflow (give each an invocation_id)

        Args:
            workflow: Name of the workflow to run
            inputs: Workflow inputs matching its input schema
            invocation_id: Optional id separating concurrent runs of the same workflow

        Examples:
            run_workflow("create_bug", {"title": "Login fails"})
            → {"status": "paused", "step": 2, "action": "create_object", "property_schemas": [...], ...}

            run_workflow("create_bug", {"title": "Login fails", "created_object": {"id": 42}})
            → {"status": "completed", "steps_executed": 4, "logs": [...], "variables": {...}}

        Note: When paused, create the object described by property_schemas and
        property_values, then call run_workflow again with the same inputs.
        """
        return run_workflow_impl(runner, workflow, inputs, invocation_id)

    @mcp.tool
    def list_workflows() -> ListWorkflowsResponse:
        """List available workflows with their descriptions and input schemas.

        Use this tool when:
        - Discovering which workflows can be run
        - Checking the inputs a workflow requires before running it
        """
        return list_workflows_impl(registry)

    @mcp.tool
    def describe_workflow(workflow: str) -> DescribeWorkflowResponse:
        """Show the full definition of a workflow, including its steps.

        Args:
            workflow: Name of the workflow to describe
        """
        return describe_workflow_impl(registry, workflow)

    @mcp.tool
    def reload_workflows() -> ReloadWorkflowsResponse:
        """Reload workflow definitions from the workflows directory.

        Use this tool when:
        - A workflow file was added, edited or removed
        """
        return reload_workflows_impl(registry)

    @mcp.tool
    def get_paused_workflow(workflow: str, invocation_id: str | None = None) -> PausedWorkflowResponse:
        """Show the saved state of a paused workflow.

        Args:
            workflow: Name of the workflow
            invocation_id: The invocation id used when running it, if any
        """
        return get_paused_workflow_impl(runner, workflow, invocation_id)

    @mcp.tool
    def cancel_workflow(workflow: str, invocation_id: str | None = None) -> CancelWorkflowResponse:
        """Discard a paused workflow so the next run starts from the beginning.

        Args:
            workflow: Name of the workflow
            invocation_id: The invocation id used when running it, if any
        """
        return cancel_workflow_impl(runner, workflow, invocation_id)

    @mcp.tool
    def health_check() -> HealthCheckResponse:
        """Check health of workflow server components.

        Examples:
            health_check()
            → {"status": "healthy", "components": {"workflows": {"registered": 3}, "state_store": {...}}}
        """
        return health_check_impl(registry, runner.state_store, tool_caller, schema_provider)


__all__ = [
    "run_workflow_impl",
    "list_workflows_impl",
    "describe_workflow_impl",
    "reload_workflows_impl",
    "get_paused_workflow_impl",
    "cancel_workflow_impl",
    "health_check_impl",
    "register_workflow_tools",
]
