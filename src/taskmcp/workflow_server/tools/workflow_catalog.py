"""Implementations of list_workflows, describe_workflow and reload_workflows MCP tools."""

import logging

from ..models.workflow_models import DescribeWorkflowResponse, ListWorkflowsResponse, ReloadWorkflowsResponse
from ..workflow.models import WorkflowDefinitionError, WorkflowNotFoundError
from ..workflow.registry import WorkflowRegistry
from ..workflow.step_registry import is_agent_step

logger = logging.getLogger(__name__)


def list_workflows_impl(registry: WorkflowRegistry) -> ListWorkflowsResponse:
    """List registered workflows with their descriptions and input schemas."""
    workflows = [
        {
            "name": workflow.name,
            "description": workflow.description,
            "input_schema": workflow.input_schema.to_dict(),
            "total_steps": len(workflow.steps),
            "agent_steps": sum(1 for step in workflow.steps if is_agent_step(step.type)),
            "loaded_from": workflow.loaded_from,
        }
        for workflow in registry.list()
    ]
    logger.debug(f"Listing {len(workflows)} workflows")
    return ListWorkflowsResponse(workflows=workflows, total=len(workflows), errors=list(registry.load_errors))


def describe_workflow_impl(registry: WorkflowRegistry, workflow: str) -> DescribeWorkflowResponse:
    """Return the full definition of one workflow."""
    try:
        definition = registry.get(workflow)
    except WorkflowNotFoundError as e:
        logger.error(f"Workflow not found: {workflow}")
        return DescribeWorkflowResponse(
            workflow=workflow, status="failed", error={"code": "NOT_FOUND", "message": str(e)}
        )
    except WorkflowDefinitionError as e:
        logger.error(f"Invalid workflow definition for {workflow}: {str(e)}")
        return DescribeWorkflowResponse(
            workflow=workflow, status="failed", error={"code": "INVALID_INPUT", "message": str(e)}
        )

    data = definition.to_dict()
    return DescribeWorkflowResponse(
        workflow=definition.name,
        status="found",
        description=definition.description,
        input_schema=data["inputSchema"],
        steps=data["steps"],
        loaded_from=definition.loaded_from,
    )


def reload_workflows_impl(registry: WorkflowRegistry) -> ReloadWorkflowsResponse:
    """Re-read workflow files, picking up added, changed and removed definitions."""
    logger.info("Reloading workflow definitions")
    try:
        errors = registry.refresh()
    except OSError as e:
        logger.error(f"Failed to reload workflows: {str(e)}")
        return ReloadWorkflowsResponse(
            status="failed", error={"code": "OPERATION_FAILED", "message": f"Failed to reload workflows: {str(e)}"}
        )
    return ReloadWorkflowsResponse(
        status="reloaded",
        workflows=[workflow.name for workflow in registry.list()],
        errors=errors,
    )
