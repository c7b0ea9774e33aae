"""Implementations of get_paused_workflow and cancel_workflow MCP tools."""

import logging

from ..models.workflow_models import CancelWorkflowResponse, PausedWorkflowResponse
from ..workflow.models import WorkflowStateError
from ..workflow.runner import WorkflowRunner

logger = logging.getLogger(__name__)


def get_paused_workflow_impl(
    runner: WorkflowRunner, workflow: str, invocation_id: str | None = None
) -> PausedWorkflowResponse:
    """Show the saved state of a paused workflow."""
    try:
        state = runner.get_paused(workflow, invocation_id)
    except WorkflowStateError as e:
        logger.error(f"Unreadable paused state for {workflow}: {str(e)}")
        return PausedWorkflowResponse(
            workflow=workflow,
            status="failed",
            invocation_id=invocation_id,
            error={"code": "OPERATION_FAILED", "message": str(e)},
        )

    if state is None:
        return PausedWorkflowResponse(workflow=workflow, status="not_paused", invocation_id=invocation_id)

    return PausedWorkflowResponse(
        workflow=workflow,
        status="paused",
        invocation_id=invocation_id,
        paused_at_step=state["paused_at_step"],
        version=state["version"],
        variables=state["variables"],
        step_results=state["step_results"],
        logs=state["logs"],
    )


def cancel_workflow_impl(
    runner: WorkflowRunner, workflow: str, invocation_id: str | None = None
) -> CancelWorkflowResponse:
    """Discard a paused workflow so the next run starts from the first step."""
    try:
        removed = runner.cancel(workflow, invocation_id)
    except WorkflowStateError as e:
        logger.error(f"Failed to cancel {workflow}: {str(e)}")
        return CancelWorkflowResponse(
            workflow=workflow,
            status="failed",
            invocation_id=invocation_id,
            error={"code": "OPERATION_FAILED", "message": str(e)},
        )

    return CancelWorkflowResponse(
        workflow=workflow,
        status="cancelled" if removed else "not_paused",
        invocation_id=invocation_id,
    )
