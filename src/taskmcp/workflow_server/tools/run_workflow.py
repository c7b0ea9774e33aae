"""Implementation of run_workflow MCP tool."""

import json
import logging
from typing import Any

from ..models.workflow_models import RunWorkflowResponse
from ..workflow.models import (
    WorkflowDefinitionError,
    WorkflowError,
    WorkflowExecutionError,
    WorkflowNotFoundError,
    WorkflowStateError,
    WorkflowValidationError,
)
from ..workflow.runner import WorkflowRunner

logger = logging.getLogger(__name__)


def decode_inputs(inputs: dict[str, Any] | str | None) -> dict[str, Any]:
    """Accept inputs as an object or as JSON text.

    Raises:
        ValueError: If the text is not a JSON object
    """
    if inputs is None or inputs == "":
        return {}
    if isinstance(inputs, str):
        try:
            inputs = json.loads(inputs)
        except json.JSONDecodeError as e:
            raise ValueError(f"inputs is not valid JSON: {e}") from e
    if not isinstance(inputs, dict):
        raise ValueError(f"inputs must be an object, got {type(inputs).__name__}")
    return inputs


def run_workflow_impl(
    runner: WorkflowRunner,
    workflow: str,
    inputs: dict[str, Any] | str | None = None,
    invocation_id: str | None = None,
) -> RunWorkflowResponse:
    """Run or resume a workflow.

    Args:
        runner: Runner holding the registry and state store
        workflow: Name of the workflow to invoke
        inputs: Workflow inputs, as an object or JSON text
        invocation_id: Optional id keeping concurrent runs of one workflow apart

    Returns:
        RunWorkflowResponse in paused, completed or failed state
    """
    logger.info(f"Running workflow: {workflow} (invocation: {invocation_id or '-'})")

    try:
        decoded_inputs = decode_inputs(inputs)
        result = runner.invoke(workflow, decoded_inputs, invocation_id)
        response = RunWorkflowResponse.from_result(workflow, result, invocation_id)
        logger.info(f"Workflow {workflow} finished invocation with status: {response.status}")
        return response

    except WorkflowNotFoundError as e:
        logger.error(f"Workflow not found: {workflow}. {str(e)}")
        return RunWorkflowResponse(
            workflow=workflow,
            status="failed",
            invocation_id=invocation_id,
            error={"code": "NOT_FOUND", "message": str(e)},
        )
    except (WorkflowValidationError, WorkflowDefinitionError, ValueError) as e:
        logger.error(f"Invalid input for workflow {workflow}: {str(e)}")
        error = {"code": "INVALID_INPUT", "message": str(e)}
        if isinstance(e, WorkflowValidationError) and e.field:
            error["field"] = e.field
        return RunWorkflowResponse(workflow=workflow, status="failed", invocation_id=invocation_id, error=error)
    except WorkflowExecutionError as e:
        logger.error(f"Workflow {workflow} failed at step {e.step_name}: {str(e)}")
        context = e.context
        return RunWorkflowResponse(
            workflow=workflow,
            status="failed",
            invocation_id=invocation_id,
            step_results=[entry.to_dict() for entry in context.step_results] if context else None,
            logs=list(context.logs) if context else None,
            error={
                "code": "OPERATION_FAILED",
                "message": str(e),
                "step": e.step_name,
                "step_type": e.step_type,
            },
        )
    except WorkflowStateError as e:
        logger.error(f"Workflow state error for {workflow}: {str(e)}")
        return RunWorkflowResponse(
            workflow=workflow,
            status="failed",
            invocation_id=invocation_id,
            error={"code": "OPERATION_FAILED", "message": str(e)},
        )
    except (WorkflowError, OSError) as e:
        logger.error(f"Failed to run workflow {workflow}: {str(e)}")
        return RunWorkflowResponse(
            workflow=workflow,
            status="failed",
            invocation_id=invocation_id,
            error={"code": "OPERATION_FAILED", "message": str(e)},
        )
