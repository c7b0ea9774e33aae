"""Tool invocation step processor."""

import json
import logging
from typing import Any

from ..context import ExecutionContext
from ..models import CallToolStep, ToolExecutionError, WorkflowDefinitionError, WorkflowError
from ..templates import Interpolator

logger = logging.getLogger(__name__)


def _preview(value: Any) -> str:
    try:
        return json.dumps(value, indent=2, default=str)
    except (TypeError, ValueError):
        return repr(value)


class CallToolProcessor:
    """Invokes a named tool through the host's tool caller."""

    def __init__(self, interpolator: Interpolator):
        self.interpolator = interpolator

    def process(self, step: CallToolStep, context: ExecutionContext, executor: Any) -> Any:
        tool_caller = executor.tool_caller
        if tool_caller is None:
            raise WorkflowError("A tool caller is required to execute call_tool steps")

        if not step.tool_name:
            raise WorkflowDefinitionError("call_tool step requires a toolName")

        if step.parameters is None:
            raise WorkflowDefinitionError("call_tool step requires parameters")

        parameters = self.interpolator.interpolate(step.parameters, context)

        logger.info(f"[Workflow {step.name}] Calling tool: {step.tool_name}")
        logger.debug(f"[Workflow {step.name}] Parameters: {_preview(parameters)}")

        try:
            result = tool_caller.call_tool(step.tool_name, parameters)
        except Exception as e:
            logger.error(f"[Workflow {step.name}] Tool execution failed: {e}")
            raise ToolExecutionError(step.tool_name, str(e)) from e

        logger.debug(f"[Workflow {step.name}] Tool result: {_preview(result)}")

        if step.result_variable:
            context.set_variable(step.result_variable, result)
            logger.debug(f"[Workflow {step.name}] Stored result in variable: {step.result_variable}")

        return result
