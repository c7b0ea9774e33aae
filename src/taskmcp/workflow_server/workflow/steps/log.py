"""Log step processor."""

import logging
from typing import Any

from ..context import ExecutionContext
from ..models import LogStep, WorkflowDefinitionError
from ..templates import Interpolator

logger = logging.getLogger(__name__)


class LogProcessor:
    """Appends an interpolated message to the execution logs."""

    def __init__(self, interpolator: Interpolator):
        self.interpolator = interpolator

    def process(self, step: LogStep, context: ExecutionContext, executor: Any) -> str:
        if not step.message:
            raise WorkflowDefinitionError("Log step requires a message")

        message = self.interpolator.interpolate_string(step.message, context)
        context.append_log(message)
        logger.info(f"[Workflow {step.name or 'Log'}] {message}")
        return message
