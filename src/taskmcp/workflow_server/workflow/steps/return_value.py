"""Return step processor."""

from typing import Any

from ..context import ExecutionContext
from ..models import UNSET, ReturnStep, WorkflowDefinitionError
from ..templates import Interpolator


class ReturnProcessor:
    """Sets the terminal result, which stops the workflow after this step."""

    def __init__(self, interpolator: Interpolator):
        self.interpolator = interpolator

    def process(self, step: ReturnStep, context: ExecutionContext, executor: Any) -> Any:
        if step.value is UNSET:
            raise WorkflowDefinitionError("return step requires a value")

        value = self.interpolator.interpolate(step.value, context)
        context.set_return(value)
        return value
