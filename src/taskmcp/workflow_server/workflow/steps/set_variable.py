"""Variable assignment step processor."""

from typing import Any

from ..context import ExecutionContext
from ..models import UNSET, SetVariableStep, WorkflowDefinitionError
from ..templates import Interpolator


class SetVariableProcessor:
    """Binds an interpolated value to a variable, replacing any prior binding."""

    def __init__(self, interpolator: Interpolator):
        self.interpolator = interpolator

    def process(self, step: SetVariableStep, context: ExecutionContext, executor: Any) -> Any:
        if not step.variable_name:
            raise WorkflowDefinitionError("set_variable step requires a variableName")

        if step.value is UNSET:
            raise WorkflowDefinitionError("set_variable step requires a value")

        value = self.interpolator.interpolate(step.value, context)
        context.set_variable(step.variable_name, value)
        return value
