"""Conditional step processor.

Evaluates the condition and runs the matching branch in order. The branch
stops as soon as one of its steps sets a result, the same way the top-level
step list does.
"""

from typing import Any

from ..conditions import ConditionEvaluator
from ..context import ExecutionContext
from ..models import ConditionalStep, WorkflowDefinitionError


class ConditionalProcessor:
    """Processes conditional workflow steps."""

    def __init__(self, evaluator: ConditionEvaluator):
        self.evaluator = evaluator

    def process(self, step: ConditionalStep, context: ExecutionContext, executor: Any) -> dict[str, Any]:
        if not step.condition:
            raise WorkflowDefinitionError("conditional step requires a condition")

        condition_result = self.evaluator.evaluate_detailed(step.condition, context)
        branch_taken = "then" if condition_result.condition_result else "else"
        selected_steps = step.branch(branch_taken)

        executor.run_branch(selected_steps, context, branch_taken)

        return {
            "branch_taken": branch_taken,
            "condition_result": condition_result.condition_result,
            "steps_in_branch": len(selected_steps),
        }
