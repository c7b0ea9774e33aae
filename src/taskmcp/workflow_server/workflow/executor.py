"""Step interpreter for task workflows.

The executor walks a workflow's step list in order, dispatching each step to
the processor registered for its kind. A step that sets an outcome on the
context (a return value or a pause payload) halts the walk immediately, at
whatever nesting depth it happens.
"""

import logging
from collections.abc import Sequence
from typing import Any

from ..schemas import SchemaProvider
from ..tool_caller import ToolCaller
from .conditions import ConditionEvaluator
from .context import ExecutionContext, ExecutionSnapshot, StepResult
from .models import (
    ConditionalStep,
    CreateObjectStep,
    UnknownStepTypeError,
    WorkflowDefinition,
    WorkflowExecutionError,
    WorkflowStateError,
    WorkflowStep,
)
from .steps.call_tool import CallToolProcessor
from .steps.conditional import ConditionalProcessor
from .steps.create_object import CreateObjectProcessor
from .steps.log import LogProcessor
from .steps.return_value import ReturnProcessor
from .steps.set_variable import SetVariableProcessor
from .templates import Interpolator
from .validator import validate_inputs

logger = logging.getLogger(__name__)

# Input key carrying the object the agent created while the workflow was paused
CREATED_OBJECT_INPUT = "created_object"


class WorkflowExecutor:
    """Executes workflow definitions against a fresh or restored context."""

    def __init__(self, tool_caller: ToolCaller | None = None, schema_provider: SchemaProvider | None = None):
        """Initialize the executor.

        Args:
            tool_caller: Invokes named tools for call_tool steps
            schema_provider: Supplies template properties for create_object steps
        """
        self.tool_caller = tool_caller
        self.schema_provider = schema_provider
        self.interpolator = Interpolator()
        self.condition_evaluator = ConditionEvaluator(self.interpolator.resolver)

        self.processors: dict[str, Any] = {
            "log": LogProcessor(self.interpolator),
            "set_variable": SetVariableProcessor(self.interpolator),
            "conditional": ConditionalProcessor(self.condition_evaluator),
            "call_tool": CallToolProcessor(self.interpolator),
            "return": ReturnProcessor(self.interpolator),
            "create_object": CreateObjectProcessor(self.interpolator),
        }

    def execute(self, workflow: WorkflowDefinition, inputs: dict[str, Any] | None) -> ExecutionContext:
        """Run a workflow from its first step.

        Raises:
            WorkflowValidationError: If the inputs fail the workflow's input schema
            WorkflowExecutionError: If a step fails
        """
        inputs = {} if inputs is None else inputs
        validate_inputs(workflow.input_schema, inputs)

        context = ExecutionContext(inputs=inputs)
        logger.info(f"Starting workflow {workflow.name} ({len(workflow.steps)} steps)")
        self._run(workflow, context, 0)
        return context

    def execute_from_step(
        self,
        workflow: WorkflowDefinition,
        inputs: dict[str, Any] | None,
        start_index: int,
        saved_variables: Sequence[Sequence[Any]] | dict[str, Any],
        saved_step_results: list[dict[str, Any] | StepResult],
        saved_logs: list[str] | None = None,
    ) -> ExecutionContext:
        """Continue a workflow at ``start_index`` with previously saved state.

        ``saved_variables`` may be ordered ``[name, value]`` pairs or a mapping.
        """
        inputs = {} if inputs is None else inputs
        validate_inputs(workflow.input_schema, inputs)

        if start_index < 0 or start_index > len(workflow.steps):
            raise WorkflowStateError(
                f"Cannot resume workflow {workflow.name} at step {start_index}: "
                f"it has {len(workflow.steps)} steps"
            )

        if isinstance(saved_variables, dict):
            variables = dict(saved_variables)
        else:
            variables = {name: value for name, value in saved_variables}

        context = ExecutionContext(
            inputs=inputs,
            variables=variables,
            logs=list(saved_logs or []),
            step_results=[
                entry if isinstance(entry, StepResult) else StepResult.from_dict(entry)
                for entry in saved_step_results
            ],
            current_step=start_index,
        )

        logger.info(f"Continuing workflow {workflow.name} at step {start_index}")
        self._run(workflow, context, start_index)
        return context

    def resume(
        self, workflow: WorkflowDefinition, inputs: dict[str, Any] | None, snapshot: ExecutionSnapshot
    ) -> ExecutionContext:
        """Resume a workflow paused by a create_object step.

        Execution continues right after the paused step. When the pause happened
        inside a conditional branch, the rest of that branch runs before the
        top-level walk picks up at ``current_step + 1``.
        """
        inputs = {} if inputs is None else inputs
        validate_inputs(workflow.input_schema, inputs)

        if not 0 <= snapshot.current_step < len(workflow.steps):
            raise WorkflowStateError(
                f"Snapshot step {snapshot.current_step} is out of range for workflow {workflow.name}"
            )

        context = ExecutionContext.from_snapshot(snapshot, inputs)
        top_step = workflow.steps[snapshot.current_step]
        branch_path = [(str(branch), int(index)) for branch, index in snapshot.branch_path]
        if any(branch not in ("then", "else") for branch, _ in branch_path):
            raise WorkflowStateError(f"Invalid branch path in snapshot: {snapshot.branch_path!r}")

        paused_step = self._locate(top_step, branch_path)
        if (
            isinstance(paused_step, CreateObjectStep)
            and paused_step.result_variable
            and CREATED_OBJECT_INPUT in inputs
        ):
            context.set_variable(paused_step.result_variable, inputs[CREATED_OBJECT_INPUT])

        logger.info(f"Resuming workflow {workflow.name} after step {snapshot.current_step}")
        if branch_path:
            self._resume_nested(top_step, branch_path, context)

        if context.halted:
            self._log_outcome(workflow, context)
            return context

        self._run(workflow, context, snapshot.current_step + 1)
        return context

    def execute_step(self, step: WorkflowStep, context: ExecutionContext) -> Any:
        """Execute one step and record its result entry.

        Failures are recorded on the entry and raised as WorkflowExecutionError
        naming the innermost failing step.
        """
        entry = context.begin_step(step.name, step.type)
        processor = self.processors.get(step.type)
        logger.debug(f"Executing step {step.name} ({step.type})")

        try:
            if processor is None:
                raise UnknownStepTypeError(step.type, step.name)
            output = processor.process(step, context, self)
        except WorkflowExecutionError as e:
            entry.status = "failed"
            entry.error = str(e)
            raise
        except Exception as e:
            entry.status = "failed"
            entry.error = str(e)
            logger.error(f"Step {step.name} ({step.type}) failed: {e}")
            raise WorkflowExecutionError(
                f"Step '{step.name}' ({step.type}) failed: {e}", step.name, step.type, context
            ) from e

        entry.status = "completed"
        entry.output = output
        return output

    def run_branch(
        self, steps: Sequence[WorkflowStep], context: ExecutionContext, branch: str, start: int = 0
    ) -> None:
        """Run a nested step list, stopping as soon as an outcome is set."""
        for index in range(start, len(steps)):
            context.branch_path.append((branch, index))
            try:
                self.execute_step(steps[index], context)
            finally:
                context.branch_path.pop()
            if context.halted:
                return

    def _run(self, workflow: WorkflowDefinition, context: ExecutionContext, start_index: int) -> None:
        for index in range(start_index, len(workflow.steps)):
            context.current_step = index
            self.execute_step(workflow.steps[index], context)
            if context.halted:
                break
        self._log_outcome(workflow, context)

    def _resume_nested(
        self, step: WorkflowStep, branch_path: list[tuple[str, int]], context: ExecutionContext
    ) -> None:
        """Finish the branches enclosing a step that paused inside a conditional."""
        if not branch_path:
            return
        if not isinstance(step, ConditionalStep):
            raise WorkflowStateError(f"Snapshot branch path does not match step '{step.name}'")

        branch, index = branch_path[0]
        steps = step.branch(branch)
        if not 0 <= index < len(steps):
            raise WorkflowStateError(f"Snapshot branch index {index} is out of range in step '{step.name}'")

        context.branch_path.append((branch, index))
        try:
            self._resume_nested(steps[index], branch_path[1:], context)
        finally:
            context.branch_path.pop()

        if not context.halted:
            self.run_branch(steps, context, branch, start=index + 1)

    @staticmethod
    def _locate(step: WorkflowStep, branch_path: list[tuple[str, int]]) -> WorkflowStep | None:
        for branch, index in branch_path:
            if not isinstance(step, ConditionalStep):
                return None
            steps = step.branch(branch)
            if not 0 <= index < len(steps):
                return None
            step = steps[index]
        return step

    @staticmethod
    def _log_outcome(workflow: WorkflowDefinition, context: ExecutionContext) -> None:
        if context.paused:
            logger.info(f"Workflow {workflow.name} paused at step {context.current_step}: {context.outcome.action}")
        else:
            logger.info(f"Workflow {workflow.name} completed ({len(context.step_results)} step results)")
