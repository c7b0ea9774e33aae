"""Host side of workflow invocation: cold start or resume, and snapshot bookkeeping.

A workflow key has a snapshot in the state store only while the workflow is
paused. Pausing writes the snapshot, completing deletes it, and a failure
leaves whatever was stored before untouched so the agent can retry.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any

from ..schemas import SchemaProvider
from ..state.store import StateStore
from ..tool_caller import ToolCaller
from .context import ExecutionContext
from .executor import CREATED_OBJECT_INPUT, WorkflowExecutor
from .models import WorkflowDefinition, WorkflowStateError
from .registry import WorkflowRegistry

logger = logging.getLogger(__name__)


def snapshot_key(workflow_name: str, invocation_id: str | None = None) -> str:
    """Key under which a paused workflow's snapshot is stored."""
    if invocation_id:
        return f"{workflow_name}:{invocation_id}"
    return workflow_name


class WorkflowRunner:
    """Invokes registered workflows and persists their pause state."""

    def __init__(
        self,
        registry: WorkflowRegistry,
        state_store: StateStore,
        tool_caller: ToolCaller | None = None,
        schema_provider: SchemaProvider | None = None,
        lock_timeout: float = 30.0,
    ):
        self.registry = registry
        self.state_store = state_store
        self.executor = WorkflowExecutor(tool_caller=tool_caller, schema_provider=schema_provider)
        self.lock_timeout = lock_timeout
        self._locks: dict[str, threading.RLock] = {}
        self._lock_users: dict[str, int] = {}
        self._global_lock = threading.RLock()

    @contextmanager
    def _hold_key(self, key: str):
        """Serialize invocations of one workflow key.

        The per-key lock is dropped once no invocation holds or waits for it.
        """
        with self._global_lock:
            lock = self._locks.setdefault(key, threading.RLock())
            self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            if not lock.acquire(timeout=self.lock_timeout):
                raise WorkflowStateError(f"Timed out waiting for workflow '{key}' to become available")
            try:
                yield
            finally:
                lock.release()
        finally:
            with self._global_lock:
                self._lock_users[key] -= 1
                if self._lock_users[key] == 0:
                    del self._lock_users[key]
                    del self._locks[key]

    def invoke(
        self, workflow_name: str, inputs: dict[str, Any] | None = None, invocation_id: str | None = None
    ) -> dict[str, Any]:
        """Run a workflow, resuming it if a snapshot exists for its key.

        Returns:
            The paused or completed invocation result

        Raises:
            WorkflowNotFoundError: If the workflow is not registered
            WorkflowValidationError: If the inputs fail the input schema
            WorkflowExecutionError: If a step fails
            WorkflowStateError: If the key is busy or the snapshot is unusable
        """
        workflow = self.registry.get(workflow_name)
        inputs = {} if inputs is None else inputs
        key = snapshot_key(workflow_name, invocation_id)

        with self._hold_key(key):
            snapshot = self.state_store.get(key)
            if snapshot is None:
                context = self.executor.execute(workflow, inputs)
                expected_version = 0
            else:
                logger.info(f"Found paused state for '{key}' at step {snapshot.current_step}")
                context = self.executor.resume(workflow, inputs, snapshot)
                expected_version = snapshot.version

            if context.paused:
                version = self.state_store.put(key, context.snapshot(), expected_version=expected_version)
                logger.info(f"Saved paused state for '{key}' (version {version})")
                return self._paused_result(workflow, context, invocation_id)

            if snapshot is not None:
                self.state_store.delete(key)
                logger.debug(f"Cleared paused state for '{key}'")
            return self._completed_result(context)

    def get_paused(self, workflow_name: str, invocation_id: str | None = None) -> dict[str, Any] | None:
        """Describe a paused workflow, or None when nothing is paused under the key."""
        key = snapshot_key(workflow_name, invocation_id)
        snapshot = self.state_store.get(key)
        if snapshot is None:
            return None
        return {
            "key": key,
            "workflow": workflow_name,
            "paused_at_step": snapshot.current_step + 1,
            "version": snapshot.version,
            "variables": dict((name, value) for name, value in snapshot.variables),
            "step_results": snapshot.step_results,
            "logs": snapshot.logs,
        }

    def cancel(self, workflow_name: str, invocation_id: str | None = None) -> bool:
        """Discard a paused workflow's snapshot so the next invocation starts fresh."""
        key = snapshot_key(workflow_name, invocation_id)
        with self._hold_key(key):
            removed = self.state_store.delete(key)
        if removed:
            logger.info(f"Cancelled paused workflow '{key}'")
        return removed

    @staticmethod
    def _paused_result(
        workflow: WorkflowDefinition, context: ExecutionContext, invocation_id: str | None
    ) -> dict[str, Any]:
        payload = context.outcome.payload
        resume_args = "the same inputs"
        if invocation_id:
            resume_args += f" and invocation_id '{invocation_id}'"
        return {
            "status": "paused",
            "step": context.current_step + 1,
            "total_steps": len(workflow.steps),
            **payload,
            "next_action": (
                f"Complete the '{payload.get('action')}' action, then call {workflow.name} again with "
                f"{resume_args}, adding the created object as '{CREATED_OBJECT_INPUT}', to continue the workflow."
            ),
        }

    @staticmethod
    def _completed_result(context: ExecutionContext) -> dict[str, Any]:
        return {
            "status": "completed",
            "steps_executed": len(context.step_results),
            "step_results": [entry.to_dict() for entry in context.step_results],
            "logs": list(context.logs),
            "variables": dict(context.variables),
            "result": context.result,
        }
