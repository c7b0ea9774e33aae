"""Registry of workflow definitions exposed as named tools."""

import logging
import threading
from typing import Any

from .loader import WorkflowLoader, load_from_template_records
from .models import WorkflowDefinition, WorkflowNotFoundError

logger = logging.getLogger(__name__)


class WorkflowRegistry:
    """Thread-safe name -> WorkflowDefinition mapping.

    Definitions come from a WorkflowLoader directory, from stored template
    records, or are registered directly. The registry is passed to the runner
    and the MCP tools explicitly rather than held globally.
    """

    def __init__(self, loader: WorkflowLoader | None = None):
        self.loader = loader
        self._workflows: dict[str, WorkflowDefinition] = {}
        self._lock = threading.RLock()
        self.load_errors: list[str] = []

    def load(self) -> list[str]:
        """Load every workflow from the loader's directory.

        Returns:
            Error messages for files that could not be loaded
        """
        if self.loader is None:
            return []

        workflows, errors = self.loader.load_all()
        with self._lock:
            for workflow in workflows:
                if workflow.name in self._workflows:
                    logger.warning(f"Workflow {workflow.name} redefined by {workflow.loaded_from}")
                self._workflows[workflow.name] = workflow
            self.load_errors = list(errors)

        logger.info(f"Loaded {len(workflows)} workflows ({len(errors)} errors)")
        return errors

    def refresh(self) -> list[str]:
        """Drop file-backed definitions and cached files, then load again."""
        with self._lock:
            if self.loader is not None:
                self.loader.invalidate()
                self._workflows = {
                    name: workflow
                    for name, workflow in self._workflows.items()
                    if not workflow.loaded_from or workflow.loaded_from.startswith("template:")
                }
            return self.load()

    def register(self, workflow: WorkflowDefinition) -> None:
        with self._lock:
            self._workflows[workflow.name] = workflow
        logger.debug(f"Registered workflow {workflow.name}")

    def register_template(self, template: dict[str, Any], properties: list[dict[str, Any]]) -> WorkflowDefinition:
        """Build a workflow from stored template records and register it."""
        workflow = load_from_template_records(template, properties)
        self.register(workflow)
        return workflow

    def unregister(self, name: str) -> bool:
        with self._lock:
            return self._workflows.pop(name, None) is not None

    def get(self, name: str) -> WorkflowDefinition:
        """Return the named workflow.

        Raises:
            WorkflowNotFoundError: If no workflow has that name
        """
        with self._lock:
            workflow = self._workflows.get(name)
        if workflow is not None:
            return workflow

        if self.loader is not None:
            # Files added since the last load
            workflow = self.loader.load(name)
            self.register(workflow)
            return workflow

        raise WorkflowNotFoundError(f"Workflow '{name}' not found")

    def has(self, name: str) -> bool:
        with self._lock:
            return name in self._workflows

    def list(self) -> list[WorkflowDefinition]:
        with self._lock:
            return sorted(self._workflows.values(), key=lambda workflow: workflow.name)
