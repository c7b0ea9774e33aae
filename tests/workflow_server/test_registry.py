"""Tests for the workflow registry."""

import os
import shutil
import tempfile

import pytest
import yaml

from taskmcp.workflow_server.workflow.loader import WorkflowLoader, parse_workflow
from taskmcp.workflow_server.workflow.models import WorkflowNotFoundError
from taskmcp.workflow_server.workflow.registry import WorkflowRegistry


class TestWorkflowRegistry:
    """Test registration and lookup."""

    def setup_method(self):
        """Set up a registry backed by a temporary directory."""
        self.temp_dir = tempfile.mkdtemp()
        self.registry = WorkflowRegistry(WorkflowLoader(self.temp_dir))

    def teardown_method(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def write_workflow(self, name: str, message: str = "hi"):
        """Write a one-step workflow file."""
        with open(os.path.join(self.temp_dir, f"{name}.yaml"), "w") as f:
            yaml.dump({"name": name, "steps": [{"type": "log", "message": message}]}, f)

    def test_load_and_list(self):
        """Test loading a directory and listing by name."""
        self.write_workflow("beta")
        self.write_workflow("alpha")

        assert self.registry.load() == []
        assert [workflow.name for workflow in self.registry.list()] == ["alpha", "beta"]
        assert self.registry.has("alpha")

    def test_load_errors_are_kept(self):
        """Test invalid files are reported."""
        with open(os.path.join(self.temp_dir, "bad.yaml"), "w") as f:
            f.write("steps: []\n")

        errors = self.registry.load()

        assert len(errors) == 1
        assert self.registry.load_errors == errors

    def test_get_loads_new_files_lazily(self):
        """Test a file added after load is found on lookup."""
        self.registry.load()
        self.write_workflow("late")
        assert self.registry.get("late").name == "late"
        assert self.registry.has("late")

    def test_get_missing(self):
        """Test unknown names raise WorkflowNotFoundError."""
        with pytest.raises(WorkflowNotFoundError):
            self.registry.get("missing")
        with pytest.raises(WorkflowNotFoundError):
            WorkflowRegistry().get("missing")

    def test_register_and_unregister(self):
        """Test direct registration."""
        workflow = parse_workflow({"name": "direct", "steps": []})
        self.registry.register(workflow)
        assert self.registry.get("direct") is workflow
        assert self.registry.unregister("direct") is True
        assert self.registry.unregister("direct") is False

    def test_register_template(self):
        """Test registering a workflow built from template records."""
        workflow = self.registry.register_template(
            {"id": 3, "name": "Triage", "type": "workflow"},
            [{"key": "note", "step_type": "log", "execution_order": 1, "step_config": {"message": "x"}}],
        )
        assert workflow.name == "Triage"
        assert self.registry.get("Triage") is workflow

    def test_refresh_reloads_files_and_keeps_direct_definitions(self):
        """Test refresh picks up edits and removals without dropping direct registrations."""
        self.write_workflow("edited", "old")
        self.write_workflow("removed")
        self.registry.load()
        self.registry.register(parse_workflow({"name": "direct", "steps": []}))

        self.write_workflow("edited", "new message")
        os.remove(os.path.join(self.temp_dir, "removed.yaml"))
        self.registry.refresh()

        assert self.registry.get("edited").steps[0].message == "new message"
        assert not self.registry.has("removed")
        assert self.registry.has("direct")
