"""Tests for the create_object pause protocol and resuming paused workflows."""

import json

import pytest

from taskmcp.workflow_server.schemas import StaticSchemaProvider
from taskmcp.workflow_server.workflow.context import ExecutionSnapshot
from taskmcp.workflow_server.workflow.executor import WorkflowExecutor
from taskmcp.workflow_server.workflow.loader import parse_workflow
from taskmcp.workflow_server.workflow.models import SchemaNotFoundError, WorkflowExecutionError, WorkflowStateError

BUG_TEMPLATE = {
    "name": "Bug",
    "properties": [
        {"key": "description", "type": "textarea", "description": "What went wrong"},
        {"key": "title", "type": "text", "description": "Short summary"},
        {"key": "severity", "type": "select", "description": "How bad it is"},
        {"key": "estimate", "type": "number", "description": "Hours to fix"},
    ],
}


def make_workflow(steps, input_schema=None):
    """Create a test workflow definition from raw step data."""
    return parse_workflow({"name": "file_bug", "inputSchema": input_schema or {}, "steps": steps})


def round_trip(snapshot: ExecutionSnapshot) -> ExecutionSnapshot:
    """Serialize a snapshot the way a store would."""
    return ExecutionSnapshot.from_dict(json.loads(json.dumps(snapshot.to_dict())))


class TestPausePayload:
    """Test the payload built by create_object steps."""

    def setup_method(self):
        """Set up executor with a bug template."""
        self.schema_provider = StaticSchemaProvider({"7": BUG_TEMPLATE})
        self.executor = WorkflowExecutor(schema_provider=self.schema_provider)

    def test_partition_of_agent_and_input_properties(self):
        """Test a true property goes to the agent and a mapped one is resolved."""
        workflow = make_workflow(
            [
                {
                    "type": "create_object",
                    "templateId": 7,
                    "properties": {"description": True, "title": "{{input.title}}"},
                }
            ]
        )

        context = self.executor.execute(workflow, {"title": "Login fails"})

        assert context.paused
        payload = context.result
        assert payload["action"] == "create_object"
        assert payload["template_id"] == "7"
        assert payload["template_name"] == "Bug"
        assert payload["property_schemas"] == [
            {"key": "description", "type": "string", "description": "What went wrong"}
        ]
        assert payload["property_values"] == {"title": "Login fails"}
        assert "description" in payload["instruction"]
        assert "title" in payload["instruction"]

    def test_disabled_properties_are_ignored(self):
        """Test falsy mappings are left out of both maps."""
        workflow = make_workflow(
            [{"type": "create_object", "templateId": 7, "properties": {"severity": False, "estimate": True}}]
        )
        payload = self.executor.execute(workflow, {}).result
        assert [schema["key"] for schema in payload["property_schemas"]] == ["estimate"]
        assert payload["property_schemas"][0]["type"] == "number"
        assert payload["property_values"] == {}

    def test_pause_halts_later_steps(self):
        """Test steps after the pause do not run."""
        workflow = make_workflow(
            [
                {"type": "log", "message": "before"},
                {"type": "create_object", "templateId": 7, "properties": {"title": True}},
                {"type": "log", "message": "after"},
            ]
        )
        context = self.executor.execute(workflow, {})
        assert context.logs == ["before"]
        assert context.current_step == 1
        assert context.step_results[-1].status == "completed"

    def test_unknown_template_fails_the_step(self):
        """Test a schema lookup failure is not absorbed."""
        workflow = make_workflow([{"type": "create_object", "templateId": 99, "properties": {"title": True}}])
        with pytest.raises(WorkflowExecutionError) as exc_info:
            self.executor.execute(workflow, {})
        assert isinstance(exc_info.value.__cause__, SchemaNotFoundError)
        assert not exc_info.value.context.paused

    def test_unknown_property_fails_the_step(self):
        """Test a property the template does not declare fails the step."""
        workflow = make_workflow([{"type": "create_object", "templateId": 7, "properties": {"owner": True}}])
        with pytest.raises(WorkflowExecutionError) as exc_info:
            self.executor.execute(workflow, {})
        assert isinstance(exc_info.value.__cause__, SchemaNotFoundError)

    def test_missing_schema_provider(self):
        """Test create_object needs a schema provider."""
        workflow = make_workflow([{"type": "create_object", "templateId": 7, "properties": {"title": True}}])
        with pytest.raises(WorkflowExecutionError):
            WorkflowExecutor().execute(workflow, {})


class TestResume:
    """Test resuming after a pause."""

    def setup_method(self):
        """Set up executor and a workflow that pauses in the middle."""
        self.executor = WorkflowExecutor(schema_provider=StaticSchemaProvider({"7": BUG_TEMPLATE}))
        self.steps = [
            {"type": "set_variable", "variableName": "count", "value": 1},
            {"type": "log", "message": "Filing {{input.title}}"},
            {
                "type": "create_object",
                "templateId": 7,
                "properties": {"title": "{{input.title}}", "description": True},
                "resultVariable": "bug",
            },
            {"type": "set_variable", "variableName": "count", "value": 2},
            {"type": "log", "message": "Filed bug {{bug.id}} (count {{count}})"},
            {"type": "return", "value": "{{bug.id}}"},
        ]
        self.workflow = make_workflow(self.steps)

    def test_resume_continues_after_paused_step(self):
        """Test resume runs from current_step + 1 and binds the created object."""
        paused = self.executor.execute(self.workflow, {"title": "Crash"})
        assert paused.current_step == 2

        resumed = self.executor.resume(
            self.workflow, {"title": "Crash", "created_object": {"id": 42}}, round_trip(paused.snapshot())
        )

        assert resumed.result == 42
        assert resumed.logs == ["Filing Crash", "Filed bug 42 (count 2)"]
        assert resumed.variables == {"count": 2, "bug": {"id": 42}}
        assert [entry.step for entry in resumed.step_results] == [
            "step_0",
            "step_1",
            "step_2",
            "step_3",
            "step_4",
            "step_5",
        ]

    def test_resume_equivalence(self):
        """Test a serialized snapshot resumes exactly like an in-memory one."""
        paused = self.executor.execute(self.workflow, {"title": "Crash"})
        inputs = {"title": "Crash", "created_object": {"id": 3}}

        direct = self.executor.resume(self.workflow, inputs, paused.snapshot())
        stored = self.executor.resume(self.workflow, inputs, round_trip(paused.snapshot()))

        assert stored.variables == direct.variables
        assert stored.logs == direct.logs
        assert [e.to_dict() for e in stored.step_results] == [e.to_dict() for e in direct.step_results]
        assert stored.result == direct.result

    def test_resume_matches_execute_from_step(self):
        """Test resume is the same as continuing from the next step with saved state."""
        paused = self.executor.execute(self.workflow, {"title": "Crash"})
        snapshot = paused.snapshot()
        inputs = {"title": "Crash"}

        resumed = self.executor.resume(self.workflow, inputs, snapshot)
        continued = self.executor.execute_from_step(
            self.workflow, inputs, snapshot.current_step + 1, snapshot.variables, snapshot.step_results, snapshot.logs
        )

        assert resumed.variables == continued.variables
        assert resumed.logs == continued.logs
        assert [e.to_dict() for e in resumed.step_results] == [e.to_dict() for e in continued.step_results]

    def test_snapshot_is_isolated_from_context(self):
        """Test later mutations of the context do not leak into a taken snapshot."""
        paused = self.executor.execute(self.workflow, {"title": "Crash"})
        snapshot = paused.snapshot()
        paused.set_variable("count", 100)
        paused.append_log("late")
        assert ["count", 1] in snapshot.variables
        assert snapshot.logs == ["Filing Crash"]

    def test_pause_inside_conditional_resumes_rest_of_branch(self):
        """Test a pause inside a branch continues that branch before later top-level steps."""
        workflow = make_workflow(
            [
                {"type": "log", "message": "start"},
                {
                    "type": "conditional",
                    "condition": "{{input.file}}",
                    "then": [
                        {"type": "log", "message": "filing"},
                        {"type": "create_object", "templateId": 7, "properties": {"title": True}},
                        {"type": "log", "message": "filed"},
                    ],
                },
                {"type": "log", "message": "end"},
            ]
        )

        paused = self.executor.execute(workflow, {"file": True})
        assert paused.paused
        assert paused.logs == ["start", "filing"]
        snapshot = round_trip(paused.snapshot())
        assert snapshot.branch_path == [["then", 1]]

        resumed = self.executor.resume(workflow, {"file": True}, snapshot)

        assert resumed.logs == ["start", "filing", "filed", "end"]
        assert not resumed.halted

    def test_second_pause_after_resume(self):
        """Test a workflow can pause again after being resumed."""
        workflow = make_workflow(
            [
                {"type": "create_object", "templateId": 7, "properties": {"title": True}, "resultVariable": "first"},
                {"type": "create_object", "templateId": 7, "properties": {"description": True}},
                {"type": "log", "message": "first was {{first.id}}"},
            ]
        )
        paused = self.executor.execute(workflow, {})
        again = self.executor.resume(workflow, {"created_object": {"id": 1}}, paused.snapshot())

        assert again.paused
        assert again.current_step == 1
        assert again.variables == {"first": {"id": 1}}

    def test_resume_with_out_of_range_snapshot(self):
        """Test a snapshot pointing past the workflow is rejected."""
        with pytest.raises(WorkflowStateError):
            self.executor.resume(self.workflow, {"title": "x"}, ExecutionSnapshot(current_step=10))
