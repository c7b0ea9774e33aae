"""Tests for the workflow MCP tool implementations."""

import json
from unittest.mock import Mock

from taskmcp.workflow_server.models.workflow_models import RunWorkflowResponse
from taskmcp.workflow_server.schemas import StaticSchemaProvider
from taskmcp.workflow_server.state.store import InMemoryStateStore
from taskmcp.workflow_server.tool_caller import FunctionToolCaller
from taskmcp.workflow_server.tools import (
    cancel_workflow_impl,
    describe_workflow_impl,
    get_paused_workflow_impl,
    health_check_impl,
    list_workflows_impl,
    register_workflow_tools,
    reload_workflows_impl,
    run_workflow_impl,
)
from taskmcp.workflow_server.tools.run_workflow import decode_inputs
from taskmcp.workflow_server.workflow.loader import parse_workflow
from taskmcp.workflow_server.workflow.models import WorkflowError, WorkflowStateError
from taskmcp.workflow_server.workflow.registry import WorkflowRegistry
from taskmcp.workflow_server.workflow.runner import WorkflowRunner


class WorkflowToolsTestBase:
    """Shared registry and runner for tool tests."""

    def setup_method(self):
        """Set up registry, tools and runner."""
        self.registry = WorkflowRegistry()
        self.registry.register(
            parse_workflow(
                {
                    "name": "create_task",
                    "description": "Create a task",
                    "inputSchema": {"properties": {"title": {"type": "string"}}, "required": ["title"]},
                    "steps": [
                        {"type": "log", "message": "Creating {{input.title}}"},
                        {
                            "type": "create_object",
                            "templateId": 1,
                            "properties": {"title": "{{input.title}}", "notes": True},
                            "resultVariable": "task",
                        },
                        {"type": "return", "value": "{{task.id}}"},
                    ],
                }
            )
        )
        self.registry.register(
            parse_workflow(
                {
                    "name": "lookup",
                    "steps": [{"name": "fetch", "type": "call_tool", "toolName": "fetch", "parameters": {}}],
                }
            )
        )
        self.tool_caller = FunctionToolCaller()
        self.schema_provider = StaticSchemaProvider(
            {"1": {"name": "Task", "properties": [{"key": "title", "type": "text"}, {"key": "notes"}]}}
        )
        self.store = InMemoryStateStore()
        self.runner = WorkflowRunner(
            self.registry, self.store, tool_caller=self.tool_caller, schema_provider=self.schema_provider
        )


class TestRunWorkflow(WorkflowToolsTestBase):
    """Test run_workflow_impl responses."""

    def test_decode_inputs(self):
        """Test inputs may be given as JSON text."""
        assert decode_inputs(None) == {}
        assert decode_inputs("") == {}
        assert decode_inputs('{"a": 1}') == {"a": 1}
        assert decode_inputs({"a": 1}) == {"a": 1}

    def test_paused_then_completed(self):
        """Test the paused and completed responses."""
        paused = run_workflow_impl(self.runner, "create_task", json.dumps({"title": "Write docs"}))

        assert isinstance(paused, RunWorkflowResponse)
        assert paused.status == "paused"
        assert paused.step == 2
        assert paused.total_steps == 3
        assert paused.action == "create_object"
        assert paused.template_name == "Task"
        assert paused.property_values == {"title": "Write docs"}
        assert paused.error is None

        completed = run_workflow_impl(
            self.runner, "create_task", {"title": "Write docs", "created_object": {"id": "T-1"}}
        )

        assert completed.status == "completed"
        assert completed.result == "T-1"
        assert completed.logs == ["Creating Write docs"]
        assert completed.steps_executed == 3

    def test_not_found(self):
        """Test unknown workflows give NOT_FOUND."""
        response = run_workflow_impl(self.runner, "missing", {})
        assert response.status == "failed"
        assert response.error["code"] == "NOT_FOUND"

    def test_validation_error_names_field(self):
        """Test input validation failures give INVALID_INPUT with the field."""
        response = run_workflow_impl(self.runner, "create_task", {})
        assert response.error["code"] == "INVALID_INPUT"
        assert response.error["field"] == "title"

    def test_invalid_json_inputs(self):
        """Test malformed JSON inputs give INVALID_INPUT."""
        response = run_workflow_impl(self.runner, "create_task", "[1, 2]")
        assert response.error["code"] == "INVALID_INPUT"

    def test_step_failure(self):
        """Test a failing step reports the step and the partial state."""
        response = run_workflow_impl(self.runner, "lookup", {})

        assert response.status == "failed"
        assert response.error["code"] == "OPERATION_FAILED"
        assert response.error["step"] == "fetch"
        assert response.error["step_type"] == "call_tool"
        assert response.step_results[0]["status"] == "failed"
        assert response.logs == []

    def test_state_error(self):
        """Test state store failures give OPERATION_FAILED."""
        runner = Mock()
        runner.invoke.side_effect = WorkflowStateError("busy")
        response = run_workflow_impl(runner, "create_task", {"title": "x"})
        assert response.error == {"code": "OPERATION_FAILED", "message": "busy"}

    def test_unexpected_failures_are_reported(self):
        """Test other engine and storage errors give OPERATION_FAILED instead of raising."""
        runner = Mock()
        for error in (OSError("disk full"), WorkflowError("template lookup failed")):
            runner.invoke.side_effect = error
            response = run_workflow_impl(runner, "create_task", {"title": "x"})
            assert response.status == "failed"
            assert response.error == {"code": "OPERATION_FAILED", "message": str(error)}


class TestCatalogTools(WorkflowToolsTestBase):
    """Test list, describe and reload."""

    def test_list_workflows(self):
        """Test listing includes input schemas."""
        response = list_workflows_impl(self.registry)
        assert response.total == 2
        assert [workflow["name"] for workflow in response.workflows] == ["create_task", "lookup"]
        assert response.workflows[0]["input_schema"]["required"] == ["title"]
        assert response.workflows[0]["total_steps"] == 3
        assert response.workflows[0]["agent_steps"] == 1

    def test_describe_workflow(self):
        """Test describing a workflow returns its steps."""
        response = describe_workflow_impl(self.registry, "create_task")
        assert response.status == "found"
        assert [step["type"] for step in response.steps] == ["log", "create_object", "return"]

    def test_describe_missing(self):
        """Test describing an unknown workflow."""
        response = describe_workflow_impl(self.registry, "missing")
        assert response.status == "failed"
        assert response.error["code"] == "NOT_FOUND"

    def test_reload_without_loader(self):
        """Test reload keeps directly registered workflows."""
        response = reload_workflows_impl(self.registry)
        assert response.status == "reloaded"
        assert response.workflows == ["create_task", "lookup"]
        assert response.errors == []


class TestPausedWorkflowTools(WorkflowToolsTestBase):
    """Test get_paused_workflow and cancel_workflow."""

    def test_get_paused(self):
        """Test inspecting a paused run."""
        assert get_paused_workflow_impl(self.runner, "create_task").status == "not_paused"

        self.runner.invoke("create_task", {"title": "x"}, invocation_id="run-1")
        response = get_paused_workflow_impl(self.runner, "create_task", "run-1")

        assert response.status == "paused"
        assert response.paused_at_step == 2
        assert response.logs == ["Creating x"]

    def test_cancel(self):
        """Test cancelling a paused run."""
        self.runner.invoke("create_task", {"title": "x"})
        assert cancel_workflow_impl(self.runner, "create_task").status == "cancelled"
        assert cancel_workflow_impl(self.runner, "create_task").status == "not_paused"


class TestHealthCheck(WorkflowToolsTestBase):
    """Test health_check_impl."""

    def test_healthy(self):
        """Test component reporting."""
        response = health_check_impl(self.registry, self.store, self.tool_caller, self.schema_provider)
        assert response.status == "healthy"
        assert response.components["workflows"]["registered"] == 2
        assert response.components["state_store"]["backend"] == "memory"
        assert response.components["schema_provider"]["templates"] == 1
        assert response.timestamp is not None

    def test_not_configured(self):
        """Test missing capabilities are reported."""
        response = health_check_impl(self.registry, self.store)
        assert response.components["tool_caller"]["status"] == "not_configured"

    def test_unhealthy(self):
        """Test failures produce an unhealthy response."""
        registry = Mock()
        registry.list.side_effect = RuntimeError("broken")
        response = health_check_impl(registry, self.store)
        assert response.status == "unhealthy"
        assert "broken" in response.error


class TestRegisterWorkflowTools(WorkflowToolsTestBase):
    """Test tool registration on an MCP server."""

    def test_registers_all_tools(self):
        """Test every tool is registered and callable."""
        mcp = Mock()
        registered = {}

        def tool(function):
            registered[function.__name__] = function
            return function

        mcp.tool = tool
        register_workflow_tools(mcp, self.registry, self.runner, self.tool_caller, self.schema_provider)

        assert set(registered) == {
            "run_workflow",
            "list_workflows",
            "describe_workflow",
            "reload_workflows",
            "get_paused_workflow",
            "cancel_workflow",
            "health_check",
        }
        response = registered["run_workflow"]("create_task", '{"title": "From JSON"}')
        assert response.status == "paused"
        assert registered["list_workflows"]().total == 2
