"""Tests for input validation and workflow definition validation."""

import pytest

from taskmcp.workflow_server.workflow.models import InputSchema, WorkflowValidationError
from taskmcp.workflow_server.workflow.validator import (
    WorkflowValidator,
    get_field,
    validate_inputs,
)


class TestValidateInputs:
    """Test invocation input validation against an input schema."""

    def setup_method(self):
        """Set up a schema with typed fields."""
        self.schema = InputSchema.from_dict(
            {
                "properties": {
                    "title": {"type": "string"},
                    "priority": {"type": "number"},
                    "urgent": {"type": "boolean"},
                    "tags": {"type": "array"},
                    "meta": {"type": "object"},
                },
                "required": ["title"],
            }
        )

    def test_valid_inputs(self):
        """Test that matching inputs pass."""
        validate_inputs(
            self.schema,
            {"title": "x", "priority": 1.5, "urgent": False, "tags": [], "meta": {}},
        )

    def test_missing_required_field(self):
        """Test that a missing required field names the field."""
        with pytest.raises(WorkflowValidationError) as exc_info:
            validate_inputs(self.schema, {"priority": 1})
        assert "Missing required input field: title" in str(exc_info.value)
        assert exc_info.value.field == "title"

    @pytest.mark.parametrize(
        "field,value,type_name",
        [
            ("title", 5, "string"),
            ("priority", "5", "number"),
            ("priority", True, "number"),
            ("urgent", "yes", "boolean"),
            ("tags", "a,b", "array"),
            ("meta", [], "object"),
        ],
    )
    def test_type_mismatch(self, field, value, type_name):
        """Test that supplied fields must match their declared type."""
        inputs = {"title": "x", field: value}
        with pytest.raises(WorkflowValidationError) as exc_info:
            validate_inputs(self.schema, inputs)
        assert f"Input field '{field}' must be" in str(exc_info.value)
        assert type_name in str(exc_info.value)
        assert exc_info.value.field == field

    def test_undeclared_fields_pass_through(self):
        """Test that fields not in the schema are not checked."""
        validate_inputs(self.schema, {"title": "x", "extra": object()})

    def test_optional_fields_may_be_absent(self):
        """Test that only required fields must be present."""
        validate_inputs(self.schema, {"title": "x"})

    def test_inputs_must_be_object(self):
        """Test that non-dict inputs are rejected."""
        with pytest.raises(WorkflowValidationError):
            validate_inputs(self.schema, ["title"])

    def test_schema_keywords_beyond_type(self):
        """Test other JSON-Schema keywords on declared fields are enforced."""
        schema = InputSchema.from_dict(
            {"properties": {"count": {"type": "integer", "minimum": 1}, "kind": {"enum": ["bug", "task"]}}}
        )
        validate_inputs(schema, {"count": 3, "kind": "bug"})

        with pytest.raises(WorkflowValidationError) as exc_info:
            validate_inputs(schema, {"count": 3.5})
        assert "must be an integer" in str(exc_info.value)

        with pytest.raises(WorkflowValidationError) as exc_info:
            validate_inputs(schema, {"kind": "epic"})
        assert exc_info.value.field == "kind"

    def test_missing_field_reported_before_type_error(self):
        """Test a missing required field wins over a mistyped one."""
        with pytest.raises(WorkflowValidationError) as exc_info:
            validate_inputs(self.schema, {"priority": "high"})
        assert exc_info.value.field == "title"


class TestWorkflowValidator:
    """Test definition validation before parsing."""

    def setup_method(self):
        """Set up validator."""
        self.validator = WorkflowValidator()

    def test_valid_workflow(self):
        """Test a valid definition with every step kind."""
        workflow = {
            "name": "create_bug",
            "inputSchema": {"properties": {"title": {"type": "string"}}, "required": ["title"]},
            "steps": [
                {"type": "log", "message": "start"},
                {"type": "set_variable", "variableName": "x", "value": 1},
                {
                    "type": "conditional",
                    "condition": "{{x}} == 1",
                    "then": [{"type": "log", "message": "one"}],
                    "else": [],
                },
                {"type": "call_tool", "toolName": "search", "parameters": {}, "resultVariable": "found"},
                {"type": "create_object", "templateId": 3, "properties": {"title": "{{input.title}}"}},
                {"type": "return", "value": "{{x}}"},
            ],
        }
        assert self.validator.validate(workflow)
        assert self.validator.errors == []

    def test_missing_name_and_steps(self):
        """Test top-level structure errors."""
        assert not self.validator.validate({"steps": "nope"})
        error = self.validator.get_validation_error()
        assert "Missing required field: name" in error
        assert "Workflow 'steps' must be an array" in error

    def test_unknown_step_type(self):
        """Test unknown step kinds are rejected at load time."""
        assert not self.validator.validate({"name": "w", "steps": [{"type": "shell", "command": "ls"}]})
        assert "unknown step type 'shell'" in self.validator.get_validation_error()

    def test_missing_required_step_fields(self):
        """Test each step kind's required fields."""
        workflow = {
            "name": "w",
            "steps": [
                {"type": "set_variable", "variableName": "x"},
                {"type": "call_tool", "toolName": "t"},
                {"type": "return"},
            ],
        }
        assert not self.validator.validate(workflow)
        error = self.validator.get_validation_error()
        assert "steps[0]: set_variable step requires 'value'" in error
        assert "steps[1]: call_tool step requires 'parameters'" in error
        assert "steps[2]: return step requires 'value'" in error

    def test_explicit_null_value_is_allowed(self):
        """Test that a present null value satisfies the required field."""
        workflow = {"name": "w", "steps": [{"type": "set_variable", "variableName": "x", "value": None}]}
        assert self.validator.validate(workflow)

    @pytest.mark.parametrize("name", ["input", "logs", "a.b", ""])
    def test_invalid_variable_names(self, name):
        """Test reserved and dotted variable names are rejected."""
        workflow = {"name": "w", "steps": [{"type": "set_variable", "variableName": name, "value": 1}]}
        assert not self.validator.validate(workflow)

    def test_nested_branch_errors_have_paths(self):
        """Test that errors inside branches name their location."""
        workflow = {
            "name": "w",
            "steps": [{"type": "conditional", "condition": "true", "then": [{"type": "log"}]}],
        }
        assert not self.validator.validate(workflow)
        assert "steps[0].then[0]: log step requires 'message'" in self.validator.get_validation_error()

    def test_create_object_property_warnings(self):
        """Test disabled properties only warn."""
        workflow = {
            "name": "w",
            "steps": [{"type": "create_object", "templateId": 1, "properties": {"a": False, "b": True}}],
        }
        assert self.validator.validate(workflow)
        assert any("'a' is disabled" in warning for warning in self.validator.warnings)

    def test_get_field_aliases(self):
        """Test camelCase and snake_case spellings."""
        assert get_field({"toolName": "a"}, "tool_name") == "a"
        assert get_field({"tool_name": "b"}, "tool_name") == "b"
        assert get_field({}, "tool_name", "default") == "default"

    def test_invalid_input_schema(self):
        """Test an input schema that is not valid JSON Schema is rejected."""
        workflow = {"name": "w", "inputSchema": {"properties": {"a": {"type": "text"}}}, "steps": []}
        assert not self.validator.validate(workflow)
        assert "inputSchema.properties.a.type" in self.validator.get_validation_error()

    def test_step_shape_errors(self):
        """Test structural errors inside branches are located by path."""
        workflow = {
            "name": "w",
            "steps": [
                {"type": "conditional", "condition": "true", "then": "not a list"},
                {"message": "no type"},
                "not a step",
            ],
        }
        assert not self.validator.validate(workflow)
        error = self.validator.get_validation_error()
        assert "steps[0].then must be array or null" in error
        assert "steps[1]: missing required field 'type'" in error
        assert "steps[2] must be an object" in error
