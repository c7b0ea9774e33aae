"""Execution context management for workflow runs.

An ExecutionContext lives for exactly one invocation. Only the
ExecutionSnapshot taken from it outlives the invocation, and only while the
workflow is paused.
"""

import copy
from dataclasses import dataclass, field
from typing import Any

from .models import WorkflowStateError

SNAPSHOT_FORMAT_VERSION = 1


@dataclass
class StepResult:
    """Result entry for one executed step."""

    step: str
    type: str
    status: str = "pending"  # "pending", "completed", "failed"
    output: Any = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = {"step": self.step, "type": self.type, "status": self.status}
        if self.output is not None:
            data["output"] = self.output
        if self.error is not None:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StepResult":
        return cls(
            step=data["step"],
            type=data["type"],
            status=data.get("status", "completed"),
            output=data.get("output"),
            error=data.get("error"),
        )


@dataclass(frozen=True)
class Returned:
    """Terminal outcome set by a return step."""

    value: Any


@dataclass(frozen=True)
class Paused:
    """Non-final outcome: the agent must act before the workflow can continue."""

    payload: dict[str, Any]
    # (branch, index) pairs locating the paused step inside nested conditionals
    branch_path: tuple[tuple[str, int], ...] = ()

    @property
    def action(self) -> str:
        return self.payload.get("action", "")


@dataclass
class ExecutionContext:
    """Mutable state of one workflow invocation."""

    inputs: dict[str, Any] = field(default_factory=dict)
    variables: dict[str, Any] = field(default_factory=dict)
    logs: list[str] = field(default_factory=list)
    step_results: list[StepResult] = field(default_factory=list)
    current_step: int = 0
    outcome: Returned | Paused | None = None
    branch_path: list[tuple[str, int]] = field(default_factory=list)

    @property
    def halted(self) -> bool:
        """True once a step has set a terminal or pause outcome."""
        return self.outcome is not None

    @property
    def paused(self) -> bool:
        return isinstance(self.outcome, Paused)

    @property
    def result(self) -> Any:
        """The returned value or the pause payload, None when still running."""
        if isinstance(self.outcome, Returned):
            return self.outcome.value
        if isinstance(self.outcome, Paused):
            return self.outcome.payload
        return None

    def set_variable(self, name: str, value: Any):
        self.variables[name] = value

    def get_variable(self, name: str, default: Any = None) -> Any:
        return self.variables.get(name, default)

    def append_log(self, message: str):
        self.logs.append(message)

    def begin_step(self, name: str, step_type: str) -> StepResult:
        """Record a new step result entry and return it for later completion."""
        entry = StepResult(step=name, type=step_type)
        self.step_results.append(entry)
        return entry

    def set_return(self, value: Any):
        self.outcome = Returned(value)

    def set_paused(self, payload: dict[str, Any]):
        self.outcome = Paused(payload=payload, branch_path=tuple(self.branch_path))

    def snapshot(self) -> "ExecutionSnapshot":
        """Capture the serializable subset needed to resume."""
        branch_path = self.outcome.branch_path if isinstance(self.outcome, Paused) else ()
        return ExecutionSnapshot(
            current_step=self.current_step,
            variables=[[name, copy.deepcopy(value)] for name, value in self.variables.items()],
            step_results=[entry.to_dict() for entry in self.step_results],
            logs=list(self.logs),
            branch_path=[[branch, index] for branch, index in branch_path],
        )

    @classmethod
    def from_snapshot(cls, snapshot: "ExecutionSnapshot", inputs: dict[str, Any]) -> "ExecutionContext":
        """Rebuild a context seeded with previously saved state."""
        return cls(
            inputs=inputs,
            variables={name: copy.deepcopy(value) for name, value in snapshot.variables},
            logs=list(snapshot.logs),
            step_results=[StepResult.from_dict(entry) for entry in snapshot.step_results],
            current_step=snapshot.current_step,
        )


@dataclass
class ExecutionSnapshot:
    """Serializable state of a paused workflow."""

    current_step: int
    variables: list[list[Any]] = field(default_factory=list)  # ordered [name, value] pairs
    step_results: list[dict[str, Any]] = field(default_factory=list)
    logs: list[str] = field(default_factory=list)
    branch_path: list[list[Any]] = field(default_factory=list)
    version: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "format": SNAPSHOT_FORMAT_VERSION,
            "currentStep": self.current_step,
            "variables": self.variables,
            "stepResults": self.step_results,
            "logs": self.logs,
            "branchPath": self.branch_path,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExecutionSnapshot":
        """Parse a stored snapshot.

        Raises:
            WorkflowStateError: If the stored data is not a usable snapshot
        """
        if not isinstance(data, dict) or "currentStep" not in data:
            raise WorkflowStateError("Stored snapshot is missing 'currentStep'")

        variables = data.get("variables") or []
        if isinstance(variables, dict):
            variables = [[name, value] for name, value in variables.items()]
        for pair in variables:
            if not isinstance(pair, list | tuple) or len(pair) != 2:
                raise WorkflowStateError(f"Invalid variable entry in snapshot: {pair!r}")

        try:
            current_step = int(data["currentStep"])
        except (TypeError, ValueError) as e:
            raise WorkflowStateError(f"Invalid currentStep in snapshot: {data['currentStep']!r}") from e

        return cls(
            current_step=current_step,
            variables=[list(pair) for pair in variables],
            step_results=list(data.get("stepResults") or []),
            logs=list(data.get("logs") or []),
            branch_path=[list(entry) for entry in data.get("branchPath") or []],
            version=int(data.get("version", 0)),
        )
