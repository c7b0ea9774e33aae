"""Tool invocation boundary for call_tool steps."""

import inspect
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class ToolCaller(Protocol):
    """Host-supplied capability used by the interpreter to invoke named tools."""

    def call_tool(self, tool_name: str, parameters: dict[str, Any]) -> Any:
        ...


class ToolNotFoundError(LookupError):
    """Raised when a tool name is not registered."""

    pass


@dataclass
class ToolDefinition:
    """Description of a registered tool, for discovery."""

    name: str
    description: str
    parameters: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "description": self.description, "parameters": self.parameters}


class FunctionToolCaller:
    """Tool caller that dispatches to registered Python callables.

    Callables receive the interpolated parameters as keyword arguments.
    """

    def __init__(self):
        self._functions: dict[str, Callable[..., Any]] = {}
        self._definitions: dict[str, ToolDefinition] = {}
        self._lock = threading.RLock()

    def register(self, name: str, function: Callable[..., Any], description: str = "") -> ToolDefinition:
        """Register a callable under a tool name, replacing any previous one."""
        parameters = []
        for param in inspect.signature(function).parameters.values():
            if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                continue
            parameters.append({"name": param.name, "required": param.default is param.empty})

        definition = ToolDefinition(
            name=name,
            description=description or (inspect.getdoc(function) or "").split("\n")[0],
            parameters=parameters,
        )
        with self._lock:
            self._functions[name] = function
            self._definitions[name] = definition
        logger.debug(f"Registered tool function: {name}")
        return definition

    def unregister(self, name: str) -> bool:
        with self._lock:
            self._definitions.pop(name, None)
            return self._functions.pop(name, None) is not None

    def tool(self, name: str | None = None, description: str = ""):
        """Decorator form of register."""

        def decorator(function: Callable[..., Any]) -> Callable[..., Any]:
            self.register(name or function.__name__, function, description)
            return function

        return decorator

    def call_tool(self, tool_name: str, parameters: dict[str, Any]) -> Any:
        with self._lock:
            function = self._functions.get(tool_name)
        if function is None:
            raise ToolNotFoundError(f"Tool '{tool_name}' not found in registry")
        return function(**(parameters or {}))

    def list_tools(self) -> list[ToolDefinition]:
        with self._lock:
            return list(self._definitions.values())

    def has_tool(self, name: str) -> bool:
        with self._lock:
            return name in self._functions
