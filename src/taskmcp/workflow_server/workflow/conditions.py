"""Condition evaluation for conditional workflow steps.

Supported forms::

    {{path}} == literal
    literal != {{path}}
    {{path}} == {{other}}
    {{path}}               (truthiness of the resolved value)
    text                   (no token: true unless blank)

The condition is split around its first operator. A side that is exactly one
token is resolved; any other side is parsed as a literal: a quoted string, a
number, ``true``, ``false``, ``null`` or else a bare string.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any

from .templates import ValueResolver, find_first_token, whole_token

logger = logging.getLogger(__name__)

_NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")

OPERATORS = ("==", "!=")


def parse_literal(text: str) -> Any:
    """Parse one side of a comparison into a typed value."""
    text = text.strip()

    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"'):
        return text[1:-1]

    if _NUMBER_RE.match(text):
        if any(char in text for char in ".eE"):
            return float(text)
        return int(text)

    if text == "true":
        return True
    if text == "false":
        return False
    if text == "null":
        return None

    return text


def _to_number(value: Any) -> float:
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        stripped = value.strip()
        if stripped == "":
            return 0.0
        if _NUMBER_RE.match(stripped):
            return float(stripped)
    return math.nan


def loose_equals(left: Any, right: Any) -> bool:
    """Compare two values with the engine's loose equality rule.

    - null only equals null
    - if either side is a number or boolean, both sides are compared as numbers
      (booleans count as 1/0, numeric strings are parsed, anything else never matches)
    - strings compare as strings
    - lists and objects compare structurally
    """
    if left is None or right is None:
        return left is None and right is None

    numeric_types = (bool, int, float)
    if isinstance(left, numeric_types) or isinstance(right, numeric_types):
        if isinstance(left, dict | list) or isinstance(right, dict | list):
            return False
        return _to_number(left) == _to_number(right)

    return left == right


def is_truthy(value: Any) -> bool:
    """Truthiness of a resolved value; missing values and empty containers are false."""
    return bool(value)


@dataclass
class ConditionResult:
    """Outcome of a condition evaluation, kept for step results and debugging."""

    condition_result: bool
    original_condition: str
    operator: str | None = None
    evaluated_values: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "result": self.condition_result,
            "condition": self.original_condition,
            "operator": self.operator,
            "evaluated_values": self.evaluated_values,
        }


class ConditionEvaluator:
    """Evaluates the restricted condition grammar against an execution scope."""

    def __init__(self, resolver: ValueResolver | None = None):
        self.resolver = resolver or ValueResolver()

    def evaluate(self, condition: str, scope: Any) -> bool:
        return self.evaluate_detailed(condition, scope).condition_result

    def evaluate_detailed(self, condition: str, scope: Any) -> ConditionResult:
        token = find_first_token(condition)
        if token is None:
            # Condition text itself is the value: any non-blank text is true
            return ConditionResult(condition_result=bool(condition.strip()), original_condition=condition)

        evaluated: dict[str, Any] = {}
        operator, left_text, right_text = self._split_operator(condition)
        if operator is None:
            value = self.resolver.resolve(token.path, scope)
            evaluated[str(token.path)] = value
            return ConditionResult(
                condition_result=is_truthy(value),
                original_condition=condition,
                evaluated_values=evaluated,
            )

        left_value = self._operand(left_text, scope, evaluated)
        right_value = self._operand(right_text, scope, evaluated)

        matches = loose_equals(left_value, right_value)
        result = matches if operator == "==" else not matches
        logger.debug(f"Condition {condition!r}: {left_value!r} {operator} {right_value!r} -> {result}")

        return ConditionResult(
            condition_result=result,
            original_condition=condition,
            operator=operator,
            evaluated_values=evaluated,
        )

    def _operand(self, text: str, scope: Any, evaluated: dict[str, Any]) -> Any:
        """Resolve a side that is exactly one token, otherwise parse it as a literal."""
        path = whole_token(text.strip())
        if path is None:
            return parse_literal(text)
        value = self.resolver.resolve(path, scope)
        evaluated[str(path)] = value
        return value

    @staticmethod
    def _split_operator(text: str) -> tuple[str | None, str, str]:
        """Split around the first comparison operator into (operator, left, right)."""
        positions = [(text.find(op), op) for op in OPERATORS if op in text]
        if not positions:
            return None, text, ""
        index, operator = min(positions)
        return operator, text[:index], text[index + len(operator):]
