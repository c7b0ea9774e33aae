"""Template grammar, value resolution and interpolation for workflow steps.

Grammar::

    template  := (text | token)*
    token     := "{{" path "}}"
    path      := root ("." segment)*
    root      := "input" | "logs" | variable-name

A token's inner text may not contain "}". Anything that does not form a valid
token is kept as literal text. A string that is exactly one token resolves to
the referenced value itself (type preserved); any other string is rebuilt with
each token replaced by its stringified value, unresolved tokens left verbatim.
"""

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .models import WorkflowError

INPUT_ROOT = "input"
LOGS_ROOT = "logs"
RESERVED_NAMES = frozenset({INPUT_ROOT, LOGS_ROOT})

_SEGMENT_RE = re.compile(r"^[^\s.{}]+$")


class TemplateSyntaxError(WorkflowError):
    """Raised when a path expression does not follow the token grammar."""

    pass


class PathRoot(Enum):
    """What a path starts from."""

    INPUT = "input"
    LOGS = "logs"
    VARIABLE = "variable"


class _Missing:
    """Marker for a path that does not resolve to anything."""

    def __repr__(self):
        return "MISSING"

    def __bool__(self):
        return False


MISSING = _Missing()


@dataclass(frozen=True)
class TemplatePath:
    """A parsed dotted path such as ``input.title`` or ``result.items.0``."""

    root: PathRoot
    name: str
    segments: tuple[str, ...] = ()

    @classmethod
    def parse(cls, expression: str) -> "TemplatePath":
        """Parse a dotted path expression.

        Raises:
            TemplateSyntaxError: If the expression is empty or has an empty segment
        """
        text = expression.strip()
        if not text:
            raise TemplateSyntaxError("Empty template path")

        parts = [part.strip() for part in text.split(".")]
        for part in parts:
            if not _SEGMENT_RE.match(part):
                raise TemplateSyntaxError(f"Invalid template path '{expression}'")

        head, rest = parts[0], tuple(parts[1:])
        if head == INPUT_ROOT:
            return cls(root=PathRoot.INPUT, name=head, segments=rest)
        if head == LOGS_ROOT:
            return cls(root=PathRoot.LOGS, name=head, segments=rest)
        return cls(root=PathRoot.VARIABLE, name=head, segments=rest)

    @property
    def is_input(self) -> bool:
        return self.root is PathRoot.INPUT

    def __str__(self):
        return ".".join((self.name, *self.segments))


class SegmentKind(Enum):
    TEXT = "text"
    TOKEN = "token"


@dataclass(frozen=True)
class TemplateSegment:
    """A literal text run or a ``{{path}}`` token within a template string."""

    kind: SegmentKind
    raw: str
    path: TemplatePath | None = None


@dataclass
class TemplateLexer:
    """Splits a string into text and token segments."""

    text: str
    position: int = 0
    segments: list[TemplateSegment] = field(default_factory=list)

    def tokenize(self) -> list[TemplateSegment]:
        """Tokenize the entire template."""
        self.segments = []
        self.position = 0
        pending_text = ""

        while self.position < len(self.text):
            start = self.text.find("{{", self.position)
            if start < 0:
                pending_text += self.text[self.position:]
                break

            end = self.text.find("}}", start + 2)
            if end < 0:
                pending_text += self.text[self.position:]
                break

            inner = self.text[start + 2:end]
            path = self._parse_inner(inner)
            if path is None:
                # Not a token; keep the opening brace and rescan after it
                pending_text += self.text[self.position:start + 1]
                self.position = start + 1
                continue

            pending_text += self.text[self.position:start]
            if pending_text:
                self.segments.append(TemplateSegment(SegmentKind.TEXT, pending_text))
                pending_text = ""
            self.segments.append(TemplateSegment(SegmentKind.TOKEN, self.text[start:end + 2], path))
            self.position = end + 2

        if pending_text:
            self.segments.append(TemplateSegment(SegmentKind.TEXT, pending_text))
        return self.segments

    @staticmethod
    def _parse_inner(inner: str) -> TemplatePath | None:
        if "}" in inner:
            return None
        try:
            return TemplatePath.parse(inner)
        except TemplateSyntaxError:
            return None


def parse_template(text: str) -> list[TemplateSegment]:
    """Tokenize a template string into segments."""
    return TemplateLexer(text).tokenize()


def find_first_token(text: str) -> TemplateSegment | None:
    """Return the first ``{{path}}`` token in a string, if any."""
    for segment in parse_template(text):
        if segment.kind is SegmentKind.TOKEN:
            return segment
    return None


def whole_token(text: str) -> TemplatePath | None:
    """Return the path if the string is exactly one token and nothing else."""
    segments = parse_template(text)
    if len(segments) == 1 and segments[0].kind is SegmentKind.TOKEN:
        return segments[0].path
    return None


class ValueResolver:
    """Resolves template paths against an execution scope.

    The scope is any object exposing ``variables``, ``inputs`` and ``logs``.
    Resolution never mutates the scope.
    """

    @staticmethod
    def lookup(path: TemplatePath | str, scope: Any) -> Any:
        """Resolve a path, returning ``MISSING`` when it does not exist."""
        if isinstance(path, str):
            path = TemplatePath.parse(path)

        if path.root is PathRoot.INPUT:
            current = scope.inputs
        elif path.root is PathRoot.LOGS:
            current = scope.logs
        else:
            if path.name not in scope.variables:
                return MISSING
            current = scope.variables[path.name]

        for segment in path.segments:
            current = ValueResolver._step_into(current, segment)
            if current is MISSING:
                break
        return current

    @staticmethod
    def resolve(path: TemplatePath | str, scope: Any) -> Any:
        """Resolve a path, returning None when it does not exist."""
        value = ValueResolver.lookup(path, scope)
        return None if value is MISSING else value

    @staticmethod
    def _step_into(current: Any, segment: str) -> Any:
        if isinstance(current, dict):
            return current.get(segment, MISSING)
        if isinstance(current, list | tuple) and segment.isdigit():
            index = int(segment)
            return current[index] if index < len(current) else MISSING
        return MISSING


def stringify(value: Any) -> str:
    """Render a resolved value for partial substitution."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, dict | list | tuple):
        return json.dumps(value, default=str)
    return str(value)


class Interpolator:
    """Substitutes ``{{path}}`` tokens in strings and nested structures."""

    def __init__(self, resolver: ValueResolver | None = None):
        self.resolver = resolver or ValueResolver()

    def interpolate(self, value: Any, scope: Any) -> Any:
        """Interpolate any value.

        Lists map element-wise, dicts map value-wise, strings are substituted,
        other scalars pass through unchanged.
        """
        if isinstance(value, str):
            path = whole_token(value)
            if path is not None:
                return self.resolver.resolve(path, scope)
            return self.interpolate_string(value, scope)
        if isinstance(value, list | tuple):
            return [self.interpolate(item, scope) for item in value]
        if isinstance(value, dict):
            return {key: self.interpolate(item, scope) for key, item in value.items()}
        return value

    def interpolate_string(self, text: str, scope: Any) -> str:
        """Replace every token in a string with its stringified value."""
        parts = []
        for segment in parse_template(text):
            if segment.kind is SegmentKind.TEXT:
                parts.append(segment.raw)
                continue
            value = self.resolver.lookup(segment.path, scope)
            parts.append(segment.raw if value is MISSING else stringify(value))
        return "".join(parts)
