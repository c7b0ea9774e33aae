"""Template property schemas consumed by create_object steps."""

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from .workflow.models import SchemaNotFoundError
from .yaml_loader import YAMLLoader

logger = logging.getLogger(__name__)

# Entity property types mapped onto JSON-Schema types
PROPERTY_TYPE_MAP: dict[str, str] = {
    "string": "string",
    "text": "string",
    "textarea": "string",
    "markdown": "string",
    "date": "string",
    "select": "string",
    "url": "string",
    "email": "string",
    "number": "number",
    "integer": "number",
    "boolean": "boolean",
    "checkbox": "boolean",
    "array": "array",
    "list": "array",
    "multi_select": "array",
    "relationship": "array",
    "object": "object",
    "json": "object",
}


def map_property_type(property_type: str | None) -> str:
    """Map a stored property type onto string/number/boolean/array/object."""
    if not property_type:
        return "string"
    return PROPERTY_TYPE_MAP.get(property_type.lower(), "string")


@dataclass(frozen=True)
class TemplateProperty:
    """A named, typed property of an entity template."""

    key: str
    type: str
    description: str = ""

    @property
    def schema_type(self) -> str:
        return map_property_type(self.type)

    def to_schema(self) -> dict[str, Any]:
        return {"key": self.key, "type": self.schema_type, "description": self.description}


@dataclass(frozen=True)
class TemplateSchema:
    """An entity template and its ordered property list."""

    template_id: str
    name: str
    properties: tuple[TemplateProperty, ...] = ()

    def get_property(self, key: str) -> TemplateProperty | None:
        return next((prop for prop in self.properties if prop.key == key), None)


class SchemaProvider(Protocol):
    """Returns the property schema of an entity template."""

    def get_template_schema(self, template_id: str | int) -> TemplateSchema:
        ...


class StaticSchemaProvider:
    """Schema provider backed by an in-memory mapping of templates."""

    def __init__(self, templates: dict[str, Any] | None = None):
        self._templates: dict[str, TemplateSchema] = {}
        self._lock = threading.RLock()
        for template_id, template_data in (templates or {}).items():
            self.add_template(template_id, template_data)

    def add_template(self, template_id: str | int, template_data: dict[str, Any]) -> TemplateSchema:
        """Register a template from ``{name, properties: [{key, type, description}]}``."""
        properties = []
        for prop in template_data.get("properties") or []:
            if not isinstance(prop, dict) or not prop.get("key"):
                logger.debug(f"Skipping property without key in template {template_id}: {prop!r}")
                continue
            properties.append(
                TemplateProperty(
                    key=str(prop["key"]),
                    type=str(prop.get("type") or "string"),
                    description=str(prop.get("description") or ""),
                )
            )

        schema = TemplateSchema(
            template_id=str(template_id),
            name=str(template_data.get("name") or template_id),
            properties=tuple(properties),
        )
        with self._lock:
            self._templates[str(template_id)] = schema
        return schema

    def get_template_schema(self, template_id: str | int) -> TemplateSchema:
        with self._lock:
            schema = self._templates.get(str(template_id))
        if schema is None:
            raise SchemaNotFoundError(f"Template not found: {template_id}")
        return schema

    def list_templates(self) -> list[TemplateSchema]:
        with self._lock:
            return list(self._templates.values())

    @classmethod
    def from_yaml(cls, file_path: str | Path, yaml_loader: YAMLLoader | None = None) -> "StaticSchemaProvider":
        """Load templates from a YAML file with a top-level ``templates`` mapping.

        A missing file yields an empty provider.
        """
        path = Path(file_path)
        if not path.exists():
            logger.info(f"No template schema file at {path}, create_object steps will fail")
            return cls()
        data = (yaml_loader or YAMLLoader()).load_yaml(path)
        return cls(data.get("templates") or {})
