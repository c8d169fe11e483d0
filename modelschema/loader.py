# File: modelschema/loader.py
"""
ModelSchema - Structured Schema Input
======================================
Loads entity definitions from JSON or YAML files and turns them into
``SchemaNode``s.

File layout::

    entities:
      - title: User
        description: Registered users
        tableName: users
        required: [id, email]
        properties:
          id: {$extends: id, primaryKey: true}
          email: email
          nickname: {type: string, maxLength: 32, allowNull: true}
          score: {type: integer, dataType: {path: INTEGER, UNSIGNED: true}}

A single entity may also be given at the top level.  A property written
as a string names a reusable fragment (built-in or from
``CompilerConfig.extra_schemas``); a mapping may name its base with
``$extends``.  ``dataType`` and ``defaultValue`` accept the descriptor
wire form ``{type: DataType, path: ..., args: [...], UNSIGNED: true}``.
"""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from pydantic import ValidationError as ModelValidationError

from modelschema.datatypes import TypedFragment
from modelschema.models import SchemaNode

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelschema.loader")

EXTENDS_KEY: str = "$extends"

BUILTIN_SCHEMAS: Dict[str, Dict[str, Any]] = {
    "string": {"type": "string"},
    "number": {"type": "number"},
    "integer": {"type": "integer"},
    "boolean": {"type": "boolean"},
    "object": {"type": "object"},
    "array": {"type": "array"},
    "null": {"type": "null"},
    "id": {"type": "integer", "minimum": 1},
    "uuid": {"type": "string", "format": "uuid"},
    "email": {"type": "string", "format": "email"},
    "positive": {"type": "number", "minimum": 0},
    "negative": {"type": "number", "maximum": 0},
    "DATE": {"type": "string", "dataType": "DATE"},
}


# ---------------------------------------------------------------------------
# File loading
# ---------------------------------------------------------------------------


def _load_json_file(path: Path) -> Dict[str, Any]:
    """Load and parse a JSON file. Raises ValueError on parse errors."""
    try:
        data: Any = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object at top level, got {type(data).__name__}.")
    return data


def _load_yaml_file(path: Path) -> Dict[str, Any]:
    """Load and parse a YAML file. Raises ValueError on parse errors."""
    try:
        data: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Expected a YAML mapping at top level, got {type(data).__name__}.")
    return data


def load_schema_file(path: Path) -> Dict[str, Any]:
    """
    Load a schema definition file (JSON or YAML), dispatching on the
    extension.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the file can't be parsed.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Schema file not found: {path}")
    if not path.is_file():
        raise ValueError(f"Schema path is not a file: {path}")

    suffix: str = path.suffix.lower()
    logger.info("Loading schema file %s", path)
    if suffix in (".yaml", ".yml"):
        return _load_yaml_file(path)
    if suffix == ".json":
        return _load_json_file(path)

    logger.info("Unknown extension '%s' - trying JSON then YAML.", suffix)
    try:
        return _load_json_file(path)
    except ValueError:
        return _load_yaml_file(path)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def resolve_property(
    value: Any,
    schemas: Mapping[str, Mapping[str, Any]],
    _seen: Optional[List[str]] = None,
) -> Any:
    """Expand named references into a plain PropertyNode mapping."""
    seen: List[str] = list(_seen or [])

    if isinstance(value, str):
        return _named(value, schemas, seen)

    if isinstance(value, Mapping) and EXTENDS_KEY in value:
        base: Dict[str, Any] = _named(value[EXTENDS_KEY], schemas, seen)
        overrides: Dict[str, Any] = {k: copy.deepcopy(v) for k, v in value.items() if k != EXTENDS_KEY}
        base.update(overrides)
        return base

    if isinstance(value, Mapping):
        return copy.deepcopy(dict(value))
    return value


def _named(name: Any, schemas: Mapping[str, Mapping[str, Any]], seen: List[str]) -> Dict[str, Any]:
    if not isinstance(name, str) or name not in schemas:
        raise ValueError(f"Unknown schema reference {name!r}")
    if name in seen:
        raise ValueError(f"Circular schema reference: {' -> '.join(seen + [name])}")
    return resolve_property(schemas[name], schemas, seen + [name])


def parse_schema_node(
    raw: Mapping[str, Any],
    extra_schemas: Optional[Mapping[str, Mapping[str, Any]]] = None,
) -> SchemaNode:
    """
    Parse one entity mapping into a ``SchemaNode``.

    Raises:
        ValueError: If the entity is malformed or references an unknown
            schema.
    """
    schemas: Dict[str, Mapping[str, Any]] = {**BUILTIN_SCHEMAS, **dict(extra_schemas or {})}
    data: Dict[str, Any] = dict(raw)
    properties: Any = data.get("properties", {})
    if not isinstance(properties, Mapping):
        raise ValueError(f"'properties' must be a mapping, got {type(properties).__name__}.")

    data["properties"] = {
        name: TypedFragment.from_property(resolve_property(value, schemas))
        for name, value in properties.items()
    }
    try:
        return SchemaNode.model_validate(data)
    except ModelValidationError as exc:
        raise ValueError(f"Invalid entity definition: {exc}") from exc


def parse_schema_nodes(
    raw: Mapping[str, Any],
    extra_schemas: Optional[Mapping[str, Mapping[str, Any]]] = None,
) -> List[SchemaNode]:
    """Parse a loaded file: ``entities: [...]`` or a single entity."""
    if "entities" in raw:
        entities: Any = raw["entities"]
        if not isinstance(entities, list):
            raise ValueError("'entities' must be a list of entity mappings.")
        schemas: Dict[str, Mapping[str, Any]] = dict(raw.get("schemas") or {})
        schemas.update(extra_schemas or {})
        return [parse_schema_node(entity, schemas) for entity in entities]
    return [parse_schema_node(raw, extra_schemas)]
