# File: modelschema/builder.py
"""
ModelSchema - Schema Fluent Builder
====================================
Copy-on-write builder over one validation document.  Every operation
returns a new ``SchemaBuilder`` wrapping a deep copy with the change
applied; the receiver is never modified, so holders of different builder
instances never observe each other's edits.

Usage::

    login = SchemaBuilder(user_schema).pick("email", "password")
    patch = SchemaBuilder(user_schema).omit("id").not_required("name")
    payload = login.to_dict()
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Callable, Dict, List, Mapping, Tuple

from modelschema.errors import EmptyArgs, UndefinedProperty

logger: logging.Logger = logging.getLogger("modelschema.builder")

_UNSET: Any = object()


def _to_names(args: Tuple[Any, ...]) -> List[str]:
    if len(args) == 1 and isinstance(args[0], (list, tuple)):
        return list(args[0])
    return list(args)


def _require_names(args: Tuple[Any, ...], method: str) -> List[str]:
    if not args:
        raise EmptyArgs(method)
    return _to_names(args)


def _setter(key: str, default: Any = _UNSET) -> Callable[..., "SchemaBuilder"]:
    def method(self: "SchemaBuilder", value: Any = default) -> "SchemaBuilder":
        if value is _UNSET:
            raise EmptyArgs(key)
        return self.set(key, value)

    method.__name__ = key
    method.__doc__ = f"Set ``{key}``."
    return method


class SchemaBuilder:
    """Immutable-by-convention wrapper around a JSON-Schema document."""

    __slots__ = ("_schema",)

    def __init__(self, schema: Mapping[str, Any]) -> None:
        self._schema: Dict[str, Any] = copy.deepcopy(dict(schema))

    def _derive(self) -> "SchemaBuilder":
        return SchemaBuilder(self._schema)

    # -- Generic ------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Return an independent copy of the wrapped document."""
        return copy.deepcopy(self._schema)

    def set(self, key: str, value: Any) -> "SchemaBuilder":
        derived: SchemaBuilder = self._derive()
        derived._schema[key] = copy.deepcopy(value)
        return derived

    def get(self, key: str, default: Any = None) -> Any:
        return copy.deepcopy(self._schema.get(key, default))

    def not_(self, value: Any) -> "SchemaBuilder":
        return self.set("not", value)

    def id(self, value: str) -> "SchemaBuilder":
        return self.set("$id", value)

    def ref(self, value: str) -> "SchemaBuilder":
        return self.set("$ref", value)

    # -- Object: property selection -----------------------------------------

    @property
    def _properties(self) -> Dict[str, Any]:
        return self._schema.get("properties") or {}

    def prop(self, name: str) -> "SchemaBuilder":
        """Builder over one property's sub-schema."""
        if not name:
            raise EmptyArgs("prop")
        if name not in self._properties:
            raise UndefinedProperty(name)
        return SchemaBuilder(self._properties[name])

    def props(self, *names: Any) -> "SchemaBuilder":
        """New object schema holding only ``names``, all required."""
        selected: List[str] = _require_names(names, "props")
        properties: Dict[str, Any] = {}
        for name in selected:
            if name not in self._properties:
                raise UndefinedProperty(name)
            properties[name] = self._properties[name]
        return SchemaBuilder(
            {
                "type": "object",
                "additionalProperties": False,
                "required": list(selected),
                "properties": properties,
            }
        )

    def pick(self, *names: Any) -> "SchemaBuilder":
        return self.props(_require_names(names, "pick"))

    def add(self, properties: Mapping[str, Any]) -> "SchemaBuilder":
        """Shallow-merge ``properties`` into ``properties`` (values copied)."""
        derived: SchemaBuilder = self._derive()
        derived._schema.setdefault("properties", {}).update(copy.deepcopy(dict(properties)))
        return derived

    merge = add
    assign = add
    extend = add

    def remove(self, *names: Any) -> "SchemaBuilder":
        """Delete ``names`` from ``properties`` and from ``required``."""
        dropped: List[str] = _require_names(names, "remove")
        derived: SchemaBuilder = self._derive()
        schema: Dict[str, Any] = derived._schema
        if "required" in schema:
            schema["required"] = [n for n in schema["required"] if n not in dropped]
        properties: Dict[str, Any] = schema.get("properties", {})
        for name in dropped:
            properties.pop(name, None)
        return derived

    def omit(self, *names: Any) -> "SchemaBuilder":
        return self.remove(_require_names(names, "omit"))

    # -- Object: required list ----------------------------------------------

    def required(self, *names: Any) -> "SchemaBuilder":
        """
        Add names to ``required``.

        A single list argument replaces ``required`` verbatim and is not
        checked against ``properties``.
        """
        if not names:
            raise EmptyArgs("required")
        derived: SchemaBuilder = self._derive()
        schema: Dict[str, Any] = derived._schema
        if len(names) == 1 and isinstance(names[0], (list, tuple)):
            schema["required"] = list(names[0])
            return derived

        for name in names:
            if name not in self._properties:
                raise UndefinedProperty(name)
        current: List[str] = schema.setdefault("required", [])
        for name in names:
            if name not in current:
                current.append(name)
        return derived

    def not_required(self, *names: Any) -> "SchemaBuilder":
        dropped: List[str] = _require_names(names, "not_required")
        for name in dropped:
            if name not in self._properties:
                raise UndefinedProperty(name)
        derived: SchemaBuilder = self._derive()
        derived._schema["required"] = [
            n for n in derived._schema.get("required", []) if n not in dropped
        ]
        return derived

    def optional(self, *names: Any) -> "SchemaBuilder":
        return self.not_required(_require_names(names, "optional"))

    # -- Object: keywords ----------------------------------------------------

    additional_properties = _setter("additionalProperties", True)
    dependencies = _setter("dependencies")
    dependent_required = _setter("dependentRequired")
    dependent_schemas = _setter("dependentSchemas")
    max_properties = _setter("maxProperties")
    min_properties = _setter("minProperties")
    pattern_properties = _setter("patternProperties")
    property_names = _setter("propertyNames")
    unevaluated_properties = _setter("unevaluatedProperties", True)

    # -- String --------------------------------------------------------------

    min_length = _setter("minLength")
    max_length = _setter("maxLength")
    pattern = _setter("pattern")
    format = _setter("format")

    # -- Number --------------------------------------------------------------

    minimum = _setter("minimum")
    maximum = _setter("maximum")
    exclusive_minimum = _setter("exclusiveMinimum")
    exclusive_maximum = _setter("exclusiveMaximum")
    multiple_of = _setter("multipleOf")

    # -- Array ---------------------------------------------------------------

    items = _setter("items")
    min_items = _setter("minItems")
    max_items = _setter("maxItems")
    unique_items = _setter("uniqueItems", True)
    additional_items = _setter("additionalItems", True)
    contains = _setter("contains")
    min_contains = _setter("minContains")
    max_contains = _setter("maxContains")
    unevaluated_items = _setter("unevaluatedItems", True)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SchemaBuilder):
            return NotImplemented
        return self._schema == other._schema

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        keys: List[str] = sorted(self._properties)
        return f"<SchemaBuilder type={self._schema.get('type')!r} properties={keys}>"
