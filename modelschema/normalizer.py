# File: modelschema/normalizer.py
"""
ModelSchema - Property Normalizer
==================================
Per-property pass that separates the validation fragment from the storage
directives, promotes ``description`` to ``comment``, wraps explicitly
nullable fragments in a null union, and derives ``allowNull``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping

from modelschema.datatypes import TypedFragment
from modelschema.namespace import NativeTypeNamespace

logger: logging.Logger = logging.getLogger("modelschema.normalizer")

NULL_BRANCH: Dict[str, Any] = {"type": "null"}


@dataclass
class NormalizedProperty:
    """One property after normalisation, before its type is resolved."""

    name: str
    schema: Dict[str, Any]
    data_type: Any = None
    column: Dict[str, Any] = field(default_factory=dict)


def is_null_branch(fragment: Any) -> bool:
    return isinstance(fragment, Mapping) and fragment.get("type") == "null"


def is_null_tolerant(fragment: Mapping[str, Any]) -> bool:
    """True for ``type: null`` or an ``anyOf`` with a null branch."""
    if is_null_branch(fragment):
        return True
    branches: Any = fragment.get("anyOf")
    return isinstance(branches, list) and any(is_null_branch(b) for b in branches)


def wrap_nullable(fragment: Dict[str, Any]) -> Dict[str, Any]:
    """Return ``{anyOf: [fragment, {type: null}]}``, value branch first."""
    return {"anyOf": [fragment, dict(NULL_BRANCH)]}


def normalize_property(name: str, value: Any, required: Iterable[str]) -> NormalizedProperty:
    """
    Normalise one PropertyNode.

    Args:
        name: Property name.
        value: Mapping, ``TypedFragment`` or bare type constructor.
        required: The entity's required property names.
    """
    fragment: TypedFragment = TypedFragment.from_property(value)
    schema: Dict[str, Any] = fragment.schema
    column: Dict[str, Any] = dict(fragment.directives)

    if schema.get("description") and not column.get("comment"):
        column["comment"] = schema["description"]

    if column.get("allowNull") and not is_null_tolerant(schema):
        schema = wrap_nullable(schema)

    if "allowNull" not in column:
        column["allowNull"] = name not in set(required) or is_null_tolerant(schema)

    logger.debug(
        "Normalised '%s': allowNull=%s, directives=%s",
        name,
        column["allowNull"],
        sorted(column),
    )
    return NormalizedProperty(name=name, schema=schema, data_type=fragment.data_type, column=column)


def apply_default_collection(
    prop: NormalizedProperty,
    native: Any,
    namespace: NativeTypeNamespace,
    json_type: Any = None,
) -> None:
    """
    Give a required free-form array column an empty-list default.

    Only JSON-capable storage qualifies; native array columns are left
    alone.
    """
    column: Dict[str, Any] = prop.column
    if "defaultValue" in column or column.get("allowNull"):
        return
    if prop.schema.get("type") != "array":
        return
    extra = () if json_type is None else (json_type,)
    if namespace.is_json_type(native, extra):
        column["defaultValue"] = []
        logger.debug("Injected empty-list default for '%s'.", prop.name)
