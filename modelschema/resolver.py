# File: modelschema/resolver.py
"""
ModelSchema - Type Resolver
============================
Decides the native storage type of a property.

An explicit ``dataType`` wins: a plain name is looked up in the native
namespace, a ``TypeDescriptor`` is evaluated.  Otherwise the type is
inferred from the validation fragment, first match wins:

    1. ``enum`` whose values all match the declared ``type``  -> ENUM
    2. ``anyOf`` / ``allOf`` with one shared branch ``type``   -> recurse
    3. declared ``type`` through the fixed table               -> native
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from modelschema.datatypes import TypeDescriptor, TypedFragment, evaluate_descriptor
from modelschema.errors import EmptyUnion, InvalidDataType, MixedUnionType, UnknownNativeType
from modelschema.namespace import NativeTypeNamespace
from modelschema.normalizer import NormalizedProperty, is_null_branch

logger: logging.Logger = logging.getLogger("modelschema.resolver")

_JSON_CONTAINER_TYPES = frozenset({"object", "array"})

# Runtime checks for enum values against a declared JSON type.
_RUNTIME_CHECKS: Dict[str, Callable[[Any], bool]] = {
    "string": lambda v: isinstance(v, str),
    "number": lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    "integer": lambda v: isinstance(v, int) and not isinstance(v, bool),
    "boolean": lambda v: isinstance(v, bool),
    "null": lambda v: v is None,
    "object": lambda v: isinstance(v, Mapping),
    "array": lambda v: isinstance(v, list),
}


def enum_matches_type(values: Any, type_name: Any) -> bool:
    """True when every enum value's runtime type matches ``type_name``."""
    check: Optional[Callable[[Any], bool]] = (
        _RUNTIME_CHECKS.get(type_name) if isinstance(type_name, str) else None
    )
    if check is None or not isinstance(values, list):
        return False
    return all(check(v) for v in values)


class TypeResolver:
    """
    Resolves native types against one namespace.

    Args:
        namespace: The native type catalog.
        json_type: Native type used for ``object`` and ``array`` fragments.
    """

    def __init__(self, namespace: NativeTypeNamespace, json_type: Any) -> None:
        self._namespace: NativeTypeNamespace = namespace
        self._json_type: Any = json_type

    @property
    def json_type(self) -> Any:
        return self._json_type

    # -- Entry points -------------------------------------------------------

    def resolve(self, prop: NormalizedProperty) -> Any:
        """Return the native type for ``prop``; may fill ``prop.column['values']``."""
        explicit: Any = prop.data_type
        if explicit is None:
            native: Any = self.infer(prop.schema, prop.column)
        elif isinstance(explicit, str):
            native = self._namespace.lookup(explicit)
            if native is None:
                raise InvalidDataType(f"Invalid column data type: {explicit!r}")
        elif isinstance(explicit, (TypeDescriptor, TypedFragment)):
            native = self.evaluate(explicit)
        else:
            native = explicit

        if "defaultValue" in prop.column:
            prop.column["defaultValue"] = self.resolve_default(prop.column["defaultValue"])

        logger.debug("Resolved '%s' -> %r", prop.name, native)
        return native

    def evaluate(self, value: Any) -> Any:
        return evaluate_descriptor(value, self._namespace, self._resolve_fragment)

    def resolve_default(self, value: Any) -> Any:
        """Evaluate a descriptor-valued default; other defaults pass through."""
        if isinstance(value, (TypeDescriptor, TypedFragment)):
            return self.evaluate(value)
        return value

    # -- Inference ----------------------------------------------------------

    def infer(self, fragment: Mapping[str, Any], column: Dict[str, Any]) -> Any:
        """Infer a native type from a validation fragment."""
        type_name: Any = fragment.get("type")

        if "enum" in fragment and enum_matches_type(fragment["enum"], type_name):
            if "values" not in column:
                column["values"] = list(fragment["enum"])
            return self._namespace.enum_type

        for keyword in ("anyOf", "allOf"):
            if keyword in fragment:
                return self._infer_union(keyword, fragment[keyword], column)

        return self._from_type_name(type_name, fragment)

    def _infer_union(self, keyword: str, branches: Any, column: Dict[str, Any]) -> Any:
        if not isinstance(branches, list) or len(branches) < 2:
            raise EmptyUnion(f"Invalid number of items in {keyword!r}")

        meaningful: List[Mapping[str, Any]] = [b for b in branches if not is_null_branch(b)]
        if not meaningful or not isinstance(meaningful[0], Mapping) or not meaningful[0].get("type"):
            raise EmptyUnion(f"No typed branch in {keyword!r} to derive a data type from")

        first: Mapping[str, Any] = meaningful[0]
        shared: Any = first["type"]
        for branch in meaningful[1:]:
            if not isinstance(branch, Mapping) or branch.get("type") != shared:
                raise MixedUnionType(f"All items in {keyword!r} must be same type")

        return self.infer(first, column)

    def _from_type_name(self, type_name: Any, fragment: Mapping[str, Any]) -> Any:
        if not isinstance(type_name, str):
            raise UnknownNativeType(type_name)
        if type_name in _JSON_CONTAINER_TYPES:
            return self._json_type
        if type_name == "number":
            return self._namespace.resolve("INTEGER")

        native: Any = self._namespace.lookup(type_name.upper())
        if native is None:
            raise UnknownNativeType(type_name)

        if type_name == "string" and fragment.get("maxLength"):
            native = self._namespace.construct(native, [fragment["maxLength"]])
        return native

    def _resolve_fragment(self, fragment: Dict[str, Any]) -> Any:
        # Untyped ARRAY/RANGE arguments; enum values have nowhere to go here.
        return self.infer(fragment, {})
