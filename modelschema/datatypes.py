# File: modelschema/datatypes.py
"""
ModelSchema - Type Descriptor Algebra
======================================
Composable constructors for native storage types.

A constructor produces a ``TypedFragment``: the validation fragment for
the value together with a ``TypeDescriptor`` naming the native type::

    STRING(10)            -> {"type": "string"}  + STRING(10)
    INTEGER.UNSIGNED()    -> {"type": "integer"} + INTEGER.UNSIGNED
    ARRAY(INTEGER(5))     -> {"type": "array"}   + ARRAY(<integer fragment>)
    RANGE(INTEGER)        -> {"type": "array"}   + RANGE(<integer fragment>)

``ARRAY`` and ``RANGE`` compile each argument into a fragment first, so
their descriptors carry resolved fragments rather than raw descriptors.
``evaluate_descriptor`` turns a descriptor into the concrete native type.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from modelschema.errors import DataTypeModifierError, InvalidDataType
from modelschema.models import COLUMN_DIRECTIVES, DATA_TYPE_KEY
from modelschema.namespace import NativeTypeNamespace

logger: logging.Logger = logging.getLogger("modelschema.datatypes")

DESCRIPTOR_KIND: str = "DataType"

# Applied in this order; chained modifier types are not commutative.
MODIFIERS: Tuple[str, ...] = ("UNSIGNED", "ZEROFILL", "BINARY")


# ---------------------------------------------------------------------------
# Descriptor
# ---------------------------------------------------------------------------


@dataclass
class TypeDescriptor:
    """
    A native type expression: constructor path, call arguments, modifiers.

    ``args is None`` means the binding is used as-is; a list (even an
    empty one) means the binding is called with the evaluated arguments.
    """

    path: str
    args: Optional[List[Any]] = None
    modifiers: Dict[str, bool] = field(default_factory=dict)

    def set_modifier(self, name: str, state: bool = True) -> None:
        if name not in MODIFIERS:
            raise InvalidDataType(f"Unknown data type modifier {name!r}")
        self.modifiers[name] = bool(state)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": DESCRIPTOR_KIND, "path": self.path}
        if self.args is not None:
            data["args"] = [_arg_to_wire(a) for a in self.args]
        for name in MODIFIERS:
            if self.modifiers.get(name):
                data[name] = True
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TypeDescriptor":
        """Build a descriptor from its wire form."""
        path: Any = data.get("path")
        if not isinstance(path, str) or not path:
            raise InvalidDataType(f"Data type descriptor without a path: {dict(data)!r}")
        raw_args: Any = data.get("args")
        args: Optional[List[Any]] = None
        if raw_args is not None:
            if not isinstance(raw_args, list):
                raise InvalidDataType(f"Descriptor args must be a list, got {raw_args!r}")
            args = [_arg_from_wire(a) for a in raw_args]
        modifiers: Dict[str, bool] = {m: bool(data[m]) for m in MODIFIERS if m in data}
        return cls(path=path, args=args, modifiers=modifiers)

    @staticmethod
    def is_wire_form(value: Any) -> bool:
        return (
            isinstance(value, Mapping)
            and value.get("type") == DESCRIPTOR_KIND
            and isinstance(value.get("path"), str)
        )

    def __repr__(self) -> str:
        text: str = self.path
        if self.args is not None:
            text += "(" + ", ".join(repr(a) for a in self.args) + ")"
        for name in MODIFIERS:
            if self.modifiers.get(name):
                text += f".{name}"
        return f"<TypeDescriptor {text}>"


def _arg_to_wire(arg: Any) -> Any:
    if isinstance(arg, TypeDescriptor):
        return arg.to_dict()
    if isinstance(arg, TypedFragment):
        return arg.to_property()
    return copy.deepcopy(arg)


def _arg_from_wire(arg: Any) -> Any:
    if TypeDescriptor.is_wire_form(arg):
        return TypeDescriptor.from_dict(arg)
    if isinstance(arg, Mapping) and DATA_TYPE_KEY in arg:
        return TypedFragment.from_property(arg)
    return copy.deepcopy(arg)


# ---------------------------------------------------------------------------
# Typed fragment
# ---------------------------------------------------------------------------


DataTypeRef = Union[TypeDescriptor, str, None]


@dataclass
class TypedFragment:
    """
    A property in normalised form: validation fragment, declared storage
    type, and storage directives kept side by side.
    """

    schema: Dict[str, Any] = field(default_factory=dict)
    data_type: Any = None
    directives: Dict[str, Any] = field(default_factory=dict)

    # -- Modifiers (mutate the attached descriptor in place) ----------------

    def UNSIGNED(self, state: bool = True) -> "TypedFragment":
        return self._modify("UNSIGNED", state)

    def ZEROFILL(self, state: bool = True) -> "TypedFragment":
        return self._modify("ZEROFILL", state)

    def BINARY(self, state: bool = True) -> "TypedFragment":
        return self._modify("BINARY", state)

    def _modify(self, name: str, state: bool) -> "TypedFragment":
        if isinstance(self.data_type, str):
            self.data_type = TypeDescriptor(self.data_type)
        if not isinstance(self.data_type, TypeDescriptor):
            raise DataTypeModifierError(f"Method {name!r}: no data type declared on {self.schema!r}")
        self.data_type.set_modifier(name, state)
        return self

    # -- Copying builders ---------------------------------------------------

    def constrain(self, **keywords: Any) -> "TypedFragment":
        """Return a copy with validation keywords set."""
        clone: TypedFragment = self.copy()
        clone.schema.update(copy.deepcopy(keywords))
        return clone

    def column(self, **directives: Any) -> "TypedFragment":
        """Return a copy with storage directives set."""
        unknown: List[str] = sorted(set(directives) - COLUMN_DIRECTIVES)
        if unknown:
            raise InvalidDataType(f"Unknown column directives: {unknown}")
        clone: TypedFragment = self.copy()
        clone.directives.update(directives)
        return clone

    def allow_null(self, state: bool = True) -> "TypedFragment":
        return self.column(allowNull=state)

    def copy(self) -> "TypedFragment":
        return copy.deepcopy(self)

    # -- Conversion ---------------------------------------------------------

    def to_property(self) -> Dict[str, Any]:
        """Flatten into the single-mapping PropertyNode form."""
        data: Dict[str, Any] = copy.deepcopy(self.schema)
        data.update(self.directives)
        if isinstance(self.data_type, TypeDescriptor):
            data[DATA_TYPE_KEY] = self.data_type.to_dict()
        elif self.data_type is not None:
            data[DATA_TYPE_KEY] = self.data_type
        return data

    @classmethod
    def from_property(cls, value: Any) -> "TypedFragment":
        """
        Split a PropertyNode into its three parts.

        Accepts a ``TypedFragment`` (copied), a bare ``DataTypeConstructor``,
        or a mapping mixing validation keys, storage directives and an
        optional ``dataType`` key.
        """
        if isinstance(value, TypedFragment):
            return value.copy()
        if isinstance(value, DataTypeConstructor):
            return value.fragment()
        if not isinstance(value, Mapping):
            raise InvalidDataType(f"Invalid property node: {value!r}")
        schema: Dict[str, Any] = {}
        directives: Dict[str, Any] = {}
        data_type: Any = None
        for key, item in value.items():
            if key == DATA_TYPE_KEY:
                data_type = _data_type_from_wire(item)
            elif key in COLUMN_DIRECTIVES:
                directives[key] = copy.deepcopy(item) if key != "defaultValue" else _default_from_wire(item)
            else:
                schema[key] = copy.deepcopy(item)
        return cls(schema=schema, data_type=data_type, directives=directives)


def _data_type_from_wire(value: Any) -> Any:
    if isinstance(value, Mapping) and isinstance(value.get("path"), str):
        return TypeDescriptor.from_dict(value)
    if isinstance(value, DataTypeConstructor):
        return value.fragment().data_type
    if isinstance(value, TypedFragment):
        return copy.deepcopy(value.data_type)
    return value


def _default_from_wire(value: Any) -> Any:
    if TypeDescriptor.is_wire_form(value):
        return TypeDescriptor.from_dict(value)
    return copy.deepcopy(value)


# ---------------------------------------------------------------------------
# Constructors
# ---------------------------------------------------------------------------


class DataTypeConstructor:
    """
    A scalar type constructor such as ``STRING`` or ``INTEGER``.

    Calling it forwards literal arguments to the native constructor
    (``STRING(10)``); using it bare keeps the native binding uncalled.
    """

    __slots__ = ("name", "json_type")

    def __init__(self, name: str, json_type: str) -> None:
        self.name: str = name
        self.json_type: str = json_type

    def __call__(self, *args: Any) -> TypedFragment:
        return TypedFragment(
            schema={"type": self.json_type},
            data_type=TypeDescriptor(self.name, [copy.deepcopy(a) for a in args]),
        )

    def fragment(self) -> TypedFragment:
        return TypedFragment(schema={"type": self.json_type}, data_type=TypeDescriptor(self.name))

    def UNSIGNED(self, state: bool = True) -> TypedFragment:
        return self.fragment().UNSIGNED(state)

    def ZEROFILL(self, state: bool = True) -> TypedFragment:
        return self.fragment().ZEROFILL(state)

    def BINARY(self, state: bool = True) -> TypedFragment:
        return self.fragment().BINARY(state)

    def __repr__(self) -> str:
        return f"<DataTypeConstructor {self.name} ({self.json_type})>"


SCALAR_TYPES: Dict[str, Tuple[str, ...]] = {
    "string": ("STRING", "CHAR", "TEXT", "DATE", "BLOB"),
    "integer": ("INTEGER", "BIGINT", "SMALLINT"),
    "number": ("FLOAT", "REAL", "DOUBLE", "DECIMAL"),
}

CONSTRUCTORS: Dict[str, DataTypeConstructor] = {
    name: DataTypeConstructor(name, json_type)
    for json_type, names in SCALAR_TYPES.items()
    for name in names
}

STRING: DataTypeConstructor = CONSTRUCTORS["STRING"]
CHAR: DataTypeConstructor = CONSTRUCTORS["CHAR"]
TEXT: DataTypeConstructor = CONSTRUCTORS["TEXT"]
DATE: DataTypeConstructor = CONSTRUCTORS["DATE"]
BLOB: DataTypeConstructor = CONSTRUCTORS["BLOB"]
INTEGER: DataTypeConstructor = CONSTRUCTORS["INTEGER"]
BIGINT: DataTypeConstructor = CONSTRUCTORS["BIGINT"]
SMALLINT: DataTypeConstructor = CONSTRUCTORS["SMALLINT"]
FLOAT: DataTypeConstructor = CONSTRUCTORS["FLOAT"]
REAL: DataTypeConstructor = CONSTRUCTORS["REAL"]
DOUBLE: DataTypeConstructor = CONSTRUCTORS["DOUBLE"]
DECIMAL: DataTypeConstructor = CONSTRUCTORS["DECIMAL"]


def compile_argument(arg: Any) -> TypedFragment:
    """Compile one ``ARRAY``/``RANGE`` argument into a typed fragment."""
    if isinstance(arg, TypedFragment):
        return arg.copy()
    if isinstance(arg, DataTypeConstructor):
        return arg.fragment()
    if isinstance(arg, str):
        constructor: Optional[DataTypeConstructor] = CONSTRUCTORS.get(arg)
        if constructor is None:
            raise InvalidDataType(f"Unknown type constructor {arg!r}")
        return constructor.fragment()
    if isinstance(arg, Mapping):
        return TypedFragment.from_property(arg)
    raise InvalidDataType(f"Invalid composite type argument: {arg!r}")


def _composite(path: str, args: Tuple[Any, ...]) -> TypedFragment:
    items: List[TypedFragment] = [compile_argument(a) for a in args]
    return TypedFragment(schema={"type": "array"}, data_type=TypeDescriptor(path, items))


def ARRAY(*args: Any) -> TypedFragment:
    """Array-of type: ``ARRAY(INTEGER(5))``."""
    return _composite("ARRAY", args)


def RANGE(*args: Any) -> TypedFragment:
    """Range-of type: ``RANGE(INTEGER)``."""
    return _composite("RANGE", args)


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


FragmentResolver = Callable[[Dict[str, Any]], Any]


def evaluate_descriptor(
    value: Any,
    namespace: NativeTypeNamespace,
    resolve_fragment: Optional[FragmentResolver] = None,
) -> Any:
    """
    Evaluate a descriptor (or a descriptor-bearing fragment) into a native
    type.  Values that are neither are returned unchanged; fragments without
    a descriptor are handed to ``resolve_fragment`` when given.
    """
    if isinstance(value, TypedFragment):
        if value.data_type is None:
            if resolve_fragment is None:
                raise InvalidDataType(f"Fragment has no data type: {value.schema!r}")
            return resolve_fragment(value.schema)
        value = value.data_type
        if isinstance(value, str):
            value = TypeDescriptor(value)
    if not isinstance(value, TypeDescriptor):
        return value

    native: Any = namespace.resolve(value.path)
    if value.args is not None:
        args: List[Any] = [evaluate_descriptor(a, namespace, resolve_fragment) for a in value.args]
        native = namespace.construct(native, args)
    for name in MODIFIERS:
        if value.modifiers.get(name):
            native = namespace.apply_modifier(native, name)
    logger.debug("Evaluated %r -> %r", value, native)
    return native
