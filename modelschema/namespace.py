# File: modelschema/namespace.py
"""
ModelSchema - Native Type Namespace
====================================
The catalog of column-type constructors a descriptor path is resolved
against.  Any mapping or attribute-bearing object can serve as the root;
dotted paths walk nested mappings and attributes.

``sqlalchemy_namespace()`` builds the default catalog from SQLAlchemy
types, using the upper-case column-type vocabulary (``STRING``,
``INTEGER``, ``JSONB``, ...).
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import sqlalchemy as sa
from sqlalchemy.dialects import mysql, postgresql

from modelschema.errors import InvalidDataType, UnknownDataType

logger: logging.Logger = logging.getLogger("modelschema.namespace")

_MISSING: Any = object()


class NativeTypeNamespace:
    """
    Lookup surface over a catalog of native types.

    Args:
        bindings: Mapping or object holding the catalog.
        modifiers: Fallback table ``name -> fn(native) -> native`` used when a
            modifier is not an attribute of the native value itself.
        json_types: Paths of the unstructured JSON-capable types.
        enum_type: Path of the enumerated type.
        name: Label used in logs and reprs.
    """

    def __init__(
        self,
        bindings: Any,
        *,
        modifiers: Optional[Mapping[str, Callable[[Any], Any]]] = None,
        json_types: Sequence[str] = ("JSON", "JSONB"),
        enum_type: str = "ENUM",
        name: str = "custom",
    ) -> None:
        self._root: Any = bindings
        self._modifiers: Dict[str, Callable[[Any], Any]] = dict(modifiers or {})
        self._json_paths: Tuple[str, ...] = tuple(json_types)
        self.enum_path: str = enum_type
        self.name: str = name

    # -- Lookup -------------------------------------------------------------

    def lookup(self, path: Any, default: Any = None) -> Any:
        """Return the binding at ``path`` or ``default`` when absent."""
        if not isinstance(path, str) or not path:
            return default
        node: Any = self._root
        for part in path.split("."):
            node = _child(node, part)
            if node is _MISSING:
                return default
        return node

    def __contains__(self, path: object) -> bool:
        return self.lookup(path, _MISSING) is not _MISSING

    def resolve(self, path: str) -> Any:
        """Return the binding at ``path``; raise ``UnknownDataType`` if absent."""
        binding: Any = self.lookup(path, _MISSING)
        if binding is _MISSING:
            raise UnknownDataType(path)
        return binding

    @property
    def enum_type(self) -> Any:
        return self.resolve(self.enum_path)

    # -- Construction -------------------------------------------------------

    def construct(self, binding: Any, args: Sequence[Any]) -> Any:
        """Apply a constructor binding to evaluated arguments."""
        if not callable(binding):
            raise InvalidDataType(f"Data type {binding!r} does not accept arguments {list(args)!r}")
        try:
            return binding(*args)
        except (TypeError, ValueError) as exc:
            raise InvalidDataType(
                f"Data type {_label(binding)} rejected arguments {list(args)!r}: {exc}"
            ) from exc

    def apply_modifier(self, native: Any, name: str) -> Any:
        """Apply ``UNSIGNED``/``ZEROFILL``/``BINARY`` to a native type."""
        attr: Any = getattr(native, name, _MISSING)
        if attr is not _MISSING:
            return attr
        modifier: Optional[Callable[[Any], Any]] = self._modifiers.get(name)
        if modifier is None:
            raise InvalidDataType(f"Modifier {name} is not supported by {_label(native)}")
        return modifier(native)

    # -- Classification -----------------------------------------------------

    def is_json_type(self, native: Any, extra: Iterable[Any] = ()) -> bool:
        """True when ``native`` is one of the unstructured JSON-capable types."""
        candidates: List[Any] = [self.lookup(p) for p in self._json_paths]
        candidates.extend(extra)
        return any(_same_type(native, c) for c in candidates if c is not None)

    def __repr__(self) -> str:
        return f"<NativeTypeNamespace {self.name}>"


def _child(node: Any, part: str) -> Any:
    if isinstance(node, Mapping):
        return node.get(part, _MISSING)
    return getattr(node, part, _MISSING)


def _same_type(native: Any, candidate: Any) -> bool:
    if native is candidate:
        return True
    if isinstance(candidate, type):
        if isinstance(native, type):
            return issubclass(native, candidate)
        return isinstance(native, candidate)
    return False


def _label(value: Any) -> str:
    if isinstance(value, type):
        return value.__name__
    return repr(value)


# ---------------------------------------------------------------------------
# SQLAlchemy catalog
# ---------------------------------------------------------------------------

class VARCHAR(mysql.VARCHAR):
    """MySQL VARCHAR with a 255 character default length."""

    def __init__(self, length: Optional[int] = 255, **kwargs: Any) -> None:
        super().__init__(length=length, **kwargs)


_RANGE_TYPES: Tuple[Tuple[type, Any], ...] = (
    (sa.BigInteger, postgresql.INT8RANGE),
    (sa.Integer, postgresql.INT4RANGE),
    (sa.Numeric, postgresql.NUMRANGE),
    (sa.DateTime, postgresql.TSTZRANGE),
    (sa.Date, postgresql.DATERANGE),
)


def _range_of(subtype: Any) -> Any:
    """Map an element type to the PostgreSQL range type over it."""
    cls: Any = subtype if isinstance(subtype, type) else type(subtype)
    for element, range_type in _RANGE_TYPES:
        if isinstance(cls, type) and issubclass(cls, element):
            return range_type
    raise TypeError(f"no range type for {_label(subtype)}")


def _flag_modifier(flag: str) -> Callable[[Any], Any]:
    def apply(native: Any) -> Any:
        instance: Any = native() if isinstance(native, type) else native
        try:
            return instance.adapt(type(instance), **{flag: True})
        except TypeError as exc:
            raise InvalidDataType(
                f"Modifier {flag.upper()} is not supported by {_label(native)}"
            ) from exc

    return apply


def sqlalchemy_namespace() -> NativeTypeNamespace:
    """Default catalog backed by SQLAlchemy column types."""
    bindings: Dict[str, Any] = {
        # String / binary
        "STRING": VARCHAR,
        "CHAR": mysql.CHAR,
        "TEXT": mysql.TEXT,
        "BLOB": sa.LargeBinary,
        # Numeric
        "INTEGER": mysql.INTEGER,
        "BIGINT": mysql.BIGINT,
        "SMALLINT": mysql.SMALLINT,
        "TINYINT": mysql.TINYINT,
        "FLOAT": mysql.FLOAT,
        "REAL": mysql.REAL,
        "DOUBLE": mysql.DOUBLE,
        "DECIMAL": mysql.DECIMAL,
        "BOOLEAN": sa.Boolean,
        # Temporal
        "DATE": sa.DateTime,
        "DATEONLY": sa.Date,
        "TIME": sa.Time,
        # Special
        "UUID": sa.Uuid,
        "JSON": sa.JSON,
        "JSONB": postgresql.JSONB,
        "ENUM": sa.Enum,
        "ARRAY": sa.ARRAY,
        "RANGE": _range_of,
        # Default-value helpers
        "NOW": sa.func.now(),
        "UUIDV4": uuid.uuid4,
    }
    modifiers: Dict[str, Callable[[Any], Any]] = {
        "UNSIGNED": _flag_modifier("unsigned"),
        "ZEROFILL": _flag_modifier("zerofill"),
        "BINARY": _flag_modifier("binary"),
    }
    logger.debug("Built SQLAlchemy namespace with %d bindings.", len(bindings))
    return NativeTypeNamespace(bindings, modifiers=modifiers, name="sqlalchemy")
