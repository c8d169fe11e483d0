# File: modelschema/validators.py
"""
ModelSchema - Validators
=========================
Runtime validation built on the compiled document:

- ``SchemaEngine`` adapts ``jsonschema`` to a ``compile(schema)``
  predicate with an ``errors`` side channel.
- ``Validator`` / ``ValidatorCache`` hand out lazily compiled, memoised
  validators for one property or a set of properties.
- ``validate_document`` / ``validate_artifact`` are the self-consistency
  checks the compiler runs on every assembled document.  They report into
  a ``ValidationResult`` instead of raising.

Usage::

    cache = ValidatorCache(artifact.schema)
    cache.prop_validator("id").validate(1)
    cache.props_validator("name", "age").is_valid({"name": "a", "age": 3})
"""

from __future__ import annotations

import copy
import logging
import threading
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Type

from jsonschema import Draft7Validator, FormatChecker
from jsonschema.exceptions import ValidationError as EngineError
from jsonschema.protocols import Validator as EngineValidator

from modelschema.errors import ColumnValidationError, EmptyArgs, UndefinedProperty
from modelschema.models import ErrorEntry
from modelschema.utils import escape_pointer_segment, join_path, pointer_to_path

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelschema.validators")

# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------


class ValidationError:
    """Lightweight finding descriptor (no Pydantic overhead)."""

    __slots__ = ("level", "code", "message", "context")

    def __init__(
        self,
        level: str,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.level: str = level  # "error" | "warning"
        self.code: str = code
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    @property
    def is_warning(self) -> bool:
        return self.level == "warning"

    def __repr__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    def __str__(self) -> str:
        return self.__repr__()


class ValidationResult:
    """Accumulates ``ValidationError`` instances produced by the checks."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[ValidationError] = []

    # -- Mutation -----------------------------------------------------------

    def add_error(self, code: str, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._items.append(ValidationError("error", code, message, context))

    def add_warning(self, code: str, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._items.append(ValidationError("warning", code, message, context))

    def merge(self, other: "ValidationResult") -> None:
        self._items.extend(other._items)

    # -- Query --------------------------------------------------------------

    @property
    def errors(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_error]

    @property
    def warnings(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_warning]

    @property
    def has_errors(self) -> bool:
        return any(e.is_error for e in self._items)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    def summary(self) -> str:
        return (
            f"Validation: {len(self.errors)} error(s), "
            f"{len(self.warnings)} warning(s)."
        )

    def format_report(self) -> str:
        """Human-readable multi-line report."""
        lines: List[str] = [self.summary()]
        for item in self._items:
            marker: str = "x" if item.is_error else "!"
            lines.append(f"  {marker} [{item.code}] {item.message}")
            for k, v in item.context.items():
                lines.append(f"       {k}: {v}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are NO errors (i.e. valid)."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)


# ---------------------------------------------------------------------------
# Validation engine adapter
# ---------------------------------------------------------------------------


def _pointer(parts: Iterable[Any]) -> str:
    return "".join("/" + escape_pointer_segment(p) for p in parts)


def to_error_entry(error: EngineError) -> ErrorEntry:
    return ErrorEntry(
        path=_pointer(error.absolute_path),
        message=error.message,
        keyword=str(error.validator),
        schema_path=_pointer(error.absolute_schema_path),
    )


class CompiledSchema:
    """A compiled predicate; ``errors`` holds the last call's failures."""

    __slots__ = ("_validator", "errors")

    def __init__(self, validator: EngineValidator) -> None:
        self._validator: EngineValidator = validator
        self.errors: Optional[List[ErrorEntry]] = None

    @property
    def schema(self) -> Any:
        return self._validator.schema

    def __call__(self, value: Any) -> bool:
        found: List[EngineError] = sorted(
            self._validator.iter_errors(value),
            key=lambda e: [str(p) for p in e.absolute_path],
        )
        self.errors = [to_error_entry(e) for e in found] or None
        return not found


class SchemaEngine:
    """
    ``jsonschema`` front end.

    Formats are checked with ``FormatChecker``; formats whose helper
    packages are not installed are not enforced.
    """

    def __init__(
        self,
        validator_cls: Type[EngineValidator] = Draft7Validator,
        format_checker: Optional[FormatChecker] = None,
    ) -> None:
        self._validator_cls: Type[EngineValidator] = validator_cls
        self._format_checker: FormatChecker = format_checker or FormatChecker()

    def compile(self, schema: Mapping[str, Any]) -> CompiledSchema:
        return CompiledSchema(self._validator_cls(schema, format_checker=self._format_checker))

    def check_schema(self, schema: Mapping[str, Any]) -> List[ErrorEntry]:
        """Validate ``schema`` against the engine's metaschema."""
        meta = self._validator_cls(self._validator_cls.META_SCHEMA)
        return [to_error_entry(e) for e in meta.iter_errors(schema)]


# ---------------------------------------------------------------------------
# Error formatting
# ---------------------------------------------------------------------------


def format_errors(errors: Sequence[ErrorEntry], prefix: str = "") -> str:
    """
    ``/items/0/name`` + message -> ``items[0].name <message>``, joined
    with ``"; "``.
    """
    parts: List[str] = []
    for entry in errors:
        target: str = join_path(prefix, pointer_to_path(entry.path))
        parts.append(f"{target} {entry.message}" if target else entry.message)
    return "; ".join(parts)


def create_error(errors: Optional[Sequence[ErrorEntry]], prefix: str = "") -> ColumnValidationError:
    entries: List[ErrorEntry] = list(errors or [])
    return ColumnValidationError(format_errors(entries, prefix), entries)


# ---------------------------------------------------------------------------
# Validators
# ---------------------------------------------------------------------------


class Validator:
    """Wraps one compiled predicate."""

    __slots__ = ("_compiled", "errors", "prefix")

    def __init__(self, compiled: CompiledSchema, prefix: str = "") -> None:
        self._compiled: CompiledSchema = compiled
        self.errors: Optional[List[ErrorEntry]] = None
        self.prefix: str = prefix

    @property
    def schema(self) -> Any:
        return self._compiled.schema

    def is_valid(self, value: Any) -> bool:
        result: bool = self._compiled(value)
        self.errors = self._compiled.errors
        return result

    def validate(self, value: Any) -> bool:
        if not self.is_valid(value):
            raise create_error(self.errors, self.prefix)
        return True

    def __repr__(self) -> str:
        return f"<Validator {self.prefix or '*'}>"


def _names(args: Tuple[Any, ...]) -> List[str]:
    if len(args) == 1 and isinstance(args[0], (list, tuple)):
        return list(args[0])
    return list(args)


class ValidatorCache:
    """
    Lazily compiles and memoises validators over one validation document.

    The cache keeps its own copy of the document.  Creation is serialised
    by a lock, so concurrent first calls for a key compile once.
    """

    def __init__(
        self,
        schema: Mapping[str, Any],
        engine: Optional[SchemaEngine] = None,
        owner: str = "schema",
        prefix: str = "",
    ) -> None:
        self._schema: Dict[str, Any] = copy.deepcopy(dict(schema))
        self._engine: SchemaEngine = engine or SchemaEngine()
        self._owner: str = owner
        self._prefix: str = prefix
        self._cache: Dict[Tuple[str, str], Validator] = {}
        self._lock: threading.Lock = threading.Lock()

    @property
    def properties(self) -> Dict[str, Any]:
        return self._schema.get("properties", {})

    def _fragment(self, name: str) -> Dict[str, Any]:
        if name not in self.properties:
            raise UndefinedProperty(name, self._owner)
        return self.properties[name]

    def prop_validator(self, name: str) -> Validator:
        if not name:
            raise EmptyArgs("prop_validator")
        key: Tuple[str, str] = ("prop", name)
        with self._lock:
            cached: Optional[Validator] = self._cache.get(key)
            if cached is None:
                fragment: Dict[str, Any] = self._fragment(name)
                cached = Validator(self._engine.compile(fragment), prefix=join_path(self._prefix, name))
                self._cache[key] = cached
                logger.debug("Compiled property validator '%s'.", name)
        return cached

    def props_validator(self, *names: Any) -> Validator:
        requested: List[str] = _names(names)
        if not requested:
            raise EmptyArgs("props_validator")
        ordered: List[str] = list(dict.fromkeys(requested))
        key: Tuple[str, str] = ("props", ",".join(sorted(ordered)))
        with self._lock:
            cached: Optional[Validator] = self._cache.get(key)
            if cached is None:
                schema: Dict[str, Any] = {
                    "type": "object",
                    "additionalProperties": False,
                    "required": ordered,
                    "properties": {n: self._fragment(n) for n in ordered},
                }
                cached = Validator(self._engine.compile(schema), prefix=self._prefix)
                self._cache[key] = cached
                logger.debug("Compiled properties validator %s.", ordered)
        return cached

    def validate_props(self, data: Mapping[str, Any]) -> bool:
        return self.props_validator(list(data.keys())).validate(data)

    def __contains__(self, key: object) -> bool:
        return any(k[1] == key for k in self._cache)

    def __len__(self) -> int:
        return len(self._cache)


# ---------------------------------------------------------------------------
# Self-consistency checks
# ---------------------------------------------------------------------------


def validate_document(schema: Mapping[str, Any], engine: Optional[SchemaEngine] = None) -> ValidationResult:
    """Check an assembled validation document is a legal object schema."""
    result: ValidationResult = ValidationResult()
    engine = engine or SchemaEngine()

    for entry in engine.check_schema(schema):
        result.add_error(
            "SCHEMA_METASCHEMA",
            f"{pointer_to_path(entry.path) or '<root>'}: {entry.message}",
            {"schema_path": entry.schema_path},
        )

    if schema.get("type") != "object":
        result.add_error("SCHEMA_NOT_OBJECT", f"Document type is {schema.get('type')!r}, expected 'object'.")
    if schema.get("additionalProperties") is not False:
        result.add_error("SCHEMA_OPEN_OBJECT", "Document must set additionalProperties to false.")

    properties: Any = schema.get("properties", {})
    for name in schema.get("required", []):
        if isinstance(properties, Mapping) and name not in properties:
            result.add_warning("SCHEMA_REQUIRED_UNDEFINED", f"Required name '{name}' has no property.")
    return result


def validate_artifact(
    columns: Mapping[str, Any],
    schema: Mapping[str, Any],
    engine: Optional[SchemaEngine] = None,
) -> ValidationResult:
    """Document checks plus the columns/properties correspondence."""
    result: ValidationResult = validate_document(schema, engine)
    properties: Mapping[str, Any] = schema.get("properties", {})

    for name in columns:
        if name not in properties:
            result.add_error("COLUMN_WITHOUT_PROPERTY", f"Column '{name}' has no schema property.")
    for name in properties:
        if name not in columns:
            result.add_error("PROPERTY_WITHOUT_COLUMN", f"Property '{name}' has no column.")
    return result
