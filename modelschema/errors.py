# File: modelschema/errors.py
"""
ModelSchema - Error Taxonomy
=============================

Compile-time errors abort the compilation of the current entity; there is
no partial result.  Runtime errors are raised by the builder and validator
APIs.  ``ColumnValidationError`` is the only error meant for end-user data
entry flows and carries structured per-field detail.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, List, Optional

if TYPE_CHECKING:
    from modelschema.models import ErrorEntry
    from modelschema.validators import ValidationResult

__all__: List[str] = [
    "ModelSchemaError",
    "CompileError",
    "UnknownDataType",
    "InvalidDataType",
    "UnknownNativeType",
    "MixedUnionType",
    "EmptyUnion",
    "DataTypeModifierError",
    "SchemaStructureError",
    "UndefinedProperty",
    "EmptyArgs",
    "ColumnValidationError",
]


class ModelSchemaError(Exception):
    """Base class for every error raised by modelschema."""


# ---------------------------------------------------------------------------
# Compile-time
# ---------------------------------------------------------------------------


class CompileError(ModelSchemaError):
    """Schema-authoring error detected while compiling an entity."""


class UnknownDataType(CompileError):
    """A descriptor path does not resolve in the native type namespace."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Unknown data type: {path!r}")
        self.path: str = path


class InvalidDataType(CompileError):
    """A storage type reference exists but cannot be used as given."""


class UnknownNativeType(InvalidDataType):
    """A validation ``type`` has no native counterpart."""

    def __init__(self, type_name: Any) -> None:
        super().__init__(f"Invalid column validator type: {type_name!r}")
        self.type_name: Any = type_name


class MixedUnionType(CompileError):
    """Union branches do not share a single ``type``."""


class EmptyUnion(CompileError):
    """Union has no branch a storage type can be derived from."""


class DataTypeModifierError(CompileError):
    """A modifier was applied to a fragment without a type declaration."""


class SchemaStructureError(CompileError):
    """The assembled document is not itself a legal schema."""

    def __init__(self, message: str, result: Optional["ValidationResult"] = None) -> None:
        super().__init__(message)
        self.result = result


# ---------------------------------------------------------------------------
# Runtime
# ---------------------------------------------------------------------------


class UndefinedProperty(ModelSchemaError, KeyError):
    """Reference to a property the schema does not define."""

    def __init__(self, name: str, owner: str = "schema") -> None:
        message: str = f"Undefined {owner} property {name!r}"
        super().__init__(message)
        self.name: str = name
        self.message: str = message

    def __str__(self) -> str:
        return self.message


class EmptyArgs(ModelSchemaError, TypeError):
    """A variadic call that needs at least one argument got none."""

    def __init__(self, method: str) -> None:
        super().__init__(f"Method {method!r} requires at least one argument")
        self.method: str = method


class ColumnValidationError(ModelSchemaError, ValueError):
    """Data failed a compiled validator."""

    def __init__(self, message: str, errors: Optional[List["ErrorEntry"]] = None) -> None:
        super().__init__(message)
        self.message: str = message
        self.errors: List["ErrorEntry"] = list(errors or [])

    def __str__(self) -> str:
        return self.message
