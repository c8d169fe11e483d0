# File: modelschema/models.py
"""
ModelSchema - Core Data Models
===============================
Pydantic V2 models for the compiler's input and configuration, plus the
fixed key vocabularies that separate storage-facing directives from
validation-facing schema keywords.

    SchemaNode      parsed intermediate tree for one entity (input)
    CompilerConfig  configuration bag (native namespace, JSON type, ...)
    ErrorEntry      one failure reported by the validation engine
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from modelschema.namespace import NativeTypeNamespace, sqlalchemy_namespace

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelschema.models")

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class DatabaseDialect(str, Enum):
    """Target database dialects."""

    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    SQLITE = "sqlite"
    MSSQL = "mssql"
    ORACLE = "oracle"


# ---------------------------------------------------------------------------
# Key vocabularies
# ---------------------------------------------------------------------------

# Per-property storage directives.  ``dataType`` (the storage alias of
# ``type``) is handled separately because it needs resolution.
COLUMN_DIRECTIVES: FrozenSet[str] = frozenset(
    {
        "defaultValue",
        "unique",
        "primaryKey",
        "autoIncrement",
        "autoIncrementIdentity",
        "comment",
        "references",
        "onUpdate",
        "onDelete",
        "validate",
        "values",
        "allowNull",
        "field",
    }
)

DATA_TYPE_KEY: str = "dataType"

# Entity-level directives that become model options instead of schema keys.
MODEL_OPTIONS: FrozenSet[str] = frozenset(
    {
        "tableName",
        "freezeTableName",
        "comment",
        "schema",
        "timestamps",
        "paranoid",
        "underscored",
        "indexes",
        "uniqueKeys",
        "engine",
        "charset",
        "collate",
    }
)


# ---------------------------------------------------------------------------
# Validation engine records
# ---------------------------------------------------------------------------


class ErrorEntry(BaseModel):
    """One failure reported by the validation engine."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(default="", description="JSON pointer to the failing value.")
    message: str = Field(..., description="Engine message.")
    keyword: str = Field(default="", description="Failing schema keyword.")
    schema_path: str = Field(default="", description="JSON pointer into the schema.")

    def __repr__(self) -> str:
        return f"<ErrorEntry {self.path or '/'}: {self.message}>"


# ---------------------------------------------------------------------------
# Compiler input
# ---------------------------------------------------------------------------


class SchemaNode(BaseModel):
    """
    The parsed intermediate tree for one entity.

    Unknown top-level keys are kept in ``model_extra``: they are either
    model options (see ``MODEL_OPTIONS``) or extra schema keywords such as
    ``description`` and ``maxProperties``.  When ``required`` is omitted
    every property is required.
    """

    model_config = ConfigDict(extra="allow", arbitrary_types_allowed=True)

    title: str = Field(..., min_length=1, description="Entity name.")
    required: Optional[List[str]] = Field(
        default=None, description="Ordered required property names."
    )
    properties: Dict[str, Any] = Field(
        default_factory=dict, description="Property name -> PropertyNode."
    )

    @field_validator("required")
    @classmethod
    def _no_duplicate_required(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is not None and len(v) != len(set(v)):
            dupes: List[str] = sorted({x for x in v if v.count(x) > 1})
            raise ValueError(f"Duplicate required names: {dupes}")
        return v

    @model_validator(mode="after")
    def _warn_unknown_required(self) -> "SchemaNode":
        for name in self.required or []:
            if name not in self.properties:
                logger.warning(
                    "Entity '%s' requires '%s' but defines no such property.",
                    self.title,
                    name,
                )
        return self

    @property
    def required_names(self) -> List[str]:
        if self.required is None:
            return list(self.properties)
        return list(self.required)

    @property
    def extras(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class CompilerConfig(BaseModel):
    """Configuration bag handed to the compiler."""

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        use_enum_values=True,
        extra="forbid",
    )

    native_types: NativeTypeNamespace = Field(
        default_factory=sqlalchemy_namespace,
        description="Catalog of native column-type constructors.",
    )
    dialect: Optional[DatabaseDialect] = Field(
        default=None, description="Target dialect, selects the JSON type."
    )
    default_json_type: Optional[Any] = Field(
        default=None,
        description="Native type for object/array columns (name or value).",
    )
    extra_schemas: Dict[str, Dict[str, Any]] = Field(
        default_factory=dict,
        description="Named reusable fragments for the file loader.",
    )
    check_document: bool = Field(
        default=True,
        description="Run the self-consistency pass on assembled documents.",
    )

    def resolve_json_type(self) -> Any:
        """Return the native JSON-capable type for this configuration."""
        value: Any = self.default_json_type
        if value is None:
            value = "JSONB" if self.dialect == DatabaseDialect.POSTGRESQL.value else "JSON"
        if isinstance(value, str):
            return self.native_types.resolve(value)
        return value
