# File: modelschema/__init__.py
"""
ModelSchema - Schema-to-Storage Compiler
==========================================

Compiles declarative entity schemas into two artifacts kept in 1:1
correspondence by property name: a strict JSON-Schema validation document
and a map of SQLAlchemy column specs.  The validation document also backs
a copy-on-write schema builder and cached per-property validators.

Architecture overview::

    loader.py ──▶ SchemaNode ──▶ normalizer.py ──▶ resolver.py ──▶ compiler.py
                                                      │                │
                                               datatypes.py      CompiledArtifact
                                               namespace.py      ├─ builder.py
                                                                 ├─ validators.py
                                                                 └─ orm.py

Usage::

    from modelschema import INTEGER, STRING, compile_schema

    artifact = compile_schema({
        "title": "User",
        "required": ["id"],
        "properties": {
            "id": INTEGER.UNSIGNED().column(primaryKey=True),
            "name": STRING(64),
        },
    })
    artifact.prop_validator("id").validate(1)

    # From the command line
    python -m modelschema --schema schema.yaml -v
"""

from __future__ import annotations

__version__: str = "1.0.0"

from modelschema.builder import SchemaBuilder
from modelschema.compiler import (
    CompiledArtifact,
    CompileReport,
    SchemaCompiler,
    compile_schema,
)
from modelschema.datatypes import (
    ARRAY,
    BIGINT,
    BLOB,
    CHAR,
    DATE,
    DECIMAL,
    DOUBLE,
    FLOAT,
    INTEGER,
    RANGE,
    REAL,
    SMALLINT,
    STRING,
    TEXT,
    DataTypeConstructor,
    TypeDescriptor,
    TypedFragment,
    evaluate_descriptor,
)
from modelschema.errors import (
    ColumnValidationError,
    CompileError,
    DataTypeModifierError,
    EmptyArgs,
    EmptyUnion,
    InvalidDataType,
    MixedUnionType,
    ModelSchemaError,
    SchemaStructureError,
    UndefinedProperty,
    UnknownDataType,
    UnknownNativeType,
)
from modelschema.loader import load_schema_file, parse_schema_node, parse_schema_nodes
from modelschema.models import CompilerConfig, DatabaseDialect, ErrorEntry, SchemaNode
from modelschema.namespace import NativeTypeNamespace, sqlalchemy_namespace
from modelschema.orm import DefinedModel, define_model
from modelschema.validators import (
    SchemaEngine,
    ValidationResult,
    Validator,
    ValidatorCache,
    validate_artifact,
    validate_document,
)

__all__: list[str] = [
    "__version__",
    # Compiler
    "SchemaCompiler",
    "CompiledArtifact",
    "CompileReport",
    "compile_schema",
    # Type descriptor algebra
    "ARRAY",
    "RANGE",
    "STRING",
    "CHAR",
    "TEXT",
    "DATE",
    "BLOB",
    "INTEGER",
    "BIGINT",
    "SMALLINT",
    "FLOAT",
    "REAL",
    "DOUBLE",
    "DECIMAL",
    "DataTypeConstructor",
    "TypeDescriptor",
    "TypedFragment",
    "evaluate_descriptor",
    # Models
    "CompilerConfig",
    "DatabaseDialect",
    "ErrorEntry",
    "SchemaNode",
    "NativeTypeNamespace",
    "sqlalchemy_namespace",
    # Runtime
    "SchemaBuilder",
    "SchemaEngine",
    "Validator",
    "ValidatorCache",
    "ValidationResult",
    "validate_artifact",
    "validate_document",
    "DefinedModel",
    "define_model",
    # Input
    "load_schema_file",
    "parse_schema_node",
    "parse_schema_nodes",
    # Errors
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
