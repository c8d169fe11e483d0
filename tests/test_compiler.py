"""
tests/test_compiler.py
Unit tests for modelschema.compiler, normalizer and resolver.

Tests cover:
- Column/property parity and allowNull derivation
- Null-union wrapping and description promotion
- Enum, union and type-table inference
- Array default injection
- Explicit storage types and descriptor defaults
- Model options and document shape
- Determinism and deep independence of artifacts
- compile_file / CompileReport
"""

from __future__ import annotations

import copy
import pathlib
from typing import Any, Dict

import pytest
import sqlalchemy as sa
import yaml
from sqlalchemy.dialects import mysql, postgresql

from modelschema.compiler import CompiledArtifact, SchemaCompiler, compile_schema
from modelschema.datatypes import INTEGER, STRING, TypeDescriptor, TypedFragment
from modelschema.errors import (
    EmptyUnion,
    InvalidDataType,
    MixedUnionType,
    SchemaStructureError,
    UnknownDataType,
    UnknownNativeType,
)
from modelschema.models import CompilerConfig, DatabaseDialect
from modelschema.namespace import VARCHAR
from modelschema.normalizer import is_null_tolerant


def _entity(properties: Dict[str, Any], required=None, **extra: Any) -> Dict[str, Any]:
    node: Dict[str, Any] = {"title": "Thing", "properties": properties, **extra}
    if required is not None:
        node["required"] = required
    return node


# ===========================================================================
# Parity and nullability
# ===========================================================================


class TestParityAndNullability:
    def test_columns_match_properties(self, user_artifact: CompiledArtifact) -> None:
        assert set(user_artifact.columns) == set(user_artifact.schema["properties"])

    def test_allow_null_iff_optional_or_null_tolerant(self, user_artifact: CompiledArtifact) -> None:
        required = set(user_artifact.schema["required"])
        for name, column in user_artifact.columns.items():
            fragment = user_artifact.schema["properties"][name]
            expected = name not in required or is_null_tolerant(fragment)
            assert column["allowNull"] is expected, name

    def test_explicit_allow_null_wraps_fragment(self) -> None:
        fragment = STRING().constrain(minLength=2, maxLength=10).allow_null()
        artifact = compile_schema(_entity({"id": INTEGER, "name": fragment}, required=["id"]))
        assert artifact.columns["name"]["allowNull"] is True
        assert artifact.schema["properties"]["name"] == {
            "anyOf": [{"type": "string", "minLength": 2, "maxLength": 10}, {"type": "null"}]
        }

    def test_null_union_not_double_wrapped(self) -> None:
        prop = {"anyOf": [{"type": "string"}, {"type": "null"}], "allowNull": True}
        artifact = compile_schema(_entity({"a": prop}))
        assert artifact.schema["properties"]["a"] == {"anyOf": [{"type": "string"}, {"type": "null"}]}

    def test_required_null_union_is_nullable(self) -> None:
        prop = {"anyOf": [{"type": "integer"}, {"type": "null"}]}
        artifact = compile_schema(_entity({"a": prop}, required=["a"]))
        assert artifact.columns["a"]["allowNull"] is True

    def test_missing_required_means_all_required(self) -> None:
        artifact = compile_schema(_entity({"a": {"type": "string"}, "b": {"type": "integer"}}))
        assert artifact.schema["required"] == ["a", "b"]
        assert artifact.columns["a"]["allowNull"] is False

    def test_description_becomes_comment(self) -> None:
        artifact = compile_schema(_entity({"a": {"type": "string", "description": "Alpha"}}))
        assert artifact.columns["a"]["comment"] == "Alpha"
        assert artifact.schema["properties"]["a"]["description"] == "Alpha"


# ===========================================================================
# Inference
# ===========================================================================


class TestInference:
    def test_numeric_enum(self) -> None:
        artifact = compile_schema(_entity({"prop": {"type": "number", "enum": [1, 2]}}))
        assert artifact.columns["prop"]["type"] is sa.Enum
        assert artifact.columns["prop"]["values"] == [1, 2]
        assert artifact.schema["properties"]["prop"] == {"type": "number", "enum": [1, 2]}

    def test_enum_type_mismatch_falls_through(self) -> None:
        artifact = compile_schema(_entity({"prop": {"type": "string", "enum": [1, 2]}}))
        assert artifact.columns["prop"]["type"] is VARCHAR
        assert "values" not in artifact.columns["prop"]

    def test_explicit_values_kept(self) -> None:
        prop = {"type": "string", "enum": ["a", "b"], "values": ["a", "b", "c"]}
        artifact = compile_schema(_entity({"prop": prop}))
        assert artifact.columns["prop"]["values"] == ["a", "b", "c"]

    def test_mixed_union_fails(self) -> None:
        prop = {"anyOf": [{"type": "string"}, {"type": "integer"}]}
        with pytest.raises(MixedUnionType):
            compile_schema(_entity({"prop": prop}))

    def test_same_type_union_recurses(self) -> None:
        prop = {"allOf": [{"type": "integer", "minimum": 0}, {"type": "integer", "maximum": 9}]}
        artifact = compile_schema(_entity({"prop": prop}))
        assert artifact.columns["prop"]["type"] is mysql.INTEGER

    def test_single_branch_union_fails(self) -> None:
        with pytest.raises(EmptyUnion):
            compile_schema(_entity({"prop": {"anyOf": [{"type": "string"}]}}))

    def test_untyped_union_fails(self) -> None:
        prop = {"anyOf": [{"minimum": 1}, {"type": "null"}]}
        with pytest.raises(EmptyUnion):
            compile_schema(_entity({"prop": prop}))

    def test_type_table(self) -> None:
        artifact = compile_schema(
            _entity(
                {
                    "s": {"type": "string", "maxLength": 20},
                    "i": {"type": "integer"},
                    "n": {"type": "number"},
                    "b": {"type": "boolean"},
                    "o": {"type": "object"},
                }
            )
        )
        columns = artifact.columns
        assert isinstance(columns["s"]["type"], mysql.VARCHAR)
        assert columns["s"]["type"].length == 20
        assert VARCHAR().length == 255
        assert columns["i"]["type"] is mysql.INTEGER
        assert columns["n"]["type"] is mysql.INTEGER
        assert columns["b"]["type"] is sa.Boolean
        assert columns["o"]["type"] is sa.JSON

    def test_unknown_validation_type(self) -> None:
        with pytest.raises(UnknownNativeType):
            compile_schema(_entity({"prop": {"type": ["string", "integer"]}}))

    def test_postgresql_uses_jsonb(self) -> None:
        config = CompilerConfig(dialect=DatabaseDialect.POSTGRESQL)
        artifact = SchemaCompiler(config).compile(_entity({"o": {"type": "object"}}))
        assert artifact.columns["o"]["type"] is postgresql.JSONB


# ===========================================================================
# Explicit storage types and defaults
# ===========================================================================


class TestExplicitTypes:
    def test_named_data_type(self) -> None:
        artifact = compile_schema(_entity({"body": {"type": "string", "dataType": "TEXT"}}))
        assert artifact.columns["body"]["type"] is mysql.TEXT
        assert "dataType" not in artifact.schema["properties"]["body"]

    def test_unknown_named_data_type(self) -> None:
        with pytest.raises(InvalidDataType):
            compile_schema(_entity({"body": {"type": "string", "dataType": "NOPE"}}))

    def test_unknown_descriptor_path(self) -> None:
        prop = TypedFragment(schema={"type": "string"}, data_type=TypeDescriptor("NOPE", [1]))
        with pytest.raises(UnknownDataType):
            compile_schema(_entity({"body": prop}))

    def test_descriptor_with_modifier(self) -> None:
        artifact = compile_schema(_entity({"n": INTEGER(11).UNSIGNED()}))
        native = artifact.columns["n"]["type"]
        assert isinstance(native, mysql.INTEGER)
        assert native.unsigned is True
        assert native.display_width == 11

    def test_descriptor_default_evaluated(self) -> None:
        prop = {"type": "string", "dataType": "DATE", "defaultValue": {"type": "DataType", "path": "NOW"}}
        artifact = compile_schema(_entity({"at": prop}))
        assert artifact.columns["at"]["type"] is sa.DateTime
        assert "now" in str(artifact.columns["at"]["defaultValue"]).lower()


class TestArrayDefault:
    def test_required_json_array_gets_empty_list(self, user_artifact: CompiledArtifact) -> None:
        assert user_artifact.columns["tags"]["defaultValue"] == []

    def test_optional_array_has_no_default(self) -> None:
        artifact = compile_schema(_entity({"tags": {"type": "array"}}, required=[]))
        assert "defaultValue" not in artifact.columns["tags"]

    def test_explicit_default_kept(self) -> None:
        prop = {"type": "array", "defaultValue": ["x"]}
        artifact = compile_schema(_entity({"tags": prop}))
        assert artifact.columns["tags"]["defaultValue"] == ["x"]

    def test_native_array_has_no_default(self) -> None:
        prop = {"type": "array", "dataType": {"type": "DataType", "path": "ARRAY", "args": [{"type": "DataType", "path": "INTEGER"}]}}
        artifact = compile_schema(_entity({"nums": prop}))
        assert isinstance(artifact.columns["nums"]["type"], sa.ARRAY)
        assert "defaultValue" not in artifact.columns["nums"]


# ===========================================================================
# Document assembly
# ===========================================================================


class TestDocument:
    def test_document_shape(self, user_artifact: CompiledArtifact) -> None:
        schema = user_artifact.schema
        assert schema["type"] == "object"
        assert schema["additionalProperties"] is False
        assert schema["title"] == "User"
        assert schema["required"] == ["id", "name", "tags"]

    def test_options_extracted(self) -> None:
        node = _entity({"a": {"type": "string"}}, tableName="things", maxProperties=3, description="D")
        artifact = compile_schema(node)
        assert artifact.options == {"tableName": "things", "comment": "D"}
        assert artifact.schema["maxProperties"] == 3
        assert "tableName" not in artifact.schema

    def test_explicit_comment_option_wins(self) -> None:
        node = _entity({"a": {"type": "string"}}, comment="C", description="D")
        assert compile_schema(node).options["comment"] == "C"

    def test_structure_check(self) -> None:
        node = _entity({"a": {"type": "string", "minLength": -1}})
        with pytest.raises(SchemaStructureError) as exc_info:
            compile_schema(node)
        assert not exc_info.value.result.is_valid

    def test_structure_check_can_be_disabled(self) -> None:
        node = _entity({"a": {"type": "string", "minLength": -1}})
        artifact = SchemaCompiler(CompilerConfig(check_document=False)).compile(node)
        assert artifact.schema["properties"]["a"]["minLength"] == -1

    def test_invalid_node(self) -> None:
        with pytest.raises(ValueError):
            compile_schema({"properties": {}})


class TestDeterminismAndIndependence:
    def test_compiling_twice_is_deep_equal(self, user_node: Dict[str, Any]) -> None:
        first = compile_schema(copy.deepcopy(user_node))
        second = compile_schema(copy.deepcopy(user_node))
        assert first == second
        assert first.to_dict() == second.to_dict()

    def test_sized_and_descriptor_types_compare_by_state(self) -> None:
        node = _entity(
            {
                "code": {"type": "string", "maxLength": 8},
                "score": INTEGER(11).UNSIGNED(),
                "seen": {
                    "type": "string",
                    "dataType": "DATE",
                    "defaultValue": {"type": "DataType", "path": "NOW"},
                },
            }
        )
        first, second = compile_schema(copy.deepcopy(node)), compile_schema(copy.deepcopy(node))
        assert first.columns["code"]["type"] is not second.columns["code"]["type"]
        assert first == second

    def test_different_lengths_are_not_equal(self) -> None:
        first = compile_schema(_entity({"code": {"type": "string", "maxLength": 8}}))
        second = compile_schema(_entity({"code": {"type": "string", "maxLength": 9}}))
        assert first != second

    def test_input_not_mutated(self, user_node: Dict[str, Any]) -> None:
        snapshot = copy.deepcopy(user_node)
        compile_schema(user_node)
        assert user_node == snapshot

    def test_schema_mutation_does_not_leak(self, user_artifact: CompiledArtifact) -> None:
        user_artifact.schema["properties"]["id"]["minimum"] = 100
        assert user_artifact.prop_validator("id").is_valid(1)

    def test_to_dict_is_json_safe(self, user_artifact: CompiledArtifact) -> None:
        data = user_artifact.to_dict()
        assert isinstance(data["columns"]["name"]["type"], str)
        assert data["columns"]["tags"]["defaultValue"] == []


# ===========================================================================
# compile_file
# ===========================================================================


class TestCompileFile:
    def test_reference_file(self, schema_yaml_path: pathlib.Path, entity_names) -> None:
        report = SchemaCompiler().compile_file(schema_yaml_path)
        assert report.success
        assert [a.name for a in report.artifacts] == entity_names
        assert "Compiled: 2 entities" in report.summary()

    def test_failing_entity_is_isolated(
        self, schema_dict: Dict[str, Any], tmp_path: pathlib.Path
    ) -> None:
        schema_dict["entities"].append(
            {"title": "Broken", "properties": {"x": {"anyOf": [{"type": "string"}, {"type": "integer"}]}}}
        )
        path = tmp_path / "broken.yaml"
        path.write_text(yaml.safe_dump(schema_dict), encoding="utf-8")
        report = SchemaCompiler().compile_file(path)
        assert not report.success
        assert list(report.failures) == ["Broken"]
        assert len(report.artifacts) == 2
        assert report.invalid_documents == []

    def test_missing_file(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(FileNotFoundError):
            SchemaCompiler().compile_file(tmp_path / "missing.yaml")
