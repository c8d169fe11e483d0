"""
tests/test_builder.py
Unit tests for modelschema.builder.SchemaBuilder.

Tests cover:
- Copy-on-write semantics (receiver and source never change)
- prop / props / pick selection
- add / remove and their aliases
- required / not_required, including the single-list form of required()
- Keyword setters
"""

from __future__ import annotations

from typing import Any, Dict

import pytest

from modelschema.builder import SchemaBuilder
from modelschema.compiler import CompiledArtifact
from modelschema.errors import EmptyArgs, UndefinedProperty


@pytest.fixture()
def document() -> Dict[str, Any]:
    return {
        "type": "object",
        "additionalProperties": False,
        "required": ["id", "name"],
        "properties": {
            "id": {"type": "integer", "minimum": 1},
            "name": {"type": "string"},
            "tags": {"type": "array", "items": {"type": "string"}},
        },
    }


@pytest.fixture()
def builder(document: Dict[str, Any]) -> SchemaBuilder:
    return SchemaBuilder(document)


# ===========================================================================
# Copy-on-write
# ===========================================================================


class TestCopyOnWrite:
    def test_source_document_not_shared(self, document: Dict[str, Any]) -> None:
        builder = SchemaBuilder(document)
        document["properties"]["id"]["minimum"] = 50
        assert builder.to_dict()["properties"]["id"]["minimum"] == 1

    def test_derivation_leaves_receiver(self, builder: SchemaBuilder) -> None:
        before = builder.to_dict()
        builder.omit("tags").set("title", "X").not_required("name")
        assert builder.to_dict() == before

    def test_pick_result_does_not_alias_source(self, builder: SchemaBuilder) -> None:
        picked = builder.pick("tags").to_dict()
        picked["properties"]["tags"]["items"]["type"] = "integer"
        assert builder.to_dict()["properties"]["tags"]["items"]["type"] == "string"

    def test_to_dict_is_a_copy(self, builder: SchemaBuilder) -> None:
        builder.to_dict()["properties"].clear()
        assert "id" in builder.to_dict()["properties"]

    def test_artifact_builder(self, user_artifact: CompiledArtifact) -> None:
        derived = user_artifact.builder().omit("tags")
        assert "tags" in user_artifact.schema["properties"]
        assert "tags" not in derived.to_dict()["properties"]


# ===========================================================================
# Selection
# ===========================================================================


class TestSelection:
    def test_prop(self, builder: SchemaBuilder) -> None:
        assert builder.prop("id").to_dict() == {"type": "integer", "minimum": 1}

    def test_prop_undefined(self, builder: SchemaBuilder) -> None:
        with pytest.raises(UndefinedProperty) as exc_info:
            builder.prop("missing")
        assert "missing" in str(exc_info.value)

    def test_props_all_required(self, builder: SchemaBuilder) -> None:
        data = builder.props("name", "tags").to_dict()
        assert data["type"] == "object"
        assert data["additionalProperties"] is False
        assert data["required"] == ["name", "tags"]
        assert set(data["properties"]) == {"name", "tags"}

    def test_pick_accepts_list(self, builder: SchemaBuilder) -> None:
        assert builder.pick(["id"]).to_dict()["required"] == ["id"]

    def test_pick_without_args(self, builder: SchemaBuilder) -> None:
        with pytest.raises(EmptyArgs):
            builder.pick()

    def test_props_undefined(self, builder: SchemaBuilder) -> None:
        with pytest.raises(UndefinedProperty):
            builder.props("id", "nope")


# ===========================================================================
# Mutation-style operations
# ===========================================================================


class TestAddRemove:
    def test_add_and_aliases(self, builder: SchemaBuilder) -> None:
        extra = {"age": {"type": "integer"}}
        for method in ("add", "merge", "assign", "extend"):
            data = getattr(builder, method)(extra).to_dict()
            assert data["properties"]["age"] == {"type": "integer"}

    def test_remove_drops_required(self, builder: SchemaBuilder) -> None:
        data = builder.remove("name").to_dict()
        assert "name" not in data["properties"]
        assert data["required"] == ["id"]

    def test_omit_without_args(self, builder: SchemaBuilder) -> None:
        with pytest.raises(EmptyArgs):
            builder.omit()


class TestRequired:
    def test_variadic_appends(self, builder: SchemaBuilder) -> None:
        assert builder.required("tags").to_dict()["required"] == ["id", "name", "tags"]

    def test_variadic_checks_names(self, builder: SchemaBuilder) -> None:
        with pytest.raises(UndefinedProperty):
            builder.required("nope")

    def test_list_form_replaces_without_check(self, builder: SchemaBuilder) -> None:
        data = builder.required(["tags", "nope"]).to_dict()
        assert data["required"] == ["tags", "nope"]

    def test_no_names_rejected(self, builder: SchemaBuilder) -> None:
        with pytest.raises(EmptyArgs):
            builder.required()
        with pytest.raises(EmptyArgs):
            builder.not_required()

    def test_not_required(self, builder: SchemaBuilder) -> None:
        assert builder.not_required("name").to_dict()["required"] == ["id"]
        assert builder.optional(["id", "name"]).to_dict()["required"] == []

    def test_not_required_checks_names(self, builder: SchemaBuilder) -> None:
        with pytest.raises(UndefinedProperty):
            builder.not_required("nope")


# ===========================================================================
# Keyword setters
# ===========================================================================


class TestSetters:
    def test_chained_setters(self, builder: SchemaBuilder) -> None:
        data = builder.prop("name").min_length(2).max_length(10).pattern("^[a-z]+$").to_dict()
        assert data == {"type": "string", "minLength": 2, "maxLength": 10, "pattern": "^[a-z]+$"}

    def test_boolean_setter_default(self, builder: SchemaBuilder) -> None:
        assert builder.additional_properties().get("additionalProperties") is True
        assert builder.prop("tags").unique_items().get("uniqueItems") is True

    def test_value_setter_requires_argument(self, builder: SchemaBuilder) -> None:
        with pytest.raises(EmptyArgs):
            builder.minimum()

    def test_misc(self, builder: SchemaBuilder) -> None:
        data = builder.id("urn:user").not_({"required": ["x"]}).to_dict()
        assert data["$id"] == "urn:user"
        assert data["not"] == {"required": ["x"]}

    def test_equality(self, document: Dict[str, Any]) -> None:
        assert SchemaBuilder(document) == SchemaBuilder(document)
        assert SchemaBuilder(document) != SchemaBuilder(document).set("title", "T")
