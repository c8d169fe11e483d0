"""
tests/conftest.py
Shared fixtures for the modelschema test suite.

The reference ``schema_example.yaml`` is loaded once per session and
deep-copied per test.  File I/O happens inside pytest's ``tmp_path``.
"""

from __future__ import annotations

import copy
import pathlib
from typing import Any, Dict, List

import pytest
import yaml

from modelschema.compiler import CompiledArtifact, SchemaCompiler
from modelschema.models import CompilerConfig

# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

ROOT_DIR: pathlib.Path = pathlib.Path(__file__).resolve().parent.parent
SCHEMA_EXAMPLE_PATH: pathlib.Path = ROOT_DIR / "schema_example.yaml"


# ---------------------------------------------------------------------------
# Raw schema data fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def raw_schema_dict() -> Dict[str, Any]:
    """Load the reference schema_example.yaml once per session."""
    assert SCHEMA_EXAMPLE_PATH.exists(), (
        f"Reference schema not found at {SCHEMA_EXAMPLE_PATH}. "
        "Make sure schema_example.yaml is in the project root."
    )
    with open(SCHEMA_EXAMPLE_PATH, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    assert isinstance(data, dict), "Top-level YAML must be a mapping."
    return data


@pytest.fixture()
def schema_dict(raw_schema_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Return a deep copy so each test can mutate freely."""
    return copy.deepcopy(raw_schema_dict)


@pytest.fixture()
def schema_yaml_path(schema_dict: Dict[str, Any], tmp_path: pathlib.Path) -> pathlib.Path:
    """Write the schema dict to a temporary YAML file and return its path."""
    path = tmp_path / "schema.yaml"
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(schema_dict, fh, default_flow_style=False, allow_unicode=True)
    return path


# ---------------------------------------------------------------------------
# Entity fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def user_node() -> Dict[str, Any]:
    """A small entity exercising nullability, enums and array defaults."""
    return {
        "title": "User",
        "description": "Registered users",
        "required": ["id", "name", "tags"],
        "properties": {
            "id": {"type": "integer", "minimum": 1, "primaryKey": True},
            "name": {"type": "string", "maxLength": 64},
            "nickname": {"type": "string", "allowNull": True},
            "level": {"type": "integer", "enum": [1, 2, 3]},
            "tags": {"type": "array", "items": {"type": "string"}},
        },
    }


@pytest.fixture()
def compiler() -> SchemaCompiler:
    return SchemaCompiler(CompilerConfig())


@pytest.fixture()
def user_artifact(compiler: SchemaCompiler, user_node: Dict[str, Any]) -> CompiledArtifact:
    return compiler.compile(user_node)


@pytest.fixture()
def entity_names(raw_schema_dict: Dict[str, Any]) -> List[str]:
    return [e["title"] for e in raw_schema_dict["entities"]]
