# File: modelschema/compiler.py
"""
ModelSchema - Schema-to-Storage Compiler
==========================================

Connects the per-property phases and assembles the result::

    SchemaNode -> Property Normalizer -> Type Resolver -> Document Assembler
               -> CompiledArtifact {name, columns, options, schema}

The artifact's ``schema`` is a strict JSON-Schema object document and
``columns`` follows the ORM column-option vocabulary.  Both are keyed by
the same property names.

Error handling strategy:
    - Any compile error aborts the current entity; there is no partial
      artifact.
    - ``compile_file`` isolates entities: one bad entity is reported in the
      ``CompileReport`` and the others still compile.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError as ModelValidationError
from sqlalchemy.sql import ClauseElement
from sqlalchemy.types import TypeEngine

from modelschema.builder import SchemaBuilder
from modelschema.errors import CompileError, SchemaStructureError
from modelschema.loader import load_schema_file, parse_schema_nodes
from modelschema.models import MODEL_OPTIONS, CompilerConfig, SchemaNode
from modelschema.normalizer import NormalizedProperty, apply_default_collection, normalize_property
from modelschema.resolver import TypeResolver
from modelschema.utils import Timer
from modelschema.validators import (
    SchemaEngine,
    ValidationResult,
    Validator,
    ValidatorCache,
    validate_artifact,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelschema.compiler")


# ---------------------------------------------------------------------------
# Artifact
# ---------------------------------------------------------------------------


@dataclass
class CompiledArtifact:
    """
    The compiled bundle for one entity.

    ``validators`` is the artifact's own validator cache; it is created
    from ``schema`` when not injected.
    """

    name: str
    columns: Dict[str, Dict[str, Any]]
    options: Dict[str, Any]
    schema: Dict[str, Any]
    validators: Optional[ValidatorCache] = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.validators is None:
            self.validators = ValidatorCache(self.schema, owner=self.name)

    # -- Runtime validator API ---------------------------------------------

    def prop_validator(self, name: str) -> Validator:
        return self.validators.prop_validator(name)

    def props_validator(self, *names: Any) -> Validator:
        return self.validators.props_validator(*names)

    def validate_props(self, data: Mapping[str, Any]) -> bool:
        return self.validators.validate_props(data)

    def builder(self) -> SchemaBuilder:
        return SchemaBuilder(self.schema)

    def __eq__(self, other: object) -> bool:
        """Structural equality; native type instances compare by state."""
        if not isinstance(other, CompiledArtifact):
            return NotImplemented
        return self.name == other.name and all(
            _same(getattr(self, part), getattr(other, part))
            for part in ("columns", "options", "schema")
        )

    # -- Serialisation ------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe view; native values are rendered with ``repr``."""
        return {
            "name": self.name,
            "columns": {
                prop: {key: _json_safe(value) for key, value in column.items()}
                for prop, column in self.columns.items()
            },
            "options": {key: _json_safe(value) for key, value in self.options.items()},
            "schema": copy.deepcopy(self.schema),
        }


def _same(left: Any, right: Any) -> bool:
    if isinstance(left, dict):
        return (
            isinstance(right, dict)
            and left.keys() == right.keys()
            and all(_same(left[k], right[k]) for k in left)
        )
    if isinstance(left, (list, tuple)):
        return (
            type(left) is type(right)
            and len(left) == len(right)
            and all(_same(a, b) for a, b in zip(left, right))
        )
    if isinstance(left, TypeEngine):
        return type(left) is type(right) and _same(_public_state(left), _public_state(right))
    if isinstance(left, ClauseElement):
        return isinstance(right, ClauseElement) and left.compare(right)
    return left is right or left == right


def _public_state(native: TypeEngine) -> Dict[str, Any]:
    return {k: v for k, v in vars(native).items() if not k.startswith("_")}


def _json_safe(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, list):
        return [_json_safe(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _json_safe(v) for k, v in value.items()}
    return repr(value)


# ---------------------------------------------------------------------------
# Compile report
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class CompileReport:
    """Outcome of compiling every entity in one input file."""

    source: str = ""
    artifacts: List[CompiledArtifact] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)
    invalid_documents: List[str] = field(default_factory=list)
    elapsed_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return not self.failures

    def summary(self) -> str:
        lines: List[str] = [
            f"Source:   {self.source}",
            f"Compiled: {len(self.artifacts)} entit{'y' if len(self.artifacts) == 1 else 'ies'}",
            f"Failed:   {len(self.failures)}",
            f"Time:     {self.elapsed_seconds:.3f}s",
        ]
        for name, message in self.failures.items():
            lines.append(f"  x {name}: {message}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Compiler
# ---------------------------------------------------------------------------


class SchemaCompiler:
    """
    Compiles ``SchemaNode``s into ``CompiledArtifact``s.

    Compilation of one entity depends only on its node and the
    configuration, so one compiler can be shared across threads.
    """

    def __init__(
        self,
        config: Optional[CompilerConfig] = None,
        *,
        engine: Optional[SchemaEngine] = None,
    ) -> None:
        self.config: CompilerConfig = config or CompilerConfig()
        self._engine: SchemaEngine = engine or SchemaEngine()
        self._resolver: TypeResolver = TypeResolver(
            self.config.native_types,
            self.config.resolve_json_type(),
        )
        logger.debug(
            "SchemaCompiler initialised: namespace=%s, json_type=%r.",
            self.config.native_types.name,
            self._resolver.json_type,
        )

    # -----------------------------------------------------------------
    # Public
    # -----------------------------------------------------------------

    def compile(self, source: Union[SchemaNode, Mapping[str, Any]]) -> CompiledArtifact:
        """Compile one entity."""
        node: SchemaNode = self._to_node(source)
        with Timer(f"compile {node.title}"):
            artifact: CompiledArtifact = self._assemble(node)
        logger.info("Compiled entity '%s' (%d columns).", artifact.name, len(artifact.columns))
        return artifact

    def compile_file(self, path: Path) -> CompileReport:
        """Compile every entity in a JSON/YAML file."""
        report: CompileReport = CompileReport(source=str(path))
        with Timer(f"compile {path}") as timer:
            raw: Dict[str, Any] = load_schema_file(path)
            for node in parse_schema_nodes(raw, self.config.extra_schemas):
                try:
                    report.artifacts.append(self.compile(node))
                except CompileError as exc:
                    logger.error("Entity '%s' failed to compile: %s", node.title, exc)
                    if isinstance(exc, SchemaStructureError):
                        report.invalid_documents.append(node.title)
                    report.failures[node.title] = str(exc)
        report.elapsed_seconds = timer.elapsed
        return report

    # -----------------------------------------------------------------
    # Internal
    # -----------------------------------------------------------------

    @staticmethod
    def _to_node(source: Union[SchemaNode, Mapping[str, Any]]) -> SchemaNode:
        if isinstance(source, SchemaNode):
            return source
        try:
            return SchemaNode.model_validate(dict(source))
        except ModelValidationError as exc:
            raise ValueError(f"Invalid schema node: {exc}") from exc

    def _assemble(self, node: SchemaNode) -> CompiledArtifact:
        required: List[str] = node.required_names
        extras: Dict[str, Any] = node.extras

        options: Dict[str, Any] = {k: copy.deepcopy(v) for k, v in extras.items() if k in MODEL_OPTIONS}
        document: Dict[str, Any] = {"title": node.title}
        document.update({k: copy.deepcopy(v) for k, v in extras.items() if k not in MODEL_OPTIONS})
        document["type"] = "object"
        document["additionalProperties"] = False
        document["required"] = list(required)
        document["properties"] = {}

        if document.get("description") and not options.get("comment"):
            options["comment"] = document["description"]

        columns: Dict[str, Dict[str, Any]] = {}
        for name, value in node.properties.items():
            prop: NormalizedProperty = normalize_property(name, value, required)
            native: Any = self._resolver.resolve(prop)
            apply_default_collection(prop, native, self.config.native_types, self._resolver.json_type)
            document["properties"][name] = prop.schema
            columns[name] = {"type": native, **prop.column}

        if self.config.check_document:
            result: ValidationResult = validate_artifact(columns, document, self._engine)
            if not result.is_valid:
                raise SchemaStructureError(
                    f"Entity '{node.title}' compiled to an invalid document.\n{result.format_report()}",
                    result,
                )

        return CompiledArtifact(
            name=node.title,
            columns=columns,
            options=options,
            schema=copy.deepcopy(document),
            validators=ValidatorCache(document, self._engine, owner=node.title),
        )


def compile_schema(
    source: Union[SchemaNode, Mapping[str, Any]],
    config: Optional[CompilerConfig] = None,
) -> CompiledArtifact:
    """Compile one entity with a throwaway compiler."""
    return SchemaCompiler(config).compile(source)
