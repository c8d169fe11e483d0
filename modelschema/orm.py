# File: modelschema/orm.py
"""
ModelSchema - SQLAlchemy Model Registration
=============================================
Hands a compiled artifact to SQLAlchemy: builds the ``Table`` from the
column specs, optionally maps a class imperatively, and wires per-column
validation against the compiled document.

Column-option vocabulary -> SQLAlchemy::

    allowNull             nullable=
    defaultValue          default=   (lists/dicts through a copying factory)
    primaryKey            primary_key=
    autoIncrement         autoincrement=
    autoIncrementIdentity Identity()
    unique                unique= / named UniqueConstraint group
    comment               comment=
    field                 column name (attribute key stays the property)
    references            ForeignKey(..., ondelete=onDelete, onupdate=onUpdate)
    values                Enum(...) for the enumerated type (EnumValue when the
                          values are not all strings)
    validate              extra callables run by the validation hook
"""

from __future__ import annotations

import copy
import datetime
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

import sqlalchemy as sa
from sqlalchemy.orm import registry as Registry

from modelschema.builder import SchemaBuilder
from modelschema.compiler import CompiledArtifact, SchemaCompiler
from modelschema.errors import InvalidDataType, UndefinedProperty
from modelschema.models import CompilerConfig, SchemaNode
from modelschema.namespace import NativeTypeNamespace
from modelschema.utils import instance_name, to_snake_case
from modelschema.validators import Validator, ValidatorCache

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelschema.orm")

_TEMPORAL_TYPES = (sa.DateTime, sa.Date, sa.Time)
_TEMPORAL_VALUES = (datetime.datetime, datetime.date, datetime.time)


def _is_type(native: Any, base: Any) -> bool:
    if isinstance(native, type):
        return issubclass(native, base)
    return isinstance(native, base)


def _constructor(self: Any, **kwargs: Any) -> None:
    cls: type = type(self)
    for key, value in kwargs.items():
        if not hasattr(cls, key):
            raise TypeError(f"{key!r} is an invalid keyword argument for {cls.__name__}")
        setattr(self, key, value)


def _default_factory(value: Any) -> Callable[[], Any]:
    def factory() -> Any:
        return copy.deepcopy(value)

    return factory


def _foreign_key(references: Any, spec: Mapping[str, Any]) -> sa.ForeignKey:
    if isinstance(references, str):
        target: str = references if "." in references else f"{references}.id"
    elif isinstance(references, Mapping):
        table: Any = references.get("model") or references.get("table")
        if not table:
            raise InvalidDataType(f"references needs a model/table: {dict(references)!r}")
        target = f"{table}.{references.get('key', 'id')}"
    else:
        raise InvalidDataType(f"Invalid references value: {references!r}")
    return sa.ForeignKey(target, ondelete=spec.get("onDelete"), onupdate=spec.get("onUpdate"))


class EnumValue(sa.types.TypeDecorator):
    """
    ``Enum`` over non-string values.

    Labels are stored as strings; values are bound with ``str`` and read
    back as the original enum value.
    """

    impl = sa.Enum
    cache_ok = True

    def __init__(self, values: List[Any], name: str) -> None:
        self.values: tuple = tuple(values)
        self._by_label: Dict[str, Any] = {str(v): v for v in self.values}
        super().__init__(*self._by_label, name=name)

    def process_bind_param(self, value: Any, dialect: Any) -> Optional[str]:
        return None if value is None else str(value)

    def process_result_value(self, value: Any, dialect: Any) -> Any:
        if value is None:
            return None
        return self._by_label.get(value, value)


# ---------------------------------------------------------------------------
# Table construction
# ---------------------------------------------------------------------------


def build_column(
    prop: str,
    spec: Mapping[str, Any],
    *,
    table_name: str,
    namespace: NativeTypeNamespace,
) -> sa.Column:
    """Translate one column spec into a ``sqlalchemy.Column``."""
    native: Any = spec["type"]
    if native is namespace.enum_type or _is_type(native, sa.Enum):
        values: Any = spec.get("values")
        if not values:
            raise InvalidDataType(f"Column '{prop}' is ENUM but has no values.")
        enum_name: str = f"{to_snake_case(table_name)}_{to_snake_case(prop)}_enum"
        if all(isinstance(v, str) for v in values):
            native = sa.Enum(*values, name=enum_name)
        else:
            native = EnumValue(list(values), name=enum_name)

    args: List[Any] = [spec.get("field") or prop, native]
    if spec.get("references"):
        args.append(_foreign_key(spec["references"], spec))
    if spec.get("autoIncrementIdentity"):
        args.append(sa.Identity())

    kwargs: Dict[str, Any] = {
        "key": prop,
        "nullable": bool(spec.get("allowNull", True)),
        "primary_key": bool(spec.get("primaryKey", False)),
        "comment": spec.get("comment"),
    }
    if "autoIncrement" in spec:
        kwargs["autoincrement"] = spec["autoIncrement"]
    if spec.get("unique") is True:
        kwargs["unique"] = True
    if "defaultValue" in spec:
        default: Any = spec["defaultValue"]
        kwargs["default"] = _default_factory(default) if isinstance(default, (list, dict)) else default
    if spec.get("validate"):
        kwargs["info"] = {"validate": spec["validate"]}
    return sa.Column(*args, **kwargs)


def build_table(
    artifact: CompiledArtifact,
    metadata: sa.MetaData,
    namespace: NativeTypeNamespace,
) -> sa.Table:
    """Build the ``Table`` for an artifact inside ``metadata``."""
    options: Dict[str, Any] = artifact.options
    table_name: str = options.get("tableName") or artifact.name
    columns: List[sa.Column] = [
        build_column(prop, spec, table_name=table_name, namespace=namespace)
        for prop, spec in artifact.columns.items()
    ]

    groups: Dict[str, List[str]] = {}
    for prop, spec in artifact.columns.items():
        unique: Any = spec.get("unique")
        group: Optional[str] = None
        if isinstance(unique, str):
            group = unique
        elif isinstance(unique, Mapping) and unique.get("name"):
            group = str(unique["name"])
        if group:
            groups.setdefault(group, []).append(spec.get("field") or prop)
    constraints: List[sa.UniqueConstraint] = [
        sa.UniqueConstraint(*names, name=group) for group, names in groups.items()
    ]

    table: sa.Table = sa.Table(
        table_name,
        metadata,
        *columns,
        *constraints,
        comment=options.get("comment"),
        schema=options.get("schema"),
    )
    logger.debug("Built table '%s' with %d columns.", table_name, len(columns))
    return table


# ---------------------------------------------------------------------------
# Defined model
# ---------------------------------------------------------------------------


class DefinedModel:
    """
    A registered entity: its table, optional mapped class, and the
    validator API over its compiled document.
    """

    def __init__(
        self,
        artifact: CompiledArtifact,
        table: sa.Table,
        mapped_class: Optional[type] = None,
    ) -> None:
        self.artifact: CompiledArtifact = artifact
        self.table: sa.Table = table
        self.mapped_class: Optional[type] = mapped_class
        self.Schema: SchemaBuilder = artifact.builder()
        self._columns: ValidatorCache = ValidatorCache(
            artifact.schema,
            owner=artifact.name,
            prefix=instance_name(artifact.name),
        )

    @property
    def name(self) -> str:
        return self.artifact.name

    # -- Validator API ------------------------------------------------------

    def prop_validator(self, name: str) -> Validator:
        return self.artifact.prop_validator(name)

    def props_validator(self, *names: Any) -> Validator:
        return self.artifact.props_validator(*names)

    def validate_props(self, data: Mapping[str, Any]) -> bool:
        return self.artifact.validate_props(data)

    # -- Column hooks -------------------------------------------------------

    def validate_column(self, prop: str, value: Any) -> bool:
        """
        Check one column value against its fragment.  Native temporal
        values are accepted as-is on temporal columns.
        """
        spec: Optional[Dict[str, Any]] = self.artifact.columns.get(prop)
        if spec is None:
            raise UndefinedProperty(prop, self.name)
        if isinstance(value, _TEMPORAL_VALUES) and _is_type(spec["type"], _TEMPORAL_TYPES):
            return True
        self._columns.prop_validator(prop).validate(value)
        for check in (spec.get("validate") or {}).values():
            if callable(check):
                check(value)
        return True

    def validate_row(self, data: Mapping[str, Any]) -> bool:
        for prop, value in data.items():
            if value is None:
                continue
            self.validate_column(prop, value)
        return True

    def _before_flush(self, mapper: Any, connection: Any, target: Any) -> None:
        row: Dict[str, Any] = {prop: getattr(target, prop, None) for prop in self.artifact.columns}
        self.validate_row(row)

    def __repr__(self) -> str:
        return f"<DefinedModel {self.name} table={self.table.name!r}>"


def define_model(
    source: Union[SchemaNode, Mapping[str, Any], CompiledArtifact],
    *,
    metadata: Optional[sa.MetaData] = None,
    config: Optional[CompilerConfig] = None,
    registry: Optional[Registry] = None,
) -> DefinedModel:
    """
    Compile (unless given an artifact) and register an entity.

    With a ``registry`` a class named after the entity is mapped
    imperatively and column validation runs before insert and update.
    """
    config = config or CompilerConfig()
    if isinstance(source, CompiledArtifact):
        artifact: CompiledArtifact = source
    else:
        artifact = SchemaCompiler(config).compile(source)

    if metadata is None:
        metadata = registry.metadata if registry is not None else sa.MetaData()
    table: sa.Table = build_table(artifact, metadata, config.native_types)

    mapped: Optional[type] = None
    model: DefinedModel
    if registry is not None:
        mapped = type(
            artifact.name,
            (),
            {"__init__": _constructor, "__doc__": artifact.schema.get("description")},
        )
        registry.map_imperatively(mapped, table)
        model = DefinedModel(artifact, table, mapped)
        sa.event.listen(mapped, "before_insert", model._before_flush)
        sa.event.listen(mapped, "before_update", model._before_flush)
        logger.info("Mapped class '%s' onto table '%s'.", artifact.name, table.name)
    else:
        model = DefinedModel(artifact, table)
    return model
