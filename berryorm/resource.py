"""Compiled per-entity mapping (Resource) and its builder.

A :class:`Resource` is built once per entity class, when the class is
registered. Building validates the declaration eagerly: a malformed entity
fails with :class:`~berryorm.errors.DefinitionError` at registration, never
later at query time.
"""
from __future__ import annotations
import logging
import numbers
from typing import Any, Callable, Dict, List, Mapping, Tuple, Type, get_args, get_origin

from .core.fields import (
    FieldDef,
    MANY_TO_MANY,
    MANY_TO_ONE,
    ONE_TO_MANY,
    PRIMARY_KEY,
    SCALAR,
)
from .core.properties import (
    ForeignKeyProperty,
    ManyToManyProperty,
    ManyToOneProperty,
    OneToManyProperty,
    PrimaryKeyProperty,
    Property,
)
from .core.utils import snake_case
from .entity import Entity
from .errors import DefinitionError, UnknownPropertyError

_logger = logging.getLogger("berryorm")

TargetResolver = Callable[[Any], Type[Entity]]


class Resource:
    """Mapping between an entity class and its database table.

    Attributes:
        entity_type: The entity class.
        name: The entity class name.
        table_name: Table the entity is stored in.
        properties: Every mapped property, in declaration order.
    """

    def __init__(self, entity_type: Type[Entity], table_name: str, properties: List[Property]):
        self.entity_type = entity_type
        self.name = entity_type.__name__
        self.table_name = table_name
        self.properties: Tuple[Property, ...] = tuple(properties)
        self._by_name: Dict[str, Property] = {p.name: p for p in self.properties}
        pks = [p for p in self.properties if isinstance(p, PrimaryKeyProperty)]
        if len(pks) != 1:
            raise DefinitionError(f"{self.name} must declare exactly one primary key, found {len(pks)}")
        self.primary_key_property: PrimaryKeyProperty = pks[0]
        self.simple_properties: Tuple[Property, ...] = tuple(
            p for p in self.properties
            if not isinstance(p, (PrimaryKeyProperty, ForeignKeyProperty))
        )
        self.simple_and_primary_key_properties: Tuple[Property, ...] = tuple(
            p for p in self.properties if not isinstance(p, ForeignKeyProperty)
        )
        self.foreign_key_properties: Tuple[ForeignKeyProperty, ...] = tuple(
            p for p in self.properties if isinstance(p, ForeignKeyProperty)
        )

    @property
    def pk_name(self) -> str:
        return self.primary_key_property.name

    @property
    def pk_column(self) -> str:
        return self.primary_key_property.column_name  # type: ignore[return-value]

    @property
    def columns(self) -> List[str]:
        """Simple columns, primary key excluded (what create/update write)."""
        return [p.column_name for p in self.simple_properties]  # type: ignore[misc]

    @property
    def all_columns(self) -> List[str]:
        """Primary key and simple columns (what reads fetch)."""
        return [p.column_name for p in self.simple_and_primary_key_properties]  # type: ignore[misc]

    def get_property(self, name: str) -> Property:
        try:
            return self._by_name[name]
        except KeyError:
            raise UnknownPropertyError(self.name, name) from None

    def has_property(self, name: str) -> bool:
        return name in self._by_name

    def to_entity(self, row: Mapping[str, Any]) -> Entity:
        """Hydrate a column-keyed storage row; relation attributes stay ``None``."""
        values = {p.name: row.get(p.column_name) for p in self.simple_and_primary_key_properties}  # type: ignore[arg-type]
        return self.entity_type(**values)

    def to_row(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """Column-keyed row of the scalar and primary key values in ``data``."""
        return {p.column_name: data.get(p.name) for p in self.simple_and_primary_key_properties}  # type: ignore[misc]

    def __repr__(self) -> str:
        return f"Resource({self.name!r}, table={self.table_name!r}, properties={[p.name for p in self.properties]})"


# --- Builder -------------------------------------------------------------

def _is_entity_class(obj: Any) -> bool:
    return isinstance(obj, type) and issubclass(obj, Entity) and obj is not Entity


def _is_list_type(obj: Any) -> bool:
    return obj is list or get_origin(obj) is list


def _resolve_single(owner: str, fdef: FieldDef, resolve: TargetResolver) -> Type[Entity]:
    target = fdef.meta.get('target')
    if _is_list_type(target):
        raise DefinitionError(f"{owner}.{fdef.name}: many-to-one foreign keys must target an entity, not a list")
    resolved = resolve(target)
    if not _is_entity_class(resolved):
        raise DefinitionError(f"{owner}.{fdef.name}: many-to-one foreign keys must be of an Entity type")
    return resolved


def _resolve_many(owner: str, fdef: FieldDef, resolve: TargetResolver, label: str) -> Type[Entity]:
    target = fdef.meta.get('target')
    if _is_list_type(target):
        args = get_args(target)
        if not args:
            raise DefinitionError(f"{owner}.{fdef.name}: {label} foreign keys must be a list of an Entity type")
        target = args[0]
    resolved = resolve(target)
    if not _is_entity_class(resolved):
        raise DefinitionError(f"{owner}.{fdef.name}: {label} foreign keys must be a list of an Entity type")
    return resolved


def _scalar_names(entity_type: Type[Entity]) -> List[str]:
    return [n for n, f in entity_type.__entity_fields__.items() if f.kind == SCALAR]


def _is_key_type(t: Any) -> bool:
    if not isinstance(t, type) or issubclass(t, bool):
        return False
    return issubclass(t, (numbers.Number, str))


def build_resource(entity_type: Type[Entity], resolve: TargetResolver) -> Resource:
    """Classify and validate the declared fields of ``entity_type``.

    Args:
        entity_type: The entity class to compile.
        resolve: Turns a relation target reference (class or class name) into
            an entity class, raising DefinitionError when it can not.
    """
    owner = entity_type.__name__
    fdefs = entity_type.__entity_fields__
    if not fdefs:
        raise DefinitionError(f"{owner} does not declare any property")
    table_name = getattr(entity_type, '__tablename__', None) or owner
    properties: List[Property] = []

    for name, fdef in fdefs.items():
        meta = fdef.meta
        if fdef.kind == SCALAR:
            properties.append(Property(name, meta.get('type'), meta.get('column') or name))

        elif fdef.kind == PRIMARY_KEY:
            ptype = meta.get('type')
            if not _is_key_type(ptype):
                raise DefinitionError(f"{owner}.{name}: primary keys should be numeric or str, got {ptype!r}")
            properties.append(PrimaryKeyProperty(name, ptype, meta.get('column') or name))

        elif fdef.kind == MANY_TO_ONE:
            target = _resolve_single(owner, fdef, resolve)
            target_name = meta.get('target_name') or f"{name}_id"
            if target_name not in _scalar_names(entity_type):
                raise DefinitionError(
                    f"{owner}.{name}: many-to-one foreign keys must point to a simple property of {owner}; "
                    f"{target_name!r} not found"
                )
            properties.append(ManyToOneProperty(
                name, target, None,
                cascade_save=meta.get('cascade_save', False),
                cascade_delete=meta.get('cascade_delete', False),
                target_name=target_name,
            ))

        elif fdef.kind == ONE_TO_MANY:
            target = _resolve_many(owner, fdef, resolve, 'one-to-many')
            target_name = meta.get('target_name') or f"{snake_case(owner)}_id"
            if target_name not in _scalar_names(target):
                raise DefinitionError(
                    f"{owner}.{name}: one-to-many foreign keys must point to a simple property of "
                    f"{target.__name__}; {target_name!r} not found"
                )
            properties.append(OneToManyProperty(
                name, target, None,
                cascade_save=meta.get('cascade_save', False),
                cascade_delete=meta.get('cascade_delete', False),
                target_name=target_name,
            ))

        elif fdef.kind == MANY_TO_MANY:
            target = _resolve_many(owner, fdef, resolve, 'many-to-many')
            junction = meta.get('junction_table')
            own_column = meta.get('own_column')
            other_column = meta.get('other_column')
            if not all(isinstance(v, str) and v for v in (junction, own_column, other_column)):
                raise DefinitionError(
                    f"{owner}.{name}: many-to-many foreign keys need a junction table and both of its columns"
                )
            properties.append(ManyToManyProperty(
                name, target, None,
                cascade_save=meta.get('cascade_save', False),
                cascade_delete=meta.get('cascade_delete', False),
                junction_table=junction,
                own_column=own_column,
                other_column=other_column,
            ))

        else:
            raise DefinitionError(f"{owner}.{name}: unknown field kind {fdef.kind!r}")

    resource = Resource(entity_type, table_name, properties)
    _logger.debug(
        "berryorm: built resource %s table=%s pk=%s relations=%s",
        owner, table_name, resource.pk_name, [p.name for p in resource.foreign_key_properties],
    )
    return resource
