from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional

SCALAR = 'scalar'
PRIMARY_KEY = 'primary_key'
MANY_TO_ONE = 'many_to_one'
ONE_TO_MANY = 'one_to_many'
MANY_TO_MANY = 'many_to_many'

RELATION_KINDS = (MANY_TO_ONE, ONE_TO_MANY, MANY_TO_MANY)


@dataclass
class FieldDef:
    """Internal, normalized field description collected from an entity class.

    Attributes:
        name: The attribute name on the declaring entity (e.g. "employees").
        kind: One of "scalar", "primary_key", "many_to_one", "one_to_many",
            "many_to_many".
        meta: Metadata captured from the descriptor factory. Keys vary by kind
            and are interpreted when the Resource is built (e.g. type, column,
            target, target_name, junction_table, cascade_save, cascade_delete).
    """

    name: str
    kind: str
    meta: Dict[str, Any]

    @property
    def is_relation(self) -> bool:
        return self.kind in RELATION_KINDS


class FieldDescriptor:
    """Marker placed on entity classes to declare mapped properties.

    Users normally use the factories :func:`field`, :func:`primary_key`,
    :func:`many_to_one`, :func:`one_to_many` and :func:`many_to_many`, which
    return a ``FieldDescriptor``. The entity metaclass collects them into a
    table of :class:`FieldDef` entries; nothing else inspects the class.
    """

    def __init__(self, *, kind: str, **meta):
        self.kind = kind
        self.meta = dict(meta)
        self.name: str | None = None

    def __set_name__(self, owner, name):  # pragma: no cover - simple
        self.name = name

    def build(self) -> FieldDef:
        """Build the :class:`FieldDef` stored on the entity class."""
        return FieldDef(name=self.name or '', kind=self.kind, meta=self.meta)

    def __repr__(self) -> str:
        return f"FieldDescriptor(kind={self.kind!r}, name={self.name!r})"


def field(type: Any = str, column: Optional[str] = None, **meta) -> FieldDescriptor:
    """Declare a simple (scalar) property mapped to a column.

    Args:
        type: Declared Python type of the value (informational for scalars).
        column: Column name in the table; defaults to the attribute name.

    Example:
        class Employee(Entity):
            name = field(str)
            company_id = field(int, 'company_id')
    """
    return FieldDescriptor(kind=SCALAR, type=type, column=column, **meta)


def primary_key(type: Any = int, column: Optional[str] = None, **meta) -> FieldDescriptor:
    """Declare the primary key property.

    The declared type must be numeric or ``str``; this is validated when the
    entity is registered.

    Example:
        class Company(Entity):
            id = primary_key(int, 'company_id')
    """
    return FieldDescriptor(kind=PRIMARY_KEY, type=type, column=column, **meta)


def many_to_one(
    target: Any,
    target_name: Optional[str] = None,
    *,
    cascade_save: bool = False,
    cascade_delete: bool = False,
) -> FieldDescriptor:
    """Declare a many-to-one relation (this entity references one target).

    Args:
        target: Target entity class, or its class name as a string.
        target_name: Simple property on the SAME entity holding the target's
            primary key. Defaults to ``<attribute>_id``.
        cascade_save: Save the nested target before this entity.
        cascade_delete: Delete the referenced target together with this entity.

    Example:
        class Employee(Entity):
            company_id = field(int)
            company = many_to_one('Company', 'company_id')
    """
    return FieldDescriptor(
        kind=MANY_TO_ONE,
        target=target,
        target_name=target_name,
        cascade_save=bool(cascade_save),
        cascade_delete=bool(cascade_delete),
    )


def one_to_many(
    target: Any,
    target_name: Optional[str] = None,
    *,
    cascade_save: bool = False,
    cascade_delete: bool = False,
) -> FieldDescriptor:
    """Declare a one-to-many relation (many targets reference this entity).

    Args:
        target: Target entity class, or its class name as a string.
        target_name: Simple property on the TARGET entity holding this
            entity's primary key. Defaults to ``<this entity in snake_case>_id``.
        cascade_save: Save nested children after this entity, stamping
            ``target_name`` with this entity's primary key.
        cascade_delete: Delete the children before this entity.

    Example:
        class Company(Entity):
            employees = one_to_many('Employee', 'company_id', cascade_save=True)
    """
    return FieldDescriptor(
        kind=ONE_TO_MANY,
        target=target,
        target_name=target_name,
        cascade_save=bool(cascade_save),
        cascade_delete=bool(cascade_delete),
    )


def many_to_many(
    target: Any,
    junction_table: str,
    own_column: str,
    other_column: str,
    *,
    cascade_save: bool = False,
    cascade_delete: bool = False,
) -> FieldDescriptor:
    """Declare a many-to-many relation through a junction table.

    Args:
        target: Target entity class, or its class name as a string.
        junction_table: Name of the table linking both entities.
        own_column: Junction column holding this entity's primary key.
        other_column: Junction column holding the target's primary key.

    Example:
        class Project(Entity):
            members = many_to_many('Employee', 'project_member', 'project_id', 'employee_id')
    """
    return FieldDescriptor(
        kind=MANY_TO_MANY,
        target=target,
        junction_table=junction_table,
        own_column=own_column,
        other_column=other_column,
        cascade_save=bool(cascade_save),
        cascade_delete=bool(cascade_delete),
    )
