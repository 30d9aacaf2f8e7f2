from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class Property:
    """Link between an entity attribute and a table column.

    Attributes:
        name: Attribute name on the entity.
        type: Declared Python type of the attribute.
        column_name: Column in the table; ``None`` for foreign-key properties,
            which hold related entities rather than a stored value.
    """

    name: str
    type: Any
    column_name: Optional[str]


@dataclass(frozen=True)
class PrimaryKeyProperty(Property):
    """The property an entity is identified with (numeric or ``str``)."""


@dataclass(frozen=True)
class ForeignKeyProperty(Property):
    """Base of the three relation kinds.

    ``type`` holds the target entity class. The cascade flags are independent:
    ``cascade_save`` drives recursive persistence, ``cascade_delete`` recursive
    removal.
    """

    cascade_save: bool = False
    cascade_delete: bool = False

    @property
    def target(self) -> Any:
        return self.type


@dataclass(frozen=True)
class ManyToOneProperty(ForeignKeyProperty):
    # Simple property on the same entity holding the target's primary key.
    target_name: str = ''


@dataclass(frozen=True)
class OneToManyProperty(ForeignKeyProperty):
    # Simple property on the target entity holding this entity's primary key.
    target_name: str = ''


@dataclass(frozen=True)
class ManyToManyProperty(ForeignKeyProperty):
    junction_table: str = ''
    own_column: str = ''
    other_column: str = ''
