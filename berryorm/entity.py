"""Entity base class.

Entities are plain classes declaring their mapped properties with the
descriptor factories from :mod:`berryorm.core.fields`::

    class Company(Entity):
        __tablename__ = 'company'
        id = primary_key(int, 'company_id')
        name = field(str)
        employees = one_to_many('Employee', 'company_id', cascade_save=True)

The metaclass turns those descriptors into a ``__entity_fields__`` table.
Registration reads that table only; instances are schema-checked records
whose attributes are exactly the declared properties.
"""
from __future__ import annotations
from typing import Any, Dict

from .core.fields import FieldDef, FieldDescriptor


class EntityMeta(type):
    def __new__(mcls, name, bases, namespace):
        fdefs: Dict[str, FieldDef] = {}
        for base in reversed(bases):
            fdefs.update(getattr(base, '__entity_fields__', {}) or {})
        for k, v in list(namespace.items()):
            if isinstance(v, FieldDescriptor):
                v.__set_name__(None, k)
                fdefs[k] = v.build()
                # Instances carry the values; the class keeps only the table.
                del namespace[k]
        namespace['__entity_fields__'] = fdefs
        return super().__new__(mcls, name, bases, namespace)


class Entity(metaclass=EntityMeta):
    """Base class of mapped entities.

    Every declared property is an attribute, ``None`` until set. Unknown
    keyword arguments and unknown attributes are rejected.
    """

    __entity_fields__: Dict[str, FieldDef] = {}
    __tablename__: str | None = None

    def __init__(self, **values: Any):
        fields = type(self).__entity_fields__
        unknown = [k for k in values if k not in fields]
        if unknown:
            raise TypeError(f"{type(self).__name__} has no properties {', '.join(sorted(unknown))}")
        for name in fields:
            object.__setattr__(self, name, values.get(name))

    def __setattr__(self, name: str, value: Any) -> None:
        if name not in type(self).__entity_fields__:
            raise AttributeError(f"{type(self).__name__} has no property {name!r}")
        object.__setattr__(self, name, value)

    def to_dict(self) -> Dict[str, Any]:
        """Scalar and primary key values keyed by property name."""
        return {
            name: getattr(self, name)
            for name, fdef in type(self).__entity_fields__.items()
            if not fdef.is_relation
        }

    def __eq__(self, other: Any) -> bool:
        # Row equality: relation attributes may form cycles and are not compared.
        if type(other) is not type(self):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        vals = ', '.join(f"{k}={v!r}" for k, v in self.to_dict().items())
        return f"{type(self).__name__}({vals})"
