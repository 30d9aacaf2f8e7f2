"""BerryORM public API.

Exposes:
- Entity and the field factories (field, primary_key, many_to_one, one_to_many, many_to_many)
- BerryORM (the cascading CRUD engine), ResourceRegistry, Resource, Filter
- Storage: StoragePort, MemoryStorage; SQLAlchemyStorage is resolved lazily
- Settings / load_settings and the error classes
"""
from __future__ import annotations

from .config import Settings, load_settings
from .core.fields import field, many_to_many, many_to_one, one_to_many, primary_key
from .core.filters import Filter
from .entity import Entity
from .errors import (
    ArgumentError,
    BerryORMError,
    DefinitionError,
    DuplicateKeyError,
    NotFoundError,
    NotRegisteredError,
    UnknownPropertyError,
)
from .orm import BerryORM
from .registry import ResourceRegistry
from .resource import Resource
from .storage import MemoryStorage, StoragePort


def __getattr__(name: str):  # PEP 562 lazy exports
    # Importing SQLAlchemy only when the SQL storage is asked for.
    if name == 'SQLAlchemyStorage':
        from .storage.sql import SQLAlchemyStorage
        return SQLAlchemyStorage
    raise AttributeError(name)


__version__ = '0.1.0'

__all__ = [
    'Entity', 'field', 'primary_key', 'many_to_one', 'one_to_many', 'many_to_many',
    'BerryORM', 'ResourceRegistry', 'Resource', 'Filter',
    'StoragePort', 'MemoryStorage', 'SQLAlchemyStorage',
    'Settings', 'load_settings',
    'BerryORMError', 'ArgumentError', 'DefinitionError', 'NotRegisteredError',
    'DuplicateKeyError', 'NotFoundError', 'UnknownPropertyError',
]
