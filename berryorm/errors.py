"""Exceptions raised by BerryORM.

Storage failures are never wrapped: whatever the storage layer raises reaches
the caller unchanged.
"""
from __future__ import annotations
from typing import Any, Optional


class BerryORMError(Exception):
    """Base class of every error raised by BerryORM itself."""


class ArgumentError(BerryORMError, TypeError):
    """A public entry point received a missing or wrongly typed argument.

    Raised synchronously, before any storage call is made.
    """


class DefinitionError(BerryORMError):
    """An entity class is declared incorrectly (raised at registration)."""


class NotRegisteredError(BerryORMError):
    def __init__(self, entity_type: Any):
        self.entity_type = entity_type
        name = getattr(entity_type, '__name__', entity_type)
        super().__init__(f"Entity {name} is not registered")


class DuplicateKeyError(BerryORMError):
    def __init__(self, entity: str, key: Any):
        self.entity = entity
        self.key = key
        super().__init__(f"Can not create {entity}: primary key {key!r} already exists")


class NotFoundError(BerryORMError):
    def __init__(self, entity: str, key: Any, operation: Optional[str] = None):
        self.entity = entity
        self.key = key
        self.operation = operation
        verb = operation or 'find'
        super().__init__(f"Can not {verb} {entity}: primary key {key!r} does not exist")


class UnknownPropertyError(BerryORMError):
    def __init__(self, entity: str, property_name: str):
        self.entity = entity
        self.property_name = property_name
        super().__init__(f"Property {property_name!r} could not be found on {entity}")
