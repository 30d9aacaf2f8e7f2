from __future__ import annotations
import logging
from typing import Any, Dict, Iterable, Iterator, List, Type

from .entity import Entity
from .errors import ArgumentError, DefinitionError, NotRegisteredError
from .resource import Resource, build_resource

_logger = logging.getLogger("berryorm")


def _entity_subclasses() -> Iterator[Type[Entity]]:
    stack = list(Entity.__subclasses__())
    seen = set()
    while stack:
        cls = stack.pop()
        if cls in seen:
            continue
        seen.add(cls)
        yield cls
        stack.extend(cls.__subclasses__())


class ResourceRegistry:
    """Holds the Resources known to one ORM instance.

    Registries are constructed explicitly and passed around by handle; there
    is no shared default instance. Registering a type also registers every
    entity type reachable through its declared foreign keys.

    Example:
        registry = ResourceRegistry()
        registry.register(Employee)   # also registers Company, EmployeeType
        registry.lookup(Company).table_name
    """

    def __init__(self):
        self._resources: Dict[Type[Entity], Resource] = {}

    def register(self, entity_type: Type[Entity]) -> Resource:
        """Register ``entity_type`` and everything reachable from it.

        Idempotent. When any reachable type is malformed, DefinitionError is
        raised and the registry is left as it was.
        """
        validate_entity_type(entity_type)
        existing = self._resources.get(entity_type)
        if existing is not None:
            return existing
        staged: Dict[Type[Entity], Resource] = {}
        self._build_into(entity_type, staged)
        self._resources.update(staged)
        for res in staged.values():
            _logger.info("berryorm: registered %s (table %s)", res.name, res.table_name)
        return staged[entity_type]

    def register_all(self, entity_types: Iterable[Type[Entity]]) -> int:
        """Register several types; returns how many were not known before."""
        if entity_types is None or isinstance(entity_types, (str, bytes)):
            raise ArgumentError("List of entity type must be an iterable of Entity classes")
        types = list(entity_types)
        for et in types:
            validate_entity_type(et)
        before = len(self._resources)
        for et in types:
            self.register(et)
        return len(self._resources) - before

    def lookup(self, entity_type: Type[Entity]) -> Resource:
        try:
            return self._resources[entity_type]
        except (KeyError, TypeError):
            raise NotRegisteredError(entity_type) from None

    def is_registered(self, entity_type: Any) -> bool:
        try:
            return entity_type in self._resources
        except TypeError:
            return False

    __contains__ = is_registered

    def clear(self) -> None:
        self._resources.clear()

    def __iter__(self) -> Iterator[Resource]:
        return iter(list(self._resources.values()))

    def __len__(self) -> int:
        return len(self._resources)

    # ---- internals ----
    def _build_into(self, entity_type: Type[Entity], staged: Dict[Type[Entity], Resource]) -> None:
        # Stops as soon as a type is known, which terminates cyclic graphs.
        if entity_type in self._resources or entity_type in staged:
            return
        resource = build_resource(entity_type, lambda t: self._resolve_target(t, staged))
        staged[entity_type] = resource
        for fk in resource.foreign_key_properties:
            self._build_into(fk.target, staged)

    def _resolve_target(self, target: Any, staged: Dict[Type[Entity], Resource]) -> Any:
        """Turn a relation target reference into an entity class.

        Classes are returned unchanged (the builder rejects non-entities).
        Strings are matched against the class names of registered (or
        currently staged) entities first, then of every defined Entity subclass.
        """
        if not isinstance(target, str):
            return target
        for cls in list(self._resources) + list(staged):
            if cls.__name__ == target:
                return cls
        matches: List[Type[Entity]] = [c for c in _entity_subclasses() if c.__name__ == target]
        if not matches:
            raise DefinitionError(f"Unknown entity {target!r} referenced by a foreign key")
        if len(matches) > 1:
            raise DefinitionError(
                f"Entity name {target!r} is ambiguous ({len(matches)} classes); reference the class instead"
            )
        return matches[0]


def validate_entity_type(entity_type: Any) -> None:
    if entity_type is None:
        raise ArgumentError("Entity type must not be None")
    if not isinstance(entity_type, type) or not issubclass(entity_type, Entity) or entity_type is Entity:
        raise ArgumentError(f"Entity type is of an invalid type: {entity_type!r}")


__all__ = ['ResourceRegistry', 'validate_entity_type']
