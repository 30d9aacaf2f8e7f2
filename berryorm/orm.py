from __future__ import annotations
import asyncio
import logging
import numbers
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple, Type

from .core.filters import Filter, translate_filters, validate_filters
from .core.paths import traverse_paths, wants
from .core.properties import (
    ForeignKeyProperty,
    ManyToManyProperty,
    ManyToOneProperty,
    OneToManyProperty,
)
from .core.utils import gather_cancelling
from .entity import Entity
from .errors import ArgumentError, DuplicateKeyError, NotFoundError, UnknownPropertyError
from .registry import ResourceRegistry, validate_entity_type
from .resource import Resource
from .storage.base import StoragePort

_logger = logging.getLogger("berryorm")

_CREATE = 'create'
_UPDATE = 'update'


class _Record(dict):
    """Property-keyed working copy of one entity being written or deleted.

    Relation values are nested ``_Record`` objects (many-to-one) or lists of
    them. ``source`` is the caller's object the record was built from, so
    storage-assigned keys can be written back to it. An object reachable
    several times in one graph gets a single record, written at most once:
    ``lock`` serializes concurrent saves and ``written`` is set once its row
    has been stored.
    """

    __slots__ = ('source', 'lock', 'written')

    def __init__(self, source: Any):
        super().__init__()
        self.source = source
        self.lock = asyncio.Lock()
        self.written = False


# --- Argument checks (synchronous, before any I/O) ------------------------

def _validate_pk_value(value: Any) -> None:
    if value is None:
        raise ArgumentError("Primary key value must not be None")
    if isinstance(value, bool) or not isinstance(value, (numbers.Number, str)):
        raise ArgumentError(f"Primary key value is of an invalid type: {type(value).__name__}")


def _validate_paths(paths: Any) -> Optional[List[str]]:
    if paths is None:
        return None
    if isinstance(paths, (str, bytes)) or not isinstance(paths, Iterable):
        raise ArgumentError("Foreign key paths must be a list of str")
    out = list(paths)
    for p in out:
        if not isinstance(p, str):
            raise ArgumentError(f"Foreign key path is of an invalid type: {type(p).__name__}")
    return out


def _validate_limit(limit: Any) -> Optional[int]:
    if limit is None:
        return None
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 0:
        raise ArgumentError(f"Limit must be a non-negative int, got {limit!r}")
    return limit


def _validate_data(data: Any) -> Mapping[str, Any]:
    if data is None:
        raise ArgumentError("Data map must not be None")
    if not isinstance(data, Mapping):
        raise ArgumentError(f"Data map is of an invalid type: {type(data).__name__}")
    return data


class BerryORM:
    """Cascading CRUD over registered entities.

    The ORM owns no connection: every read and write goes through the given
    :class:`~berryorm.storage.base.StoragePort`. Related entities are read
    only when asked for with dotted foreign-key paths, and written or deleted
    recursively according to each relation's own cascade flags.

    Sibling sub-operations (the relations of one entity, or one relation
    across many entities) run concurrently; the first failure cancels the
    siblings still in flight and propagates unchanged. Nothing is rolled
    back: storage calls that already completed stay committed.

    Example:
        orm = BerryORM(MemoryStorage())
        orm.register(Employee)
        emp_id = await orm.create(Employee(name='Jo', company_id=1))
        emp = await orm.read_by_id(Employee, emp_id, paths=['company'])
    """

    def __init__(self, storage: StoragePort, registry: Optional[ResourceRegistry] = None):
        if storage is None:
            raise ArgumentError("Storage must not be None")
        if not isinstance(storage, StoragePort):
            raise ArgumentError(f"Storage is of an invalid type: {type(storage).__name__}")
        if registry is not None and not isinstance(registry, ResourceRegistry):
            raise ArgumentError(f"Registry is of an invalid type: {type(registry).__name__}")
        self.storage = storage
        self.registry = registry if registry is not None else ResourceRegistry()

    # ---------- Registration ----------
    def register(self, *entity_types: Type[Entity]) -> int:
        """Register entity classes (and everything they reach); returns how many were new."""
        if not entity_types:
            raise ArgumentError("At least one entity type is required")
        return self.registry.register_all(entity_types)

    def resource(self, entity_type: Type[Entity]) -> Resource:
        validate_entity_type(entity_type)
        return self.registry.lookup(entity_type)

    def _resource_of(self, entity: Any) -> Resource:
        if entity is None:
            raise ArgumentError("Entity must not be None")
        if not isinstance(entity, Entity):
            raise ArgumentError(f"Entity is of an invalid type: {type(entity).__name__}")
        return self.registry.lookup(type(entity))

    # ---------- Read ----------
    async def count(self, entity_type: Type[Entity], filters: Optional[Sequence[Filter]] = None) -> int:
        """Count the entities matching every filter."""
        resource = self.resource(entity_type)
        db_filters = translate_filters(validate_filters(filters), resource)
        return await self.storage.count(resource.table_name, db_filters)

    async def has_id(self, entity_type: Type[Entity], pk: Any) -> bool:
        """Whether a row with primary key ``pk`` exists."""
        resource = self.resource(entity_type)
        _validate_pk_value(pk)
        return await self._exists(resource, pk)

    async def read(
        self,
        entity_type: Type[Entity],
        filters: Optional[Sequence[Filter]] = None,
        paths: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
    ) -> List[Entity]:
        """Read the entities matching every filter.

        Args:
            entity_type: Registered entity class.
            filters: Property-name equality filters, AND'd.
            paths: Dotted foreign-key paths to resolve eagerly, e.g.
                ``['employees.employee_type']`` loads each entity's
                ``employees`` and, for every employee, its ``employee_type``.
            limit: Maximum number of entities.
        """
        resource = self.resource(entity_type)
        db_filters = translate_filters(validate_filters(filters), resource)
        return await self._read(resource, db_filters, _validate_paths(paths), _validate_limit(limit))

    async def read_by_id(
        self,
        entity_type: Type[Entity],
        pk: Any,
        paths: Optional[Sequence[str]] = None,
    ) -> Optional[Entity]:
        """Return the entity with primary key ``pk``, or ``None`` when there is none."""
        resource = self.resource(entity_type)
        _validate_pk_value(pk)
        found = await self._read(resource, [Filter(resource.pk_column, pk)], _validate_paths(paths), 1)
        return found[0] if found else None

    # ---------- Write ----------
    async def create(self, entity: Entity) -> Any:
        """Insert ``entity`` with a storage-assigned key and return that key.

        A caller-supplied primary key is ignored (use :meth:`save` to insert
        with a chosen key). The new keys are written back into the entity
        graph.

        Raises:
            DuplicateKeyError: the supplied primary key already exists.
        """
        resource = self._resource_of(entity)
        return await self._create(resource, self._to_record(resource, entity))

    async def create_from_map(self, entity_type: Type[Entity], data: Mapping[str, Any]) -> Any:
        """Like :meth:`create`, for a property-keyed mapping."""
        resource = self.resource(entity_type)
        return await self._create(resource, self._to_record(resource, _validate_data(data)))

    async def update(self, entity: Entity) -> Any:
        """Update the row identified by the entity's primary key; return that key.

        Raises:
            NotFoundError: no row has that primary key.
        """
        resource = self._resource_of(entity)
        return await self._update(resource, self._to_record(resource, entity))

    async def update_from_map(self, entity_type: Type[Entity], data: Mapping[str, Any]) -> Any:
        """Like :meth:`update`, for a property-keyed mapping."""
        resource = self.resource(entity_type)
        return await self._update(resource, self._to_record(resource, _validate_data(data)))

    async def save(self, entity: Entity) -> Any:
        """Update the entity when its key exists, create it otherwise.

        Unlike :meth:`create`, a supplied primary key is kept on insertion.
        """
        resource = self._resource_of(entity)
        return await self._save_top(resource, self._to_record(resource, entity))

    async def save_from_map(self, entity_type: Type[Entity], data: Mapping[str, Any]) -> Any:
        """Like :meth:`save`, for a property-keyed mapping."""
        resource = self.resource(entity_type)
        return await self._save_top(resource, self._to_record(resource, _validate_data(data)))

    # ---------- Delete ----------
    async def delete(self, entity: Entity) -> None:
        """Delete the entity's row, cascading per each relation's ``cascade_delete``.

        Relations already loaded on the entity are used as-is; cascaded
        relations that are not loaded are read first.

        Raises:
            NotFoundError: no row has the entity's primary key.
        """
        resource = self._resource_of(entity)
        await self._delete_top(resource, self._to_record(resource, entity))

    async def delete_by_id(self, entity_type: Type[Entity], pk: Any) -> None:
        resource = self.resource(entity_type)
        _validate_pk_value(pk)
        found = await self._read(resource, [Filter(resource.pk_column, pk)], None, 1)
        if not found:
            raise NotFoundError(resource.name, pk, 'delete')
        await self._delete(resource, self._to_record(resource, found[0]), set())

    async def delete_from_map(self, entity_type: Type[Entity], data: Mapping[str, Any]) -> None:
        resource = self.resource(entity_type)
        await self._delete_top(resource, self._to_record(resource, _validate_data(data)))

    # ======================================================================
    # Internals
    # ======================================================================

    async def _exists(self, resource: Resource, pk: Any) -> bool:
        if pk is None:
            return False
        return await self.storage.count(resource.table_name, [Filter(resource.pk_column, pk)]) > 0

    # ---------- Read internals ----------
    async def _read(
        self,
        resource: Resource,
        db_filters: Optional[List[Filter]],
        paths: Optional[List[str]],
        limit: Optional[int] = None,
    ) -> List[Entity]:
        rows = await self.storage.read(resource.table_name, resource.all_columns, db_filters, limit)
        entities = [resource.to_entity(r) for r in rows]
        if paths and entities and resource.foreign_key_properties:
            await gather_cancelling(self._resolve_relations(resource, e, paths) for e in entities)
        return entities

    async def _resolve_relations(self, resource: Resource, entity: Entity, paths: List[str]) -> None:
        wanted = [fk for fk in resource.foreign_key_properties if wants(paths, fk.name)]
        values = await gather_cancelling(
            self._resolve_relation(resource, fk, entity, traverse_paths(paths, fk.name)) for fk in wanted
        )
        for fk, value in zip(wanted, values):
            setattr(entity, fk.name, value)

    async def _resolve_relation(
        self,
        resource: Resource,
        fk: ForeignKeyProperty,
        entity: Entity,
        sub_paths: List[str],
    ) -> Any:
        target = self.registry.lookup(fk.target)
        if isinstance(fk, ManyToOneProperty):
            ref = getattr(entity, fk.target_name)
            if ref is None:
                return None
            found = await self._read(target, [Filter(target.pk_column, ref)], sub_paths, 1)
            return found[0] if found else None

        own_pk = getattr(entity, resource.pk_name)
        if isinstance(fk, OneToManyProperty):
            column = target.get_property(fk.target_name).column_name
            return await self._read(target, [Filter(column, own_pk)], sub_paths)

        if isinstance(fk, ManyToManyProperty):
            return await self._read_linked(fk, target, own_pk, sub_paths)
        raise TypeError(f"Unsupported foreign key {fk!r}")  # pragma: no cover

    async def _read_linked(
        self,
        fk: ManyToManyProperty,
        target: Resource,
        own_pk: Any,
        sub_paths: Optional[List[str]],
    ) -> List[Entity]:
        links = await self.storage.read(fk.junction_table, [fk.other_column], [Filter(fk.own_column, own_pk)])
        found = await gather_cancelling(
            self._read(target, [Filter(target.pk_column, link[fk.other_column])], sub_paths, 1)
            for link in links
        )
        return [f[0] for f in found if f]

    # ---------- Record conversion ----------
    def _to_record(
        self,
        resource: Resource,
        obj: Any,
        _active: Optional[Set[int]] = None,
        _seen: Optional[Dict[int, _Record]] = None,
    ) -> _Record:
        """Build the property-keyed working copy of ``obj`` (entity or mapping).

        Objects already on the current conversion path are not descended into
        again, which cuts cycles such as ``company.employees[0].company``. An
        object met again elsewhere in the graph reuses its first record.
        """
        active = _active if _active is not None else set()
        seen = _seen if _seen is not None else {}
        if isinstance(obj, Entity):
            if type(obj) is not resource.entity_type:
                raise ArgumentError(f"Expected {resource.name}, got {type(obj).__name__}")
            values: Mapping[str, Any] = {n: getattr(obj, n) for n in type(obj).__entity_fields__}
        elif isinstance(obj, Mapping):
            for key in obj:
                if not isinstance(key, str) or not resource.has_property(key):
                    raise UnknownPropertyError(resource.name, str(key))
            values = obj
        else:
            raise ArgumentError(f"Expected {resource.name} or a mapping, got {type(obj).__name__}")

        existing = seen.get(id(obj))
        if existing is not None:
            return existing
        record = _Record(obj)
        seen[id(obj)] = record
        for p in resource.simple_and_primary_key_properties:
            record[p.name] = values.get(p.name)

        active.add(id(obj))
        try:
            for fk in resource.foreign_key_properties:
                value = values.get(fk.name)
                if value is None:
                    continue
                target = self.registry.lookup(fk.target)
                if isinstance(fk, ManyToOneProperty):
                    if id(value) not in active:
                        record[fk.name] = self._to_record(target, value, active, seen)
                    continue
                if isinstance(value, (str, bytes, Mapping)) or not isinstance(value, Iterable):
                    raise ArgumentError(f"{resource.name}.{fk.name} must be a list")
                record[fk.name] = [
                    self._to_record(target, item, active, seen)
                    for item in value
                    if id(item) not in active
                ]
        finally:
            active.discard(id(obj))
        return record

    def _write_back(self, resource: Resource, record: _Record, _visited: Optional[Set[int]] = None) -> None:
        """Copy stored values into the caller's entities.

        Only records whose row was written are copied; relations that were
        not cascaded leave the caller's objects as they were.
        """
        visited = _visited if _visited is not None else set()
        if id(record) in visited:
            return
        visited.add(id(record))
        if record.written and isinstance(record.source, Entity):
            for p in resource.simple_and_primary_key_properties:
                setattr(record.source, p.name, record.get(p.name))
        for fk in resource.foreign_key_properties:
            value = record.get(fk.name)
            if value is None:
                continue
            target = self.registry.lookup(fk.target)
            for nested in (value if isinstance(value, list) else [value]):
                self._write_back(target, nested, visited)

    # ---------- Write internals ----------
    async def _create(self, resource: Resource, record: _Record) -> Any:
        pk = record.get(resource.pk_name)
        if pk is not None and await self._exists(resource, pk):
            raise DuplicateKeyError(resource.name, pk)
        record[resource.pk_name] = None
        key = await self._persist(resource, record, _CREATE)
        self._write_back(resource, record)
        return key

    async def _update(self, resource: Resource, record: _Record) -> Any:
        pk = record.get(resource.pk_name)
        if not await self._exists(resource, pk):
            raise NotFoundError(resource.name, pk, 'update')
        key = await self._persist(resource, record, _UPDATE)
        self._write_back(resource, record)
        return key

    async def _save_top(self, resource: Resource, record: _Record) -> Any:
        key = await self._save(resource, record)
        self._write_back(resource, record)
        return key

    async def _save(self, resource: Resource, record: _Record) -> Any:
        async with record.lock:
            if record.written:
                return record[resource.pk_name]
            exists = await self._exists(resource, record.get(resource.pk_name))
            return await self._persist(resource, record, _UPDATE if exists else _CREATE)

    async def _persist(self, resource: Resource, record: _Record, mode: str) -> Any:
        """Write one record and its cascade-on-save relations.

        Many-to-one targets go first (their keys are copied into this row),
        then the row itself, then one-to-many children (stamped with this
        row's key) and many-to-many links.
        """
        parents = [
            fk for fk in resource.foreign_key_properties
            if isinstance(fk, ManyToOneProperty) and fk.cascade_save and record.get(fk.name) is not None
        ]
        if parents:
            keys = await gather_cancelling(
                self._save(self.registry.lookup(fk.target), record[fk.name]) for fk in parents
            )
            for fk, key in zip(parents, keys):
                record[fk.target_name] = key

        row = resource.to_row(record)
        if mode == _CREATE:
            pk = await self.storage.create(resource.table_name, resource.pk_column, resource.columns, row)
        else:
            pk = await self.storage.update(resource.table_name, resource.pk_column, resource.columns, row)
        record[resource.pk_name] = pk
        record.written = True
        _logger.debug("berryorm: %s %s %s=%r", mode, resource.name, resource.pk_name, pk)

        jobs = []
        for fk in resource.foreign_key_properties:
            if not fk.cascade_save or record.get(fk.name) is None:
                continue
            target = self.registry.lookup(fk.target)
            if isinstance(fk, OneToManyProperty):
                for child in record[fk.name]:
                    # The parent's key wins over whatever the child carried.
                    child[fk.target_name] = pk
                    jobs.append(self._save(target, child))
            elif isinstance(fk, ManyToManyProperty):
                for other in record[fk.name]:
                    jobs.append(self._link(fk, target, pk, other))
        if jobs:
            await gather_cancelling(jobs)
        return pk

    async def _link(self, fk: ManyToManyProperty, target: Resource, own_pk: Any, other: _Record) -> None:
        other_pk = await self._save(target, other)
        link = [Filter(fk.own_column, own_pk), Filter(fk.other_column, other_pk)]
        if await self.storage.count(fk.junction_table, link) == 0:
            await self.storage.create(
                fk.junction_table, None, [fk.own_column, fk.other_column],
                {fk.own_column: own_pk, fk.other_column: other_pk},
            )

    # ---------- Delete internals ----------
    async def _delete_top(self, resource: Resource, record: _Record) -> None:
        pk = record.get(resource.pk_name)
        if not await self._exists(resource, pk):
            raise NotFoundError(resource.name, pk, 'delete')
        await self._delete(resource, record, set())

    async def _delete(self, resource: Resource, record: _Record, deleted: Set[Tuple[str, Any]]) -> None:
        """Delete one row and its cascade-on-delete relations.

        One-to-many children and junction rows go before the row, a
        many-to-one target after it, so storage-level foreign key constraints
        hold. ``deleted`` holds ``(table, pk)`` pairs already handled by this
        call; it is updated before any await.
        """
        pk = record.get(resource.pk_name)
        key = (resource.table_name, pk)
        if pk is None or key in deleted:
            return
        deleted.add(key)

        before = []
        after: List[Tuple[Resource, Optional[_Record], Any]] = []
        for fk in resource.foreign_key_properties:
            target = self.registry.lookup(fk.target)
            if isinstance(fk, ManyToManyProperty):
                before.append(self._unlink(fk, target, record, pk, deleted))
            elif not fk.cascade_delete:
                continue
            elif isinstance(fk, OneToManyProperty):
                before.append(self._delete_children(fk, target, record, pk, deleted))
            elif isinstance(fk, ManyToOneProperty):
                ref = record.get(fk.target_name)
                if ref is not None:
                    after.append((target, record.get(fk.name), ref))
        if before:
            await gather_cancelling(before)

        await self.storage.delete(resource.table_name, [Filter(resource.pk_column, pk)])
        _logger.debug("berryorm: delete %s %s=%r", resource.name, resource.pk_name, pk)

        if after:
            await gather_cancelling(
                self._delete_referenced(target, nested, ref, deleted) for target, nested, ref in after
            )

    async def _delete_children(
        self,
        fk: OneToManyProperty,
        target: Resource,
        record: _Record,
        pk: Any,
        deleted: Set[Tuple[str, Any]],
    ) -> None:
        children = record.get(fk.name)
        if children is None:
            column = target.get_property(fk.target_name).column_name
            loaded = await self._read(target, [Filter(column, pk)], None)
            children = [self._to_record(target, e) for e in loaded]
        if children:
            await gather_cancelling(self._delete(target, c, deleted) for c in children)

    async def _unlink(
        self,
        fk: ManyToManyProperty,
        target: Resource,
        record: _Record,
        pk: Any,
        deleted: Set[Tuple[str, Any]],
    ) -> None:
        related: Optional[List[_Record]] = None
        if fk.cascade_delete:
            related = record.get(fk.name)
            if related is None:
                loaded = await self._read_linked(fk, target, pk, None)
                related = [self._to_record(target, e) for e in loaded]
        # Junction rows never outlive the row they reference.
        await self.storage.delete(fk.junction_table, [Filter(fk.own_column, pk)])
        if related:
            await gather_cancelling(self._delete(target, r, deleted) for r in related)

    async def _delete_referenced(
        self,
        target: Resource,
        nested: Optional[_Record],
        ref: Any,
        deleted: Set[Tuple[str, Any]],
    ) -> None:
        if nested is None or nested.get(target.pk_name) != ref:
            found = await self._read(target, [Filter(target.pk_column, ref)], None, 1)
            if not found:
                return
            nested = self._to_record(target, found[0])
        await self._delete(target, nested, deleted)


__all__ = ['BerryORM']
