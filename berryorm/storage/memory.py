"""In-process storage keeping tables as lists of dicts.

Useful for tests and prototyping. Every call yields to the event loop once so
concurrent cascades interleave the way they would against a real driver.
"""
from __future__ import annotations
import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..core.filters import Filter
from .base import StoragePort

logger = logging.getLogger("berryorm")


def _matches(row: Mapping[str, Any], filters: Optional[Sequence[Filter]]) -> bool:
    return all(row.get(f.name) == f.value for f in (filters or ()))


class MemoryStorage(StoragePort):
    """Tables are created on first use; integer keys auto-increment.

    Attributes:
        tables: ``table name -> list of column-keyed rows``.
        calls: ``(operation, table)`` for every call, in order.
    """

    name = 'memory'

    def __init__(self, tables: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.tables: Dict[str, List[Dict[str, Any]]] = {
            t: [dict(r) for r in rows] for t, rows in (tables or {}).items()
        }
        self.calls: List[Tuple[str, str]] = []

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables.setdefault(table, [])

    async def _enter(self, op: str, table: str) -> List[Dict[str, Any]]:
        self.calls.append((op, table))
        await asyncio.sleep(0)
        return self.rows(table)

    async def count(self, table, filters=None) -> int:
        rows = await self._enter('count', table)
        return sum(1 for r in rows if _matches(r, filters))

    async def read(self, table, columns, filters=None, limit=None) -> List[Dict[str, Any]]:
        rows = await self._enter('read', table)
        out: List[Dict[str, Any]] = []
        for r in rows:
            if limit is not None and len(out) >= limit:
                break
            if _matches(r, filters):
                out.append({c: r.get(c) for c in columns})
        return out

    async def create(self, table, pk_column, columns, data) -> Any:
        rows = await self._enter('create', table)
        row = {c: data.get(c) for c in columns}
        if pk_column is None:
            rows.append(row)
            return None
        pk = data.get(pk_column)
        if pk is None:
            pk = self._next_id(rows, pk_column)
        elif any(r.get(pk_column) == pk for r in rows):
            raise KeyError(f"Duplicate primary key {pk!r} in {table}")
        row[pk_column] = pk
        rows.append(row)
        logger.debug("memory: created %s.%s=%r", table, pk_column, pk)
        return pk

    async def update(self, table, pk_column, columns, data) -> Any:
        rows = await self._enter('update', table)
        pk = data.get(pk_column)
        for r in rows:
            if r.get(pk_column) == pk:
                r.update({c: data.get(c) for c in columns})
                break
        return pk

    async def delete(self, table, filters=None) -> None:
        rows = await self._enter('delete', table)
        rows[:] = [r for r in rows if not _matches(r, filters)]

    @staticmethod
    def _next_id(rows: List[Dict[str, Any]], pk_column: str) -> int:
        ids = [r.get(pk_column) for r in rows if isinstance(r.get(pk_column), int)]
        return max(ids, default=0) + 1
