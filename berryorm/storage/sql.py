"""
SQL storage built on SQLAlchemy Core and an ``AsyncEngine``.

Tables are addressed by name through lightweight ``table()``/``column()``
constructs, so no ORM models or reflected metadata are needed. Each call runs
in its own ``engine.begin()`` transaction and commits on return.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy import and_, column, delete, func, insert, select, table, update
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.sql import TableClause

from ..config import Settings
from ..core.filters import Filter
from .base import StoragePort

logger = logging.getLogger("berryorm")


def _table(name: str, *columns: Optional[str]) -> TableClause:
    seen: List[str] = []
    for c in columns:
        if c and c not in seen:
            seen.append(c)
    return table(name, *[column(c) for c in seen])


def _where(tbl: TableClause, filters: Optional[Sequence[Filter]]):
    exprs = [tbl.c[f.name] == f.value for f in (filters or ())]
    if not exprs:
        return None
    return and_(*exprs)


class SQLAlchemyStorage(StoragePort):
    """Storage over any SQLAlchemy async dialect (sqlite+aiosqlite, postgresql+asyncpg, ...)."""

    name = 'sqlalchemy'

    def __init__(self, engine: AsyncEngine):
        self.engine = engine

    @classmethod
    def from_url(cls, url: str, **engine_kwargs: Any) -> "SQLAlchemyStorage":
        return cls(create_async_engine(url, **engine_kwargs))

    @classmethod
    def from_settings(cls, settings: Settings, **engine_kwargs: Any) -> "SQLAlchemyStorage":
        engine_kwargs.setdefault('echo', settings.echo)
        return cls.from_url(settings.database_url, **engine_kwargs)

    async def dispose(self) -> None:
        await self.engine.dispose()

    async def count(self, table_name, filters=None) -> int:
        tbl = _table(table_name, *[f.name for f in (filters or ())])
        stmt = select(func.count()).select_from(tbl)
        cond = _where(tbl, filters)
        if cond is not None:
            stmt = stmt.where(cond)
        async with self.engine.begin() as conn:
            res = await conn.execute(stmt)
            return int(res.scalar_one())

    async def read(self, table_name, columns, filters=None, limit=None) -> List[Dict[str, Any]]:
        tbl = _table(table_name, *columns, *[f.name for f in (filters or ())])
        stmt = select(*[tbl.c[c] for c in columns])
        cond = _where(tbl, filters)
        if cond is not None:
            stmt = stmt.where(cond)
        if limit is not None:
            stmt = stmt.limit(limit)
        async with self.engine.begin() as conn:
            res = await conn.execute(stmt)
            return [dict(row._mapping) for row in res.fetchall()]

    async def create(self, table_name, pk_column, columns, data: Mapping[str, Any]) -> Any:
        tbl = _table(table_name, pk_column, *columns)
        values = {c: data.get(c) for c in columns}
        given_pk = data.get(pk_column) if pk_column else None
        if given_pk is not None:
            values[pk_column] = given_pk
        stmt = insert(tbl).values(values)
        async with self.engine.begin() as conn:
            if pk_column is None:
                await conn.execute(stmt)
                return None
            if given_pk is not None:
                await conn.execute(stmt)
                pk = given_pk
            elif conn.dialect.insert_returning:
                res = await conn.execute(stmt.returning(tbl.c[pk_column]))
                pk = res.scalar_one()
            else:
                res = await conn.execute(stmt)
                pk = res.lastrowid
        logger.debug("sql: inserted into %s, %s=%r", table_name, pk_column, pk)
        return pk

    async def update(self, table_name, pk_column, columns, data: Mapping[str, Any]) -> Any:
        if not columns:
            return data.get(pk_column)
        tbl = _table(table_name, pk_column, *columns)
        pk = data.get(pk_column)
        stmt = (
            update(tbl)
            .where(tbl.c[pk_column] == pk)
            .values({c: data.get(c) for c in columns})
        )
        async with self.engine.begin() as conn:
            await conn.execute(stmt)
        return pk

    async def delete(self, table_name, filters=None) -> None:
        tbl = _table(table_name, *[f.name for f in (filters or ())])
        stmt = delete(tbl)
        cond = _where(tbl, filters)
        if cond is not None:
            stmt = stmt.where(cond)
        async with self.engine.begin() as conn:
            await conn.execute(stmt)
