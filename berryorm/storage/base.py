"""
Storage port consumed by the ORM.

A storage implementation performs table-oriented CRUD against one physical
database. It only ever sees table and column names (never entity or property
names), and every method is a coroutine.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..core.filters import Filter


class StoragePort(ABC):
    """Abstract base class for table-oriented storage."""

    name = 'base'

    @abstractmethod
    async def count(self, table: str, filters: Optional[Sequence[Filter]] = None) -> int:
        """Count the rows of ``table`` matching every filter (all rows when none)."""

    @abstractmethod
    async def read(
        self,
        table: str,
        columns: Sequence[str],
        filters: Optional[Sequence[Filter]] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Read ``columns`` of the matching rows as column-keyed dicts.

        Reading by primary key uses a single pk filter and ``limit=1``.
        """

    @abstractmethod
    async def create(
        self,
        table: str,
        pk_column: Optional[str],
        columns: Sequence[str],
        data: Mapping[str, Any],
    ) -> Any:
        """Insert a row and return its primary key value.

        ``columns`` lists the simple columns (primary key excluded). When
        ``data[pk_column]`` is ``None`` the storage assigns the key; otherwise
        the given key is inserted as-is. Tables without a single primary key
        (junction tables) pass ``pk_column=None`` and get ``None`` back.
        """

    @abstractmethod
    async def update(
        self,
        table: str,
        pk_column: str,
        columns: Sequence[str],
        data: Mapping[str, Any],
    ) -> Any:
        """Write ``columns`` of the row identified by ``data[pk_column]``; return that key."""

    @abstractmethod
    async def delete(self, table: str, filters: Optional[Sequence[Filter]] = None) -> None:
        """Delete the matching rows. Without filters every row of ``table`` is deleted."""
