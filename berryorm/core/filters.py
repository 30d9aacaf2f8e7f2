from __future__ import annotations
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable, List, Optional

from ..errors import ArgumentError, UnknownPropertyError

if TYPE_CHECKING:  # pragma: no cover
    from ..resource import Resource


@dataclass(frozen=True)
class Filter:
    """Equality predicate ``name == value``. A list of filters is AND'd.

    At the public surface ``name`` is an entity property name; storage only
    ever sees column names (see :func:`translate_filters`).
    """

    name: str
    value: Any


def validate_filters(filters: Any) -> Optional[List[Filter]]:
    """Return ``filters`` as a list, or raise ArgumentError. ``None`` is allowed."""
    if filters is None:
        return None
    if isinstance(filters, Filter):
        raise ArgumentError("Filters must be given as a list of Filter")
    if isinstance(filters, (str, bytes)) or not isinstance(filters, Iterable):
        raise ArgumentError("List of filter is of an invalid type")
    out = list(filters)
    for f in out:
        if f is None:
            raise ArgumentError("Filter must not be None")
        if not isinstance(f, Filter):
            raise ArgumentError(f"Filter is of an invalid type: {type(f).__name__}")
    return out


def translate_filters(filters: Optional[Iterable[Filter]], resource: 'Resource') -> Optional[List[Filter]]:
    """Map property-name filters to column-name filters for ``resource``.

    Only scalar and primary key properties can be filtered on.

    Raises:
        UnknownPropertyError: a filter names a property the resource does not
            persist as a column.
    """
    if filters is None:
        return None
    columns = {p.name: p.column_name for p in resource.simple_and_primary_key_properties}
    out: List[Filter] = []
    for f in filters:
        column = columns.get(f.name)
        if column is None:
            raise UnknownPropertyError(resource.name, f.name)
        out.append(Filter(column, f.value))
    return out
