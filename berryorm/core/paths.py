"""Foreign-key path handling for eager loading.

A read may request related entities with dotted paths such as
``"employees.employee_type"``: the first segment names a relation of the
entity being read, the rest is forwarded to the entities of that relation.
"""
from __future__ import annotations
from typing import Iterable, List, Optional


def wants(paths: Optional[Iterable[str]], name: str) -> bool:
    """Whether any requested path selects the relation ``name``."""
    prefix = f"{name}."
    return any(p == name or p.startswith(prefix) for p in (paths or ()))


def traverse_paths(paths: Optional[Iterable[str]], name: str) -> List[str]:
    """Return the sub-paths to forward when descending into relation ``name``.

    Keeps the paths equal to ``name`` or starting with ``"<name>."``, strips
    that prefix and any leading dots, drops empty results and duplicates
    (first occurrence wins).

        >>> traverse_paths(['employees.employee_type', 'employees', 'company'], 'employees')
        ['employee_type']
    """
    prefix = f"{name}."
    out: List[str] = []
    for p in paths or ():
        if p != name and not p.startswith(prefix):
            continue
        rest = p[len(name):].lstrip('.')
        if rest and rest not in out:
            out.append(rest)
    return out
