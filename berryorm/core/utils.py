from __future__ import annotations
import asyncio
import re
from typing import Any, Awaitable, Iterable, List

_CAMEL_BOUNDARY = re.compile(r'(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])')


def snake_case(name: str) -> str:
    """``EmployeeType`` -> ``employee_type``."""
    return _CAMEL_BOUNDARY.sub('_', name).lower()


async def gather_cancelling(aws: Iterable[Awaitable[Any]]) -> List[Any]:
    """Await ``aws`` concurrently and return their results in order.

    Unlike ``asyncio.gather``, the first failure cancels every sibling still
    running before it is re-raised unchanged. Work the cancelled siblings
    already committed to storage stays committed.
    """
    tasks = [asyncio.ensure_future(a) for a in aws]
    if not tasks:
        return []
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    except asyncio.CancelledError:
        for t in tasks:
            t.cancel()
        raise
    if pending:
        for t in pending:
            t.cancel()
        await asyncio.wait(pending)
        # Consume late failures of cancelled siblings so they are not reported as unretrieved.
        for t in pending:
            if not t.cancelled():
                t.exception()
    for t in tasks:
        if t in done and t.exception() is not None:
            raise t.exception()  # type: ignore[misc]
    return [t.result() for t in tasks]
