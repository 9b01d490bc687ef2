"""
Resource queries the sync poller can attach to.

``table_query('place')`` or ``table_query('presence', {'subject_id': uid})`` returns a
zero-argument coroutine function that reads the table with a deterministic order.

Filtered reads are for in-process callers only. A filter on ``presence`` or
``relationships`` bypasses privacy scoping, so the sync socket never forwards one and
exposes only the unfiltered ``place`` table (see ``routes.ws.resource_query``).
"""
from typing import Any, Awaitable, Callable, Dict, List, Optional
from sqlalchemy import select

from .models import AsyncSessionLocal
from .models.places import Place
from .models.presence import CheckIn
from .models.profiles import Profile
from .models.relationships import Relationship
from .errors import ValidationError, to_bumpin_error

TABLES = {
    'relationships': (Relationship, (Relationship.created_at.desc(), Relationship.id)),
    'presence': (CheckIn, (CheckIn.created_at.desc(), CheckIn.id)),
    'place': (Place, (Place.name.asc(), Place.id)),
    'profile': (Profile, (Profile.handle.asc(),)),
}

Query = Callable[[], Awaitable[Any]]


def _row_to_dict(row) -> Dict[str, Any]:
    return {column.key: getattr(row, column.key) for column in row.__table__.columns}


def table_query(table: str, filter: Optional[Dict[str, Any]] = None) -> Query:
    if table not in TABLES:
        raise ValidationError(f'Unknown table {table!r}.')
    model, order = TABLES[table]
    columns = model.__table__.columns
    filter = dict(filter or {})
    for column in filter:
        if column not in columns:
            raise ValidationError(f'Unknown column {column!r} for {table}.')

    stmt = select(model)
    for column, value in filter.items():
        stmt = stmt.where(columns[column] == value)
    stmt = stmt.order_by(*order)

    async def fetch() -> List[Dict[str, Any]]:
        async with AsyncSessionLocal() as session:
            q = await session.execute(stmt)
            return [_row_to_dict(row) for row in q.scalars().all()]

    fetch.__qualname__ = f'table_query[{table}]'
    return fetch


def result_query(operation: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any) -> Query:
    """Adapt a ``Result``-returning engine operation so failures reach the poller."""

    async def fetch():
        result = await operation(*args, **kwargs)
        if result.error is not None:
            raise to_bumpin_error(result.error)
        return result.data

    fetch.__qualname__ = f'result_query[{getattr(operation, "__name__", "operation")}]'
    return fetch
