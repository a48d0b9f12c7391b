"""Key-value store operations for JSON-serializable values."""

from typing import Any

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from ztgate.db.models_kv import KeyValueEntity

_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


async def get_value(session: AsyncSession, key: str) -> Any | None:
    """Return the value stored under key, or None if absent."""
    entity = await session.get(KeyValueEntity, key, populate_existing=True)
    if entity is None:
        return None
    return entity.value


async def put_value(session: AsyncSession, key: str, value: Any) -> None:
    """Store value under key, replacing any previous value.

    A single INSERT ... ON CONFLICT DO UPDATE, so concurrent writers to
    the same key never conflict; whichever statement lands last wins.
    """
    dialect = session.get_bind().dialect.name
    insert = _UPSERT_INSERTS.get(dialect)
    if insert is None:
        raise NotImplementedError(f"no upsert support for dialect {dialect!r}")

    stmt = insert(KeyValueEntity).values(key=key, value=value)
    stmt = stmt.on_conflict_do_update(
        index_elements=[KeyValueEntity.key],
        set_={"value": stmt.excluded.value, "updated_at": func.now()},
    )
    await session.execute(stmt)
