"""
Read-only database browser for admins.

Tables are discovered through the SQLAlchemy inspector on the live
connection, so only names that really exist can ever reach a query.
Password hashes are never returned.
"""

from __future__ import annotations

import logging
import math
from typing import Any

from sqlalchemy import MetaData, String, Table, func, inspect, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from calorie_tracker.db.filters import LIKE_ESCAPE, contains_pattern
from calorie_tracker.schemas.admin import ColumnInfo, DatabaseStats, Pagination, TableInfo

logger = logging.getLogger(__name__)

REDACTED = "[REDACTED]"
SENSITIVE_COLUMNS = frozenset({"password_hash"})


class UnknownTable(LookupError):
    pass


async def _table_names(db: AsyncSession) -> list[str]:
    conn = await db.connection()
    return await conn.run_sync(lambda sync_conn: sorted(inspect(sync_conn).get_table_names()))


async def _reflect(db: AsyncSession, name: str) -> Table:
    if name not in await _table_names(db):
        raise UnknownTable(name)
    conn = await db.connection()
    return await conn.run_sync(lambda sync_conn: Table(name, MetaData(), autoload_with=sync_conn))


async def _count(db: AsyncSession, table: Table, *criteria: Any) -> int:
    stmt = select(func.count()).select_from(table)
    if criteria:
        stmt = stmt.where(*criteria)
    return (await db.execute(stmt)).scalar_one()


async def list_tables(db: AsyncSession) -> list[TableInfo]:
    tables = []
    for name in await _table_names(db):
        table = await _reflect(db, name)
        tables.append(TableInfo(table_name=name, row_count=await _count(db, table)))
    return tables


async def table_structure(db: AsyncSession, name: str) -> list[ColumnInfo]:
    if name not in await _table_names(db):
        raise UnknownTable(name)

    def _columns(sync_conn: Any) -> list[ColumnInfo]:
        insp = inspect(sync_conn)
        pk = set(insp.get_pk_constraint(name).get("constrained_columns") or [])
        return [
            ColumnInfo(
                column_name=col["name"],
                data_type=str(col["type"]),
                is_nullable=bool(col.get("nullable", True)),
                default_value=None if col.get("default") is None else str(col["default"]),
                primary_key=col["name"] in pk,
            )
            for col in insp.get_columns(name)
        ]

    conn = await db.connection()
    return await conn.run_sync(_columns)


def _redact(row: dict[str, Any]) -> dict[str, Any]:
    return {k: (REDACTED if k in SENSITIVE_COLUMNS else v) for k, v in row.items()}


async def table_data(
    db: AsyncSession, name: str, page: int = 1, limit: int = 50, search: str | None = None
) -> tuple[list[dict[str, Any]], Pagination]:
    table = await _reflect(db, name)

    criteria = []
    if search:
        pattern = contains_pattern(search)
        text_columns = [
            c for c in table.columns
            if isinstance(c.type, String) and c.name not in SENSITIVE_COLUMNS
        ]
        if text_columns:
            criteria.append(or_(*(c.ilike(pattern, escape=LIKE_ESCAPE) for c in text_columns)))

    total = await _count(db, table, *criteria)
    stmt = select(table).where(*criteria).limit(limit).offset((page - 1) * limit)
    if table.primary_key.columns:
        stmt = stmt.order_by(*table.primary_key.columns)
    rows = (await db.execute(stmt)).mappings().all()

    pagination = Pagination(
        page=page,
        limit=limit,
        total=total,
        total_pages=math.ceil(total / limit) if total else 0,
    )
    return [_redact(dict(r)) for r in rows], pagination


async def database_stats(db: AsyncSession) -> DatabaseStats:
    tables = await list_tables(db)
    conn = await db.connection()
    version = conn.dialect.server_version_info
    return DatabaseStats(
        table_count=len(tables),
        total_rows=sum(t.row_count for t in tables),
        database_name=conn.engine.url.database,
        dialect=conn.dialect.name,
        server_version=".".join(str(v) for v in version) if version else None,
    )
