"""
Admin database browser: read-only views of tables, columns and rows.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from calorie_tracker.api.v1.deps import get_db, require_admin
from calorie_tracker.models.user import User
from calorie_tracker.schemas.admin import (DatabaseStatsResponse, TableDataResponse,
                                           TableListResponse, TableStructureResponse)
from calorie_tracker.services import db_browser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/database", tags=["admin"])


def _not_found(name: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Table '{name}' not found")


@router.get("/tables", response_model=TableListResponse)
async def list_tables(
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> TableListResponse:
    return TableListResponse(tables=await db_browser.list_tables(db))


@router.get("/tables/{table_name}/structure", response_model=TableStructureResponse)
async def table_structure(
    table_name: str,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> TableStructureResponse:
    try:
        columns = await db_browser.table_structure(db, table_name)
    except db_browser.UnknownTable:
        raise _not_found(table_name)
    return TableStructureResponse(table=table_name, columns=columns)


@router.get("/tables/{table_name}/data", response_model=TableDataResponse)
async def table_data(
    table_name: str,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=500),
    search: str | None = Query(default=None, max_length=100),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> TableDataResponse:
    try:
        rows, pagination = await db_browser.table_data(
            db, table_name, page=page, limit=limit, search=search.strip() if search else None
        )
    except db_browser.UnknownTable:
        raise _not_found(table_name)
    logger.debug("Admin %s browsed table %s page %d", admin.username, table_name, page)
    return TableDataResponse(table=table_name, data=rows, pagination=pagination)


@router.get("/stats", response_model=DatabaseStatsResponse)
async def database_stats(
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> DatabaseStatsResponse:
    return DatabaseStatsResponse(stats=await db_browser.database_stats(db))
