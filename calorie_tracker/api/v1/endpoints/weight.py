"""
Body-weight endpoints: one entry per user per day.
"""

import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from calorie_tracker.api.v1.deps import get_current_user, get_db
from calorie_tracker.models.rewards import MILESTONE_WEIGHT
from calorie_tracker.models.weight_log import WeightLog
from calorie_tracker.schemas.auth import CurrentUser
from calorie_tracker.schemas.common import MessageResponse
from calorie_tracker.schemas.weight import (WeightHistoryResponse, WeightHistoryStats,
                                            WeightLogCreate, WeightLogRead, WeightLogResponse,
                                            WeightLogUpdate, WeightLogUpdatedResponse)
from calorie_tracker.services.points import settle_log_reward

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/weight", tags=["weight"])


def _change(current: float, previous: float | None) -> float | None:
    return None if previous is None else round(current - previous, 1)


@router.post("/log", response_model=WeightLogResponse, status_code=status.HTTP_201_CREATED)
async def log_weight(
    body: WeightLogCreate,
    identity: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> WeightLogResponse:
    today = datetime.now(timezone.utc).date()
    log_date = body.log_date or today
    if log_date > today:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot log weight for future dates",
        )

    existing = await db.execute(
        select(WeightLog.id).where(
            WeightLog.user_id == identity.user_id, WeightLog.log_date == log_date
        )
    )
    if existing.first() is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Weight already logged for this date",
        )

    previous = await db.execute(
        select(WeightLog.weight_kg)
        .where(WeightLog.user_id == identity.user_id, WeightLog.log_date < log_date)
        .order_by(WeightLog.log_date.desc())
        .limit(1)
    )
    previous_weight = previous.scalar_one_or_none()

    entry = WeightLog(
        user_id=identity.user_id,
        weight_kg=body.weight_kg,
        log_date=log_date,
        notes=body.notes,
    )
    db.add(entry)
    await db.commit()
    await db.refresh(entry)

    data = WeightLogRead.model_validate(entry)
    data.change_from_previous = _change(entry.weight_kg, previous_weight)
    awarded = await settle_log_reward(
        db, identity.user_id, MILESTONE_WEIGHT, entry.id, entry.log_date, today
    )
    return WeightLogResponse(data=data, **awarded.model_dump())


@router.get("/history", response_model=WeightHistoryResponse)
async def weight_history(
    days: int = Query(default=30, ge=1, le=365),
    identity: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> WeightHistoryResponse:
    """Entries from the last ``days`` days, newest first, each with its change from the one before."""
    since = datetime.now(timezone.utc).date() - timedelta(days=days)
    result = await db.execute(
        select(WeightLog)
        .where(WeightLog.user_id == identity.user_id, WeightLog.log_date >= since)
        .order_by(WeightLog.log_date.asc())
    )
    rows = result.scalars().all()

    history: list[WeightLogRead] = []
    previous: float | None = None
    for row in rows:
        item = WeightLogRead.model_validate(row)
        item.change_from_previous = _change(row.weight_kg, previous)
        history.append(item)
        previous = row.weight_kg
    history.reverse()

    starting = rows[0].weight_kg if rows else None
    current = rows[-1].weight_kg if rows else None
    return WeightHistoryResponse(
        history=history,
        stats=WeightHistoryStats(
            entries=len(rows),
            starting_weight=starting,
            current_weight=current,
            total_change=_change(current, starting) if current is not None else None,
        ),
    )


@router.put("/{entry_id}", response_model=WeightLogUpdatedResponse)
async def update_weight(
    entry_id: int,
    body: WeightLogUpdate,
    identity: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> WeightLogUpdatedResponse:
    """Change the weight or note of an entry; its date stays fixed."""
    changes = body.model_dump(exclude_unset=True)
    # A null note clears it; a null weight is ignored.
    if changes.get("weight_kg") is None:
        changes.pop("weight_kg", None)
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    entry = (
        await db.execute(
            select(WeightLog).where(
                WeightLog.id == entry_id, WeightLog.user_id == identity.user_id
            )
        )
    ).scalar_one_or_none()
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Weight log entry not found")

    for field, value in changes.items():
        setattr(entry, field, value)
    await db.commit()
    await db.refresh(entry)

    previous = await db.execute(
        select(WeightLog.weight_kg)
        .where(WeightLog.user_id == identity.user_id, WeightLog.log_date < entry.log_date)
        .order_by(WeightLog.log_date.desc())
        .limit(1)
    )
    data = WeightLogRead.model_validate(entry)
    data.change_from_previous = _change(entry.weight_kg, previous.scalar_one_or_none())
    return WeightLogUpdatedResponse(message="Weight log updated successfully", data=data)


@router.delete("/{entry_id}", response_model=MessageResponse)
async def delete_weight(
    entry_id: int,
    identity: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    result = await db.execute(
        delete(WeightLog).where(WeightLog.id == entry_id, WeightLog.user_id == identity.user_id)
    )
    await db.commit()
    if not result.rowcount:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Weight log entry not found")
    return MessageResponse(message="Weight log entry deleted")
