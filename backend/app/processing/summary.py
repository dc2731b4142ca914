# backend/app/processing/summary.py
"""
Daily summary caching and range statistics over stored activities.
"""

import logging
import uuid
from datetime import date, datetime, timezone, tzinfo
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.settings import SummaryCachePolicy
from backend.app.core.utils import day_bounds, local_today, range_bounds
from backend.app.models import Activity, DailySummary
from backend.app.processing.aggregation import DEFAULT_TOP_N, build_daily_summary, calculate_statistics
from backend.app.processing.ingestion import list_categories

log = logging.getLogger(__name__)


async def fetch_activities(
    db: AsyncSession,
    user_id: uuid.UUID,
    start: datetime,
    end: datetime,
) -> List[Activity]:
    """Activities whose start time falls in [start, end), oldest first."""
    result = await db.execute(
        select(Activity)
        .where(Activity.user_id == user_id, Activity.start_time >= start, Activity.start_time < end)
        .order_by(Activity.start_time, Activity.created_at, Activity.id)
    )
    return list(result.scalars().all())


async def get_persisted_summary(db: AsyncSession, user_id: uuid.UUID, target_date: date) -> Optional[DailySummary]:
    result = await db.execute(
        select(DailySummary).where(DailySummary.user_id == user_id, DailySummary.date == target_date)
    )
    return result.scalar_one_or_none()


def should_recompute(policy: SummaryCachePolicy, target_date: date, today: date) -> bool:
    """Whether an already persisted summary for `target_date` is recomputed under `policy`."""
    if policy == SummaryCachePolicy.ALWAYS:
        return True
    if policy == SummaryCachePolicy.RECOMPUTE_TODAY:
        return target_date >= today
    return False


async def get_or_compute_daily_summary(
    db: AsyncSession,
    user_id: uuid.UUID,
    target_date: date,
    tz: tzinfo,
    policy: SummaryCachePolicy = SummaryCachePolicy.CACHE_FOREVER,
    top_n: int = DEFAULT_TOP_N,
    today: Optional[date] = None,
) -> DailySummary:
    """
    Returns the daily summary for (user, date), computing and persisting it when needed.

    Under the default policy a persisted summary is returned as-is even if more
    activities for that day have arrived since it was computed.
    """
    summary = await get_persisted_summary(db, user_id, target_date)
    today = today or local_today(tz)
    if summary is not None and not should_recompute(policy, target_date, today):
        return summary

    start, end = day_bounds(target_date, tz)
    activities = await fetch_activities(db, user_id, start, end)
    categories_by_id = {category.id: category for category in await list_categories(db)}
    computed = build_daily_summary(activities, categories_by_id, tz, top_n=top_n)

    if summary is None:
        summary = DailySummary(user_id=user_id, date=target_date)
        db.add(summary)
    for name, value in computed.items():
        setattr(summary, name, value)
    summary.computed_at = datetime.now(timezone.utc)
    try:
        await db.commit()
    except IntegrityError:
        # Another request persisted the same day first; theirs wins.
        await db.rollback()
        log.info(f"Daily summary for user {user_id} on {target_date.isoformat()} was persisted concurrently")
        return await get_persisted_summary(db, user_id, target_date)
    log.info(
        f"Computed daily summary for user {user_id} on {target_date.isoformat()}: "
        f"{len(activities)} activities, {computed['total_time']}s total"
    )
    return summary


async def compute_range_statistics(
    db: AsyncSession,
    user_id: uuid.UUID,
    start_date: date,
    end_date: date,
    tz: tzinfo,
) -> Dict[str, Any]:
    start, end = range_bounds(start_date, end_date, tz)
    activities = await fetch_activities(db, user_id, start, end)
    categories_by_id = {category.id: category for category in await list_categories(db)}
    stats = calculate_statistics(activities, categories_by_id, tz)
    stats.update(start_date=start_date, end_date=end_date)
    return stats
