import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from backend.app import schemas
from backend.app.api_v1.auth import CurrentUserDep, DBDep
from backend.app.core.settings import settings
from backend.app.core.utils import local_today, parse_date_string
from backend.app.processing.summary import compute_range_statistics, get_or_compute_daily_summary

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/summary", response_model=schemas.DailySummary)
async def read_daily_summary(
    db: DBDep,
    current_user: CurrentUserDep,
    date_string: Optional[str] = Query(None, alias="date", description="Day in YYYY-MM-DD format; defaults to today."),
):
    tz = settings.local_zone
    target_date = parse_date_string(date_string, default=local_today(tz))
    try:
        return await get_or_compute_daily_summary(
            db,
            current_user.id,
            target_date,
            tz,
            policy=settings.SUMMARY_CACHE_POLICY,
            top_n=settings.SUMMARY_TOP_N,
        )
    except Exception as e:
        logger.error(f"Failed to build daily summary for {target_date.isoformat()}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Summary temporarily unavailable."
        )


@router.get("/range", response_model=schemas.RangeStatistics)
async def read_range_statistics(
    db: DBDep,
    current_user: CurrentUserDep,
    start_date: str = Query(..., alias="startDate", description="First day (YYYY-MM-DD), inclusive."),
    end_date: str = Query(..., alias="endDate", description="Last day (YYYY-MM-DD), inclusive."),
):
    start = parse_date_string(start_date)
    end = parse_date_string(end_date)
    if end < start:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="endDate must not be before startDate."
        )
    try:
        return await compute_range_statistics(db, current_user.id, start, end, settings.local_zone)
    except Exception as e:
        logger.error(f"Failed to compute statistics for {start}..{end}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Statistics temporarily unavailable."
        )
