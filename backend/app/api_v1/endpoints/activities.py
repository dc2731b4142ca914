import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy import select

from backend.app import schemas
from backend.app.api_v1.auth import CurrentUserDep, DBDep
from backend.app.core.settings import settings
from backend.app.core.utils import parse_date_string, range_bounds
from backend.app.models import Activity as ActivityModel, ActivityType
from backend.app.processing.ingestion import save_activity, update_activity
from backend.app.realtime import ACTIVITY_UPDATE_EVENT, activity_channel

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=schemas.Activity, status_code=status.HTTP_201_CREATED)
async def create_activity(activity_in: schemas.ActivityCreate, db: DBDep, current_user: CurrentUserDep):
    """
    Record an activity sync. A sync for an activity that is already stored
    continues it instead of creating a duplicate row.
    """
    logger.info(
        f"POST /activities: type={activity_in.type.value} duration={activity_in.duration}s "
        f"active={activity_in.is_active} user={current_user.id}"
    )
    activity = await save_activity(db, current_user.id, activity_in)
    result = schemas.Activity.from_model(activity)
    await activity_channel.publish(current_user.id, ACTIVITY_UPDATE_EVENT, result)
    return result


@router.put("/{activity_id}", response_model=schemas.Activity)
async def edit_activity(
    activity_id: uuid.UUID,
    changes: schemas.ActivityUpdate,
    db: DBDep,
    current_user: CurrentUserDep,
):
    activity = await update_activity(db, activity_id, current_user.id, changes)
    if activity is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Activity not found")
    result = schemas.Activity.from_model(activity)
    await activity_channel.publish(current_user.id, ACTIVITY_UPDATE_EVENT, result)
    return result


@router.get("", response_model=List[schemas.Activity])
async def read_activities(
    db: DBDep,
    current_user: CurrentUserDep,
    start_date: Optional[str] = Query(None, alias="startDate", description="First day (YYYY-MM-DD), inclusive."),
    end_date: Optional[str] = Query(None, alias="endDate", description="Last day (YYYY-MM-DD), inclusive."),
    activity_type: Optional[ActivityType] = Query(None, alias="type", description="Filter by activity type."),
):
    query = select(ActivityModel).where(ActivityModel.user_id == current_user.id)
    if start_date and end_date:
        start, end = range_bounds(parse_date_string(start_date), parse_date_string(end_date), settings.local_zone)
        query = query.where(ActivityModel.start_time >= start, ActivityModel.start_time < end)
    if activity_type:
        query = query.where(ActivityModel.type == activity_type)
    query = query.order_by(ActivityModel.start_time.desc(), ActivityModel.created_at.desc())
    result = await db.execute(query)
    return [schemas.Activity.from_model(activity) for activity in result.scalars().all()]
