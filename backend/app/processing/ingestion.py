# backend/app/processing/ingestion.py
"""
Create-or-continue handling for activity syncs.

Emitters post the same logical activity several times while it is open
(heartbeats) and once more when it closes. Each post either continues the
row it belongs to or creates a new one. Rows belong to the emitter that
created them; activities reported by different emitters for the same user
are never merged, so overlapping browser, desktop and task-timer spans are
each counted.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import ColumnElement, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app import schemas
from backend.app.core.utils import domain_from_url, ensure_utc
from backend.app.models import Activity, Category
from backend.app.processing.categories import (
    CategoryLiteral,
    CategoryRef,
    CategoryValue,
    match_category,
    parse_category_value,
)

log = logging.getLogger(__name__)


async def list_categories(db: AsyncSession) -> List[Category]:
    result = await db.execute(select(Category).order_by(Category.created_at, Category.id))
    return list(result.scalars().all())


async def get_activity(db: AsyncSession, activity_id: uuid.UUID, user_id: uuid.UUID) -> Optional[Activity]:
    result = await db.execute(
        select(Activity)
        .where(Activity.id == activity_id, Activity.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def _same(column, value) -> ColumnElement:
    return column.is_(None) if value is None else column == value


async def find_continued_activity(
    db: AsyncSession,
    user_id: uuid.UUID,
    payload: schemas.ActivityCreate,
    start_time,
    domain: Optional[str],
) -> Optional[Activity]:
    """The stored row this sync continues, if any."""
    query = select(Activity).where(Activity.user_id == user_id)
    if payload.client_id:
        query = query.where(Activity.client_id == payload.client_id)
    else:
        query = query.where(
            Activity.client_id.is_(None),
            Activity.type == payload.type,
            Activity.start_time == start_time,
            _same(Activity.url, payload.url),
            _same(Activity.domain, domain),
            _same(Activity.application, payload.application),
            _same(Activity.task_id, payload.task_id),
        )
    result = await db.execute(query.order_by(Activity.created_at).limit(1))
    return result.scalars().first()


async def categorise(
    db: AsyncSession,
    value: Optional[CategoryValue],
    domain: Optional[str],
    application: Optional[str],
) -> Optional[CategoryValue]:
    """Keeps an explicit category; otherwise looks one up from the domain or application."""
    if value is not None:
        return value
    if not domain and not application:
        return None
    category = match_category(domain, application, await list_categories(db))
    if category is None:
        return None
    log.debug(f"Auto-categorised {domain or application} as '{category.name}'")
    return CategoryRef(category.id)


def apply_category(activity: Activity, value: Optional[CategoryValue]):
    if isinstance(value, CategoryLiteral):
        activity.category_tag = value.value
        activity.category_id = None
    elif isinstance(value, CategoryRef):
        activity.category_tag = None
        activity.category_id = value.id


def _merge_details(current: Optional[Dict[str, Any]], incoming: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not incoming:
        return current
    merged = dict(current or {})
    merged.update(incoming)
    return merged


def continue_activity(
    activity: Activity,
    payload: schemas.ActivityCreate,
    start_time,
    end_time,
    category_value: Optional[CategoryValue],
):
    # Durations only grow; a late, shorter report must not roll the row back or reopen it.
    if payload.duration >= activity.duration:
        activity.duration = payload.duration
        activity.end_time = end_time or activity.end_time
        activity.is_active = payload.is_active
    # A resumed span reports its shifted effective start; keep the earliest one.
    if start_time < ensure_utc(activity.start_time):
        activity.start_time = start_time
    if payload.title:
        activity.title = payload.title
    if payload.category is not None:
        apply_category(activity, category_value)
    activity.details = _merge_details(activity.details, payload.details)
    log.info(f"Activity {activity.id} continued: duration={activity.duration}s active={activity.is_active}")


async def save_activity(db: AsyncSession, user_id: uuid.UUID, payload: schemas.ActivityCreate) -> Activity:
    """Creates a new activity or continues the one this sync belongs to, then commits."""
    start_time = ensure_utc(payload.start_time)
    end_time = ensure_utc(payload.end_time) if payload.end_time else None
    domain = payload.domain or domain_from_url(payload.url)
    category_value = await categorise(db, parse_category_value(payload.category), domain, payload.application)

    activity = await find_continued_activity(db, user_id, payload, start_time, domain)
    if activity is None:
        activity = Activity(
            user_id=user_id,
            client_id=payload.client_id,
            type=payload.type,
            title=payload.title,
            description=payload.description,
            url=payload.url,
            domain=domain,
            application=payload.application,
            task_id=payload.task_id,
            board_id=payload.board_id,
            duration=payload.duration,
            start_time=start_time,
            end_time=end_time,
            is_active=payload.is_active,
            details=payload.details,
        )
        apply_category(activity, category_value)
        db.add(activity)
        try:
            await db.commit()
            log.info(f"Activity created: type={payload.type.value} duration={payload.duration}s active={payload.is_active}")
        except IntegrityError:
            # Another sync for this client id created the row first; continue it.
            await db.rollback()
            activity = await find_continued_activity(db, user_id, payload, start_time, domain)
            if activity is None:
                raise
            log.info(f"Activity {payload.client_id} was created concurrently; continuing it")
            continue_activity(activity, payload, start_time, end_time, category_value)
            await db.commit()
    else:
        continue_activity(activity, payload, start_time, end_time, category_value)
        await db.commit()

    return await get_activity(db, activity.id, user_id)


async def update_activity(
    db: AsyncSession,
    activity_id: uuid.UUID,
    user_id: uuid.UUID,
    changes: schemas.ActivityUpdate,
) -> Optional[Activity]:
    activity = await get_activity(db, activity_id, user_id)
    if activity is None:
        return None
    fields = changes.model_dump(exclude_unset=True)
    if "category" in fields:
        value = parse_category_value(fields.pop("category"))
        if value is None:
            activity.category_tag = None
            activity.category_id = None
        else:
            apply_category(activity, value)
    if "end_time" in fields and fields["end_time"] is not None:
        fields["end_time"] = ensure_utc(fields["end_time"])
    if "details" in fields:
        fields["details"] = _merge_details(activity.details, fields["details"])
    for name, value in fields.items():
        if value is None and name in ("duration", "is_active"):
            continue
        setattr(activity, name, value)
    await db.commit()
    return await get_activity(db, activity_id, user_id)
