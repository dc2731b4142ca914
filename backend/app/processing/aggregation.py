# backend/app/processing/aggregation.py
"""
Aggregation of raw activities into daily summaries and range statistics.

Both folds are pure: they take the activities plus a category lookup and
return plain dictionaries, so re-running them over the same input gives the
same output.
"""

import logging
import uuid
from datetime import datetime, timezone, tzinfo
from typing import Any, Dict, Iterable, List, Mapping, Optional

from backend.app.models import Category, CategoryType
from backend.app.processing.categories import ResolvedCategory, category_value_of, resolve_category

log = logging.getLogger(__name__)

HOURS_IN_DAY = 24
DEFAULT_TOP_N = 10


def activity_duration(activity: Any) -> int:
    """Seconds contributed by an activity; missing or negative durations count as zero."""
    duration = getattr(activity, "duration", None)
    if duration is None:
        return 0
    try:
        duration = int(duration)
    except (TypeError, ValueError):
        return 0
    return max(duration, 0)


def start_hour(activity: Any, tz: tzinfo) -> Optional[int]:
    """Hour of day (in `tz`) at which the activity started, or None when it cannot be placed."""
    start_time = getattr(activity, "start_time", None)
    if isinstance(start_time, str):
        try:
            start_time = datetime.fromisoformat(start_time.replace("Z", "+00:00"))
        except ValueError:
            return None
    if not isinstance(start_time, datetime):
        return None
    if start_time.tzinfo is None:
        # Stored timestamps are UTC; some backends hand them back naive.
        start_time = start_time.replace(tzinfo=timezone.utc)
    hour = start_time.astimezone(tz).hour
    if 0 <= hour < HOURS_IN_DAY:
        return hour
    return None


def _resolve(activity: Any, categories_by_id: Mapping[uuid.UUID, Category]) -> Optional[ResolvedCategory]:
    return resolve_category(category_value_of(activity), categories_by_id)


def _leaderboard(entries: Iterable[Dict[str, Any]], limit: Optional[int] = None) -> List[Dict[str, Any]]:
    # sorted() is stable, so ties keep first-seen order.
    ranked = sorted(entries, key=lambda entry: entry["time"], reverse=True)
    return ranked[:limit] if limit is not None else ranked


def build_daily_summary(
    activities: Iterable[Any],
    categories_by_id: Mapping[uuid.UUID, Category],
    tz: tzinfo,
    top_n: int = DEFAULT_TOP_N,
) -> Dict[str, Any]:
    """Folds one day's activities into the totals, leaderboards and hourly histogram of a daily summary."""
    summary: Dict[str, Any] = {
        "total_time": 0,
        "productive_time": 0,
        "neutral_time": 0,
        "distracting_time": 0,
        "top_websites": [],
        "top_applications": [],
        "categories": [],
        "hourly_breakdown": [{"hour": hour, "time": 0} for hour in range(HOURS_IN_DAY)],
    }
    website_map: Dict[str, Dict[str, Any]] = {}
    app_map: Dict[str, Dict[str, Any]] = {}
    category_map: Dict[str, Dict[str, Any]] = {}

    for activity in activities:
        duration = activity_duration(activity)
        summary["total_time"] += duration

        resolved = _resolve(activity, categories_by_id)
        if resolved is not None and resolved.type == CategoryType.productive:
            summary["productive_time"] += duration
        elif resolved is not None and resolved.type == CategoryType.distracting:
            summary["distracting_time"] += duration
        else:
            summary["neutral_time"] += duration

        if resolved is not None:
            if resolved.key not in category_map:
                category_map[resolved.key] = {
                    "category": resolved.key,
                    "name": resolved.name,
                    "type": resolved.type.value,
                    "time": 0,
                }
            category_map[resolved.key]["time"] += duration

        domain = getattr(activity, "domain", None)
        if domain:
            if domain not in website_map:
                website_map[domain] = {"domain": domain, "time": 0, "visits": 0}
            website_map[domain]["time"] += duration
            website_map[domain]["visits"] += 1

        application = getattr(activity, "application", None)
        if application:
            if application not in app_map:
                app_map[application] = {"name": application, "time": 0}
            app_map[application]["time"] += duration

        hour = start_hour(activity, tz)
        if hour is None:
            log.debug(f"Activity {getattr(activity, 'id', '?')} has no usable start time; skipping hourly bucket.")
        else:
            summary["hourly_breakdown"][hour]["time"] += duration

    summary["top_websites"] = _leaderboard(website_map.values(), top_n)
    summary["top_applications"] = _leaderboard(app_map.values(), top_n)
    summary["categories"] = list(category_map.values())
    return summary


def calculate_statistics(
    activities: Iterable[Any],
    categories_by_id: Mapping[uuid.UUID, Category],
    tz: tzinfo,
) -> Dict[str, Any]:
    """Per-type, per-category, per-hour and leaderboard breakdowns over an arbitrary set of activities."""
    activities = list(activities)
    stats: Dict[str, Any] = {
        "total_activities": len(activities),
        "total_time": 0,
        "by_type": {},
        "by_category": {},
        "by_hour": [{"hour": hour, "count": 0, "time": 0} for hour in range(HOURS_IN_DAY)],
        "top_domains": [],
        "top_apps": [],
    }
    domain_map: Dict[str, Dict[str, Any]] = {}
    app_map: Dict[str, Dict[str, Any]] = {}

    for activity in activities:
        duration = activity_duration(activity)
        stats["total_time"] += duration

        activity_type = getattr(activity, "type", None)
        type_key = getattr(activity_type, "value", activity_type) or "unknown"
        bucket = stats["by_type"].setdefault(type_key, {"count": 0, "time": 0})
        bucket["count"] += 1
        bucket["time"] += duration

        resolved = _resolve(activity, categories_by_id)
        if resolved is not None:
            bucket = stats["by_category"].setdefault(
                resolved.name, {"count": 0, "time": 0, "type": resolved.type.value}
            )
            bucket["count"] += 1
            bucket["time"] += duration

        hour = start_hour(activity, tz)
        if hour is not None:
            stats["by_hour"][hour]["count"] += 1
            stats["by_hour"][hour]["time"] += duration

        domain = getattr(activity, "domain", None)
        if domain:
            entry = domain_map.setdefault(domain, {"domain": domain, "time": 0, "visits": 0})
            entry["time"] += duration
            entry["visits"] += 1

        application = getattr(activity, "application", None)
        if application:
            entry = app_map.setdefault(application, {"name": application, "time": 0})
            entry["time"] += duration

    stats["top_domains"] = _leaderboard(domain_map.values())
    stats["top_apps"] = _leaderboard(app_map.values())
    return stats
