# backend/app/processing/categories.py
"""
Category resolution for activities.

An activity's category arrives in one of two shapes: a literal productivity
tag ("productive", "neutral", "distracting") or a reference to a Category row.
Both ingestion and aggregation go through `resolve_category` so neither has to
special-case the two shapes.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Union

from backend.app.models import Category, CategoryType

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CategoryLiteral:
    value: CategoryType


@dataclass(frozen=True)
class CategoryRef:
    id: uuid.UUID


CategoryValue = Union[CategoryLiteral, CategoryRef]


@dataclass(frozen=True)
class ResolvedCategory:
    """A category after resolution: what to key aggregates on and which bucket it counts towards."""
    key: str
    name: str
    type: CategoryType
    category_id: Optional[uuid.UUID] = None


def parse_category_value(raw: Any) -> Optional[CategoryValue]:
    """Turns a wire value into a CategoryValue, or None when it names nothing."""
    if raw is None or isinstance(raw, (CategoryLiteral, CategoryRef)):
        return raw
    if isinstance(raw, CategoryType):
        return CategoryLiteral(raw)
    if isinstance(raw, uuid.UUID):
        return CategoryRef(raw)
    if isinstance(raw, Mapping):
        return parse_category_value(raw.get("id"))
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return None
        try:
            return CategoryLiteral(CategoryType(text.lower()))
        except ValueError:
            pass
        try:
            return CategoryRef(uuid.UUID(text))
        except ValueError:
            log.debug(f"Ignoring unrecognised category value '{text}'")
            return None
    return None


def category_value_of(activity: Any) -> Optional[CategoryValue]:
    """Reads the stored representation off an Activity row (or anything shaped like one)."""
    tag = getattr(activity, "category_tag", None)
    if tag is not None:
        return CategoryLiteral(CategoryType(tag))
    category_id = getattr(activity, "category_id", None)
    if category_id is not None:
        return CategoryRef(category_id)
    return None


def match_category(
    domain: Optional[str],
    application: Optional[str],
    categories: Iterable[Category],
) -> Optional[Category]:
    """First category (in the given order) listing the domain, or else the application."""
    categories = list(categories)
    if domain:
        for category in categories:
            if domain in (category.domains or []):
                return category
        return None
    if application:
        for category in categories:
            if application in (category.applications or []):
                return category
    return None


def resolve_category(
    value: Optional[CategoryValue],
    categories_by_id: Mapping[uuid.UUID, Category],
) -> Optional[ResolvedCategory]:
    if value is None:
        return None
    if isinstance(value, CategoryLiteral):
        tag = CategoryType(value.value)
        return ResolvedCategory(key=tag.value, name=tag.value, type=tag)
    category = categories_by_id.get(value.id)
    if category is None:
        # Dangling reference: the category was deleted after the activity was stored.
        return None
    return ResolvedCategory(
        key=str(category.id),
        name=category.name,
        type=CategoryType(category.type),
        category_id=category.id,
    )
