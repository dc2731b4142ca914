import uuid
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from backend.app.core.utils import ensure_utc
from backend.app.models import ActivityType, CategoryType, UserRole


# Base schemas
class BaseSchema(BaseModel):
    """Base schema for all Pydantic models to inherit from. Wire format is camelCase."""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True, alias_generator=to_camel)


# Token / user schemas
class Token(BaseModel):
    """Schema for an authentication token. Keeps the OAuth2 snake_case field names."""
    access_token: str
    token_type: str = "bearer"


class TokenData(BaseSchema):
    """Schema for the data encoded in a token."""
    username: Optional[str] = None


class UserCreate(BaseSchema):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class User(BaseSchema):
    """Schema for a user as returned by the API."""
    id: uuid.UUID
    username: str
    role: UserRole = UserRole.member


class UserProfile(User):
    """`/auth/me` response; emitters use `is_privileged` to gate local settings."""
    is_privileged: bool = False


# Category schemas
class CategoryBase(BaseSchema):
    name: str
    color: str = "#6B6B6B"
    type: CategoryType = CategoryType.neutral
    domains: List[str] = Field(default_factory=list)
    applications: List[str] = Field(default_factory=list)


class CategoryCreate(CategoryBase):
    pass


class CategoryUpdate(BaseSchema):
    name: Optional[str] = None
    color: Optional[str] = None
    type: Optional[CategoryType] = None
    domains: Optional[List[str]] = None
    applications: Optional[List[str]] = None


class Category(CategoryBase):
    """Schema for a category as returned by the API."""
    id: uuid.UUID
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


# Activity schemas
class ActivityBase(BaseSchema):
    type: ActivityType
    client_id: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = None
    domain: Optional[str] = None
    application: Optional[str] = None
    task_id: Optional[str] = None
    board_id: Optional[str] = None
    duration: int = Field(default=0, ge=0)
    start_time: datetime
    end_time: Optional[datetime] = None
    is_active: bool = True
    details: Optional[Dict[str, Any]] = Field(default=None, alias="metadata")


class ActivityCreate(ActivityBase):
    """What an emitter posts: a literal tag, a category id, or nothing for `category`."""
    category: Optional[Union[str, uuid.UUID, Dict[str, Any]]] = None


class ActivityUpdate(BaseSchema):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[Union[str, uuid.UUID, Dict[str, Any]]] = None
    duration: Optional[int] = Field(default=None, ge=0)
    end_time: Optional[datetime] = None
    is_active: Optional[bool] = None
    details: Optional[Dict[str, Any]] = Field(default=None, alias="metadata")


class Activity(ActivityBase):
    """Schema for an activity as returned by the API."""
    id: uuid.UUID
    user_id: uuid.UUID
    category: Optional[Union[CategoryType, Category]] = None
    created_at: datetime

    @classmethod
    def from_model(cls, activity: Any) -> "Activity":
        if activity.category_tag is not None:
            category = CategoryType(activity.category_tag)
        elif activity.category is not None:
            category = Category.model_validate(activity.category)
        else:
            category = None
        return cls(
            id=activity.id,
            user_id=activity.user_id,
            client_id=activity.client_id,
            type=activity.type,
            title=activity.title,
            description=activity.description,
            url=activity.url,
            domain=activity.domain,
            application=activity.application,
            task_id=activity.task_id,
            board_id=activity.board_id,
            category=category,
            duration=activity.duration,
            start_time=ensure_utc(activity.start_time),
            end_time=ensure_utc(activity.end_time) if activity.end_time else None,
            is_active=activity.is_active,
            details=activity.details,
            created_at=ensure_utc(activity.created_at),
        )


# Analytics schemas
class WebsiteTime(BaseSchema):
    domain: str
    time: int
    visits: int


class ApplicationTime(BaseSchema):
    name: str
    time: int


class CategoryTime(BaseSchema):
    category: str
    name: str
    type: CategoryType
    time: int


class HourTime(BaseSchema):
    hour: int
    time: int


class DailySummary(BaseSchema):
    """Schema for the productivity summary of a given day."""
    user_id: uuid.UUID
    date: date
    total_time: int
    productive_time: int
    neutral_time: int
    distracting_time: int
    top_websites: List[WebsiteTime]
    top_applications: List[ApplicationTime]
    categories: List[CategoryTime]
    hourly_breakdown: List[HourTime]
    computed_at: datetime

    @field_validator("computed_at")
    @classmethod
    def as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class CountedTime(BaseSchema):
    count: int
    time: int


class CategoryCountedTime(CountedTime):
    type: CategoryType


class HourCountedTime(CountedTime):
    hour: int


class RangeStatistics(BaseSchema):
    """Schema for statistics over an arbitrary date range."""
    start_date: date
    end_date: date
    total_activities: int
    total_time: int
    by_type: Dict[str, CountedTime]
    by_category: Dict[str, CategoryCountedTime]
    by_hour: List[HourCountedTime]
    top_domains: List[WebsiteTime]
    top_apps: List[ApplicationTime]
