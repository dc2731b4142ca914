import enum
import uuid
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Boolean, Date, DateTime, Enum, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class UserRole(str, enum.Enum):
    admin = "admin"
    member = "member"


class ActivityType(str, enum.Enum):
    website = "website"
    application = "application"
    tab = "tab"
    task = "task"


class CategoryType(str, enum.Enum):
    productive = "productive"
    neutral = "neutral"
    distracting = "distracting"


class User(Base):
    """Represents an account whose emitters report activity."""
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    username: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[UserRole] = mapped_column(Enum(UserRole), nullable=False, default=UserRole.member)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class Category(Base):
    """A productivity classification matched against domains and application names."""
    __tablename__ = "categories"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    color: Mapped[str] = mapped_column(String, nullable=False, default="#6B6B6B")
    type: Mapped[CategoryType] = mapped_column(Enum(CategoryType), nullable=False, default=CategoryType.neutral)
    domains: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    applications: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class Activity(Base):
    """One observed span of user focus, saved repeatedly while it is still open."""
    __tablename__ = "activities"
    __table_args__ = (UniqueConstraint("user_id", "client_id", name="uq_activity_user_client"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    client_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    type: Mapped[ActivityType] = mapped_column(Enum(ActivityType), nullable=False)
    title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    domain: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    application: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    task_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    board_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    # Exactly one of these is set when the activity is categorised: a literal
    # productivity tag or a reference to a Category row.
    category_tag: Mapped[Optional[CategoryType]] = mapped_column(Enum(CategoryType), nullable=True)
    category_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
    )
    duration: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    end_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    details: Mapped[Optional[Dict[str, Any]]] = mapped_column("metadata", JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    category: Mapped[Optional["Category"]] = relationship("Category", lazy="selectin")


class DailySummary(Base):
    """Per-user, per-day aggregate of activity time."""
    __tablename__ = "daily_summaries"
    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_daily_summary_user_date"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    total_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    productive_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    neutral_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    distracting_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    top_websites: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    top_applications: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    categories: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    hourly_breakdown: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    computed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
