"""
Value types shared by the emitter, the sync client and the hosts.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlparse

# URL schemes of pages that never count as a website activity
INTERNAL_URL_PREFIXES = ("chrome://", "chrome-extension://", "edge://", "about:", "devtools://")

WEBSITE = "website"
APPLICATION = "application"
TASK = "task"


@dataclass(frozen=True)
class FocusTarget:
    """Something the user can focus on: a page, an application window or a task."""
    type: str
    title: Optional[str] = None
    url: Optional[str] = None
    domain: Optional[str] = None
    application: Optional[str] = None
    task_id: Optional[str] = None
    board_id: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def identity(self) -> Tuple:
        """Two targets with the same identity are the same focus; title changes do not count."""
        if self.type == APPLICATION:
            return (self.type, self.application)
        if self.type == TASK:
            return (self.type, self.task_id)
        return (self.type, self.url)

    @property
    def label(self) -> str:
        return self.domain or self.application or self.title or self.type

    @classmethod
    def from_tab(cls, url: Optional[str], title: Optional[str] = None) -> Optional["FocusTarget"]:
        """A browser tab; None for missing URLs and browser-internal pages."""
        if not url or url.startswith(INTERNAL_URL_PREFIXES):
            return None
        parsed = urlparse(url)
        if not parsed.hostname:
            # file:// pages and other host-less URLs
            return None
        return cls(type=WEBSITE, title=title, url=url, domain=parsed.hostname)

    @classmethod
    def from_window(cls, application: Optional[str], title: Optional[str] = None) -> Optional["FocusTarget"]:
        if not application or not application.strip():
            return None
        return cls(type=APPLICATION, title=title, application=application.strip())

    @classmethod
    def from_task(
        cls,
        task_id: str,
        title: str,
        board_id: Optional[str] = None,
        list_id: Optional[str] = None,
        board_name: Optional[str] = None,
    ) -> "FocusTarget":
        """A running card timer. Task time is always recorded as productive."""
        details = {"cardTitle": title}
        if list_id:
            details["listId"] = list_id
        if board_name:
            details["boardName"] = board_name
        return cls(
            type=TASK,
            title=title,
            task_id=task_id,
            board_id=board_id,
            description=f"Working on: {title}",
            category="productive",
            details=details,
        )


@dataclass
class ActivityRecord:
    """One sync of an activity, as posted to `/activities`."""
    client_id: str
    type: str
    start_time: datetime
    duration: int
    is_active: bool
    end_time: Optional[datetime] = None
    title: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = None
    domain: Optional[str] = None
    application: Optional[str] = None
    task_id: Optional[str] = None
    board_id: Optional[str] = None
    category: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        """The camelCase JSON body the API expects; unset optional fields are omitted."""
        payload = {
            "clientId": self.client_id,
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "url": self.url,
            "domain": self.domain,
            "application": self.application,
            "taskId": self.task_id,
            "boardId": self.board_id,
            "category": self.category,
            "duration": self.duration,
            "startTime": self.start_time.isoformat(),
            "endTime": self.end_time.isoformat() if self.end_time else None,
            "isActive": self.is_active,
            "metadata": dict(self.metadata),
        }
        return {key: value for key, value in payload.items() if value is not None}
