"""
Activity Emitter.

Keeps the single "current activity" of one emitter process and turns focus
changes into activity records. The emitter never talks to the network: closed
and suspended records are handed to a sink (normally the sync client), and
`start` / `end` lifecycle notifications go to whoever subscribed.
"""
import logging
import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from .models import WEBSITE, ActivityRecord, FocusTarget

log = logging.getLogger(__name__)

Clock = Callable[[], datetime]
Sink = Callable[[ActivityRecord], Any]
Listener = Callable[[str, ActivityRecord], Any]

START = "start"
END = "end"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _initial_metadata(target: FocusTarget) -> Dict[str, Any]:
    metadata = dict(target.details)
    if target.type == WEBSITE:
        metadata.update(tabCount=0, tabSwitches=0, scrollDepth=0, keystrokes=0, clicks=0)
    return metadata


@dataclass
class OpenActivity:
    """The in-flight activity. `effective_start` moves forward on resume so idle time is excluded."""
    target: FocusTarget
    client_id: str
    start_time: datetime
    effective_start: datetime
    metadata: Dict[str, Any] = field(default_factory=dict)
    suspended_elapsed: Optional[int] = None

    @property
    def is_suspended(self) -> bool:
        return self.suspended_elapsed is not None

    def elapsed(self, now: datetime) -> int:
        if self.suspended_elapsed is not None:
            return self.suspended_elapsed
        return max(0, math.floor((now - self.effective_start).total_seconds()))


@dataclass
class TrackerState:
    """Everything an emitter owns; at most one activity is open at a time."""
    current: Optional[OpenActivity] = None


class ActivityEmitter:
    def __init__(
        self,
        sink: Optional[Sink] = None,
        clock: Clock = utcnow,
        state: Optional[TrackerState] = None,
    ):
        self.sink = sink
        self.clock = clock
        self.state = state or TrackerState()
        self._listeners: List[Listener] = []

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------
    def subscribe(self, listener: Listener):
        """Registers `listener(event, record)` for `start` and `end` notifications."""
        self._listeners.append(listener)

    def _notify(self, event: str, record: ActivityRecord):
        for listener in list(self._listeners):
            try:
                listener(event, record)
            except Exception as e:
                log.error(f"Activity '{event}' listener failed: {e}", exc_info=True)

    def _deliver(self, record: ActivityRecord, sink: Optional[Sink] = None):
        sink = sink or self.sink
        if sink is None:
            return
        try:
            sink(record)
        except Exception as e:
            log.error(f"Failed to hand activity {record.client_id} to sync: {e}", exc_info=True)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def current(self) -> Optional[OpenActivity]:
        return self.state.current

    @property
    def is_tracking(self) -> bool:
        return self.state.current is not None

    @property
    def is_suspended(self) -> bool:
        return self.state.current is not None and self.state.current.is_suspended

    def _record(self, activity: OpenActivity, now: datetime, is_active: bool) -> ActivityRecord:
        target = activity.target
        return ActivityRecord(
            client_id=activity.client_id,
            type=target.type,
            start_time=activity.start_time,
            end_time=now,
            duration=activity.elapsed(now),
            is_active=is_active,
            title=target.title,
            description=target.description,
            url=target.url,
            domain=target.domain,
            application=target.application,
            task_id=target.task_id,
            board_id=target.board_id,
            category=target.category,
            metadata=dict(activity.metadata),
        )

    def snapshot(self) -> Optional[ActivityRecord]:
        """Heartbeat view of the open activity: duration so far, still active. None when idle or closed."""
        activity = self.state.current
        if activity is None or activity.is_suspended:
            return None
        return self._record(activity, self.clock(), is_active=True)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def switch_focus(self, target: Optional[FocusTarget]) -> Optional[ActivityRecord]:
        """
        Moves focus to `target`. The current activity is closed first and its
        terminal record returned; a target equal to the current one changes
        nothing, and a None target only closes.
        """
        current = self.state.current
        if current is not None and target is not None and current.target.identity == target.identity:
            return None
        closed = self.close()
        if target is not None:
            self.open(target)
        return closed

    def open(self, target: FocusTarget) -> ActivityRecord:
        now = self.clock()
        activity = OpenActivity(
            target=target,
            client_id=uuid.uuid4().hex,
            start_time=now,
            effective_start=now,
            metadata=_initial_metadata(target),
        )
        self.state.current = activity
        record = self._record(activity, now, is_active=True)
        log.info(f"Started tracking: {target.label}")
        self._notify(START, record)
        return record

    def close(self, sink: Optional[Sink] = None) -> Optional[ActivityRecord]:
        """Finalizes the current activity and hands it to `sink` (default: the emitter's sink)."""
        activity = self.state.current
        if activity is None:
            return None
        self.state.current = None
        record = self._record(activity, self.clock(), is_active=False)
        log.info(f"Ended tracking: {activity.target.label} {record.duration}s")
        self._deliver(record, sink)
        self._notify(END, record)
        return record

    def suspend(self) -> Optional[ActivityRecord]:
        """
        Idle onset: flushes the partial duration and stops accumulating.
        The activity stays current so `resume` continues it under the same client id.
        """
        activity = self.state.current
        if activity is None or activity.is_suspended:
            return None
        now = self.clock()
        activity.suspended_elapsed = activity.elapsed(now)
        activity.metadata["isPaused"] = True
        record = self._record(activity, now, is_active=False)
        log.info(f"Tracking paused: {activity.target.label} after {record.duration}s")
        self._deliver(record)
        return record

    def resume(self) -> bool:
        activity = self.state.current
        if activity is None or not activity.is_suspended:
            return False
        now = self.clock()
        activity.effective_start = now - timedelta(seconds=activity.suspended_elapsed)
        activity.suspended_elapsed = None
        activity.metadata["isPaused"] = False
        log.info(f"Tracking resumed: {activity.target.label}")
        return True

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------
    def merge_metadata(self, data: Dict[str, Any]):
        """Merges interaction counters (scroll depth, keystrokes, clicks, ...) into the open activity."""
        if self.state.current is not None and data:
            self.state.current.metadata.update(data)

    def link_task(self, task_id: str, task_title: Optional[str] = None):
        if self.state.current is None:
            return
        self.state.current.metadata.update(taskId=task_id, taskTitle=task_title, isUnifiedTracking=True)

    def unlink_task(self):
        if self.state.current is None:
            return
        metadata = self.state.current.metadata
        metadata["isUnifiedTracking"] = False
        metadata.pop("taskId", None)
        metadata.pop("taskTitle", None)
