"""
Browser host: the extension's background logic, run as a Chrome native-messaging host.

The extension forwards tab, window, idle and content-script events over the
native-messaging pipe; each message is a JSON object preceded by its length
as a 32-bit unsigned integer in native byte order. Every message gets exactly
one response. End of input means the browser is going away and is handled
like an extension suspend.

Content scripts only report input in batches, so the host never decides on
its own that the user went idle: the browser's idle API and explicit pauses
do. Card timers run on a second session that follows the same idle signal.
"""
import json
import logging
import struct
from typing import Any, BinaryIO, Callable, Dict, List, Optional

from .credentials import CredentialStore
from .emitter import ActivityEmitter
from .idle import IdleDetector
from .models import FocusTarget
from .session import TrackingSession
from .task_timer import TaskTimer

log = logging.getLogger(__name__)

HEADER = struct.Struct("@I")
# Chrome refuses messages from a host larger than 1 MB
MAX_MESSAGE_BYTES = 1024 * 1024
WINDOW_ID_NONE = -1


class NativeMessagingError(Exception):
    """Raised for malformed native-messaging frames."""


class InvalidMessage(NativeMessagingError):
    """A complete frame whose body is not a JSON object. The stream is still in sync."""


def read_message(stream: BinaryIO) -> Optional[Dict[str, Any]]:
    """Reads one framed message; None at end of input."""
    header = stream.read(HEADER.size)
    if not header:
        return None
    if len(header) < HEADER.size:
        raise NativeMessagingError("Truncated message header")
    (length,) = HEADER.unpack(header)
    body = stream.read(length)
    if len(body) < length:
        raise NativeMessagingError(f"Truncated message body: expected {length} bytes, got {len(body)}")
    try:
        message = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise InvalidMessage(f"Message is not valid JSON: {e}") from e
    if not isinstance(message, dict):
        raise InvalidMessage("Message must be a JSON object")
    return message


def write_message(stream: BinaryIO, message: Dict[str, Any]):
    body = json.dumps(message).encode("utf-8")
    if len(body) > MAX_MESSAGE_BYTES:
        raise NativeMessagingError(f"Response of {len(body)} bytes exceeds the native-messaging limit")
    stream.write(HEADER.pack(len(body)))
    stream.write(body)
    stream.flush()


def _tab_target(message: Dict[str, Any]) -> Optional[FocusTarget]:
    tab = message.get("tab") or {}
    return FocusTarget.from_tab(tab.get("url"), tab.get("title"))


def timer_session(session: TrackingSession) -> TrackingSession:
    """A session for card timers, sharing the browser session's clocks and sync client."""
    return TrackingSession(
        ActivityEmitter(clock=session.emitter.clock),
        IdleDetector(timeout_seconds=0, clock=session.idle.clock),
        session.sync,
    )


class BrowserHost:
    def __init__(self, session: TrackingSession, credentials: CredentialStore, timer: Optional[TaskTimer] = None):
        self.session = session
        self.credentials = credentials
        self.timer = timer or TaskTimer(timer_session(session))
        for tracked in self.sessions:
            tracked.use_external_idle()
        self.handlers: Dict[str, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
            "SET_TOKEN": self.set_token,
            "GET_STATUS": self.get_status,
            "TAB_ACTIVATED": self.tab_activated,
            "TAB_UPDATED": self.tab_updated,
            "WINDOW_FOCUS_CHANGED": self.window_focus_changed,
            "IDLE_STATE_CHANGED": self.idle_state_changed,
            "VISIBILITY_CHANGED": self.visibility_changed,
            "CONTENT_INTERACTION": self.content_interaction,
            "START_TASK_TRACKING": self.start_task_tracking,
            "STOP_TASK_TRACKING": self.stop_task_tracking,
            "PAUSE_TRACKING": self.pause_tracking,
            "RESUME_TRACKING": self.resume_tracking,
            "SUSPEND": self.suspend,
            "START_TIMER": self.start_timer,
            "STOP_TIMER": self.stop_timer,
            "TIMER_VISIBILITY": self.timer_visibility,
        }

    @property
    def sessions(self) -> List[TrackingSession]:
        return [self.session, self.timer.session]

    # ------------------------------------------------------------------
    # Message handlers
    # ------------------------------------------------------------------
    def set_token(self, message):
        self.credentials.token = message.get("token")
        return {"success": True}

    def get_status(self, message):
        current = self.session.emitter.current
        return {
            "isTracking": current is not None,
            "currentSite": (current.target.domain if current else None) or "None",
            "isAuthenticated": bool(self.credentials.token),
            "isIdle": self.session.idle.is_idle,
            "activeTask": self.timer.active_task.task_id if self.timer.is_running else None,
        }

    def tab_activated(self, message):
        self.session.switch_focus(_tab_target(message))
        return {"success": True}

    def tab_updated(self, message):
        # Only a finished load of the active tab is a focus change.
        tab = message.get("tab") or {}
        if message.get("status") == "complete" and tab.get("active", True):
            self.session.switch_focus(_tab_target(message))
        return {"success": True}

    def window_focus_changed(self, message):
        if message.get("windowId") == WINDOW_ID_NONE:
            # Browser lost focus
            self.session.switch_focus(None)
        else:
            self.session.switch_focus(_tab_target(message))
        return {"success": True}

    def idle_state_changed(self, message):
        state = message.get("state")
        for tracked in self.sessions:
            if state in ("idle", "locked"):
                with tracked.lock:
                    tracked.idle.force_idle()
            elif state == "active":
                tracked.record_input("pointerdown")
        return {"success": True}

    def visibility_changed(self, message):
        if message.get("hidden"):
            self.session.flush()
        return {"success": True}

    def content_interaction(self, message):
        data = message.get("data") or {}
        with self.session.lock:
            self.session.emitter.merge_metadata(data)
        for tracked in self.sessions:
            tracked.record_input(message.get("input", "pointerdown"))
        return {"success": True}

    def start_task_tracking(self, message):
        log.info(f"Unified tracking started for task: {message.get('taskTitle')}")
        with self.session.lock:
            self.session.emitter.link_task(message.get("taskId"), message.get("taskTitle"))
        return {"success": True}

    def stop_task_tracking(self, message):
        log.info("Unified tracking stopped")
        with self.session.lock:
            self.session.emitter.unlink_task()
        return {"success": True}

    def pause_tracking(self, message):
        self.session.pause()
        return {"success": True}

    def resume_tracking(self, message):
        if not self.session.resume() and message.get("tab"):
            self.session.switch_focus(_tab_target(message))
        return {"success": True}

    def suspend(self, message):
        self.teardown()
        return {"success": True}

    def start_timer(self, message):
        if not message.get("cardId"):
            return {"success": False, "error": "cardId is required"}
        self.timer.start(
            message["cardId"],
            message.get("cardTitle") or "Untitled card",
            board_id=message.get("boardId"),
            list_id=message.get("listId"),
            board_name=message.get("boardName"),
        )
        return {"success": True}

    def stop_timer(self, message):
        record = self.timer.stop()
        return {"success": True, "duration": record.duration if record else 0}

    def timer_visibility(self, message):
        self.timer.visibility_changed(bool(message.get("hidden")))
        return {"success": True}

    def teardown(self):
        for tracked in self.sessions:
            tracked.teardown()

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------
    def handle(self, message: Dict[str, Any]) -> Dict[str, Any]:
        message_type = message.get("type")
        handler = self.handlers.get(message_type)
        if handler is None:
            log.warning(f"Unknown message type: {message_type}")
            return {"success": False, "error": f"Unknown message type: {message_type}"}
        try:
            return handler(message)
        except Exception as e:
            log.error(f"Error handling {message_type}: {e}", exc_info=True)
            return {"success": False, "error": str(e)}

    def run(self, stdin: BinaryIO, stdout: BinaryIO):
        self.session.start()
        try:
            while True:
                try:
                    message = read_message(stdin)
                except InvalidMessage as e:
                    log.warning(f"Discarding unreadable message: {e}")
                    write_message(stdout, {"success": False, "error": str(e)})
                    continue
                if message is None:
                    log.info("Browser closed the native-messaging pipe.")
                    break
                write_message(stdout, self.handle(message))
        finally:
            self.teardown()
