"""
Desktop tracker: follows the foreground application window.
"""
import logging
from typing import Optional

from . import config
from .session import TrackingSession
from .window_source import ActivityWatchWindowSource

log = logging.getLogger(__name__)

POLL_JOB_ID = "window_poll_job"


class DesktopTracker:
    def __init__(self, session: TrackingSession, source: ActivityWatchWindowSource):
        self.session = session
        self.source = source

    @property
    def is_tracking(self) -> bool:
        return self.session.running

    def poll(self):
        """One foreground check: a different application closes the current activity and opens a new one."""
        try:
            target = self.source.current_window()
            self.session.switch_focus(target)
        except Exception as e:
            log.error(f"Error checking window: {e}", exc_info=True)

    def start(self):
        if self.session.running:
            log.warning("Already tracking")
            return
        self.session.add_job(self.poll, config.WINDOW_POLL_INTERVAL_SECONDS, POLL_JOB_ID, "Window Poller")
        self.session.start()
        self.poll()
        log.info("Activity tracking started")

    def stop(self):
        if not self.session.running:
            return
        self.session.stop()
        log.info("Activity tracking stopped")

    def status(self) -> dict:
        current = self.session.emitter.current
        app: Optional[str] = current.target.application if current else None
        return {
            "isTracking": self.is_tracking,
            "currentApp": app,
            "isIdle": self.session.idle.is_idle,
        }
