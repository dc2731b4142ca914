"""
Foreground window source backed by ActivityWatch's window watcher.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from aw_client import ActivityWatchClient

from . import config
from .models import FocusTarget

log = logging.getLogger(__name__)


class ActivityWatchWindowSource:
    """Reads the most recent event of the `aw-watcher-window` bucket as the current foreground window."""

    def __init__(
        self,
        bucket_id: str = config.AW_WINDOW_BUCKET_ID,
        stale_after_seconds: int = config.AW_STALE_AFTER_SECONDS,
        client: Optional[ActivityWatchClient] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.bucket_id = bucket_id
        self.stale_after = timedelta(seconds=stale_after_seconds)
        self.clock = clock
        if client is not None:
            self.aw_client = client
        else:
            try:
                self.aw_client = ActivityWatchClient(
                    client_name=config.AW_CLIENT_NAME, host=config.AW_HOST, port=config.AW_PORT
                )
                log.info(f"ActivityWatch client '{config.AW_CLIENT_NAME}' initialized.")
            except Exception as e:
                log.error(f"Failed to initialize ActivityWatch client: {e}", exc_info=True)
                self.aw_client = None

    def current_window(self) -> Optional[FocusTarget]:
        """The focused application, or None when there is none or it cannot be determined."""
        if not self.aw_client:
            return None
        try:
            events = self.aw_client.get_events(bucket_id=self.bucket_id, limit=1)
        except Exception as e:
            log.error(f"Error fetching the current window from '{self.bucket_id}': {e}")
            return None
        if not events:
            return None

        event = events[0]
        timestamp = event.timestamp
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        if timestamp + event.duration + self.stale_after < self.clock():
            # The watcher stopped reporting; nothing is in the foreground as far as we know.
            return None
        return FocusTarget.from_window(event.data.get("app"), event.data.get("title"))
