"""
Task timer: tracks time spent on a board card.

Each running timer is an emitter of its own; task activities are always
recorded as productive and keep counting across focus changes of the
browser and desktop emitters. The browser host drives it from the board
page's START_TIMER, STOP_TIMER and TIMER_VISIBILITY messages.
"""
import logging
from typing import Optional

from .models import ActivityRecord, FocusTarget
from .session import TrackingSession

log = logging.getLogger(__name__)


class TaskTimer:
    def __init__(self, session: TrackingSession):
        self.session = session

    @property
    def active_task(self) -> Optional[FocusTarget]:
        current = self.session.emitter.current
        return current.target if current else None

    @property
    def is_running(self) -> bool:
        return self.active_task is not None

    def elapsed(self) -> int:
        current = self.session.emitter.current
        if current is None:
            return 0
        return current.elapsed(self.session.emitter.clock())

    def start(
        self,
        card_id: str,
        card_title: str,
        board_id: Optional[str] = None,
        list_id: Optional[str] = None,
        board_name: Optional[str] = None,
    ) -> Optional[ActivityRecord]:
        """Starts timing a card; a timer already running for another card is stopped first."""
        if not self.session.running:
            self.session.start()
        target = FocusTarget.from_task(card_id, card_title, board_id, list_id, board_name)
        closed = self.session.switch_focus(target)
        log.info(f"Timer started: {card_title}")
        return closed

    def stop(self) -> Optional[ActivityRecord]:
        """Stops the timer and sends the final update."""
        record = self.session.switch_focus(None)
        if record is not None:
            log.info(f"Timer stopped after {record.duration}s")
        return record

    def visibility_changed(self, hidden: bool):
        if hidden:
            self.session.flush()
            log.info("Update sent on tab hidden")

    def teardown(self):
        return self.session.teardown()
