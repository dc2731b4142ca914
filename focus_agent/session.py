"""
Tracking session: one emitter process's emitter, idle detector and sync client,
wired together and driven by background heartbeat and idle-check jobs.
"""
import logging
import threading
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from . import config
from .emitter import ActivityEmitter
from .idle import IdleDetector, IdleState, PermissionDenied
from .models import ActivityRecord, FocusTarget
from .sync import SyncClient

log = logging.getLogger(__name__)

HEARTBEAT_JOB_ID = "heartbeat_job"
IDLE_CHECK_JOB_ID = "idle_check_job"


class TrackingSession:
    """
    Serializes every state transition of one emitter behind a lock, so focus
    changes, input events and timer callbacks arriving on different threads
    are applied one at a time.
    """

    def __init__(
        self,
        emitter: ActivityEmitter,
        idle: IdleDetector,
        sync: SyncClient,
        scheduler: Optional[BackgroundScheduler] = None,
    ):
        self.emitter = emitter
        self.idle = idle
        self.sync = sync
        self.scheduler = scheduler or BackgroundScheduler(timezone="UTC")
        self.lock = threading.RLock()
        self.running = False
        self.poll_idle = True
        if self.emitter.sink is None:
            self.emitter.sink = self.sync.dispatch
        self.idle.add_listener(self._on_idle_state)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def add_job(self, func, seconds: float, job_id: str, name: str):
        self.scheduler.add_job(
            func,
            trigger=IntervalTrigger(seconds=seconds),
            id=job_id,
            name=name,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        log.info(f"Scheduled {name} to run every {seconds} seconds.")

    def use_external_idle(self):
        """
        Idle is reported by the host (the OS idle API, an explicit pause) instead
        of timed out from local input, for hosts that only see batched input.
        """
        self.poll_idle = False

    def start(self):
        if self.running:
            return
        self.add_job(self.heartbeat_job, config.HEARTBEAT_INTERVAL_SECONDS, HEARTBEAT_JOB_ID, "Heartbeat")
        if self.poll_idle:
            self.add_job(self.idle_check_job, config.IDLE_CHECK_INTERVAL_SECONDS, IDLE_CHECK_JOB_ID, "Idle Check")
        if not self.scheduler.running:
            self.scheduler.start()
        self.running = True
        log.info("Tracking session started.")

    def stop(self):
        """Cancels the timers, closes the open activity and waits for pending syncs."""
        if self.scheduler.running:
            try:
                self.scheduler.shutdown(wait=True)
                log.info("Scheduler shut down gracefully.")
            except Exception as e:
                log.error(f"Error shutting down scheduler: {e}", exc_info=True)
        self.running = False
        with self.lock:
            self.emitter.close()
        self.sync.shutdown(wait=True)
        log.info("Tracking session stopped.")

    def teardown(self) -> Optional[threading.Thread]:
        """
        Process exit or host suspension: the open activity is closed and sent
        by beacon, since nothing may be awaited any more.
        """
        if self.scheduler.running:
            try:
                self.scheduler.shutdown(wait=False)
            except Exception as e:
                log.error(f"Error shutting down scheduler during teardown: {e}", exc_info=True)
        self.running = False
        with self.lock:
            record = self.emitter.close(sink=lambda closed: None)
        self.sync.shutdown(wait=False)
        if record is None:
            return None
        return self.sync.beacon(record)

    # ------------------------------------------------------------------
    # Focus and input
    # ------------------------------------------------------------------
    def switch_focus(self, target: Optional[FocusTarget]) -> Optional[ActivityRecord]:
        with self.lock:
            closed = self.emitter.switch_focus(target)
            if target is not None and self.idle.is_idle:
                # Focus moved while idle; the new activity starts paused until input returns.
                self.emitter.suspend()
            return closed

    def record_input(self, kind: str = "keypress") -> bool:
        with self.lock:
            return self.idle.record_input(kind)

    def flush(self) -> Optional[ActivityRecord]:
        """Visibility loss: sends the open activity's progress right away."""
        with self.lock:
            record = self.emitter.snapshot()
        if record is not None:
            self.sync.dispatch(record)
        return record

    def pause(self) -> Optional[ActivityRecord]:
        with self.lock:
            return self.emitter.suspend()

    def resume(self) -> bool:
        with self.lock:
            return self.emitter.resume()

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------
    def set_idle_timeout(self, seconds: int) -> bool:
        """Changes the idle timeout for the signed-in user if they are privileged."""
        principal = self.sync.fetch_principal()
        if principal is None:
            log.warning("Not signed in; the idle timeout cannot be changed.")
            return False
        try:
            with self.lock:
                self.idle.set_timeout(seconds, principal)
        except PermissionDenied as e:
            log.warning(f"Idle timeout not changed: {e}")
            return False
        self.sync.credentials.idle_timeout = seconds
        return True

    # ------------------------------------------------------------------
    # Jobs and callbacks
    # ------------------------------------------------------------------
    def _on_idle_state(self, state: IdleState):
        with self.lock:
            if state == IdleState.IDLE:
                self.emitter.suspend()
            else:
                self.emitter.resume()

    def heartbeat_job(self):
        try:
            record = self.flush()
            if record is not None:
                log.debug(f"Heartbeat for {record.client_id}: {record.duration}s")
        except Exception as e:
            log.error(f"Error during heartbeat: {e}", exc_info=True)

    def idle_check_job(self):
        if not self.poll_idle:
            return
        try:
            with self.lock:
                self.idle.check()
        except Exception as e:
            log.error(f"Error during idle check: {e}", exc_info=True)
