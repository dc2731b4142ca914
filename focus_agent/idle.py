"""
Idle Detector.

A two-state machine (ACTIVE, IDLE) fed with qualifying input events. It is
re-evaluated by calling `check()` periodically; listeners are told about each
transition exactly once.
"""
import enum
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from . import config

log = logging.getLogger(__name__)

POINTER_MOVE = "pointermove"
QUALIFYING_INPUTS = frozenset({POINTER_MOVE, "pointerdown", "keypress", "scroll", "touch", "click"})


class IdleState(str, enum.Enum):
    ACTIVE = "active"
    IDLE = "idle"


class PermissionDenied(Exception):
    """Raised when a non-privileged principal tries to change a privileged setting."""


@dataclass(frozen=True)
class Principal:
    """Who is asking to change detector settings."""
    username: str
    is_privileged: bool = False


class IdleDetector:
    def __init__(
        self,
        timeout_seconds: float = config.IDLE_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        pointer_throttle_seconds: float = config.POINTER_MOVE_THROTTLE_SECONDS,
    ):
        if timeout_seconds < 0:
            raise ValueError("Idle timeout must not be negative")
        self._timeout = timeout_seconds
        self.clock = clock
        self.pointer_throttle_seconds = pointer_throttle_seconds
        self.state = IdleState.ACTIVE
        self.last_input = clock()
        self._listeners: List[Callable[[IdleState], Any]] = []

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def enabled(self) -> bool:
        return self._timeout > 0

    @property
    def is_idle(self) -> bool:
        return self.state == IdleState.IDLE

    def add_listener(self, listener: Callable[[IdleState], Any]):
        self._listeners.append(listener)

    def _transition(self, state: IdleState):
        self.state = state
        log.info(f"User is now {state.value}")
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                log.error(f"Idle listener failed on {state.value}: {e}", exc_info=True)

    def set_timeout(self, seconds: float, principal: Principal):
        """Changes the idle timeout. Only privileged principals may do this; 0 means never idle."""
        if not principal.is_privileged:
            raise PermissionDenied(f"{principal.username} may not change the idle timeout")
        if seconds < 0:
            raise ValueError("Idle timeout must not be negative")
        log.info(f"Idle timeout changed from {self._timeout}s to {seconds}s by {principal.username}")
        self._timeout = seconds
        if not self.enabled and self.is_idle:
            self._transition(IdleState.ACTIVE)

    def record_input(self, kind: str = "keypress") -> bool:
        """
        Registers a qualifying input event. Returns True when it reset the idle timer;
        pointer moves reset it at most once per throttle window.
        """
        if kind not in QUALIFYING_INPUTS:
            return False
        now = self.clock()
        if kind == POINTER_MOVE and now - self.last_input < self.pointer_throttle_seconds:
            return False
        self.last_input = now
        if self.is_idle:
            self._transition(IdleState.ACTIVE)
        return True

    def check(self) -> bool:
        """Enters IDLE once the timeout has passed without input. Returns True only on that transition."""
        if not self.enabled or self.is_idle:
            return False
        if self.clock() - self.last_input >= self._timeout:
            self._transition(IdleState.IDLE)
            return True
        return False

    def force_idle(self) -> bool:
        """Enters IDLE on an external signal, e.g. the OS reporting a locked screen."""
        if self.is_idle:
            return False
        self._transition(IdleState.IDLE)
        return True

    def get_idle_duration(self) -> float:
        if not self.is_idle:
            return 0
        return max(0.0, self.clock() - self.last_input)

    def seconds_until_idle(self) -> Optional[float]:
        if not self.enabled or self.is_idle:
            return None
        return max(0.0, self._timeout - (self.clock() - self.last_input))
