"""Observable state of an execution run.

``RunState`` is written by exactly one ``ExecutionRunner``. Everything handed
out to readers (``RunSnapshot`` and the records inside it) is immutable, so a
consumer can keep a snapshot around while the run moves on.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Deque, List, Optional, Tuple

log = logging.getLogger(__name__)

DEFAULT_LOG_CAPACITY = 100


def now_ms() -> int:
    return int(time.time() * 1000)


class RunStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    EXECUTING = "executing"
    PAUSED = "paused"
    COMPLETED = "completed"
    ERROR = "error"


class LogLevel(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"
    DEBUG = "debug"

    @property
    def logging_level(self) -> int:
        return _PY_LEVELS[self]


_PY_LEVELS = {
    LogLevel.INFO: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.SUCCESS: logging.INFO,
    LogLevel.DEBUG: logging.DEBUG,
}


@dataclass(frozen=True, slots=True)
class ActionOutcome:
    action_index: int
    action_name: str
    success: bool
    error: Optional[str] = None
    duration_ms: int = 0
    timestamp: int = field(default_factory=now_ms)

    def as_dict(self) -> dict:
        return {
            "action_index": self.action_index,
            "action_name": self.action_name,
            "success": self.success,
            "error": self.error,
            "duration_ms": self.duration_ms,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True, slots=True)
class RunSummary:
    total_actions: int
    completed_actions: int = 0
    failed_actions: int = 0
    skipped_actions: int = 0
    total_duration_ms: int = 0
    start_time: int = field(default_factory=now_ms)
    end_time: Optional[int] = None

    @property
    def attempted(self) -> int:
        return self.completed_actions + self.failed_actions

    @property
    def remaining(self) -> int:
        return max(0, self.total_actions - self.attempted)

    def record(self, success: bool, *, at: int) -> "RunSummary":
        completed = self.completed_actions + (1 if success else 0)
        failed = self.failed_actions + (0 if success else 1)
        if self.end_time is not None:
            # Stopped while this action was in flight; timing stays as stamped.
            return replace(
                self,
                completed_actions=completed,
                failed_actions=failed,
                skipped_actions=max(0, self.total_actions - completed - failed),
            )
        return replace(
            self,
            completed_actions=completed,
            failed_actions=failed,
            total_duration_ms=max(0, at - self.start_time),
        )

    def finish(self, *, at: int) -> "RunSummary":
        """Stamp the end time; actions never attempted are counted as skipped."""

        if self.end_time is not None:
            return self
        return replace(
            self,
            skipped_actions=self.remaining,
            total_duration_ms=max(0, at - self.start_time),
            end_time=at,
        )

    def as_dict(self) -> dict:
        return {
            "total_actions": self.total_actions,
            "completed_actions": self.completed_actions,
            "failed_actions": self.failed_actions,
            "skipped_actions": self.skipped_actions,
            "total_duration_ms": self.total_duration_ms,
            "start_time": self.start_time,
            "end_time": self.end_time,
        }


@dataclass(frozen=True, slots=True)
class LogEntry:
    level: LogLevel
    message: str
    action_index: Optional[int] = None
    timestamp: int = field(default_factory=now_ms)


@dataclass(frozen=True, slots=True)
class RunSnapshot:
    status: RunStatus
    cursor: int
    outcomes: Tuple[ActionOutcome, ...]
    summary: Optional[RunSummary]
    logs: Tuple[LogEntry, ...]


Listener = Callable[[RunSnapshot], None]


class RunState:
    """Mutable state container with a single writer and any number of readers."""

    def __init__(self, log_capacity: int = DEFAULT_LOG_CAPACITY) -> None:
        self.status = RunStatus.IDLE
        self.cursor = -1
        self.summary: Optional[RunSummary] = None
        self._outcomes: List[ActionOutcome] = []
        self._logs: Deque[LogEntry] = deque(maxlen=log_capacity)
        self._listeners: List[Listener] = []

    @property
    def outcomes(self) -> Tuple[ActionOutcome, ...]:
        return tuple(self._outcomes)

    @property
    def logs(self) -> Tuple[LogEntry, ...]:
        return tuple(self._logs)

    def snapshot(self) -> RunSnapshot:
        return RunSnapshot(
            status=self.status,
            cursor=self.cursor,
            outcomes=self.outcomes,
            summary=self.summary,
            logs=self.logs,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for change notifications; returns an unsubscribe callable."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def notify(self) -> None:
        if not self._listeners:
            return
        snap = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snap)
            except Exception:
                log.exception("Run state listener %r failed", listener)

    # Mutators: only the owning runner calls these.

    def set_status(self, status: RunStatus) -> None:
        self.status = status
        self.notify()

    def set_cursor(self, cursor: int) -> None:
        self.cursor = cursor
        self.notify()

    def set_summary(self, summary: Optional[RunSummary]) -> None:
        self.summary = summary
        self.notify()

    def append_outcome(self, outcome: ActionOutcome) -> None:
        self._outcomes.append(outcome)
        self.notify()

    def clear_run(self) -> None:
        self.cursor = -1
        self.summary = None
        self._outcomes.clear()
        self.notify()

    def clear_outcomes(self) -> None:
        self._outcomes.clear()

    def add_log(self, entry: LogEntry) -> None:
        self._logs.append(entry)
        self.notify()

    def clear_logs(self) -> None:
        self._logs.clear()
        self.notify()
