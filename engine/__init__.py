"""Execution engine replaying recorded automation configurations."""

from .executor import DispatchResult, LiveExecutor, SimulatedExecutor
from .runner import ExecutionRunner, RunPolicy, speed_label
from .state import ActionOutcome, LogEntry, LogLevel, RunSnapshot, RunStatus, RunSummary
from .surface import InteractiveSurface, PlaywrightSurface

__all__ = [
    "ActionOutcome",
    "DispatchResult",
    "ExecutionRunner",
    "InteractiveSurface",
    "LiveExecutor",
    "LogEntry",
    "LogLevel",
    "PlaywrightSurface",
    "RunPolicy",
    "RunSnapshot",
    "RunStatus",
    "RunSummary",
    "SimulatedExecutor",
    "speed_label",
]
