"""Sequential, pausable runner replaying a configuration's actions.

State machine::

    idle -> loading -> idle                (load)
    idle -> executing                      (start)
    executing -> paused -> executing       (pause / start)
    executing|paused -> idle               (stop)
    executing -> completed | error         (end of list / failure with stop-on-error)
    any -> idle                            (reset)

The loop runs in a single asyncio task. Pause and stop are cooperative: they
flip the status, wake the inter-action delay, and the loop notices at its
next check. Stop and reset also cut short waits inside the executor. A
dispatched script is always awaited to completion, and an action that was
in flight when the run was stopped still records its outcome.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple, Union

from automation.dsl.models import Configuration, ConfigurationError

from .config import RunConfig, ensure_run_directories, load_config
from .executor import (
    ActionExecutor,
    LiveExecutor,
    RandomSource,
    SimulatedExecutor,
    Sleeper,
    interruptible_sleep,
)
from .state import (
    ActionOutcome,
    Listener,
    LogEntry,
    LogLevel,
    RunSnapshot,
    RunState,
    RunStatus,
    RunSummary,
    now_ms,
)
from .structured_logging import StructuredLogger, prepare_log_paths
from .surface import InteractiveSurface

log = logging.getLogger(__name__)

ConfigurationInput = Union[Configuration, Dict[str, Any], None]

SPEED_PRESETS: Dict[str, float] = {
    "slow": 0.5,
    "normal": 1.0,
    "fast": 1.5,
    "very_fast": 2.0,
}


def speed_label(speed: float) -> str:
    if speed <= 0.5:
        return "Slow"
    if speed <= 1.0:
        return "Normal"
    if speed <= 1.5:
        return "Fast"
    return "Very Fast"


@dataclass(frozen=True, slots=True)
class RunPolicy:
    """Timing and failure policy, frozen when a run starts."""

    speed: float
    human_like_mode: bool
    stop_on_error: bool


class ExecutionRunner:
    def __init__(
        self,
        *,
        surface: Optional[InteractiveSurface] = None,
        config: Optional[RunConfig] = None,
        rng: Optional[RandomSource] = None,
        executor_sleep: Optional[Sleeper] = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.config = config or load_config()
        self.surface = surface
        self.rng: RandomSource = rng or random.Random()
        self._executor_sleep = executor_sleep
        self._clock = clock
        self._state = RunState(self.config.log_capacity)
        self._configuration: Optional[Configuration] = None

        self.speed = self.config.speed
        self.human_like_mode = self.config.human_like_mode
        self.stop_on_error = self.config.stop_on_error

        self._policy = self._current_policy()
        self._executor: Optional[ActionExecutor] = None
        self._task: Optional[asyncio.Task] = None
        self._wake = asyncio.Event()
        self._halt = asyncio.Event()
        self._generation = 0
        self._stopped_generation: Optional[int] = None
        self._next_index = 0
        self._events: Optional[StructuredLogger] = None

    @classmethod
    def from_settings(cls, store: Any, **kwargs: Any) -> "ExecutionRunner":
        """Build a runner whose policies come from a persisted settings store."""

        runner = cls(**kwargs)
        settings = store.load()
        runner.set_speed(settings.execution_speed)
        runner.set_human_like_mode(settings.human_like_mode)
        runner.set_stop_on_error(settings.stop_on_error)
        return runner

    # Observable state

    @property
    def status(self) -> RunStatus:
        return self._state.status

    @property
    def cursor(self) -> int:
        return self._state.cursor

    @property
    def outcomes(self) -> Tuple[ActionOutcome, ...]:
        return self._state.outcomes

    @property
    def logs(self) -> Tuple[LogEntry, ...]:
        return self._state.logs

    @property
    def summary(self) -> Optional[RunSummary]:
        return self._state.summary

    @property
    def configuration(self) -> Optional[Configuration]:
        return self._configuration

    @property
    def mode(self) -> Optional[str]:
        return self._executor.mode if self._executor else None

    def snapshot(self) -> RunSnapshot:
        return self._state.snapshot()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self._state.subscribe(listener)

    # Policies

    def set_speed(self, speed: float) -> None:
        speed = float(speed)
        if speed <= 0:
            raise ValueError(f"speed must be positive, got {speed}")
        self.speed = speed
        self._policy_changed("speed")

    def set_human_like_mode(self, enabled: bool) -> None:
        self.human_like_mode = bool(enabled)
        self._policy_changed("human-like mode")

    def set_stop_on_error(self, enabled: bool) -> None:
        self.stop_on_error = bool(enabled)
        self._policy_changed("stop on error")

    def _policy_changed(self, name: str) -> None:
        if self.status in (RunStatus.EXECUTING, RunStatus.PAUSED):
            log.debug("Changing %s mid-run; it applies to the next run", name)

    def _current_policy(self) -> RunPolicy:
        return RunPolicy(
            speed=self.speed,
            human_like_mode=self.human_like_mode,
            stop_on_error=self.stop_on_error,
        )

    # Commands

    def load(self, configuration: ConfigurationInput) -> bool:
        """Replace the loaded configuration; never raises on bad input."""

        if self.status not in (RunStatus.IDLE, RunStatus.ERROR):
            self._log(LogLevel.WARNING, f"Cannot load a configuration while {self.status.value}")
            return False

        self._state.set_status(RunStatus.LOADING)
        try:
            if configuration is None:
                raise ConfigurationError("no configuration provided")
            loaded = Configuration.from_payload(configuration)
        except ConfigurationError as exc:
            self._state.set_status(RunStatus.ERROR)
            self._log(LogLevel.ERROR, f"Failed to load configuration: {exc}")
            return False

        self._configuration = loaded
        self._next_index = 0
        self._state.clear_run()
        self._state.set_status(RunStatus.IDLE)
        self._log(
            LogLevel.INFO,
            f"Loaded configuration '{loaded.name}' with {len(loaded.actions)} actions",
        )
        return True

    async def start(self) -> bool:
        """Start a fresh run, or resume a paused one from where it stopped."""

        if self._configuration is None:
            self._log(LogLevel.WARNING, "No configuration loaded")
            return False

        status = self.status
        if status is RunStatus.PAUSED:
            await self._join_task()
            if self.status is not RunStatus.PAUSED:
                return False
            self._wake.clear()
            self._state.set_status(RunStatus.EXECUTING)
            self._log(LogLevel.INFO, f"Resuming execution at action {self._next_index + 1}")
        elif status is RunStatus.IDLE:
            await self._join_task()
            if self.status is not RunStatus.IDLE:
                return False
            self._begin_run()
            configuration = self._configuration
            if not configuration.actions:
                self._executor = None
                self._log(LogLevel.INFO, f"Starting '{configuration.name}' with no actions")
                self._finish(RunStatus.COMPLETED)
                self._log(LogLevel.SUCCESS, "Execution completed: no actions to run")
                return True
            generation = self._generation
            self._executor = await self._select_executor()
            if not self._is_current(generation):
                return False
            self._log(
                LogLevel.INFO,
                f"Starting '{configuration.name}' with {len(configuration.actions)} actions "
                f"in {self._executor.mode} mode",
            )
        else:
            self._log(LogLevel.WARNING, f"Cannot start while {status.value}")
            return False

        self._task = asyncio.create_task(self._run_loop(self._generation))
        return True

    def pause(self) -> bool:
        if self.status is not RunStatus.EXECUTING:
            self._log(LogLevel.WARNING, f"Cannot pause while {self.status.value}")
            return False
        self._state.set_status(RunStatus.PAUSED)
        self._wake.set()
        self._log(LogLevel.INFO, "Execution paused", self.cursor)
        return True

    def stop(self) -> bool:
        if self.status not in (RunStatus.EXECUTING, RunStatus.PAUSED):
            self._log(LogLevel.WARNING, f"Cannot stop while {self.status.value}")
            return False
        self._stopped_generation = self._generation
        self._cancel_loop()
        summary = self.summary
        if summary is not None:
            self._state.set_summary(summary.finish(at=self._clock()))
        self._state.set_cursor(-1)
        self._state.set_status(RunStatus.IDLE)
        self._log(LogLevel.WARNING, "Execution stopped")
        self._record_event(None, None, None, None, None, event="stopped")
        self._close_events()
        return True

    def reset(self) -> None:
        state = self._state
        if (
            state.status is RunStatus.IDLE
            and state.cursor == -1
            and state.summary is None
            and not state.outcomes
        ):
            return
        self._cancel_loop()
        self._next_index = 0
        self._stopped_generation = None
        state.clear_run()
        state.set_status(RunStatus.IDLE)
        self._log(LogLevel.INFO, "Execution reset")
        self._close_events()

    def clear_logs(self) -> None:
        self._state.clear_logs()

    async def wait_until_done(self) -> RunStatus:
        """Wait for the active loop to return (finished, paused, or stopped)."""

        await self._join_task()
        return self.status

    # Internals

    def _begin_run(self) -> None:
        assert self._configuration is not None
        self._generation += 1
        self._wake.clear()
        self._halt.clear()
        self._policy = self._current_policy()
        self._next_index = 0
        self._state.clear_outcomes()
        self._state.set_summary(
            RunSummary(total_actions=len(self._configuration.actions), start_time=self._clock())
        )
        if self._configuration.actions:
            self._state.set_cursor(0)
        self._state.set_status(RunStatus.EXECUTING)
        self._open_events()

    async def _select_executor(self) -> ActionExecutor:
        sleep = self._executor_sleep or interruptible_sleep(self._halt)
        if self.surface is not None:
            try:
                connected = await self.surface.connect()
            except Exception as exc:
                log.warning("Connecting to the interactive surface failed: %s", exc)
                connected = False
            if connected and self.surface.is_available():
                return LiveExecutor(self.surface, sleep=sleep)
            self._log(LogLevel.WARNING, "Interactive surface unavailable, running in simulation mode")
        return SimulatedExecutor(
            speed=self._policy.speed,
            rng=self.rng,
            success_probability=self.config.success_probability,
            sleep=sleep,
        )

    def _inter_action_delay(self, policy: RunPolicy) -> float:
        """Seconds to pause between two actions under ``policy``."""

        if policy.human_like_mode:
            delay_ms = self.rng.uniform(self.config.human_delay_min_ms, self.config.human_delay_max_ms)
        else:
            delay_ms = self.config.inter_action_delay_ms
        return delay_ms / policy.speed / 1000.0

    async def _pause_point(self, seconds: float) -> None:
        """Sleep up to ``seconds``; returns early when pause, stop or reset is requested."""

        if seconds <= 0:
            return
        try:
            await asyncio.wait_for(self._wake.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _should_continue(self, generation: int) -> bool:
        return self._is_current(generation) and self.status is RunStatus.EXECUTING

    async def _run_loop(self, generation: int) -> None:
        assert self._configuration is not None and self._executor is not None
        actions = self._configuration.actions
        executor = self._executor
        policy = self._policy
        try:
            while self._next_index < len(actions):
                index = self._next_index
                if not self._should_continue(generation):
                    return

                action = actions[index]
                self._state.set_cursor(index)
                self._log(LogLevel.INFO, f"Executing action {index + 1}: {action.label}", index)
                # Subscribers notified above may have paused or stopped the run.
                if not self._should_continue(generation):
                    return

                started = time.monotonic()
                result = await executor.execute(action)
                duration_ms = int((time.monotonic() - started) * 1000)

                stopped = not self._is_current(generation)
                if stopped and generation != self._stopped_generation:
                    log.debug("Discarding result of action %d; run was reset", index)
                    return

                finished_at = self._clock()
                self._next_index = index + 1
                self._state.append_outcome(
                    ActionOutcome(
                        action_index=index,
                        action_name=action.label,
                        success=result.success,
                        error=result.error,
                        duration_ms=duration_ms,
                        timestamp=finished_at,
                    )
                )
                assert self.summary is not None
                self._state.set_summary(self.summary.record(result.success, at=finished_at))
                self._record_event(index, action, result.success, result.error, duration_ms)

                if result.success:
                    self._log(LogLevel.SUCCESS, f"Action {index + 1} completed in {duration_ms}ms", index)
                else:
                    self._log(LogLevel.ERROR, f"Action {index + 1} failed: {result.error}", index)
                if stopped:
                    return
                if not result.success and policy.stop_on_error:
                    self._finish(RunStatus.ERROR)
                    self._log(LogLevel.ERROR, "Execution stopped due to error", index)
                    return

                if self._next_index < len(actions):
                    await self._pause_point(self._inter_action_delay(policy))

            if self._should_continue(generation):
                self._finish(RunStatus.COMPLETED)
                summary = self.summary
                self._log(
                    LogLevel.SUCCESS,
                    f"Execution completed: {summary.completed_actions} succeeded, "
                    f"{summary.failed_actions} failed",
                )
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            log.exception("Run loop crashed")
            if self._is_current(generation):
                self._finish(RunStatus.ERROR)
                self._log(LogLevel.ERROR, f"Execution aborted: {exc}")

    def _finish(self, status: RunStatus) -> None:
        summary = self.summary
        if summary is not None:
            self._state.set_summary(summary.finish(at=self._clock()))
        self._state.set_status(status)
        self._record_event(None, None, status is RunStatus.COMPLETED, None, None, event=status.value)
        self._close_events()

    def _cancel_loop(self) -> None:
        # The loop compares generations after every await and returns when
        # it has been superseded. Both events cut pending sleeps short.
        self._generation += 1
        self._wake.set()
        self._halt.set()

    async def _join_task(self) -> None:
        task = self._task
        if task is None or task.done() or task is asyncio.current_task():
            return
        await task

    def _log(self, level: LogLevel, message: str, action_index: Optional[int] = None) -> None:
        log.log(level.logging_level, message)
        self._state.add_log(LogEntry(level=level, message=message, action_index=action_index, timestamp=self._clock()))

    # Structured event log

    def _open_events(self) -> None:
        self._close_events()
        if not self.config.record_events or self._configuration is None:
            return
        run_id = f"run-{int(time.time() * 1000)}"
        dirs = ensure_run_directories(run_id, self.config)
        self._events = StructuredLogger(run_id, prepare_log_paths(run_id, dirs["base"]))
        self._events.log_event(
            "start",
            metadata={
                "configuration": self._configuration.name,
                "total_actions": len(self._configuration.actions),
                "speed": self._policy.speed,
                "human_like_mode": self._policy.human_like_mode,
                "stop_on_error": self._policy.stop_on_error,
            },
        )

    def _record_event(
        self,
        index: Optional[int],
        action: Any,
        success: Optional[bool],
        error: Optional[str],
        duration_ms: Optional[int],
        *,
        event: str = "action",
    ) -> None:
        if self._events is None:
            return
        metadata = {}
        if event != "action" and self.summary is not None:
            metadata = self.summary.as_dict()
        self._events.log_event(
            event,
            action=action.payload() if action is not None else None,
            action_index=index,
            success=success,
            error=error,
            duration_ms=duration_ms,
            metadata=metadata,
        )

    def _close_events(self) -> None:
        if self._events is not None:
            self._events.close()
            self._events = None
