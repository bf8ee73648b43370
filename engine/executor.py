"""Executors that carry out a single action, either for real or simulated."""

from __future__ import annotations

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol, Tuple

from automation.dsl import scripts
from automation.dsl.models import Action, ActionType

from .surface import InteractiveSurface

log = logging.getLogger(__name__)

Sleeper = Callable[[float], Awaitable[None]]

SIMULATED_ERROR = "Simulated error: Element not found or action failed."
ASSERTION_ERROR = "Assertion failed: element not found"
DEFAULT_SUCCESS_PROBABILITY = 0.95

# Simulated duration ranges in milliseconds, per action type.
SIMULATED_RANGES: Dict[ActionType, Tuple[int, int]] = {
    ActionType.CLICK: (200, 500),
    ActionType.SELECT: (300, 600),
    ActionType.NAVIGATE: (1000, 3000),
    ActionType.SCROLL: (200, 400),
    ActionType.SCREENSHOT: (500, 1000),
    ActionType.ASSERT: (100, 300),
}
DEFAULT_SIMULATED_RANGE = (200, 500)
INPUT_BASE_MS = 200
INPUT_PER_CHAR_MS = 50

# Post-dispatch settle delays of the live executor in milliseconds. These are
# not scaled by the speed multiplier.
SETTLE_MS: Dict[ActionType, int] = {
    ActionType.NAVIGATE: 1000,
    ActionType.CLICK: 300,
    ActionType.INPUT: 200,
    ActionType.SELECT: 200,
    ActionType.SCROLL: 200,
}
UNRECOGNIZED_ACTION_MS = 500


class RandomSource(Protocol):
    """Subset of :class:`random.Random` used for timing and outcome draws."""

    def random(self) -> float:
        ...

    def uniform(self, a: float, b: float) -> float:
        ...


def interruptible_sleep(halt: asyncio.Event) -> Sleeper:
    """Return a sleeper that wakes early once ``halt`` is set."""

    async def _sleep(seconds: float) -> None:
        if halt.is_set():
            return
        try:
            await asyncio.wait_for(halt.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    return _sleep


@dataclass(slots=True)
class DispatchResult:
    success: bool
    error: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def failure(cls, error: str, **details: Any) -> "DispatchResult":
        return cls(success=False, error=error, details=details)


class ActionExecutor(ABC):
    """Runs one action and reports whether it succeeded."""

    mode: str = "abstract"

    def __init__(self, sleep: Optional[Sleeper] = None) -> None:
        self._sleep: Sleeper = sleep or asyncio.sleep

    async def sleep_ms(self, ms: float) -> None:
        if ms > 0:
            await self._sleep(ms / 1000.0)

    @abstractmethod
    async def execute(self, action: Action) -> DispatchResult:
        raise NotImplementedError


class SimulatedExecutor(ActionExecutor):
    """Timed stand-in used when no interactive surface can be reached."""

    mode = "simulated"

    def __init__(
        self,
        *,
        speed: float = 1.0,
        rng: Optional[RandomSource] = None,
        success_probability: float = DEFAULT_SUCCESS_PROBABILITY,
        sleep: Optional[Sleeper] = None,
    ) -> None:
        super().__init__(sleep)
        if speed <= 0:
            raise ValueError(f"speed must be positive, got {speed}")
        self.speed = speed
        self.rng: RandomSource = rng or random.Random()
        self.success_probability = success_probability

    def simulated_duration_ms(self, action: Action) -> float:
        kind = action.action_type
        if kind is ActionType.INPUT:
            return INPUT_BASE_MS + INPUT_PER_CHAR_MS * len(action.value or "")
        if kind is ActionType.WAIT:
            return action.wait_ms()
        low, high = SIMULATED_RANGES.get(kind, DEFAULT_SIMULATED_RANGE)
        return self.rng.uniform(low, high)

    def draw(self, action: Action) -> Tuple[bool, Optional[str], float]:
        """Return ``(success, error, duration_ms)`` for ``action`` without sleeping."""

        duration = self.simulated_duration_ms(action)
        success = self.rng.random() < self.success_probability
        return success, None if success else SIMULATED_ERROR, duration

    async def execute(self, action: Action) -> DispatchResult:
        success, error, duration = self.draw(action)
        await self.sleep_ms(duration / self.speed)
        return DispatchResult(success=success, error=error, details={"simulated_ms": duration})


class LiveExecutor(ActionExecutor):
    """Dispatches compiled scripts to an interactive surface."""

    mode = "live"

    def __init__(self, surface: InteractiveSurface, *, sleep: Optional[Sleeper] = None) -> None:
        super().__init__(sleep)
        self.surface = surface

    async def execute(self, action: Action) -> DispatchResult:
        try:
            return await self._dispatch(action)
        except Exception as exc:
            log.debug("Live dispatch of %s failed", action.type, exc_info=True)
            return DispatchResult.failure(str(exc) or exc.__class__.__name__)

    async def _dispatch(self, action: Action) -> DispatchResult:
        kind = action.action_type
        if kind is ActionType.WAIT:
            await self.sleep_ms(action.wait_ms())
            return DispatchResult(success=True)

        script = scripts.compile_action(action)
        if script is None:
            await self.sleep_ms(UNRECOGNIZED_ACTION_MS)
            return DispatchResult(success=True, details={"noop": True})

        result = await self.surface.execute_script(script)
        await self.sleep_ms(SETTLE_MS.get(kind, 0))

        if kind is ActionType.ASSERT and not result:
            return DispatchResult.failure(ASSERTION_ERROR)
        return DispatchResult(success=True, details={"result": result})
