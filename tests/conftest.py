"""Pytest configuration: import path and shared fakes for the engine tests."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Any, Iterable, List, Optional

import pytest

_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from engine.config import RunConfig  # noqa: E402


class ScriptedRandom:
    """Random source returning queued ``random()`` values and the low end of ranges."""

    def __init__(self, draws: Iterable[float] = ()) -> None:
        self.draws = list(draws)
        self.uniform_calls: List[tuple] = []

    def random(self) -> float:
        if self.draws:
            return self.draws.pop(0)
        return 0.0

    def uniform(self, a: float, b: float) -> float:
        self.uniform_calls.append((a, b))
        return a


class FakeSurface:
    def __init__(self, *, connected: bool = True, results: Optional[dict] = None, fail_on: Optional[str] = None):
        self.connected = connected
        self.results = results or {}
        self.fail_on = fail_on
        self.scripts: List[str] = []
        self.connect_calls = 0

    async def connect(self) -> bool:
        self.connect_calls += 1
        return self.connected

    def is_available(self) -> bool:
        return self.connected

    async def execute_script(self, script: str) -> Any:
        self.scripts.append(script)
        if self.fail_on and self.fail_on in script:
            raise RuntimeError(f"script failed: {self.fail_on}")
        for needle, value in self.results.items():
            if needle in script:
                return value
        return True


class RecordingSleep:
    def __init__(self) -> None:
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        await asyncio.sleep(0)


@pytest.fixture
def scripted_random():
    return ScriptedRandom


@pytest.fixture
def fake_surface():
    return FakeSurface


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def fast_config(tmp_path: Path) -> RunConfig:
    return RunConfig(
        human_like_mode=False,
        stop_on_error=True,
        inter_action_delay_ms=0,
        log_root=tmp_path / "runs",
        settings_dir=tmp_path / "settings",
    )
