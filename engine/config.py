"""Configuration loader for the execution engine."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict


DEFAULTS: Dict[str, Any] = {
    "speed": 1.0,
    "human_like_mode": True,
    "stop_on_error": True,
    "log_capacity": 100,
    "inter_action_delay_ms": 300,
    "human_delay_min_ms": 500,
    "human_delay_max_ms": 1500,
    "success_probability": 0.95,
    "headless": True,
    "record_events": False,
    "log_root": "runs",
    "settings_dir": str(Path.home() / ".rpa_engine"),
}

ENV_PREFIX = "RPA_"


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"true", "1", "yes", "on"}


@dataclass(slots=True)
class RunConfig:
    speed: float = DEFAULTS["speed"]
    human_like_mode: bool = DEFAULTS["human_like_mode"]
    stop_on_error: bool = DEFAULTS["stop_on_error"]
    log_capacity: int = DEFAULTS["log_capacity"]
    inter_action_delay_ms: int = DEFAULTS["inter_action_delay_ms"]
    human_delay_min_ms: int = DEFAULTS["human_delay_min_ms"]
    human_delay_max_ms: int = DEFAULTS["human_delay_max_ms"]
    success_probability: float = DEFAULTS["success_probability"]
    headless: bool = DEFAULTS["headless"]
    record_events: bool = DEFAULTS["record_events"]
    log_root: Path = field(default_factory=lambda: Path(DEFAULTS["log_root"]))
    settings_dir: Path = field(default_factory=lambda: Path(DEFAULTS["settings_dir"]))

    @classmethod
    def from_mapping(cls, mapping: Dict[str, Any]) -> "RunConfig":
        data = dict(DEFAULTS)
        data.update(mapping)
        speed = float(data["speed"])
        if speed <= 0:
            raise ValueError(f"speed must be positive, got {speed}")
        return cls(
            speed=speed,
            human_like_mode=_as_bool(data["human_like_mode"]),
            stop_on_error=_as_bool(data["stop_on_error"]),
            log_capacity=max(1, int(data["log_capacity"])),
            inter_action_delay_ms=int(data["inter_action_delay_ms"]),
            human_delay_min_ms=int(data["human_delay_min_ms"]),
            human_delay_max_ms=int(data["human_delay_max_ms"]),
            success_probability=float(data["success_probability"]),
            headless=_as_bool(data["headless"]),
            record_events=_as_bool(data["record_events"]),
            log_root=Path(data["log_root"]),
            settings_dir=Path(data["settings_dir"]).expanduser(),
        )


def _load_toml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("rb") as fh:
        return tomllib.load(fh)


def load_config(config_path: Path | None = None) -> RunConfig:
    """Load configuration from environment, optional TOML file, and defaults."""

    env_map: Dict[str, Any] = {}
    for key, value in os.environ.items():
        if key.startswith(ENV_PREFIX):
            name = key[len(ENV_PREFIX):].lower()
            if name in DEFAULTS:
                env_map[name] = value

    file_map: Dict[str, Any] = {}
    path = config_path or Path("config.toml")
    if path.exists():
        file_map = _load_toml(path).get("engine", {})

    merged = {**file_map, **env_map}
    return RunConfig.from_mapping(merged)


def ensure_run_directories(run_id: str, config: RunConfig) -> Dict[str, Path]:
    base = config.log_root / run_id
    base.mkdir(parents=True, exist_ok=True)
    return {"base": base}
