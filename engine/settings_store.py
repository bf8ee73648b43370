"""Persisted preferences and discovery of recorded configuration files."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from automation.dsl.models import Configuration, ConfigurationError

log = logging.getLogger(__name__)

SETTINGS_FILE = "settings.json"
MAX_RECENT = 10


class PersistedSettings(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    last_config_path: str = Field(default="", alias="lastConfigPath")
    execution_speed: float = Field(default=1.0, alias="executionSpeed")
    human_like_mode: bool = Field(default=True, alias="humanLikeMode")
    stop_on_error: bool = Field(default=True, alias="stopOnError")
    recent_configurations: List[str] = Field(default_factory=list, alias="recentConfigurations")

    @field_validator("execution_speed")
    @classmethod
    def _positive_speed(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("execution speed must be positive")
        return value


@dataclass(frozen=True, slots=True)
class ConfigFileInfo:
    name: str
    path: str
    last_modified: int
    action_count: int = 0


def load_configuration(path: Path | str) -> Optional[Configuration]:
    """Parse the configuration stored at ``path``; ``None`` when missing or invalid."""

    file = Path(path)
    if not file.exists():
        return None
    try:
        return Configuration.from_file(file)
    except ConfigurationError as exc:
        log.debug("Skipping configuration %s: %s", file, exc)
        return None


def _modified_ms(path: Path) -> int:
    return int(path.stat().st_mtime * 1000)


def _describe(path: Path) -> Optional[ConfigFileInfo]:
    config = load_configuration(path)
    if config is None:
        return None
    return ConfigFileInfo(
        name=config.name,
        path=str(path.resolve()),
        last_modified=_modified_ms(path),
        action_count=len(config.actions),
    )


def _is_rpa_export(path: Path) -> bool:
    return path.suffix == ".json" and "rpa" in path.name


def find_available_configurations(
    recorder_dir: Optional[Path] = None,
    downloads_dir: Optional[Path] = None,
) -> List[ConfigFileInfo]:
    """List loadable configurations, newest first.

    Every ``*.json`` file in ``recorder_dir`` is considered; in ``downloads_dir``
    only files that look like exported configurations (name containing "rpa").
    Unreadable files are skipped.
    """

    found: List[ConfigFileInfo] = []
    seen = set()

    def _scan(directory: Optional[Path], accept: Callable[[Path], bool]) -> None:
        if directory is None or not directory.is_dir():
            return
        for candidate in directory.iterdir():
            if not candidate.is_file() or not accept(candidate):
                continue
            info = _describe(candidate)
            if info is None or info.path in seen:
                continue
            seen.add(info.path)
            found.append(info)

    _scan(recorder_dir, lambda p: p.suffix == ".json")
    _scan(downloads_dir, _is_rpa_export)
    return sorted(found, key=lambda info: info.last_modified, reverse=True)


def format_timestamp(timestamp_ms: int, now_ms: Optional[int] = None) -> str:
    now = now_ms if now_ms is not None else int(time.time() * 1000)
    diff = now - timestamp_ms
    if diff < 60_000:
        return "Just now"
    if diff < 3_600_000:
        return f"{diff // 60_000} min ago"
    if diff < 86_400_000:
        return f"{diff // 3_600_000} hours ago"
    if diff < 604_800_000:
        return f"{diff // 86_400_000} days ago"
    moment = datetime.fromtimestamp(timestamp_ms / 1000)
    return f"{moment:%b} {moment.day}, {moment.year}"


class SettingsStore:
    """JSON-backed store for user preferences, cached after the first read."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)
        self._cached: Optional[PersistedSettings] = None

    @property
    def settings_file(self) -> Path:
        return self.directory / SETTINGS_FILE

    @property
    def recorder_dir(self) -> Path:
        return self.directory / "configurations"

    def load(self) -> PersistedSettings:
        if self._cached is not None:
            return self._cached
        path = self.settings_file
        if not path.exists():
            settings = PersistedSettings()
            self.save(settings)
            return settings
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            settings = PersistedSettings.model_validate(data)
        except (OSError, ValueError, ValidationError) as exc:
            log.warning("Ignoring unreadable settings file %s: %s", path, exc)
            settings = PersistedSettings()
        self._cached = settings
        return settings

    def save(self, settings: PersistedSettings) -> None:
        self._cached = settings
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            payload = settings.model_dump(by_alias=True)
            self.settings_file.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError as exc:
            log.warning("Could not write settings to %s: %s", self.settings_file, exc)

    def update(self, change: Callable[[PersistedSettings], PersistedSettings]) -> PersistedSettings:
        updated = change(self.load())
        self.save(updated)
        return updated

    def add_to_recent(self, path: Path | str) -> None:
        entry = str(path)

        def _change(settings: PersistedSettings) -> PersistedSettings:
            recent = [p for p in settings.recent_configurations if p != entry]
            recent.insert(0, entry)
            return settings.model_copy(
                update={"recent_configurations": recent[:MAX_RECENT], "last_config_path": entry}
            )

        self.update(_change)

    def recent_configurations(self) -> List[ConfigFileInfo]:
        infos: List[ConfigFileInfo] = []
        for entry in self.load().recent_configurations:
            path = Path(entry)
            if not path.exists():
                continue
            info = _describe(path)
            if info is not None:
                infos.append(info)
        return infos

    def available_configurations(self, extra_dirs: Iterable[Path] = ()) -> List[ConfigFileInfo]:
        downloads = Path.home() / "Downloads"
        found = find_available_configurations(self.recorder_dir, downloads)
        seen = {info.path for info in found}
        for directory in extra_dirs:
            for info in find_available_configurations(Path(directory)):
                if info.path not in seen:
                    seen.add(info.path)
                    found.append(info)
        return sorted(found, key=lambda info: info.last_modified, reverse=True)

    def remember_policies(self, *, speed: float, human_like_mode: bool, stop_on_error: bool) -> None:
        self.update(
            lambda settings: settings.model_copy(
                update={
                    "execution_speed": speed,
                    "human_like_mode": human_like_mode,
                    "stop_on_error": stop_on_error,
                }
            )
        )
