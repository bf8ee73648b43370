"""Structured logging utilities for automation runs."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional


@dataclass(slots=True)
class LogPaths:
    base: Path
    events: Path


class StructuredLogger:
    """Writes JSONL events for each attempted action of a run."""

    def __init__(self, run_id: str, paths: LogPaths) -> None:
        self.run_id = run_id
        self.paths = paths
        self._step = 0
        self._events_file = paths.events.open("a", encoding="utf-8")

    def log_event(
        self,
        event: str,
        *,
        action: Optional[Dict[str, Any]] = None,
        action_index: Optional[int] = None,
        success: Optional[bool] = None,
        error: Optional[str] = None,
        duration_ms: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> int:
        self._step += 1
        payload = {
            "ts": time.time(),
            "run_id": self.run_id,
            "step": self._step,
            "event": event,
            "action_index": action_index,
            "action": action,
            "success": success,
            "error": error,
            "duration_ms": duration_ms,
            "metadata": metadata or {},
        }
        self._events_file.write(json.dumps(payload, ensure_ascii=False) + "\n")
        self._events_file.flush()
        return self._step

    def close(self) -> None:
        if not self._events_file.closed:
            self._events_file.close()


def prepare_log_paths(run_id: str, base_dir: Path) -> LogPaths:
    base_dir.mkdir(parents=True, exist_ok=True)
    events_file = base_dir / "events.jsonl"
    return LogPaths(base=base_dir, events=events_file)
