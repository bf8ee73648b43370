"""Command line helper for replaying recorded configurations."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from automation.dsl.models import Configuration, ConfigurationError

from .config import load_config
from .runner import ExecutionRunner, speed_label
from .settings_store import SettingsStore, format_timestamp
from .state import RunStatus
from .surface import PlaywrightSurface

log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Replay recorded UI automation configurations")
    parser.add_argument("--config", type=Path, default=None, help="Path to an engine config.toml")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Execute a configuration file")
    run.add_argument("file", type=Path, help="Configuration JSON file")
    run.add_argument("--speed", type=float, default=None, help="Speed multiplier (0.5 - 2.0)")
    run.add_argument(
        "--human",
        dest="human_like_mode",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Randomised human-like delays between actions",
    )
    run.add_argument(
        "--stop-on-error",
        dest="stop_on_error",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Halt the run on the first failed action",
    )
    run.add_argument("--live", action="store_true", help="Drive a real browser instead of simulating")
    run.add_argument("--url", default=None, help="Page to open before the first action (with --live)")
    run.add_argument(
        "--headless",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Run the browser headless (with --live)",
    )
    run.add_argument("--json", action="store_true", help="Emit the run summary as JSON")

    listing = sub.add_parser("list", help="List discoverable configurations")
    listing.add_argument("--dir", type=Path, action="append", default=[], help="Extra directory to scan")
    return parser


def _report(runner: ExecutionRunner) -> Dict[str, Any]:
    summary = runner.summary
    return {
        "status": runner.status.value,
        "mode": runner.mode,
        "summary": summary.as_dict() if summary else None,
        "outcomes": [outcome.as_dict() for outcome in runner.outcomes],
    }


async def _run(args: argparse.Namespace, store: SettingsStore) -> int:
    config = load_config(args.config)
    try:
        configuration = Configuration.from_file(args.file)
    except ConfigurationError as exc:
        log.error("%s", exc)
        return 2

    surface: Optional[PlaywrightSurface] = None
    if args.live:
        headless = config.headless if args.headless is None else args.headless
        surface = PlaywrightSurface(headless=headless, start_url=args.url)

    runner = ExecutionRunner.from_settings(store, surface=surface, config=config)
    if args.speed is not None:
        runner.set_speed(args.speed)
    if args.human_like_mode is not None:
        runner.set_human_like_mode(args.human_like_mode)
    if args.stop_on_error is not None:
        runner.set_stop_on_error(args.stop_on_error)

    if not runner.load(configuration):
        return 2
    store.add_to_recent(args.file.resolve())
    log.info("Speed %.2fx (%s)", runner.speed, speed_label(runner.speed))

    try:
        await runner.start()
        status = await runner.wait_until_done()
    finally:
        if surface is not None:
            await surface.close()

    report = _report(runner)
    if args.json:
        print(json.dumps(report, indent=2))
    else:
        summary = report["summary"] or {}
        print(
            f"{configuration.name}: {status.value} "
            f"({summary.get('completed_actions', 0)} ok, {summary.get('failed_actions', 0)} failed, "
            f"{summary.get('skipped_actions', 0)} skipped)"
        )
    return 0 if status is RunStatus.COMPLETED else 1


def _list(args: argparse.Namespace, store: SettingsStore) -> int:
    infos = store.available_configurations(args.dir)
    if not infos:
        print("No configurations found")
        return 0
    for info in infos:
        print(f"{info.name}\t{info.action_count} actions\t{format_timestamp(info.last_modified)}\t{info.path}")
    return 0


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    store = SettingsStore(load_config(args.config).settings_dir)
    if args.command == "list":
        return _list(args, store)
    return asyncio.run(_run(args, store))


if __name__ == "__main__":  # pragma: no cover - manual invocation
    raise SystemExit(main())
