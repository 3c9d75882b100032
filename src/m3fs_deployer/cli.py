"""Command-line interface for m3fs-deployer."""

from __future__ import annotations

import argparse
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from . import __version__
from .config import Config, load_config
from .errors import ProgressFileError, ProgressParseError
from .paths import resolve_progress_file
from .task.progress import DeploymentProgress, format_duration, now
from .utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


@dataclass
class CLIContext:
    """Context captured from CLI arguments."""

    config: Config
    config_path: Optional[str]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="m3fs-deploy",
        description="3FS deploy tool.",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug mode")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a JSON cluster config file.",
    )
    parser.add_argument(
        "--version", "-v", action="version", version=f"%(prog)s {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # progress 子命令 - 查看部署进度文件
    progress_parser = subparsers.add_parser(
        "progress", help="Show the progress of a (resumable) deployment"
    )
    progress_parser.add_argument(
        "--file", "-f", type=str, default=None,
        help="Progress file (default: from config, or <work_dir>/deployment_progress.json)"
    )
    progress_parser.add_argument(
        "--tasks", "-t", action="store_true",
        help="List every recorded task"
    )

    subparsers.add_parser(
        "config", help="Print the effective configuration as JSON"
    )

    return parser


def _build_context(args: argparse.Namespace) -> CLIContext:
    config = load_config(args.config)
    return CLIContext(config=config, config_path=args.config)


def _progress_path(args: argparse.Namespace) -> Path:
    if args.file:
        return Path(args.file)
    context = _build_context(args)
    return resolve_progress_file(
        context.config.work_dir, context.config.deployment.progress_file_path
    )


def handle_progress_command(args: argparse.Namespace) -> int:
    """Handle the progress subcommand."""
    path = _progress_path(args)
    if not path.exists():
        print(f"📁 No progress file at {path}.")
        return 0

    try:
        progress = DeploymentProgress.restore(path)
    except (ProgressFileError, ProgressParseError) as exc:
        print(f"❌ {exc}")
        return 1

    show_progress(path, progress, list_tasks=args.tasks)
    return 0


def show_progress(path: Path, progress: DeploymentProgress, list_tasks: bool = False) -> None:
    """Display a progress file summary."""
    if progress.end_time is not None:
        status, status_emoji = "completed", "✅"
        elapsed = progress.end_time - progress.start_time
    else:
        status, status_emoji = "incomplete", "🔄"
        elapsed = now() - progress.start_time

    print(f"\n{'='*60}")
    print(f"📄 Progress file: {path}")
    print(f"{'='*60}")
    print(f"⏰ Started:    {progress.start_time.isoformat(timespec='seconds')}")
    if progress.end_time is not None:
        print(f"⏱️  Ended:      {progress.end_time.isoformat(timespec='seconds')}")
    print(f"{status_emoji} Status:     {status}")
    print(f"📊 Tasks:      {progress.completed_tasks}/{progress.total_tasks} completed")
    if progress.current_task:
        print(f"📍 Current:    {progress.current_task}")
    print(f"⌛ Elapsed:    {format_duration(elapsed.total_seconds())}")
    print(f"{'='*60}")

    if list_tasks:
        print(f"{'Status':<8} {'Task':<40} {'Started':<26} {'Duration'}")
        print("-" * 90)
        for record in progress.task_progress.values():
            icon = "✅" if record.completed else "❌"
            duration = ""
            if record.end_time is not None:
                duration = format_duration((record.end_time - record.start_time).total_seconds())
            started = record.start_time.isoformat(timespec="seconds")
            print(f"{icon:<8} {record.name:<40} {started:<26} {duration}")
        print()


def handle_config_command(context: CLIContext) -> int:
    print(json.dumps(context.config.to_dict(), indent=2, ensure_ascii=False))
    return 0


def dispatch_command(args: argparse.Namespace) -> int:
    try:
        if args.command == "progress":
            return handle_progress_command(args)

        if args.command == "config":
            return handle_config_command(_build_context(args))
    except (FileNotFoundError, ValueError) as exc:
        logger.error("%s", exc)
        return 1

    raise ValueError(f"Unsupported command: {args.command}")


def run_cli(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.debug)
    return dispatch_command(args)
