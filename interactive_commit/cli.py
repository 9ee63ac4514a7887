"""
interactive-commit - CLI

Usage:
    interactive-commit detect [--timeout S] [--json]
    interactive-commit install [--global] [--force]
    interactive-commit watch [--interval S] [--once]
    interactive-commit hook <file> [source] [sha]      # called by git

Global options: --config PATH, -v/--verbose, --version
"""

import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm
from rich.table import Table

from . import __version__
from .config import Settings, load_settings
from .formatting import format_commit_line, format_status_text, format_tooltip
from .hook import process_commit_message
from .infra import InstallError
from .install import install_global, install_local
from .orchestrators import DetectionCoordinator, DetectionReport
from .watcher import NowPlayingWatcher

logger = logging.getLogger(__name__)

DETECT_TIMEOUT = 10.0

OUTCOME_STYLES = {
    "detected": "green",
    "nothing": "yellow",
    "filtered": "yellow",
    "timeout": "red",
    "error": "red",
    "skipped": "dim",
}


# =============================================================================
# DETECT
# =============================================================================

def _report_payload(report: DetectionReport, settings: Settings) -> dict:
    record = report.record
    return {
        "record": record.to_dict() if record else None,
        "commit_line": format_commit_line(record, settings.commit_format) if record else None,
        "available": list(report.available),
        "attempts": [
            {
                "probe": attempt.name,
                "available": attempt.available,
                "outcome": attempt.outcome,
                "error": attempt.error,
                "elapsed_ms": round(attempt.elapsed_ms, 1),
            }
            for attempt in report.attempts
        ],
        "error": report.error,
    }


def _attempts_table(report: DetectionReport) -> Table:
    table = Table(title="Probes", box=box.ROUNDED)
    table.add_column("Probe", style="cyan")
    table.add_column("Outcome")
    table.add_column("Time", justify="right", style="yellow")
    table.add_column("Error", style="red")

    for attempt in report.attempts:
        style = OUTCOME_STYLES.get(attempt.outcome, "white")
        elapsed = f"{attempt.elapsed_ms:.0f}ms" if attempt.available else ""
        table.add_row(
            escape(attempt.name),
            f"[{style}]{attempt.outcome}[/{style}]",
            elapsed,
            escape(attempt.error or ""),
        )
    return table


def cmd_detect(args: argparse.Namespace, settings: Settings, console: Console) -> int:
    timeout = args.timeout if args.timeout is not None else DETECT_TIMEOUT
    coordinator = DetectionCoordinator(accept=settings.accepts)

    if args.json:
        report = coordinator.detect_with_report(timeout)
        sys.stdout.write(json.dumps(_report_payload(report, settings), ensure_ascii=False, indent=2) + "\n")
        return 0

    console.print("🎵 Detecting currently playing audio...")
    available = coordinator.list_available()
    console.print(f"📡 Available probes: {len(available)}")
    for name in available:
        console.print(f"  ✅ {escape(name)}")

    if not available:
        console.print("❌ No audio probes available on this platform")
        return 0

    report = coordinator.detect_with_report(timeout)
    if args.verbose:
        console.print(_attempts_table(report))

    record = report.record
    if record is None:
        console.print(f"🔇 {report.error}")
        return 0

    console.print("\n🎵 Currently playing:")
    console.print(f"   Title:  {escape(record.title)}")
    console.print(f"   Artist: {escape(record.artist)}")
    console.print(f"   Album:  {escape(record.album)}")
    console.print(f"   Source: {escape(record.source)}")
    console.print(f"   Type:   {record.kind.value}")

    console.print("\n💬 Commit message addition:")
    console.print(format_commit_line(record, settings.commit_format), markup=False, highlight=False, soft_wrap=True)
    return 0


# =============================================================================
# HOOK / INSTALL / WATCH
# =============================================================================

def cmd_hook(args: argparse.Namespace, settings: Settings, console: Console) -> int:
    """Always 0: a hook failure must never block a commit."""
    try:
        process_commit_message(Path(args.file), source=args.source, settings=settings)
    except Exception:
        logger.exception("Hook failed")
    return 0


def _confirm_overwrite(path: Path) -> bool:
    return Confirm.ask(f"⚠️  Hook already exists at {escape(str(path))}. Overwrite?", default=False)


def cmd_install(args: argparse.Namespace, settings: Settings, console: Console) -> int:
    try:
        if args.is_global:
            console.print("🌍 Installing globally...")
            hook_path = install_global(force=args.force, confirm=_confirm_overwrite)
        else:
            console.print("📁 Installing locally...")
            hook_path = install_local(force=args.force, confirm=_confirm_overwrite)
    except InstallError as e:
        console.print(f"[red]❌ {escape(str(e))}[/red]")
        return 1

    if hook_path is None:
        console.print("Installation cancelled.")
        return 0

    console.print(f"✅ Installed hook at {escape(str(hook_path))}")
    if args.is_global:
        console.print(f"🔧 core.hooksPath set to {escape(str(hook_path.parent))}")
        console.print("To disable: git config --global --unset core.hooksPath")
    console.print("🎵 Your commits will now include currently playing audio!")
    return 0


def cmd_watch(args: argparse.Namespace, settings: Settings, console: Console) -> int:
    if not settings.show_status:
        console.print("Status display is disabled (show_status: false)")
        return 0

    interval = args.interval if args.interval is not None else settings.refresh_interval
    coordinator = DetectionCoordinator(accept=settings.accepts)

    def on_change(record):
        console.print(format_status_text(record), markup=False, highlight=False)
        if args.verbose and record is not None:
            console.print(format_tooltip(record), markup=False, highlight=False)

    watcher = NowPlayingWatcher(coordinator, interval=interval, timeout=settings.timeout, on_change=on_change)

    if args.once:
        watcher.poll_once()
        return 0

    watcher.start()
    try:
        while watcher.is_started:
            time.sleep(0.5)
    except KeyboardInterrupt:
        pass
    finally:
        watcher.stop()
    return 0


# =============================================================================
# ENTRY POINT
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="interactive-commit",
        description="Append the currently playing audio to your git commit messages",
    )
    parser.add_argument("--config", type=Path, default=None, help="Config file (default: XDG config dir)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    # "hook" is left out of help and metavar
    sub = parser.add_subparsers(dest="command", metavar="{detect,install,watch}")

    detect = sub.add_parser("detect", help="Show what is playing and the line a commit would get")
    detect.add_argument("--timeout", type=float, default=None, help=f"Per-probe timeout (default: {DETECT_TIMEOUT:g}s)")
    detect.add_argument("--json", action="store_true", help="Machine-readable output")

    install = sub.add_parser("install", help="Install the prepare-commit-msg hook")
    install.add_argument("--global", dest="is_global", action="store_true", help="Install for all repositories")
    install.add_argument("--force", action="store_true", help="Overwrite an existing hook without asking")

    watch = sub.add_parser("watch", help="Print the playing track whenever it changes")
    watch.add_argument("--interval", type=float, default=None, help="Poll interval in seconds")
    watch.add_argument("--once", action="store_true", help="Poll once and exit")

    hook = sub.add_parser("hook")
    hook.add_argument("file")
    hook.add_argument("source", nargs="?", default=None)
    hook.add_argument("sha", nargs="?", default=None)

    return parser


COMMANDS = {
    "detect": cmd_detect,
    "hook": cmd_hook,
    "install": cmd_install,
    "watch": cmd_watch,
}


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if args.command is None:
        parser.print_help()
        return 1

    settings = load_settings(args.config)
    return COMMANDS[args.command](args, settings, Console())


if __name__ == "__main__":
    sys.exit(main())
