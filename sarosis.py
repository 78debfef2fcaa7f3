#!/usr/bin/env python3
"""
Sarosis — Greek σάρωσις (sweeping)

Finds software projects under one or more directories, reports how much
space their build outputs and dependency caches take, and removes those
artifacts on request.

Usage:
    sarosis [path ...]                     # Scan (default command)
    sarosis scan ~/code -o 3m              # Projects untouched for 3 months
    sarosis clean ~/code                   # Pick projects and clean them
    sarosis clean ~/code --all --dry-run   # Report what would be freed
    sarosis summary ~/code --json          # Totals per project kind
    sarosis config --show                  # Print configuration
"""

import argparse
import json
import logging
import signal
import sys
from pathlib import Path
from typing import Optional

from rich import box
from rich.table import Table
from tzlocal import get_localzone

from auxiliary import (
    InvalidArgumentError,
    expand_home,
    format_bytes,
    format_path_for_display,
    parse_age,
    parse_size,
    truncate_path,
)
from cleaner import clean
from console_ui import ConsoleUI
from models import CleanResult, ScannedProject
from project_rules import ProjectKindRule, RuleFileError, load_rules
from reporting import (
    clean_payload,
    filter_by_age,
    filter_by_size,
    only_cleanable,
    scan_payload,
    sort_by_size,
    summarize_by_kind,
    summary_payload,
)
from sarosis_config import SharedConfigManager
from size_accumulator import SizeAccumulator
from tree_walker import InvalidRootError, scan

__version__ = "0.3.0"

COMMANDS = ("scan", "clean", "summary", "config")

logger = logging.getLogger("sarosis")


class Sarosis:
    """Main application class for the Sarosis artifact sweeper"""

    def __init__(
        self,
        args: argparse.Namespace,
        config_manager: Optional[SharedConfigManager] = None,
        ui: Optional[ConsoleUI] = None,
    ):
        self.args = args
        self.ui = ui or ConsoleUI(stderr=getattr(args, "json", False))
        self._shutdown_requested = False

        self.config_manager = config_manager or SharedConfigManager()
        self.config = self.config_manager.load()

    # -- signal handling ----------------------------------------------------

    def install_signal_handlers(self):
        signal.signal(signal.SIGINT, self._signal_handler)
        if hasattr(signal, "SIGTERM"):
            signal.signal(signal.SIGTERM, self._signal_handler)

    def _signal_handler(self, signum, frame):
        if self._shutdown_requested:
            sys.exit(1)
        self._shutdown_requested = True
        self.ui.print_warning("\nShutdown requested... press Ctrl+C again to force quit.")

    def _stop_requested(self) -> bool:
        return self._shutdown_requested

    # -- inputs --------------------------------------------------------------

    def _roots(self) -> list[Path]:
        paths = getattr(self.args, "path", None) or []
        if paths:
            return [expand_home(p) for p in paths]
        if self.config.default_roots:
            return [expand_home(p) for p in self.config.default_roots]
        return [Path.cwd()]

    def _rules(self) -> tuple[ProjectKindRule, ...]:
        rules_file = getattr(self.args, "rules", None) or self.config.get_rules_path()
        return load_rules(rules_file)

    def _max_depth(self) -> Optional[int]:
        depth = getattr(self.args, "max_depth", None)
        return depth if depth is not None else self.config.max_depth

    def _ignore_patterns(self) -> list[str]:
        return list(self.config.ignore_patterns) + list(getattr(self.args, "ignore", None) or [])

    @property
    def _json(self) -> bool:
        return bool(getattr(self.args, "json", False))

    # -- scanning ------------------------------------------------------------

    def collect(self) -> list[ScannedProject]:
        """Scan every root and apply the age / size filters from the command line"""
        roots = self._roots()
        for root in roots:
            if not root.is_dir():
                raise InvalidRootError(f"Path does not exist or is not a directory: {root}")

        rules = self._rules()
        older_than = parse_age(self.args.older_than) if getattr(self.args, "older_than", None) else None
        min_size = parse_size(self.args.min_size) if getattr(self.args, "min_size", None) else 0
        nested = bool(getattr(self.args, "nested", False) or self.config.nested_projects)

        sizer = SizeAccumulator()
        found: dict[str, ScannedProject] = {}

        progress = self.ui.create_activity_progress()
        with progress:
            task = progress.add_task("Scanning...", total=None, visible=not self._json)
            visited = 0

            def tick(path: str):
                nonlocal visited
                visited += 1
                if visited % 100 == 0:
                    progress.update(task, description=f"Scanning... {visited} dirs")

            for root in roots:
                if self._shutdown_requested:
                    break
                for project in scan(
                    root,
                    max_depth=self._max_depth(),
                    ignore_patterns=self._ignore_patterns(),
                    rules=rules,
                    nested_projects=nested,
                    progress_callback=tick,
                    should_stop=self._stop_requested,
                    sizer=sizer,
                ):
                    found.setdefault(project.root_path, project)

        logger.debug("Visited %d directories, found %d projects", visited, len(found))
        projects = only_cleanable(found.values())
        projects = filter_by_age(projects, older_than)
        projects = filter_by_size(projects, min_size)
        return sort_by_size(projects)

    # -- reporting -----------------------------------------------------------

    def _format_time(self, project: ScannedProject) -> str:
        return project.last_modified.astimezone(get_localzone()).strftime("%Y-%m-%d")

    def print_projects(self, projects: list[ScannedProject], numbered: bool = False):
        table = Table(box=box.ROUNDED, show_lines=False)
        if numbered:
            table.add_column("#", style="dim", justify="right")
        table.add_column("Project", style="bold")
        table.add_column("Kind", style="cyan")
        table.add_column("Cleanable", style="dim")
        table.add_column("Size", justify="right", style="yellow")
        table.add_column("Modified", style="dim", justify="center")
        table.add_column("Path", style="dim")

        for i, p in enumerate(projects, 1):
            row = [
                p.name,
                p.kind,
                ", ".join(p.target_names),
                format_bytes(p.total_cleanable_bytes),
                self._format_time(p),
                truncate_path(format_path_for_display(p.root_path), 60),
            ]
            table.add_row(*([str(i)] + row if numbered else row))

        self.ui.console.print(table)
        total = sum(p.total_cleanable_bytes for p in projects)
        self.ui.print_info(f"{len(projects)} projects, {format_bytes(total)} reclaimable")

    def print_clean_results(self, results: list[CleanResult], dry_run: bool):
        table = Table(title="Would free" if dry_run else "Cleaned", box=box.ROUNDED)
        table.add_column("Project", style="bold")
        table.add_column("Freed", justify="right", style="yellow")
        table.add_column("Status")
        for r in results:
            if r.skipped:
                status = "[yellow]skipped[/yellow]"
            elif r.ok:
                status = "[green]ok[/green]"
            else:
                status = f"[red]{len(r.errors)} error(s)[/red]"
            table.add_row(r.project_name, format_bytes(r.bytes_freed), status)
        self.ui.console.print(table)

        for r in results:
            if r.skipped:
                continue
            for error in r.errors:
                self.ui.print_error(f"  {r.project_name}: {error}")

        skipped = [r.project_name for r in results if r.skipped]
        if skipped:
            self.ui.print_warning(f"Interrupted; not cleaned: {', '.join(skipped)}")

        total = sum(r.bytes_freed for r in results)
        processed = len(results) - len(skipped)
        if dry_run:
            self.ui.print_info(f"Dry run: {format_bytes(total)} would be freed. Nothing was deleted.")
        else:
            self.ui.print_success(f"Freed {format_bytes(total)} across {processed} projects")

    def _emit_json(self, payload):
        print(json.dumps(payload, indent=2))

    # -- commands ------------------------------------------------------------

    def cmd_scan(self) -> int:
        projects = self.collect()
        if self._json:
            self._emit_json(scan_payload(projects))
        elif not projects:
            self.ui.print_info("No projects with cleanable artifacts found.")
        else:
            self.print_projects(projects)
        return 0

    def cmd_summary(self) -> int:
        projects = self.collect()
        if self._json:
            self._emit_json(summary_payload(projects))
            return 0

        total = sum(p.total_cleanable_bytes for p in projects)
        roots = ", ".join(format_path_for_display(str(r)) for r in self._roots())
        self.ui.print_header("Sarosis summary", roots)
        self.ui.print_plain(f"  Total projects:     {len(projects)}")
        self.ui.print_plain(f"  Reclaimable space:  {format_bytes(total)}")

        summaries = summarize_by_kind(projects)
        if summaries:
            table = Table(title="By project type", box=box.SIMPLE)
            table.add_column("Kind", style="cyan", justify="right")
            table.add_column("Projects", justify="right")
            table.add_column("Reclaimable", justify="right", style="yellow")
            for s in summaries:
                table.add_row(s.kind, str(s.projects), format_bytes(s.reclaimable_bytes))
            self.ui.console.print(table)
        return 0

    def _select(self, projects: list[ScannedProject]) -> list[ScannedProject]:
        dry_run = self.args.dry_run
        skip_confirm = dry_run or self.args.yes

        if self.args.all:
            selected = projects
            question = (
                f"Clean ALL {len(selected)} projects? "
                f"This will free {format_bytes(sum(p.total_cleanable_bytes for p in selected))} and cannot be undone!"
            )
        else:
            items = [
                f"{p.name} ({p.kind}) - {format_bytes(p.total_cleanable_bytes)} [{', '.join(p.target_names)}]"
                for p in projects
            ]
            selected = [projects[i] for i in self.ui.select_indices(items, "Select projects to clean")]
            if not selected:
                return []
            question = (
                f"Clean {len(selected)} projects? "
                f"This will free {format_bytes(sum(p.total_cleanable_bytes for p in selected))}."
            )

        if not skip_confirm and not self.ui.confirm(question, default=False):
            self.ui.print_warning("Aborted.")
            return []
        return selected

    def cmd_clean(self) -> int:
        projects = self.collect()
        if not projects:
            if self._json:
                self._emit_json(clean_payload([], self.args.dry_run))
            else:
                self.ui.print_info("No projects with cleanable artifacts found.")
            return 0

        if not self._json:
            self.print_projects(projects, numbered=not self.args.all)

        selected = self._select(projects)
        if not selected:
            if self._json:
                self._emit_json(clean_payload([], self.args.dry_run))
            else:
                self.ui.print_info("Nothing selected.")
            return 0

        dry_run = self.args.dry_run
        action = "Would clean" if dry_run else "Cleaning"
        if not self._json:
            self.ui.print_info(f"{action} {len(selected)} projects...")

        progress = self.ui.create_progress()
        with progress:
            task = progress.add_task(action, total=len(selected), visible=not self._json)
            results = clean(
                selected,
                dry_run=dry_run,
                max_workers=self.args.workers,
                progress_callback=lambda p: progress.advance(task),
                should_stop=self._stop_requested,
            )

        if not dry_run:
            self.config.record_run(sum(r.bytes_freed for r in results))
            self.config_manager.save(self.config)

        if self._json:
            self._emit_json(clean_payload(results, dry_run))
        else:
            self.print_clean_results(results, dry_run)
        return 1 if any(r.errors for r in results) else 0

    def cmd_config(self) -> int:
        if self.args.reset:
            self.config = self.config_manager.reset()
            self.ui.print_success("Config reset to defaults.")
            self.ui.print_plain(f"  {self.config_manager.config_file}")
            return 0

        if self.args.show:
            self._emit_json(self.config.to_dict())
            return 0

        config_file = self.config_manager.config_file
        self.ui.print_header("Sarosis configuration", str(config_file))
        exists = "yes" if config_file.exists() else "no (using defaults)"
        self.ui.print_plain(f"  Exists: {exists}")
        stats = self.config.stats
        self.ui.print_plain(
            f"  Runs:   {stats.get('total_runs', 0)}, "
            f"{format_bytes(stats.get('total_reclaimed_bytes', 0))} reclaimed in total"
        )
        self.ui.console.print_json(data=self.config.to_dict())
        self.ui.print_info("Use --show or --reset to manage.")
        return 0

    # -- main entry point ----------------------------------------------------

    def run(self) -> int:
        handlers = {
            "scan": self.cmd_scan,
            "clean": self.cmd_clean,
            "summary": self.cmd_summary,
            "config": self.cmd_config,
        }
        return handlers[self.args.command]()


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("path", nargs="*", help="Directories to scan (default: configured roots or current directory)")
    common.add_argument("-d", "--max-depth", type=int, default=None, help="Maximum directory depth to scan")
    common.add_argument("-o", "--older-than", default=None, help="Only projects untouched for this long (e.g. 30d, 3m, 1y)")
    common.add_argument("--min-size", default=None, help="Only projects with at least this much to clean (e.g. 100M)")
    common.add_argument("-i", "--ignore", action="append", default=[], help="Extra directory glob to skip (repeatable)")
    common.add_argument("--rules", default=None, help="TOML file with extra project rules")
    common.add_argument("--nested", action="store_true", help="Also look for projects nested inside other projects")
    common.add_argument("--json", action="store_true", help="Output results as JSON")
    common.add_argument("-v", "--verbose", action="store_true", help="Show debug logging")

    parser = argparse.ArgumentParser(
        prog="sarosis",
        description="Find and clean build artifacts and dependency caches across your projects",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", metavar="command")

    sub.add_parser("scan", parents=[common], help="Scan for projects and show what can be cleaned (default)")

    clean_parser = sub.add_parser("clean", parents=[common], help="Select and clean projects")
    clean_parser.add_argument("-a", "--all", action="store_true", help="Clean all found projects without picking")
    clean_parser.add_argument("--dry-run", action="store_true", help="Show what would be freed without deleting")
    clean_parser.add_argument("-y", "--yes", action="store_true", help="Skip the confirmation prompt")
    clean_parser.add_argument("--workers", type=int, default=None, help="Clean this many projects in parallel")

    sub.add_parser("summary", parents=[common], help="Show reclaimable space per project type")

    config_parser = sub.add_parser("config", help="Manage Sarosis configuration")
    config_parser.add_argument("--show", action="store_true", help="Print the current config as JSON")
    config_parser.add_argument("--reset", action="store_true", help="Reset config to defaults")
    config_parser.add_argument("-v", "--verbose", action="store_true", help="Show debug logging")

    return parser


def _with_default_command(argv: list[str]) -> list[str]:
    if not argv:
        return ["scan"]
    if argv[0] in COMMANDS or argv[0] in ("-h", "--help", "--version"):
        return argv
    return ["scan"] + argv


def main(argv: Optional[list[str]] = None, config_manager: Optional[SharedConfigManager] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(_with_default_command(list(argv) if argv is not None else sys.argv[1:]))

    app = Sarosis(args, config_manager=config_manager)
    app.ui.setup_logging(getattr(args, "verbose", False))
    if argv is None:
        app.install_signal_handlers()

    try:
        return app.run()
    except (InvalidRootError, RuleFileError, InvalidArgumentError) as e:
        app.ui.print_error(f"Error: {e}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
