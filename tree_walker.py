#!/usr/bin/env python3
"""
Filesystem traversal for Sarosis

Walks a directory tree depth-first, classifying every visited directory.
A directory recognised as a project is reported and, by default, not
descended into: its dependency trees are exactly what we want to clean,
not more projects to report.
"""

import fnmatch
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable, Optional, Union

from models import ScannedProject
from project_classifier import Classification, classify
from project_rules import BUILTIN_RULES, ProjectKindRule
from size_accumulator import SizeAccumulator

logger = logging.getLogger(__name__)


class InvalidRootError(ValueError):
    """Raised before traversal when the scan root is missing or not a directory"""


def is_ignored(name: str, path: str, patterns: Iterable[str]) -> bool:
    """Match bare patterns against the directory name, patterns with '/' against the full path"""
    for pattern in patterns:
        if "/" in pattern:
            if fnmatch.fnmatch(path, pattern):
                return True
        elif fnmatch.fnmatch(name, pattern):
            return True
    return False


def _last_modified(directory: str, marker_paths: Iterable[str]) -> datetime:
    newest: Optional[float] = None
    for marker in marker_paths:
        try:
            mtime = os.stat(marker).st_mtime
        except OSError:
            continue
        if newest is None or mtime > newest:
            newest = mtime
    if newest is None:
        try:
            newest = os.stat(directory).st_mtime
        except OSError:
            newest = 0.0
    return datetime.fromtimestamp(newest, tz=timezone.utc)


def _to_project(directory: str, found: Classification) -> ScannedProject:
    return ScannedProject(
        name=os.path.basename(directory) or directory,
        kind=found.kind,
        root_path=directory,
        last_modified=_last_modified(directory, found.marker_paths),
        clean_targets=found.targets,
    )


def scan(
    root: Union[str, Path],
    max_depth: Optional[int] = None,
    ignore_patterns: Iterable[str] = (),
    rules: Optional[Iterable[ProjectKindRule]] = None,
    nested_projects: bool = False,
    progress_callback: Optional[Callable[[str], None]] = None,
    should_stop: Optional[Callable[[], bool]] = None,
    sizer: Optional[SizeAccumulator] = None,
) -> list[ScannedProject]:
    """Find projects under *root*

    Args:
        root: Directory to start from (depth 0, classified itself)
        max_depth: Deepest directory level to visit; None means unbounded
        ignore_patterns: Glob patterns for directories that are never visited
        rules: Ordered rule table (defaults to the built-in table)
        nested_projects: Keep walking inside detected projects (never into their targets)
        progress_callback: Called with each visited directory path
        should_stop: Polled between directories; returning True ends the walk early
        sizer: Shared size accumulator

    Returns:
        Projects in depth-first order, siblings sorted by name

    Raises:
        InvalidRootError: root does not exist or is not a directory
    """
    root_path = os.path.abspath(os.path.expanduser(str(root)))
    if not os.path.exists(root_path):
        raise InvalidRootError(f"Path does not exist: {root_path}")
    if not os.path.isdir(root_path):
        raise InvalidRootError(f"Not a directory: {root_path}")
    if max_depth is not None and max_depth < 0:
        raise InvalidRootError(f"max_depth must be >= 0, got {max_depth}")

    rules = tuple(rules) if rules is not None else BUILTIN_RULES
    patterns = list(ignore_patterns)
    sizer = sizer or SizeAccumulator()

    projects: list[ScannedProject] = []
    target_paths: set[str] = set()
    stack: list[tuple[str, int]] = [(root_path, 0)]

    while stack:
        if should_stop and should_stop():
            logger.debug("Scan stopped early with %d directories pending", len(stack))
            break

        current, depth = stack.pop()
        if progress_callback:
            progress_callback(current)

        try:
            with os.scandir(current) as it:
                entries = list(it)
        except OSError as e:
            logger.debug("Skipping unreadable directory %s: %s", current, e)
            continue

        found = classify(current, rules, sizer, names=[e.name for e in entries])
        if found is not None:
            projects.append(_to_project(current, found))
            target_paths.update(t.path for t in found.targets)
            if not nested_projects:
                continue

        if max_depth is not None and depth >= max_depth:
            continue

        children = []
        for entry in entries:
            try:
                if not entry.is_dir(follow_symlinks=False):
                    continue
            except OSError:
                continue
            if entry.path in target_paths or is_ignored(entry.name, entry.path, patterns):
                continue
            children.append(entry.path)

        for child in sorted(children, reverse=True):
            stack.append((child, depth + 1))

    return projects
