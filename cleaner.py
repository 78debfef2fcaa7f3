#!/usr/bin/env python3
"""
Artifact deletion for Sarosis

Removes the cleanable targets of scanned projects. Every target is attempted
independently: a failure is recorded in the project's CleanResult and the
run moves on to the next target and the next project.
"""

import logging
import os
import shutil
import stat
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, Optional

from models import CleanResult, CleanTarget, ScannedProject

logger = logging.getLogger(__name__)


def _inside(path: str, root: str) -> bool:
    path = os.path.normpath(os.path.abspath(path))
    root = os.path.normpath(os.path.abspath(root))
    return path != root and os.path.commonpath([path, root]) == root


def _parent_on_disk_inside(path: str, root: str) -> bool:
    """True if the real location of *path*'s parent directory lies within *root*"""
    parent = os.path.realpath(os.path.dirname(os.path.abspath(path)))
    real_root = os.path.realpath(root)
    return os.path.commonpath([parent, real_root]) == real_root


def remove_target(target: CleanTarget, root_path: str) -> bool:
    """Delete one target. Returns False if it was already gone.

    Raises OSError on failure, including targets outside the project root
    either by path or through a symlinked parent directory.
    """
    path = target.path
    if not _inside(path, root_path) or not _parent_on_disk_inside(path, root_path):
        raise OSError(f"refusing to delete outside project root {root_path}")

    try:
        st = os.lstat(path)
    except FileNotFoundError:
        return False

    if stat.S_ISDIR(st.st_mode):
        shutil.rmtree(path)
    else:
        # Files and symlinks; a symlinked target is unlinked, never followed
        os.unlink(path)
    return True


def clean_project(project: ScannedProject, dry_run: bool = False) -> CleanResult:
    """Remove (or, in a dry run, tally) every target of one project"""
    result = CleanResult(project_name=project.name, root_path=project.root_path, dry_run=dry_run)

    for target in project.clean_targets:
        if dry_run:
            result.bytes_freed += target.size_bytes
            continue
        try:
            removed = remove_target(target, project.root_path)
        except OSError as e:
            logger.debug("Failed to remove %s: %s", target.path, e)
            result.errors.append(f"{target.name} ({target.path}): {e}")
            continue
        if removed:
            result.bytes_freed += target.size_bytes
        else:
            logger.debug("Target already gone: %s", target.path)

    return result


def _skipped(project: ScannedProject, dry_run: bool) -> CleanResult:
    return CleanResult(
        project_name=project.name,
        root_path=project.root_path,
        dry_run=dry_run,
        errors=["skipped: interrupted"],
        skipped=True,
    )


def clean(
    projects: Iterable[ScannedProject],
    dry_run: bool = False,
    max_workers: Optional[int] = None,
    progress_callback: Optional[Callable[[ScannedProject], None]] = None,
    should_stop: Optional[Callable[[], bool]] = None,
) -> list[CleanResult]:
    """Clean the given projects, one CleanResult per project in input order

    Args:
        projects: Projects selected for cleaning
        dry_run: Report what would be freed without touching the filesystem
        max_workers: Clean projects in a thread pool of this size (None or 1: sequential)
        progress_callback: Called with each project after it has been processed
        should_stop: Polled before each project; once True, remaining projects
            are reported as skipped instead of cleaned
    """
    projects = list(projects)

    def run(project: ScannedProject) -> CleanResult:
        if should_stop and should_stop():
            return _skipped(project, dry_run)
        result = clean_project(project, dry_run)
        if progress_callback:
            progress_callback(project)
        return result

    if max_workers and max_workers > 1 and len(projects) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            return list(pool.map(run, projects))

    return [run(project) for project in projects]
