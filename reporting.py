#!/usr/bin/env python3
"""
Filtering, sorting and summaries over scan and clean results

None of these functions re-measure anything: sizes recorded at scan time
flow through unchanged.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional

from auxiliary import format_bytes
from models import CleanResult, ScannedProject


@dataclass(frozen=True)
class KindSummary:
    kind: str
    projects: int
    reclaimable_bytes: int


def filter_by_age(
    projects: Iterable[ScannedProject], older_than: Optional[timedelta], now: Optional[datetime] = None
) -> list[ScannedProject]:
    """Keep projects last touched before now - older_than"""
    projects = list(projects)
    if older_than is None:
        return projects
    cutoff = (now or datetime.now(timezone.utc)) - older_than
    return [p for p in projects if p.last_modified < cutoff]


def filter_by_size(projects: Iterable[ScannedProject], min_bytes: int) -> list[ScannedProject]:
    return [p for p in projects if p.total_cleanable_bytes >= min_bytes]


def only_cleanable(projects: Iterable[ScannedProject]) -> list[ScannedProject]:
    return [p for p in projects if p.clean_targets and p.total_cleanable_bytes > 0]


def sort_by_size(projects: Iterable[ScannedProject]) -> list[ScannedProject]:
    """Largest first; ties keep scan order"""
    return sorted(projects, key=lambda p: p.total_cleanable_bytes, reverse=True)


def summarize_by_kind(projects: Iterable[ScannedProject]) -> list[KindSummary]:
    counts: dict[str, list[int]] = {}
    for p in projects:
        entry = counts.setdefault(p.kind, [0, 0])
        entry[0] += 1
        entry[1] += p.total_cleanable_bytes
    summaries = [KindSummary(kind, count, size) for kind, (count, size) in counts.items()]
    summaries.sort(key=lambda s: (-s.reclaimable_bytes, s.kind))
    return summaries


# ---------------------------------------------------------------------------
# JSON payloads
# ---------------------------------------------------------------------------


def project_to_dict(project: ScannedProject) -> dict[str, Any]:
    return {
        "name": project.name,
        "kind": project.kind,
        "path": project.root_path,
        "last_modified": project.last_modified.isoformat(),
        "clean_targets": [
            {"name": t.name, "path": t.path, "size_bytes": t.size_bytes} for t in project.clean_targets
        ],
        "total_cleanable_bytes": project.total_cleanable_bytes,
    }


def scan_payload(projects: Iterable[ScannedProject]) -> list[dict[str, Any]]:
    return [project_to_dict(p) for p in projects]


def clean_payload(results: list[CleanResult], dry_run: bool) -> dict[str, Any]:
    return {
        "dry_run": dry_run,
        "projects_cleaned": sum(1 for r in results if not r.skipped),
        "total_bytes_freed": sum(r.bytes_freed for r in results),
        "errors": [e for r in results for e in r.errors],
        "projects": [
            {
                "name": r.project_name,
                "path": r.root_path,
                "bytes_freed": r.bytes_freed,
                "errors": list(r.errors),
                "skipped": r.skipped,
            }
            for r in results
        ],
    }


def summary_payload(projects: list[ScannedProject]) -> dict[str, Any]:
    total = sum(p.total_cleanable_bytes for p in projects)
    return {
        "total_projects": len(projects),
        "total_reclaimable_bytes": total,
        "total_reclaimable_human": format_bytes(total),
        "by_kind": [
            {
                "kind": s.kind,
                "projects": s.projects,
                "reclaimable_bytes": s.reclaimable_bytes,
                "reclaimable_human": format_bytes(s.reclaimable_bytes),
            }
            for s in summarize_by_kind(projects)
        ],
    }
