#!/usr/bin/env python3
"""
Data records shared by the Sarosis scanner, cleaner and reports.

All records are immutable once created. Sizes are measured once during the
scan and carried through filtering, sorting and cleaning unchanged.
"""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class CleanTarget:
    """A regenerable artifact inside a project (e.g. node_modules)"""

    name: str
    path: str
    size_bytes: int = 0


@dataclass(frozen=True)
class ScannedProject:
    """A detected project root and the artifacts that can be removed from it"""

    name: str
    kind: str
    root_path: str
    last_modified: datetime
    clean_targets: tuple[CleanTarget, ...] = ()
    total_cleanable_bytes: int = field(init=False)

    def __post_init__(self):
        # Frozen: tuple-ify and derive the total through object.__setattr__
        object.__setattr__(self, "clean_targets", tuple(self.clean_targets))
        object.__setattr__(self, "total_cleanable_bytes", sum(t.size_bytes for t in self.clean_targets))

    @property
    def target_names(self) -> list[str]:
        return [t.name for t in self.clean_targets]


@dataclass
class CleanResult:
    """Outcome of cleaning one project"""

    project_name: str
    root_path: str = ""
    bytes_freed: int = 0
    errors: list[str] = field(default_factory=list)
    dry_run: bool = False
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return not self.errors
