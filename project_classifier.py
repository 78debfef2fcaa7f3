#!/usr/bin/env python3
"""
Project classification for Sarosis

Decides whether a directory is a project root by looking only at its direct
children, and collects the sized cleanable targets for the matching kind.
"""

import fnmatch
import logging
import os
from dataclasses import dataclass
from typing import Iterable, Optional

from models import CleanTarget
from project_rules import BUILTIN_RULES, ProjectKindRule, TargetSpec
from size_accumulator import SizeAccumulator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Classification:
    rule: ProjectKindRule
    targets: tuple[CleanTarget, ...]
    marker_paths: tuple[str, ...]

    @property
    def kind(self) -> str:
        return self.rule.kind


def list_names(directory: str) -> Optional[list[str]]:
    """Return child names of *directory*, or None if it cannot be read"""
    try:
        return os.listdir(directory)
    except OSError as e:
        logger.debug("Cannot list %s: %s", directory, e)
        return None


def match_rule(names: Iterable[str], rules: Iterable[ProjectKindRule]) -> Optional[ProjectKindRule]:
    """Return the first rule whose marker predicate holds for *names*"""
    names = list(names)
    for rule in rules:
        if rule.matches(names):
            return rule
    return None


def _parent_is_real(directory: str, parent_rel: str) -> bool:
    """False if any directory between *directory* and the target is a symlink"""
    current = directory
    for part in parent_rel.split("/"):
        if not part:
            continue
        current = os.path.join(current, part)
        if os.path.islink(current):
            logger.debug("Skipping target under symlinked directory %s", current)
            return False
    return True


def resolve_targets(directory: str, declared: TargetSpec, names: list[str]) -> list[str]:
    """Expand a declared target into the existing absolute paths it refers to

    Targets below a symlinked intermediate directory are dropped, so nothing
    outside the project is sized or offered for deletion.
    """
    parent_rel, _, last = declared.path.rstrip("/").rpartition("/")
    if parent_rel and not _parent_is_real(directory, parent_rel):
        return []
    if not any(ch in last for ch in "*?["):
        full = os.path.join(directory, declared.path.rstrip("/"))
        return [full] if os.path.lexists(full) else []

    if parent_rel:
        parent = os.path.join(directory, parent_rel)
        candidates = list_names(parent) or []
    else:
        parent = directory
        candidates = names
    return [os.path.join(parent, n) for n in sorted(candidates) if fnmatch.fnmatchcase(n, last)]


def classify(
    directory: str,
    rules: Iterable[ProjectKindRule] = BUILTIN_RULES,
    sizer: Optional[SizeAccumulator] = None,
    names: Optional[list[str]] = None,
) -> Optional[Classification]:
    """Classify *directory*; returns None when no rule matches.

    Args:
        directory: Candidate project root
        rules: Ordered rule table, first match wins
        sizer: Shared accumulator so targets are measured once per scan
        names: Pre-fetched child names (saves a second listdir for the walker)
    """
    directory = os.path.abspath(directory)
    if names is None:
        names = list_names(directory)
        if names is None:
            return None

    rule = match_rule(names, rules)
    if rule is None:
        return None

    sizer = sizer or SizeAccumulator()
    targets: list[CleanTarget] = []
    seen: set[str] = set()
    for declared in rule.targets:
        for full in resolve_targets(directory, declared, names):
            if full in seen:
                continue
            seen.add(full)
            targets.append(CleanTarget(name=declared.label, path=full, size_bytes=sizer.measure(full)))

    markers = tuple(os.path.join(directory, n) for n in rule.marker_entries(names))
    return Classification(rule=rule, targets=tuple(targets), marker_paths=markers)
