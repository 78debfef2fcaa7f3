#!/usr/bin/env python3
"""
Project kind rules for Sarosis

Each rule names a project kind, the marker files whose presence identifies
it, and the artifact paths that are safe to regenerate. Rules are kept in a
fixed order: the first rule whose markers match a directory wins.

Additional rules can be loaded from a TOML file:

    replace_builtin = false
    [[rules]]
    kind = "bazel"
    markers = ["WORKSPACE", "MODULE.bazel"]
    mode = "any"
    targets = [{ path = "bazel-out", label = "bazel output" }]
"""

import fnmatch
import tomllib
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional


class RuleFileError(ValueError):
    """Raised when a custom rule file cannot be read or is malformed"""


class MarkerMode(Enum):
    ALL = "all"
    ANY = "any"


@dataclass(frozen=True)
class TargetSpec:
    path: str
    label: str


@dataclass(frozen=True)
class ProjectKindRule:
    kind: str
    markers: tuple[str, ...]
    targets: tuple[TargetSpec, ...]
    marker_mode: MarkerMode = MarkerMode.ANY
    description: str = ""

    def matches(self, names: Iterable[str]) -> bool:
        """Return True if the marker predicate holds for a set of child names."""
        names = list(names)
        hits = (_marker_present(marker, names) for marker in self.markers)
        if self.marker_mode is MarkerMode.ALL:
            return all(hits)
        return any(hits)

    def marker_entries(self, names: Iterable[str]) -> list[str]:
        """Return the child names that satisfy any of this rule's markers."""
        return sorted(n for n in names if any(_name_matches(n, m) for m in self.markers))


def _is_glob(pattern: str) -> bool:
    return any(ch in pattern for ch in "*?[")


def _name_matches(name: str, marker: str) -> bool:
    if _is_glob(marker):
        return fnmatch.fnmatchcase(name, marker)
    return name == marker


def _marker_present(marker: str, names: list[str]) -> bool:
    return any(_name_matches(n, marker) for n in names)


def _rule(kind: str, mode: MarkerMode, markers: list[str], targets: list[tuple[str, str]], description: str = ""):
    return ProjectKindRule(
        kind=kind,
        markers=tuple(markers),
        targets=tuple(TargetSpec(path, label) for path, label in targets),
        marker_mode=mode,
        description=description,
    )


# ---------------------------------------------------------------------------
# Built-in rule table (priority order)
# ---------------------------------------------------------------------------

BUILTIN_RULES: tuple[ProjectKindRule, ...] = (
    _rule("rust", MarkerMode.ALL, ["Cargo.toml"], [("target", "target")], "Cargo build output"),
    _rule(
        "node",
        MarkerMode.ANY,
        ["package.json"],
        [
            ("node_modules", "node_modules"),
            (".next", "Next.js build"),
            (".nuxt", "Nuxt build"),
            (".svelte-kit", "SvelteKit build"),
            (".turbo", "Turborepo cache"),
            (".parcel-cache", "Parcel cache"),
            (".angular/cache", "Angular cache"),
        ],
        "npm / yarn / pnpm dependencies and framework caches",
    ),
    _rule(
        "python",
        MarkerMode.ANY,
        ["pyproject.toml", "setup.py", "setup.cfg", "Pipfile", "requirements.txt"],
        [
            (".venv", "virtualenv"),
            ("venv", "virtualenv"),
            ("__pycache__", "__pycache__"),
            (".pytest_cache", "pytest cache"),
            (".mypy_cache", "mypy cache"),
            (".ruff_cache", "ruff cache"),
            (".tox", "tox environments"),
            (".nox", "nox environments"),
            ("build", "build"),
            ("dist", "dist"),
            ("*.egg-info", "egg-info"),
        ],
        "virtualenvs, bytecode and tool caches",
    ),
    _rule("java", MarkerMode.ALL, ["pom.xml"], [("target", "target")], "Maven build output"),
    _rule(
        "gradle",
        MarkerMode.ANY,
        ["build.gradle", "build.gradle.kts", "settings.gradle", "settings.gradle.kts"],
        [("build", "build"), (".gradle", ".gradle")],
        "Gradle build output and project cache",
    ),
    _rule(
        "dotnet",
        MarkerMode.ANY,
        ["*.csproj", "*.fsproj", "*.vbproj", "*.sln"],
        [("bin", "bin"), ("obj", "obj")],
        "MSBuild output",
    ),
    _rule("go", MarkerMode.ALL, ["go.mod"], [("vendor", "vendor")], "vendored modules"),
    _rule("scala", MarkerMode.ALL, ["build.sbt"], [("target", "target"), ("project/target", "sbt project target")]),
    _rule("elixir", MarkerMode.ALL, ["mix.exs"], [("_build", "_build"), ("deps", "deps")]),
    _rule(
        "haskell",
        MarkerMode.ANY,
        ["stack.yaml", "cabal.project", "*.cabal"],
        [(".stack-work", ".stack-work"), ("dist-newstyle", "dist-newstyle")],
    ),
    _rule("swift", MarkerMode.ALL, ["Package.swift"], [(".build", ".build")], "SwiftPM build output"),
    _rule("dart", MarkerMode.ALL, ["pubspec.yaml"], [(".dart_tool", ".dart_tool"), ("build", "build")]),
    _rule(
        "zig",
        MarkerMode.ALL,
        ["build.zig"],
        [("zig-cache", "zig-cache"), (".zig-cache", ".zig-cache"), ("zig-out", "zig-out")],
    ),
    _rule("php", MarkerMode.ALL, ["composer.json"], [("vendor", "vendor")], "Composer dependencies"),
    _rule("ruby", MarkerMode.ALL, ["Gemfile"], [("vendor/bundle", "vendor/bundle"), (".bundle", ".bundle")]),
    _rule(
        "cmake",
        MarkerMode.ALL,
        ["CMakeLists.txt"],
        [("build", "build"), ("cmake-build-debug", "cmake-build-debug"), ("cmake-build-release", "cmake-build-release")],
    ),
    _rule(
        "unity",
        MarkerMode.ALL,
        ["Assets", "ProjectSettings"],
        [("Library", "Library"), ("Temp", "Temp"), ("Obj", "Obj"), ("Logs", "Logs")],
        "Unity editor caches",
    ),
    _rule("godot", MarkerMode.ALL, ["project.godot"], [(".godot", ".godot")], "Godot import cache"),
    _rule("terraform", MarkerMode.ANY, ["*.tf"], [(".terraform", ".terraform")], "provider plugins and modules"),
)


# ---------------------------------------------------------------------------
# Rules loading from TOML
# ---------------------------------------------------------------------------

_MODE_MAP = {"all": MarkerMode.ALL, "any": MarkerMode.ANY}


def _parse_rule(entry: dict, index: int) -> ProjectKindRule:
    try:
        kind = entry["kind"]
        markers = entry["markers"]
        raw_targets = entry["targets"]
    except (KeyError, TypeError) as e:
        raise RuleFileError(f"rule #{index + 1}: missing field {e}") from e

    if not isinstance(kind, str) or not kind:
        raise RuleFileError(f"rule #{index + 1}: 'kind' must be a non-empty string")
    if isinstance(markers, str):
        markers = [markers]
    if not markers or not all(isinstance(m, str) and m for m in markers):
        raise RuleFileError(f"rule '{kind}': 'markers' must be a non-empty list of names")

    mode_name = str(entry.get("mode", "any")).lower()
    if mode_name not in _MODE_MAP:
        raise RuleFileError(f"rule '{kind}': unknown mode '{mode_name}' (expected 'all' or 'any')")

    targets: list[TargetSpec] = []
    for raw in raw_targets:
        if isinstance(raw, str):
            targets.append(TargetSpec(raw, raw))
        elif isinstance(raw, dict) and isinstance(raw.get("path"), str):
            targets.append(TargetSpec(raw["path"], raw.get("label", raw["path"])))
        else:
            raise RuleFileError(f"rule '{kind}': each target needs a 'path'")
        if Path(targets[-1].path).is_absolute() or ".." in Path(targets[-1].path).parts:
            raise RuleFileError(f"rule '{kind}': target '{targets[-1].path}' must stay inside the project")

    return ProjectKindRule(
        kind=kind,
        markers=tuple(markers),
        targets=tuple(targets),
        marker_mode=_MODE_MAP[mode_name],
        description=entry.get("description", ""),
    )


def load_rules(path: Optional[Path] = None) -> tuple[ProjectKindRule, ...]:
    """Return the rule table, with rules from *path* placed ahead of the built-ins.

    Raises RuleFileError if the file is unreadable or malformed.
    """
    if path is None:
        return BUILTIN_RULES

    path = Path(path).expanduser()
    try:
        with path.open("rb") as f:
            data = tomllib.load(f)
    except OSError as e:
        raise RuleFileError(f"cannot read rules file {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise RuleFileError(f"invalid TOML in {path}: {e}") from e

    entries = data.get("rules", [])
    if not isinstance(entries, list):
        raise RuleFileError(f"{path}: 'rules' must be an array of tables")
    custom = tuple(_parse_rule(entry, i) for i, entry in enumerate(entries))

    if data.get("replace_builtin", False):
        return custom
    return custom + BUILTIN_RULES
