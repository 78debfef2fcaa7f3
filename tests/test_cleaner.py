import os
import shutil
from datetime import datetime, timezone
from pathlib import Path

import pytest

import cleaner
from cleaner import clean, remove_target
from models import CleanTarget, ScannedProject
from tree_walker import scan
from tests.conftest import write_file


def _tree_snapshot(root: Path) -> list[str]:
    return sorted(str(p.relative_to(root)) for p in root.rglob("*"))


def test_dry_run_is_idempotent_and_touches_nothing(tmp_path: Path, rust_project: Path, node_project: Path) -> None:
    projects = scan(tmp_path)
    before = _tree_snapshot(tmp_path)

    first = clean(projects, dry_run=True)
    second = clean(projects, dry_run=True)

    assert _tree_snapshot(tmp_path) == before
    assert [r.bytes_freed for r in first] == [r.bytes_freed for r in second] == [8000, 12100]
    assert all(r.dry_run and not r.errors for r in first)


def test_clean_then_rescan_reports_nothing(tmp_path: Path, rust_project: Path, node_project: Path) -> None:
    projects = scan(tmp_path)

    results = clean(projects)

    assert [(r.project_name, r.bytes_freed, r.errors) for r in results] == [
        ("proj-a", 8000, []),
        ("proj-b", 12100, []),
    ]
    assert not (rust_project / "target").exists()
    assert (rust_project / "src" / "main.rs").exists()
    assert (node_project / "package.json").exists()
    rescanned = scan(tmp_path)
    assert [p.kind for p in rescanned] == ["rust", "node"]
    assert all(p.total_cleanable_bytes == 0 for p in rescanned)


def test_externally_removed_target_is_skipped(rust_project: Path) -> None:
    (project,) = scan(rust_project)

    shutil.rmtree(rust_project / "target")

    (result,) = clean([project])

    assert result.bytes_freed == 0
    assert result.errors == []


def test_failure_is_isolated_per_target_and_project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    projects = []
    for i in range(3):
        root = tmp_path / f"p{i}"
        write_file(root / "pyproject.toml", 1)
        write_file(root / ".venv" / "lib.py", 100)
        write_file(root / "__pycache__" / "m.pyc", 10)
        projects.append(root)
    scanned = scan(tmp_path)
    locked = str(projects[1] / ".venv")

    real_rmtree = cleaner.shutil.rmtree

    def flaky_rmtree(path, *args, **kwargs):
        if str(path) == locked:
            raise PermissionError(13, "Permission denied", str(path))
        return real_rmtree(path, *args, **kwargs)

    monkeypatch.setattr(cleaner.shutil, "rmtree", flaky_rmtree)

    results = clean(scanned)

    assert len(results) == 3
    assert [r.bytes_freed for r in results] == [110, 10, 110]
    assert results[0].errors == [] and results[2].errors == []
    assert len(results[1].errors) == 1
    assert "virtualenv" in results[1].errors[0] and locked in results[1].errors[0]
    assert (projects[1] / ".venv").exists()
    assert not (projects[1] / "__pycache__").exists()


def test_symlinked_target_is_unlinked_not_followed(tmp_path: Path) -> None:
    outside = tmp_path / "precious"
    write_file(outside / "data.bin", 500)
    root = tmp_path / "proj"
    write_file(root / "Cargo.toml", 1)
    os.symlink(outside, root / "target")
    (project,) = scan(root)

    (result,) = clean([project])

    assert result.errors == []
    assert not (root / "target").exists()
    assert (outside / "data.bin").exists()


def test_target_outside_project_root_is_refused(tmp_path: Path) -> None:
    victim = write_file(tmp_path / "elsewhere" / "keep.txt", 5)
    project = ScannedProject(
        name="proj",
        kind="rust",
        root_path=str(tmp_path / "proj"),
        last_modified=datetime.now(timezone.utc),
        clean_targets=(CleanTarget("target", str(victim.parent), 5),),
    )

    (result,) = clean([project])

    assert result.bytes_freed == 0
    assert "refusing" in result.errors[0]
    assert victim.exists()


def test_remove_target_rejects_project_root(tmp_path: Path) -> None:
    with pytest.raises(OSError):
        remove_target(CleanTarget("root", str(tmp_path), 0), str(tmp_path))


def test_removes_plain_file_targets(tmp_path: Path) -> None:
    root = tmp_path / "proj"
    f = write_file(root / "artifact.out", 64)

    assert remove_target(CleanTarget("artifact", str(f), 64), str(root)) is True
    assert not f.exists()
    assert remove_target(CleanTarget("artifact", str(f), 64), str(root)) is False


def test_parallel_clean_keeps_input_order(tmp_path: Path) -> None:
    for i in range(6):
        root = tmp_path / f"p{i}"
        write_file(root / "package.json", 1)
        write_file(root / "node_modules" / "x.js", 10 * (i + 1))
    projects = scan(tmp_path)
    seen = []

    results = clean(projects, max_workers=4, progress_callback=seen.append)

    assert [r.project_name for r in results] == [p.name for p in projects]
    assert [r.bytes_freed for r in results] == [10, 20, 30, 40, 50, 60]
    assert len(seen) == 6


def test_empty_batch() -> None:
    assert clean([], dry_run=True) == []


def test_symlinked_parent_directory_is_never_followed(tmp_path: Path) -> None:
    shared = tmp_path / "shared"
    precious = write_file(shared / "bundle" / "precious.gem", 400)
    root = tmp_path / "app"
    write_file(root / "Gemfile", 1)
    os.symlink(shared, root / "vendor")
    (project,) = scan(root)

    (result,) = clean([project])

    assert project.total_cleanable_bytes == 0
    assert result.bytes_freed == 0
    assert precious.exists()


def test_remove_target_refuses_path_through_symlinked_parent(tmp_path: Path) -> None:
    shared = tmp_path / "shared"
    precious = write_file(shared / "bundle" / "precious.gem", 400)
    root = tmp_path / "app"
    write_file(root / "Gemfile", 1)
    os.symlink(shared, root / "vendor")
    project = ScannedProject(
        name="app",
        kind="ruby",
        root_path=str(root),
        last_modified=datetime.now(timezone.utc),
        clean_targets=(CleanTarget("vendor/bundle", str(root / "vendor" / "bundle"), 400),),
    )

    (result,) = clean([project])

    assert result.bytes_freed == 0
    assert len(result.errors) == 1 and "refusing" in result.errors[0]
    assert precious.exists()


def test_interrupt_reports_every_remaining_project(tmp_path: Path) -> None:
    for i in range(3):
        root = tmp_path / f"p{i}"
        write_file(root / "package.json", 1)
        write_file(root / "node_modules" / "x.js", 10)
    projects = scan(tmp_path)
    cleaned: list[ScannedProject] = []

    results = clean(projects, progress_callback=cleaned.append, should_stop=lambda: len(cleaned) >= 1)

    assert len(results) == len(projects)
    assert [r.project_name for r in results] == ["p0", "p1", "p2"]
    assert [r.skipped for r in results] == [False, True, True]
    assert results[1].errors == ["skipped: interrupted"]
    assert results[1].bytes_freed == 0
    assert not (tmp_path / "p0" / "node_modules").exists()
    assert (tmp_path / "p1" / "node_modules").exists()
    assert (tmp_path / "p2" / "node_modules").exists()


def test_interrupt_is_honoured_by_thread_pool(tmp_path: Path) -> None:
    for i in range(4):
        root = tmp_path / f"p{i}"
        write_file(root / "package.json", 1)
        write_file(root / "node_modules" / "x.js", 10)
    projects = scan(tmp_path)

    results = clean(projects, max_workers=3, should_stop=lambda: True)

    assert len(results) == 4
    assert all(r.skipped and r.bytes_freed == 0 for r in results)
    assert all((tmp_path / f"p{i}" / "node_modules").exists() for i in range(4))
