from pathlib import Path

import pytest


def write_file(path: Path, size: int = 0, content: bytes = b"") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content or b"x" * size)
    return path


@pytest.fixture
def rust_project(tmp_path: Path) -> Path:
    root = tmp_path / "proj-a"
    write_file(root / "Cargo.toml", content=b'[package]\nname = "a"\n')
    write_file(root / "src" / "main.rs", content=b"fn main() {}\n")
    write_file(root / "target" / "debug" / "a", 5000)
    write_file(root / "target" / "debug" / "deps" / "liba.rlib", 3000)
    return root


@pytest.fixture
def node_project(tmp_path: Path) -> Path:
    root = tmp_path / "proj-b"
    write_file(root / "package.json", content=b"{}\n")
    write_file(root / "node_modules" / "left-pad" / "index.js", 12000)
    write_file(root / "node_modules" / "left-pad" / "package.json", 100)
    return root
