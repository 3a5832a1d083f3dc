from __future__ import annotations

from pathlib import Path

import pytest

from flatcat.file_manipulation import select_glob_files
from flatcat.filters import PathFilter
from flatcat.tree import format_tree_block, render_tree


def _touch(path: Path, text: str = "x\n") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def project(tmp_path: Path) -> Path:
    _touch(tmp_path / "Cargo.toml")
    _touch(tmp_path / "Cargo.lock")
    _touch(tmp_path / "README.md")
    _touch(tmp_path / "src" / "main.rs")
    _touch(tmp_path / "src" / "util" / "mod.rs")
    _touch(tmp_path / "src" / "util" / "fmt.rs")
    _touch(tmp_path / "benches" / "speed.rs")
    _touch(tmp_path / ".git" / "HEAD")
    _touch(tmp_path / "target" / "debug" / "app")
    _touch(tmp_path / ".gitignore", "target/\n")
    return tmp_path


@pytest.mark.unit
def test_render_tree_orders_directories_first_and_draws_connectors(project: Path) -> None:
    rendering = render_tree(project, PathFilter(project))

    assert rendering.lines == [
        ".",
        "├── benches/",
        "│   └── speed.rs",
        "├── src/",
        "│   ├── util/",
        "│   │   ├── fmt.rs",
        "│   │   └── mod.rs",
        "│   └── main.rs",
        "├── Cargo.toml",
        "└── README.md",
    ]
    assert rendering.directories == 4
    assert rendering.files == 6
    assert rendering.summary == "4 directories, 6 files"


@pytest.mark.unit
def test_render_tree_of_empty_directory(tmp_path: Path) -> None:
    rendering = render_tree(tmp_path, PathFilter(tmp_path))

    assert rendering.lines == ["."]
    assert rendering.summary == "1 directories, 0 files"


@pytest.mark.unit
def test_tree_agrees_with_glob_selection(project: Path) -> None:
    path_filter = PathFilter(project)
    rendering = render_tree(project, path_filter)
    selected = select_glob_files(project, ["**/*"], path_filter)

    leaves = {
        line.rsplit("── ", 1)[-1]
        for line in rendering.lines[1:]
        if not line.endswith("/")
    }

    assert leaves == {p.name for p in selected}
    assert rendering.files == len(selected)


@pytest.mark.unit
def test_format_tree_block_wraps_lines_and_summary(tmp_path: Path) -> None:
    _touch(tmp_path / "a.go")

    block = format_tree_block(render_tree(tmp_path, PathFilter(tmp_path)))

    assert block == "Directory Structure:\n\n```text\n.\n└── a.go\n\n1 directories, 1 files\n```\n\n"
