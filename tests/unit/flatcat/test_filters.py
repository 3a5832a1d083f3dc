from pathlib import Path

import pytest

from flatcat.filters import PathFilter, find_git_toplevel, is_lock_file


def _touch(path: Path, text: str = "x\n") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.mark.unit
@pytest.mark.parametrize(
    "name",
    ["Cargo.lock", "package-lock.json", "yarn.lock", "poetry.lock", "Pipfile.lock", "pnpm-lock.yaml", "custom.lock"],
)
def test_is_lock_file_recognizes_lock_files(name: str) -> None:
    assert is_lock_file(name)


@pytest.mark.unit
def test_is_lock_file_ignores_regular_names() -> None:
    assert not is_lock_file("Cargo.toml")
    assert not is_lock_file("lockfile.rs")


@pytest.mark.unit
def test_lock_files_are_excluded_even_when_otherwise_visible(tmp_path: Path) -> None:
    lock = _touch(tmp_path / "Cargo.lock")
    nested = _touch(tmp_path / "web" / "package-lock.json")
    manifest = _touch(tmp_path / "Cargo.toml")

    path_filter = PathFilter(tmp_path)

    assert path_filter.is_excluded(lock)
    assert path_filter.is_excluded(nested)
    assert not path_filter.is_excluded(manifest)


@pytest.mark.unit
def test_hidden_component_excludes_whole_path(tmp_path: Path) -> None:
    inside_hidden = _touch(tmp_path / "a" / ".hidden" / "b.txt")
    dotfile = _touch(tmp_path / "a" / ".env")
    visible = _touch(tmp_path / "a" / "b.txt")

    path_filter = PathFilter(tmp_path)

    assert path_filter.is_excluded(inside_hidden)
    assert path_filter.is_excluded(dotfile)
    assert not path_filter.is_excluded(visible)


@pytest.mark.unit
def test_hidden_root_itself_does_not_exclude_children(tmp_path: Path) -> None:
    root = tmp_path / ".workspace"
    visible = _touch(root / "src" / "main.rs")

    path_filter = PathFilter(root)

    assert not path_filter.is_excluded(root)
    assert not path_filter.is_excluded(visible)


@pytest.mark.unit
def test_paths_outside_root_are_excluded(tmp_path: Path) -> None:
    outside = _touch(tmp_path / "elsewhere.txt")
    root = tmp_path / "project"
    root.mkdir()

    assert PathFilter(root).is_excluded(outside)


@pytest.mark.unit
def test_default_excludes_can_be_disabled(tmp_path: Path) -> None:
    vendored = _touch(tmp_path / "node_modules" / "pkg" / "index.js")

    assert PathFilter(tmp_path).is_excluded(vendored)
    assert not PathFilter(tmp_path, default_excludes=()).is_excluded(vendored)


@pytest.mark.unit
def test_gitignore_patterns_and_negation(tmp_path: Path) -> None:
    _touch(tmp_path / ".gitignore", "*.log\n!keep.log\nbuild/\n")
    debug = _touch(tmp_path / "debug.log")
    keep = _touch(tmp_path / "keep.log")
    built = _touch(tmp_path / "build" / "out.txt")
    source = _touch(tmp_path / "src" / "lib.rs")

    path_filter = PathFilter(tmp_path)

    assert path_filter.is_excluded(debug)
    assert not path_filter.is_excluded(keep)
    assert path_filter.is_excluded(tmp_path / "build")
    assert path_filter.is_excluded(built)
    assert not path_filter.is_excluded(source)


@pytest.mark.unit
def test_nested_gitignore_is_relative_and_overrides_parent(tmp_path: Path) -> None:
    _touch(tmp_path / ".gitignore", "*.log\n")
    _touch(tmp_path / "sub" / ".gitignore", "!debug.log\n/local.txt\n")
    nested_log = _touch(tmp_path / "sub" / "debug.log")
    nested_local = _touch(tmp_path / "sub" / "local.txt")
    root_local = _touch(tmp_path / "local.txt")
    root_log = _touch(tmp_path / "debug.log")

    path_filter = PathFilter(tmp_path)

    assert not path_filter.is_excluded(nested_log)
    assert path_filter.is_excluded(nested_local)
    assert not path_filter.is_excluded(root_local)
    assert path_filter.is_excluded(root_log)


@pytest.mark.unit
def test_ignore_file_and_info_exclude_are_respected(tmp_path: Path) -> None:
    (tmp_path / ".git" / "info").mkdir(parents=True)
    _touch(tmp_path / ".git" / "info" / "exclude", "secret.txt\n")
    _touch(tmp_path / ".ignore", "generated/\n")
    secret = _touch(tmp_path / "secret.txt")
    generated = _touch(tmp_path / "generated" / "schema.rs")
    kept = _touch(tmp_path / "main.rs")

    path_filter = PathFilter(tmp_path)

    assert path_filter.is_excluded(secret)
    assert path_filter.is_excluded(generated)
    assert not path_filter.is_excluded(kept)


@pytest.mark.unit
def test_global_excludes_file_is_lowest_precedence(tmp_path: Path) -> None:
    global_file = _touch(tmp_path.parent / f"{tmp_path.name}-global-ignore", "*.tmp\n*.bak\n")
    root = tmp_path
    _touch(root / ".gitignore", "!wanted.bak\n")
    scratch = _touch(root / "scratch.tmp")
    wanted = _touch(root / "wanted.bak")

    path_filter = PathFilter(root, global_excludes=global_file)

    assert path_filter.is_excluded(scratch)
    assert not path_filter.is_excluded(wanted)
    assert not PathFilter(root).is_excluded(scratch)


@pytest.mark.unit
def test_gitignore_above_root_applies_within_repository(tmp_path: Path) -> None:
    (tmp_path / ".git").mkdir()
    _touch(tmp_path / ".gitignore", "*.gen.rs\n")
    generated = _touch(tmp_path / "crate" / "src" / "api.gen.rs")
    source = _touch(tmp_path / "crate" / "src" / "api.rs")

    path_filter = PathFilter(tmp_path / "crate")

    assert find_git_toplevel(tmp_path / "crate") == tmp_path
    assert path_filter.is_excluded(generated)
    assert not path_filter.is_excluded(source)


@pytest.mark.unit
def test_decisions_follow_live_filesystem(tmp_path: Path) -> None:
    target = _touch(tmp_path / "notes.md")
    path_filter = PathFilter(tmp_path)
    assert not path_filter.is_excluded(target)

    hidden_dir = tmp_path / ".drafts"
    hidden_dir.mkdir()
    moved = target.rename(hidden_dir / "notes.md")

    assert path_filter.is_excluded(moved)
