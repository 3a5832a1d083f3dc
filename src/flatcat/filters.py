"""Layered exclusion rules shared by file selection and tree rendering.

A path below the root is excluded when any entry on its way down from the
root is excluded. An entry is excluded, in order, when it is a lock file, when
its name is hidden (starts with a dot), when its name is one of the default
excludes, or when the gitignore-style rules in effect for its directory ignore
it.
"""

from __future__ import annotations

import os
import shutil
import subprocess  # noqa: S404
from pathlib import Path
from typing import TYPE_CHECKING

import pathspec

from flatcat.config import DEFAULT_EXCLUDES, IGNORE_FILENAMES, LOCK_FILES
from flatcat.logging import logger

if TYPE_CHECKING:
    from collections.abc import Iterable


def is_lock_file(name: str) -> bool:
    """Check if a file name designates a dependency lock file.

    Args:
        name (str): the base name of the file

    Returns:
        bool: True if the name ends with ``.lock`` or is a known lock file name
    """
    return name.endswith(".lock") or name in LOCK_FILES


def is_hidden(name: str) -> bool:
    return name.startswith(".")


def find_git_toplevel(start: Path) -> Path | None:
    """Return the closest directory at or above ``start`` that holds a ``.git`` entry."""
    for candidate in (start, *start.parents):
        if (candidate / ".git").exists():
            return candidate
    return None


def find_global_excludes_file() -> Path | None:
    """Locate the user's global git excludes file.

    Uses ``git config core.excludesFile`` when git is available and falls back
    to the XDG default location (``$XDG_CONFIG_HOME/git/ignore``).

    Returns:
        Path | None: the excludes file, or None if none exists
    """
    if shutil.which("git") is not None:
        try:
            out = subprocess.run(
                ["git", "config", "--get", "core.excludesFile"],  # noqa: S607
                text=True,
                capture_output=True,
                check=False,
            )
        except OSError as e:
            logger.warning("git config failed: %s", e)
        else:
            configured = out.stdout.strip()
            if configured:
                path = Path(configured).expanduser()
                return path if path.is_file() else None

    xdg = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    path = Path(xdg) / "git" / "ignore"
    return path if path.is_file() else None


def _read_lines(path: Path) -> list[str]:
    try:
        return path.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError:
        return []


def _compile(lines: Iterable[str], source: Path) -> pathspec.GitIgnoreSpec | None:
    lines = list(lines)
    if not lines:
        return None
    try:
        return pathspec.GitIgnoreSpec.from_lines(lines)
    except ValueError as e:
        logger.warning("Ignoring unparsable ignore file %s: %s", source, e)
        return None


class IgnoreRules:
    """Gitignore-style rules in effect below a root directory.

    Ignore files are parsed lazily and memoised for the lifetime of the
    instance. Create one instance per run; never persist it.
    """

    def __init__(self, root: Path, *, global_excludes: Path | None = None) -> None:
        self.root = root
        self.toplevel = find_git_toplevel(root) or root
        self._dir_specs: dict[Path, pathspec.GitIgnoreSpec | None] = {}

        repo_lines: list[str] = []
        if global_excludes is not None:
            repo_lines.extend(_read_lines(global_excludes))
        repo_lines.extend(_read_lines(self.toplevel / ".git" / "info" / "exclude"))
        self._repo_spec = _compile(repo_lines, self.toplevel)

    def _spec_for(self, directory: Path) -> pathspec.GitIgnoreSpec | None:
        if directory not in self._dir_specs:
            lines: list[str] = []
            # .ignore files take precedence over .gitignore in the same directory.
            for name in IGNORE_FILENAMES:
                lines.extend(_read_lines(directory / name))
            self._dir_specs[directory] = _compile(lines, directory)
        return self._dir_specs[directory]

    def _bases(self, parent: Path) -> list[Path]:
        """Directories whose ignore files apply to entries of ``parent``, shallowest first."""
        chain = [parent, *parent.parents]
        bases: list[Path] = []
        for directory in chain:
            bases.append(directory)
            if directory == self.toplevel:
                break
        else:
            return [parent]
        bases.reverse()
        return bases

    def is_ignored(self, entry: Path, *, is_dir: bool) -> bool:
        """Check a single entry against every ignore source, deepest source winning.

        Args:
            entry (Path): absolute path of the entry, below the root
            is_dir (bool): whether the entry is a directory

        Returns:
            bool: True if the entry is ignored
        """
        suffix = "/" if is_dir else ""
        decision: bool | None = None

        if self._repo_spec is not None:
            rel = entry.relative_to(self.toplevel).as_posix() + suffix
            decision = _check(self._repo_spec, rel, decision)

        for base in self._bases(entry.parent):
            spec = self._spec_for(base)
            if spec is None:
                continue
            rel = entry.relative_to(base).as_posix() + suffix
            decision = _check(spec, rel, decision)

        return bool(decision)


def _check(spec: pathspec.GitIgnoreSpec, rel: str, current: bool | None) -> bool | None:
    result = spec.check_file(rel)
    return current if result.include is None else result.include


class PathFilter:
    """Decide whether a path below ``root`` is excluded from the output.

    The same instance is shared by the selector and the tree renderer so that
    both agree on what exists.
    """

    def __init__(
        self,
        root: Path,
        *,
        default_excludes: Iterable[str] = DEFAULT_EXCLUDES,
        global_excludes: Path | None = None,
    ) -> None:
        self.root = root
        self.default_excludes = frozenset(default_excludes)
        self.ignore_rules = IgnoreRules(root, global_excludes=global_excludes)

    def _entry_excluded(self, entry: Path, *, is_dir: bool) -> bool:
        name = entry.name
        if is_lock_file(name):
            return True
        if is_hidden(name):
            return True
        if name in self.default_excludes:
            return True
        return self.ignore_rules.is_ignored(entry, is_dir=is_dir)

    def is_excluded(self, path: Path) -> bool:
        """Check whether ``path`` or any of its ancestors below the root is excluded.

        Paths outside the root are always excluded; the root itself never is.

        Args:
            path (Path): absolute path to test

        Returns:
            bool: True if the path must not appear in the tree or the output
        """
        try:
            parts = path.relative_to(self.root).parts
        except ValueError:
            return True

        entry = self.root
        for depth, part in enumerate(parts, start=1):
            entry = entry / part
            is_dir = depth < len(parts) or entry.is_dir()
            if self._entry_excluded(entry, is_dir=is_dir):
                return True
        return False
