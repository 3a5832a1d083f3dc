from __future__ import annotations

import sys
from typing import TYPE_CHECKING, TextIO

from flatcat.config import DEFAULT_EXCLUDES
from flatcat.exceptions import RootNotADirectoryError
from flatcat.file_manipulation import select_files
from flatcat.filters import PathFilter, find_global_excludes_file
from flatcat.logging import logger
from flatcat.output_construction import build_content, collect_chunks
from flatcat.tokens import count_tokens
from flatcat.tree import format_tree_block, render_tree

if TYPE_CHECKING:
    from pathlib import Path

    from flatcat.settings import Settings


def make_path_filter(settings: Settings) -> PathFilter:
    """Build the exclusion rules for one run from the settings."""
    return PathFilter(
        settings.root,
        default_excludes=() if settings.no_default_excludes else DEFAULT_EXCLUDES,
        global_excludes=None if settings.no_global_ignore else find_global_excludes_file(),
    )


def select(settings: Settings, path_filter: PathFilter) -> list[Path]:
    """Run the selector configured by ``settings``.

    Raises:
        RootNotADirectoryError: if the root does not exist or is not a directory
        InvalidPatternError: if the single configured glob pattern is invalid
    """
    if not settings.root.is_dir():
        raise RootNotADirectoryError(root=settings.root)
    return select_files(settings.root, settings.selection, path_filter, ignore_tests=settings.ignore_tests)


def flatten(settings: Settings) -> tuple[str, str]:
    """Produce the tree block and the concatenated content for one run.

    Returns:
        tuple[str, str]: the tree block ("" when disabled) and the content buffer
    """
    path_filter = make_path_filter(settings)
    selected = select(settings, path_filter)
    logger.info("Selected %d files under %s", len(selected), settings.root)

    tree = "" if settings.no_tree else format_tree_block(render_tree(settings.root, path_filter))

    chunks = collect_chunks(
        selected,
        root=settings.root,
        parallel=settings.parallel,
        strip_tests=settings.ignore_tests,
        workers=settings.workers,
    )
    return tree, build_content(chunks)


def run(settings: Settings, stdout: TextIO | None = None, stderr: TextIO | None = None) -> None:
    """Run the whole pipeline and write its results.

    The tree block and the content go to ``stdout`` (or to ``settings.output``).
    When token counting is enabled the content is not written; only the token
    count of the content is reported on ``stderr``.

    Args:
        settings (Settings): the run configuration
        stdout (TextIO | None): the output stream, ``sys.stdout`` by default
        stderr (TextIO | None): the diagnostic stream, ``sys.stderr`` by default
    """
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr

    tree, content = flatten(settings)
    payload = tree if settings.count_tokens else tree + content

    if settings.output is not None:
        with settings.output.open("w", encoding="utf-8", newline="") as f:
            f.write(payload)
    else:
        stdout.write(payload)
        stdout.flush()

    if settings.count_tokens:
        stderr.write(f"Token count: {count_tokens(content, settings.token_encoding)}\n")
