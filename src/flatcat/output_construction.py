from __future__ import annotations

import io
import os
import re
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import TYPE_CHECKING

from flatcat.config import COMMENT_SYNTAX, DEFAULT_COMMENT, EXT2LANG, FILENAME2LANG, CommentSyntax, RenderedChunk
from flatcat.file_manipulation import read_text, relpath, strip_test_modules
from flatcat.logging import logger

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

_BACKTICK_RUN_RE = re.compile(r"`+")


def determine_language(path: Path) -> str:
    """Determine the fence language tag of a file.

    The exact file name is looked up first (e.g. ``Makefile`` or
    ``Cargo.toml``), then the lower-cased extension.

    Args:
        path (Path): the file path to analyze

    Returns:
        str: the language tag, or "" if unknown
    """
    lang = FILENAME2LANG.get(path.name)
    if lang is not None:
        return lang
    return EXT2LANG.get(path.suffix.lower(), "")


def comment_syntax(language: str) -> CommentSyntax:
    """Return the comment tokens used for the header line of a language."""
    return COMMENT_SYNTAX.get(language, DEFAULT_COMMENT)


def choose_fence(text: str, min_len: int = 3) -> str:
    """Return a backtick fence longer than any backtick run found in ``text``."""
    longest = max((len(m.group(0)) for m in _BACKTICK_RUN_RE.finditer(text)), default=0)
    return "`" * max(min_len, longest + 1)


def render_block(display: str, content: str, language: str) -> str:
    """Wrap file content in an annotated fenced block.

    The block is the opening fence with the language tag, a comment line
    holding the display path, the content verbatim, the closing fence and
    an empty line.

    Args:
        display (str): the path shown in the header comment
        content (str): the file content
        language (str): the fence language tag

    Returns:
        str: the formatted block
    """
    syntax = comment_syntax(language)
    header = f"{syntax.prefix} {display}" if syntax.suffix is None else f"{syntax.prefix} {display} {syntax.suffix}"
    fence = choose_fence(content)
    out = io.StringIO()
    out.write(f"{fence}{language}\n")
    out.write(f"{header}\n")
    out.write(content)
    if content and not content.endswith("\n"):
        out.write("\n")
    out.write(f"{fence}\n\n")
    return out.getvalue()


def format_file(path: Path, *, root: Path, strip_tests: bool = False) -> RenderedChunk | None:
    """Read one file and render it as a fenced block.

    Args:
        path (Path): the absolute file path
        root (Path): the root directory, used for the display path
        strip_tests (bool): whether to remove embedded Rust test modules

    Returns:
        RenderedChunk | None: the rendered block keyed by the path string, or
            None if the file cannot be read as UTF-8 text
    """
    content = read_text(path)
    if content is None:
        return None
    language = determine_language(path)
    if strip_tests and language == "rust":
        content = strip_test_modules(content)
    display = relpath(path, root)
    return RenderedChunk(key=str(path), display=display, text=render_block(display, content, language))


def collect_chunks(
    paths: Sequence[Path],
    *,
    root: Path,
    parallel: bool = False,
    strip_tests: bool = False,
    workers: int | None = None,
) -> list[RenderedChunk]:
    """Format every selected file, sequentially or across a thread pool.

    Worker completion order is arbitrary; the chunks are always sorted by
    their key before being returned, so both modes give the same result.

    Args:
        paths (Sequence[Path]): the selected files
        root (Path): the root directory
        parallel (bool): whether to format files on a worker pool
        strip_tests (bool): whether to remove embedded Rust test modules
        workers (int | None): pool size; defaults to the CPU count

    Returns:
        list[RenderedChunk]: the rendered chunks sorted by key; unreadable
            files are left out
    """
    chunks: list[RenderedChunk] = []
    if parallel:
        max_workers = workers or os.cpu_count() or 1
        logger.info("Formatting %d files on %d workers", len(paths), max_workers)
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [executor.submit(format_file, p, root=root, strip_tests=strip_tests) for p in paths]
            for future in as_completed(futures):
                chunk = future.result()
                if chunk is not None:
                    chunks.append(chunk)
    else:
        for p in paths:
            chunk = format_file(p, root=root, strip_tests=strip_tests)
            if chunk is not None:
                chunks.append(chunk)
    return sorted(chunks, key=lambda c: c.key)


def build_content(chunks: Sequence[RenderedChunk]) -> str:
    """Concatenate rendered chunks in the given order."""
    out = io.StringIO()
    for chunk in chunks:
        out.write(chunk.text)
    return out.getvalue()
