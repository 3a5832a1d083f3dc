from __future__ import annotations

import re
import stat
from pathlib import Path
from typing import TYPE_CHECKING

import pathspec

from flatcat.exceptions import InvalidFileError, InvalidPatternError
from flatcat.logging import logger
from flatcat.settings import ExplicitFiles

if TYPE_CHECKING:
    from collections.abc import Sequence

    from flatcat.filters import PathFilter
    from flatcat.settings import GlobPatterns

CFG_TEST_MARKER = "#[cfg(test)]"
_TEST_MODULE = re.compile(r"\s*(?:pub(?:\([^)]*\))?\s+)?mod\s+tests\b\s*")
_SEPARATORS = re.compile(r"[\\/]")


def relpath(path: Path, root: Path) -> str:
    """Send the relative path of path from root.

    Args:
        path (Path): the path to "relativise"
        root (Path): the root to relativise from

    Returns:
        str: the relative path from root to path, with POSIX separators.
            If path is not under root, returns the original path as a string.
    """
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return str(path)


def is_regular_file(path: Path) -> bool:
    """Check if a file is regular.

    Args:
        path (Path): path to test.

    Returns:
        bool: True if the file is regular, False otherwise.
    """
    try:
        st = path.stat()
        return stat.S_ISREG(st.st_mode)
    except OSError:
        return False


def read_text(path: Path) -> str | None:
    """Read a whole file as UTF-8 text, byte for byte.

    Line endings are preserved; nothing is normalised.

    Args:
        path (Path): the file to read

    Returns:
        str | None: the decoded content, or None if the file is unreadable or not UTF-8
    """
    try:
        return path.read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.debug("Dropping unreadable file %s: %s", path, e)
        return None


def tree_sort_key(path: Path) -> tuple[int, str]:
    """Sort key placing directories before files, each group by name."""
    return (0 if path.is_dir() else 1, path.name)


def list_children(directory: Path, path_filter: PathFilter) -> list[Path]:
    """List the non-excluded entries of a directory, directories first.

    Args:
        directory (Path): the directory to list
        path_filter (PathFilter): the exclusion rules to apply to every entry

    Returns:
        list[Path]: the sorted children; empty if the directory cannot be read
    """
    try:
        entries = list(directory.iterdir())
    except OSError as e:
        logger.warning("Error reading directory entry %s: %s", directory, e)
        return []
    children = [entry for entry in entries if not path_filter.is_excluded(entry)]
    return sorted(children, key=tree_sort_key)


def walk_files(root: Path, path_filter: PathFilter) -> list[Path]:
    """Recursively collect the regular files under ``root`` that are not excluded.

    Excluded directories are pruned. Symbolic links are followed; a link back
    to one of its own ancestors is skipped to break the cycle.

    Args:
        root (Path): the root directory to walk
        path_filter (PathFilter): the exclusion rules

    Returns:
        list[Path]: the files found, in traversal order
    """
    results: list[Path] = []

    def walk(directory: Path, ancestors: frozenset[Path]) -> None:
        for child in list_children(directory, path_filter):
            if child.is_dir():
                real = child.resolve()
                if real in ancestors:
                    logger.warning("Skipping symlink cycle at %s", child)
                    continue
                walk(child, ancestors | {real})
            elif is_regular_file(child):
                results.append(child)

    walk(root, frozenset({root.resolve()}))
    return results


def glob_syntax_error(pattern: str) -> str | None:
    """Check a glob pattern for syntax the matcher would silently accept.

    Args:
        pattern (str): the glob pattern as typed by the user

    Returns:
        str | None: why the pattern is invalid, or None if it is valid
    """
    if (len(pattern) - len(pattern.rstrip("\\"))) % 2:
        return "dangling escape at end of pattern"
    if "***" in pattern:
        return "more than two consecutive '*'"
    for segment in _SEPARATORS.split(pattern):
        if "**" in segment and segment != "**":
            return "'**' must be a whole path segment"
    i, n = 0, len(pattern)
    while i < n:
        c = pattern[i]
        if c == "\\":
            i += 2
            continue
        if c == "[":
            j = i + 1
            if j < n and pattern[j] in "!^":
                j += 1
            if j < n and pattern[j] == "]":
                j += 1
            close = pattern.find("]", j)
            if close < 0:
                return "unclosed '['"
            i = close
        i += 1
    return None


def compile_patterns(patterns: Sequence[str]) -> list[pathspec.GitIgnoreSpec]:
    """Compile glob patterns, one matcher per pattern.

    Patterns use gitignore wildmatch syntax: ``**`` spans any number of
    directories and a pattern without a slash matches at any depth. Blank
    patterns are skipped and backslashes are read as path separators once the
    pattern has been validated.

    Args:
        patterns (Sequence[str]): the glob patterns to compile

    Raises:
        InvalidPatternError: if the only pattern given is invalid

    Returns:
        list[pathspec.GitIgnoreSpec]: the compiled patterns; invalid ones are
            dropped with a warning when more than one pattern is given
    """
    cleaned = [p.strip() for p in patterns if p and p.strip()]
    compiled: list[pathspec.GitIgnoreSpec] = []
    for pattern in cleaned:
        try:
            compiled.append(_compile_one(pattern))
        except InvalidPatternError as error:
            if len(cleaned) == 1:
                raise
            logger.warning(str(error))
    return compiled


def _compile_one(pattern: str) -> pathspec.GitIgnoreSpec:
    reason = glob_syntax_error(pattern)
    if reason is not None:
        raise InvalidPatternError(pattern=pattern, reason=reason)
    try:
        spec = pathspec.GitIgnoreSpec.from_lines([pattern.replace("\\", "/")])
    except ValueError as e:
        raise InvalidPatternError(pattern=pattern, reason=str(e)) from e
    # comments and bare negations compile to patterns that never select anything
    if not any(p.include for p in spec.patterns):
        raise InvalidPatternError(pattern=pattern, reason="pattern can never select a file")
    return spec


def match_any_pattern(rel: str, specs: Sequence[pathspec.GitIgnoreSpec]) -> bool:
    """Check if a relative path matches any of the compiled patterns.

    Args:
        rel (str): the root-relative POSIX path to check
        specs (Sequence[pathspec.GitIgnoreSpec]): the compiled patterns

    Returns:
        bool: True if `rel` matches any pattern, False otherwise
    """
    return any(spec.match_file(rel) for spec in specs)


def is_test_file(path: Path, root: Path) -> bool:
    """Determine if a path is a Rust test file.

    A ``.rs`` file is a test file when it is named ``tests.rs`` or ends with
    ``_test.rs``, or when it lives under a directory named ``tests`` below the root.

    Args:
        path (Path): the file path to check
        root (Path): the root directory

    Returns:
        bool: True if the file only holds tests
    """
    if path.suffix != ".rs":
        return False
    if path.name == "tests.rs" or path.name.endswith("_test.rs"):
        return True
    try:
        parents = path.relative_to(root).parts[:-1]
    except ValueError:
        parents = path.parts[:-1]
    return "tests" in parents


def strip_test_modules(source: str) -> str:
    """Remove ``#[cfg(test)] mod tests { ... }`` blocks from Rust source.

    The scan is iterative: find the marker, expect an optional visibility and
    ``mod tests`` after it, expect an opening brace, then track brace depth
    until the matching closing brace. Everything from the marker through that
    brace is dropped. A marker that is not followed by a test module with a
    body is dropped on its own and scanning resumes right after it. Braces
    inside strings or comments are counted like any other brace.

    Args:
        source (str): the Rust source text

    Returns:
        str: the source without its embedded test modules
    """
    out: list[str] = []
    i = 0
    n = len(source)
    while i < n:
        start = source.find(CFG_TEST_MARKER, i)
        if start == -1:
            out.append(source[i:])
            break
        out.append(source[i:start])
        after_marker = start + len(CFG_TEST_MARKER)

        module = _TEST_MODULE.match(source, after_marker)
        if module is None or not source.startswith("{", module.end()):
            i = after_marker
            continue

        depth = 0
        j = module.end()
        while j < n:
            ch = source[j]
            j += 1
            if ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    break
        i = j
    return "".join(out)


def finalize_selection(paths: Sequence[Path]) -> list[Path]:
    """Deduplicate paths and sort them by their full path string."""
    return sorted(set(paths), key=str)


def select_explicit_files(
    root: Path,
    files: Sequence[str],
    path_filter: PathFilter,
    *,
    ignore_tests: bool = False,
) -> list[Path]:
    """Resolve an explicit list of files against the root.

    Invalid entries (missing, not a regular file, outside the root) are
    reported as warnings and skipped; excluded entries are skipped silently.

    Args:
        root (Path): the root directory
        files (Sequence[str]): file paths relative to the root, or absolute
        path_filter (PathFilter): the exclusion rules
        ignore_tests (bool): whether to skip Rust test files

    Returns:
        list[Path]: the selected files, deduplicated and sorted
    """
    selected: list[Path] = []
    for raw in files:
        candidate = Path(raw).expanduser()
        if not candidate.is_absolute():
            candidate = root / candidate
        try:
            full = candidate.resolve(strict=True)
        except (OSError, RuntimeError):
            logger.warning(str(InvalidFileError(path=candidate)))
            continue
        if not is_regular_file(full):
            logger.warning(str(InvalidFileError(path=full)))
            continue
        if not full.is_relative_to(root):
            logger.warning(str(InvalidFileError(path=full, message="is outside the root directory.")))
            continue
        if path_filter.is_excluded(full):
            continue
        if ignore_tests and is_test_file(full, root):
            continue
        selected.append(full)
    return finalize_selection(selected)


def select_glob_files(
    root: Path,
    patterns: Sequence[str],
    path_filter: PathFilter,
    *,
    ignore_tests: bool = False,
) -> list[Path]:
    """Select every non-excluded file whose root-relative path matches a pattern.

    Args:
        root (Path): the root directory
        patterns (Sequence[str]): glob patterns, combined with a logical OR
        path_filter (PathFilter): the exclusion rules
        ignore_tests (bool): whether to skip Rust test files

    Raises:
        InvalidPatternError: if a single pattern is given and it is invalid

    Returns:
        list[Path]: the selected files, deduplicated and sorted
    """
    specs = compile_patterns(patterns)
    selected: list[Path] = []
    for path in walk_files(root, path_filter):
        if ignore_tests and is_test_file(path, root):
            continue
        if match_any_pattern(relpath(path, root), specs):
            selected.append(path)
    return finalize_selection(selected)


def select_files(
    root: Path,
    selection: ExplicitFiles | GlobPatterns,
    path_filter: PathFilter,
    *,
    ignore_tests: bool = False,
) -> list[Path]:
    """Dispatch to explicit-file or glob selection depending on the selection kind."""
    if isinstance(selection, ExplicitFiles):
        return select_explicit_files(root, selection.files, path_filter, ignore_tests=ignore_tests)
    return select_glob_files(root, selection.patterns, path_filter, ignore_tests=ignore_tests)
