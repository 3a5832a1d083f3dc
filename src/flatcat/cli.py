"""
flatcat: flatten a project directory into one annotated text stream.

Overview
--------
Selects files under a root directory, either from an explicit list
(``--files``) or by glob patterns matched against root-relative paths
(``--patterns``), prints a directory tree, then every selected file as a
fenced code block headed by a comment with its path.

Hidden entries, lock files, vendored directories (``node_modules``...) and
anything ignored by ``.gitignore`` / ``.ignore`` files or the global git
excludes never appear, neither in the tree nor in the content.

Usage
-----
Run `python -m flatcat.cli --help` for full options. Common examples:
    - Every Rust source file, without tests:
        flatcat --dir . --patterns "**/*.rs" --ignore-tests

    - Two specific files, no tree:
        flatcat --files src/main.rs Cargo.toml --no-tree

    - Only report the token count of the output:
        flatcat --patterns "*.go" "*.md" --count-tokens
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from flatcat import __version__
from flatcat.exceptions import InvalidPatternError, RootNotADirectoryError
from flatcat.logging import setup_logging
from flatcat.pipeline import run
from flatcat.settings import DEFAULT_PATTERNS, ExplicitFiles, GlobPatterns, Settings

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = setup_logging()

EXIT_ROOT_ERROR = 1
EXIT_INVALID_PATTERN = 2


def parse_args(argv: Sequence[str] | None = None) -> Settings:
    p = argparse.ArgumentParser(
        prog="flatcat",
        description="Flatten a directory into fenced code blocks for LLM consumption.",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("-d", "--dir", type=str, default=".", help="Root directory.")

    scope = p.add_mutually_exclusive_group()
    scope.add_argument(
        "-p",
        "--patterns",
        nargs="+",
        metavar="GLOB",
        default=None,
        help="Glob patterns to match (default: **/*).",
    )
    scope.add_argument(
        "-f",
        "--files",
        nargs="+",
        metavar="FILE",
        default=None,
        help="List of specific files, relative to the root.",
    )

    p.add_argument("--no-tree", action="store_true", help="Disable printing of directory tree structure.")
    p.add_argument("--parallel", action="store_true", help="Enable parallel processing of file contents.")
    p.add_argument("--workers", type=int, default=None, help="Worker count for --parallel.")
    p.add_argument(
        "--count-tokens",
        action="store_true",
        help="Print the number of tokens in the output instead of the output.",
    )
    p.add_argument(
        "--ignore-tests",
        action="store_true",
        help="Ignore Rust test files and strip test modules.",
    )
    p.add_argument("-o", "--output", type=str, default="", help="Output file (default: stdout).")
    p.add_argument("--log-file", type=str, default=None, help="Log file path.")
    p.add_argument("--encoding", type=str, default=None, help="tiktoken encoding for --count-tokens.")
    p.add_argument(
        "--no-default-excludes",
        action="store_true",
        help="Do not skip node_modules, __pycache__ and venv directories.",
    )
    p.add_argument(
        "--no-global-ignore",
        action="store_true",
        help="Do not read the global git excludes file.",
    )
    args = p.parse_args(argv)

    if args.files:
        selection: ExplicitFiles | GlobPatterns = ExplicitFiles(files=args.files)
    else:
        selection = GlobPatterns(patterns=args.patterns or list(DEFAULT_PATTERNS))

    overrides: dict[str, str] = {}
    if args.log_file is not None:
        overrides["log_file"] = args.log_file
    if args.encoding is not None:
        overrides["token_encoding"] = args.encoding

    return Settings(
        root=Path(args.dir),
        selection=selection,
        no_tree=args.no_tree,
        parallel=args.parallel,
        workers=args.workers,
        count_tokens=args.count_tokens,
        ignore_tests=args.ignore_tests,
        output=Path(args.output) if args.output else None,
        no_default_excludes=args.no_default_excludes,
        no_global_ignore=args.no_global_ignore,
        **overrides,
    )


def main(argv: Sequence[str] | None = None) -> int:
    settings = parse_args(argv)
    if settings.log_file:
        setup_logging(settings.log_file)

    try:
        run(settings)
    except InvalidPatternError as e:
        logger.error(str(e))
        print(str(e), file=sys.stderr)
        return EXIT_INVALID_PATTERN
    except RootNotADirectoryError as e:
        logger.error("%s: %s", e.message, e.root)
        print(f"{e.message}: {e.root}", file=sys.stderr)
        return EXIT_ROOT_ERROR
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
