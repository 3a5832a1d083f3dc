from __future__ import annotations

from typing import TYPE_CHECKING

from flatcat.config import TreeRendering
from flatcat.file_manipulation import is_regular_file, list_children
from flatcat.logging import logger

if TYPE_CHECKING:
    from pathlib import Path

    from flatcat.filters import PathFilter

BRANCH = "├── "
LAST_BRANCH = "└── "
PIPE = "│   "
BLANK = "    "


def render_tree(root: Path, path_filter: PathFilter, root_name: str = ".") -> TreeRendering:
    """Build a visual tree of the directory structure under ``root``.

    Every level is listed fresh from the filesystem and filtered with the same
    rules as file selection, so the tree shows exactly what can be rendered.
    Directories come before files, each group sorted by name, and directory
    names carry a trailing ``/``.

    Args:
        root (Path): the directory to render
        path_filter (PathFilter): the exclusion rules
        root_name (str): the label of the first line

    Returns:
        TreeRendering: the tree lines with the directory count (root included)
            and the file count
    """
    lines: list[str] = [root_name]
    directories = 1
    files = 0

    def walk(directory: Path, prefix: str, ancestors: frozenset[Path]) -> None:
        nonlocal directories, files
        children = list_children(directory, path_filter)
        for idx, child in enumerate(children):
            last = idx == len(children) - 1
            branch = LAST_BRANCH if last else BRANCH
            if child.is_dir():
                real = child.resolve()
                if real in ancestors:
                    logger.warning("Skipping symlink cycle at %s", child)
                    continue
                directories += 1
                lines.append(f"{prefix}{branch}{child.name}/")
                walk(child, prefix + (BLANK if last else PIPE), ancestors | {real})
            elif is_regular_file(child):
                files += 1
                lines.append(f"{prefix}{branch}{child.name}")

    walk(root, "", frozenset({root.resolve()}))
    return TreeRendering(lines=lines, directories=directories, files=files)


def format_tree_block(rendering: TreeRendering) -> str:
    """Wrap a rendered tree in a ``text`` fenced block with its summary line.

    Args:
        rendering (TreeRendering): the rendered tree

    Returns:
        str: the block, followed by an empty line
    """
    body = "\n".join(rendering.lines)
    return f"Directory Structure:\n\n```text\n{body}\n\n{rendering.summary}\n```\n\n"
