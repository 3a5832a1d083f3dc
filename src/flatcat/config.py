from __future__ import annotations

from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, Field, computed_field

FILENAME2LANG: dict[str, str] = {
    "CMakeLists.txt": "cmake",
    "Cargo.toml": "rust",
    "Dockerfile": "docker",
    "GNUmakefile": "make",
    "Makefile": "make",
    "build.gradle": "gradle",
    "go.mod": "go",
    "package.json": "node",
    "pyproject.toml": "toml",
    "requirements.txt": "txt",
}

EXT2LANG: dict[str, str] = {
    ".bash": "bash",
    ".c": "c",
    ".cc": "cpp",
    ".cfg": "ini",
    ".cmake": "cmake",
    ".conf": "ini",
    ".cpp": "cpp",
    ".cs": "csharp",
    ".css": "css",
    ".cu": "cuda",
    ".cuh": "cuda",
    ".cxx": "cpp",
    ".go": "go",
    ".h": "c",
    ".hh": "cpp",
    ".hpp": "cpp",
    ".hs": "haskell",
    ".htm": "html",
    ".html": "html",
    ".hxx": "cpp",
    ".ini": "ini",
    ".java": "java",
    ".js": "javascript",
    ".json": "json",
    ".jsx": "javascript",
    ".kt": "kotlin",
    ".lua": "lua",
    ".markdown": "markdown",
    ".md": "markdown",
    ".mjs": "javascript",
    ".php": "php",
    ".proto": "protobuf",
    ".py": "python",
    ".rb": "ruby",
    ".rs": "rust",
    ".scss": "scss",
    ".sh": "bash",
    ".sql": "sql",
    ".swift": "swift",
    ".toml": "toml",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".txt": "txt",
    ".xml": "xml",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".zig": "zig",
    ".zon": "zig",
    ".zsh": "bash",
}


class CommentSyntax(NamedTuple):
    """Line comment tokens used to annotate a fenced block with its source path."""

    prefix: str
    suffix: str | None = None


DEFAULT_COMMENT = CommentSyntax("//")

_SLASH = CommentSyntax("//")
_HASH = CommentSyntax("#")
_DASH = CommentSyntax("--")
_MARKUP = CommentSyntax("<!--", "-->")
_BLOCK = CommentSyntax("/*", "*/")

COMMENT_SYNTAX: dict[str, CommentSyntax] = {
    "c": _SLASH,
    "cpp": _SLASH,
    "csharp": _SLASH,
    "cuda": _SLASH,
    "go": _SLASH,
    "gradle": _SLASH,
    "java": _SLASH,
    "javascript": _SLASH,
    "json": _SLASH,
    "kotlin": _SLASH,
    "node": _SLASH,
    "php": _SLASH,
    "protobuf": _SLASH,
    "rust": _SLASH,
    "swift": _SLASH,
    "typescript": _SLASH,
    "zig": _SLASH,
    "bash": _HASH,
    "cmake": _HASH,
    "docker": _HASH,
    "ini": _HASH,
    "make": _HASH,
    "python": _HASH,
    "ruby": _HASH,
    "sh": _HASH,
    "toml": _HASH,
    "txt": _HASH,
    "yaml": _HASH,
    "yml": _HASH,
    "haskell": _DASH,
    "lua": _DASH,
    "sql": _DASH,
    "html": _MARKUP,
    "markdown": _MARKUP,
    "xml": _MARKUP,
    "css": _BLOCK,
    "scss": _BLOCK,
}

LOCK_FILES: frozenset[str] = frozenset(
    {
        "Cargo.lock",
        "Gemfile.lock",
        "Pipfile.lock",
        "bun.lockb",
        "composer.lock",
        "go.sum",
        "npm-shrinkwrap.json",
        "package-lock.json",
        "pnpm-lock.yaml",
        "poetry.lock",
        "uv.lock",
        "yarn.lock",
    },
)

# Vendored, generated or cache directories that are never part of the project.
DEFAULT_EXCLUDES: frozenset[str] = frozenset(
    {
        "__pycache__",
        "node_modules",
        "venv",
    },
)

IGNORE_FILENAMES: tuple[str, ...] = (".gitignore", ".ignore")


class RenderedChunk(BaseModel):
    """The fenced-block text for one file, keyed by its absolute path."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(..., description="Absolute path string, used as the sort key")
    display: str = Field(..., description="Root-relative POSIX path shown in the header")
    text: str = Field(..., description="Fully formatted fenced block")


class TreeRendering(BaseModel):
    """Lines of a rendered directory tree plus the running counters."""

    model_config = ConfigDict(frozen=True)

    lines: list[str] = Field(default_factory=list)
    directories: int = Field(default=1, ge=1, description="Directories visited, root included")
    files: int = Field(default=0, ge=0, description="Files visited")

    @computed_field
    @property
    def summary(self) -> str:
        """Return the ``"N directories, M files"`` footer."""
        return f"{self.directories} directories, {self.files} files"
