from __future__ import annotations

from pathlib import Path
from typing import Annotated, Literal

from dotenv import dotenv_values, find_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

ENV_FILE = find_dotenv(usecwd=True)
_ENV = dotenv_values(ENV_FILE) if ENV_FILE else {}

DEFAULT_PATTERNS = ["**/*"]
DEFAULT_TOKEN_ENCODING = "cl100k_base"


class ExplicitFiles(BaseModel):
    """Select an explicit list of files, relative to the root or absolute."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["files"] = "files"
    files: list[str] = Field(..., min_length=1, description="Files to render.")


class GlobPatterns(BaseModel):
    """Select every file whose root-relative path matches any pattern."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["patterns"] = "patterns"
    patterns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_PATTERNS),
        min_length=1,
        description="Glob patterns matched against root-relative paths.",
    )


MatchSpec = Annotated[ExplicitFiles | GlobPatterns, Field(discriminator="kind")]


class Settings(BaseModel):
    """Configuration settings for a flatcat run."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    root: Path = Field(default_factory=Path.cwd, description="Root directory.")
    selection: MatchSpec = Field(
        default_factory=GlobPatterns,
        description="Explicit file list or glob patterns.",
    )
    no_tree: bool = Field(default=False, description="Do not print the directory tree.")
    parallel: bool = Field(default=False, description="Format file contents in parallel.")
    workers: int | None = Field(
        default=None,
        ge=1,
        description="Worker pool size in parallel mode; defaults to the CPU count.",
    )
    count_tokens: bool = Field(
        default=False,
        description="Report the token count of the output instead of printing it.",
    )
    ignore_tests: bool = Field(
        default=False,
        description="Skip Rust test files and strip test modules.",
    )
    output: Path | None = Field(default=None, description="Output file (stdout if unset).")
    log_file: str = Field(
        default=_ENV.get("FLATCAT_LOG_FILE") or "",
        description="Log file path.",
    )
    token_encoding: str = Field(
        default=_ENV.get("FLATCAT_TOKEN_ENCODING") or DEFAULT_TOKEN_ENCODING,
        description="tiktoken encoding used for token counting.",
    )
    no_default_excludes: bool = Field(
        default=False,
        description="Do not skip vendored and cache directories such as node_modules.",
    )
    no_global_ignore: bool = Field(
        default=False,
        description="Do not read the global git excludes file.",
    )

    @field_validator("root", mode="after")
    @classmethod
    def _absolute_root(cls, value: Path) -> Path:
        return value.expanduser().resolve()
