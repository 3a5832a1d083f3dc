from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class FlatcatError(Exception):
    """Base exception for errors in the flatcat package."""


@dataclass(frozen=True)
class InvalidPatternError(FlatcatError):
    """Raised when a glob pattern cannot be compiled."""

    pattern: str
    reason: str

    def __str__(self) -> str:
        return f"Invalid glob pattern '{self.pattern}': {self.reason}"


@dataclass(frozen=True)
class InvalidFileError(FlatcatError):
    """Raised when an explicitly requested file cannot be selected."""

    path: Path
    message: str = "is not a valid file."

    def __str__(self) -> str:
        return f"'{self.path}' {self.message}"


@dataclass(frozen=True)
class RootNotADirectoryError(FlatcatError):
    """Raised when the configured root is not an existing directory."""

    root: Path
    message: str = "The specified root is not a directory."
