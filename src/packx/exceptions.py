from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path


class ExitCode(IntEnum):
    """Process exit statuses, one per outcome category so scripts can branch on them."""

    OK = 0
    INVALID_INPUT = 1
    NO_CANDIDATES = 2
    NO_MATCHES = 3
    UNEXPECTED = 99


@dataclass(frozen=True)
class PackxError(Exception):
    """Base exception for errors in the packx package."""

    message: str = "packx failed."

    @property
    def exit_code(self) -> ExitCode:
        return ExitCode.UNEXPECTED

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class InvalidInputError(PackxError):
    """Raised when the user supplied unusable arguments (no search terms, empty query, ...)."""

    message: str = "Invalid input."

    @property
    def exit_code(self) -> ExitCode:
        return ExitCode.INVALID_INPUT


@dataclass(frozen=True)
class ConfigFileError(InvalidInputError):
    """Raised when a search-config file cannot be read or parsed."""

    path: Path = Path()
    message: str = "Error reading config file."

    def __str__(self) -> str:
        return f"{self.message}: {self.path}"


@dataclass(frozen=True)
class ConfigTemplateExistsError(InvalidInputError):
    """Raised when `packx init` would overwrite an existing file."""

    path: Path = Path()
    message: str = "File already exists. Use a different name or delete the existing file."

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


@dataclass(frozen=True)
class NoCandidatesError(PackxError):
    """Raised when no file survives extension filtering in the given roots."""

    message: str = "No files found with the specified extensions in the given roots."

    @property
    def exit_code(self) -> ExitCode:
        return ExitCode.NO_CANDIDATES


@dataclass(frozen=True)
class NoMatchesError(PackxError):
    """Raised when candidate files exist but none contains the search strings."""

    candidates: int = 0
    message: str = "No files matched the given strings."

    @property
    def exit_code(self) -> ExitCode:
        return ExitCode.NO_MATCHES
