"""
aship Error Classes.

All custom exceptions for clear error handling and exit codes.
The CLI maps each class to the exit code it carries.
"""

from __future__ import annotations

import enum
from typing import List, Optional, Sequence


class ExitCode(enum.IntEnum):
    """Process exit codes used by the aship CLI."""

    SUCCESS = 0
    GENERIC_ERROR = 1
    RUN_FAILED = 2
    PARSE_ERROR = 3
    CONFLICT = 4
    NOT_FOUND = 5
    KEYBOARD_INTERRUPT = 130


class AshipError(Exception):
    """Base exception for all aship errors."""

    exit_code: int = ExitCode.GENERIC_ERROR

    def __init__(self, message: str, details: str | None = None) -> None:
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}\n  Details: {self.details}"
        return self.message


class NotFoundError(AshipError):
    """A named host (or other record) does not exist."""

    exit_code: int = ExitCode.NOT_FOUND

    def __init__(self, name: str, kind: str = "Host") -> None:
        self.name = name
        self.kind = kind
        super().__init__(f'{kind} "{name}" not found')


class DuplicateNameError(AshipError):
    """A host with the same name is already registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            f'Host "{name}" already exists',
            "Use --force to replace it or pick another --name",
        )


class ValidationError(AshipError):
    """Data failed schema validation."""

    exit_code: int = ExitCode.PARSE_ERROR

    def __init__(self, message: str, errors: Sequence[str] = ()) -> None:
        self.errors: List[str] = list(errors)
        super().__init__(message, "; ".join(self.errors) if self.errors else None)


class InvalidFilterPatternError(AshipError):
    """A host filter is not a valid regular expression."""

    exit_code: int = ExitCode.PARSE_ERROR

    def __init__(self, pattern: str, reason: str) -> None:
        self.pattern = pattern
        super().__init__(f"Invalid filter pattern: {pattern}", reason)


class ParseError(AshipError):
    """Error parsing an inventory, host file or project file."""

    exit_code: int = ExitCode.PARSE_ERROR

    def __init__(
        self,
        message: str,
        file_path: str | None = None,
        details: str | None = None,
    ) -> None:
        self.file_path = file_path
        location = f" in {file_path}" if file_path else ""
        super().__init__(f"Parse error{location}: {message}", details)


class UnparseableInventoryError(ParseError):
    """Inventory text is neither valid JSON nor valid YAML."""

    def __init__(self, file_path: str | None = None, details: str | None = None) -> None:
        super().__init__("inventory is neither valid JSON nor YAML", file_path, details)


class ProjectConfigError(ParseError):
    """aship.yml is missing or invalid."""


class ConflictDetectedError(AshipError):
    """Injection would overwrite hosts already present in the target."""

    exit_code: int = ExitCode.CONFLICT

    def __init__(self, conflicts: Sequence[str]) -> None:
        self.conflicts: List[str] = list(conflicts)
        super().__init__(
            f"Conflicts detected for hosts: {', '.join(self.conflicts)}. "
            "Use --force to overwrite."
        )


class CorruptStoreError(AshipError):
    """A backing JSON store failed to parse or validate."""

    def __init__(self, path: str, reason: str, errors: Optional[Sequence[str]] = None) -> None:
        self.path = path
        self.errors: List[str] = list(errors or [])
        details = "; ".join(self.errors) if self.errors else None
        super().__init__(f"Corrupt store {path}: {reason}", details)
