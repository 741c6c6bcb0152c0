"""Error taxonomy for the project bootstrapper.

Every error that aborts a run derives from ``BootstrapError`` so the CLI entry
point can report it and exit non-zero in one place.  ``ProcessWarning`` is the
odd one out: it is a plain record describing a tolerated step failure and is
never raised.
"""

from __future__ import annotations

from dataclasses import dataclass


class BootstrapError(Exception):
    """Base class for all fatal bootstrap errors."""


class ConfigError(BootstrapError):
    """Raised for missing or invalid input (no directory, empty root list)."""


class PathFormatError(BootstrapError):
    """Raised when the project path has fewer than three segments."""

    def __init__(self, path: str, segments: int) -> None:
        self.path = path
        self.segments = segments
        super().__init__(
            f"Project path '{path}' has {segments} segment(s); expected at least 3 "
            "(<repo>/<owner>/<project>)"
        )


class MaterializeError(BootstrapError, OSError):
    """Raised when the target cannot be created or the template cannot be copied."""

    def __init__(self, message: str, path: str = "") -> None:
        self.path = path
        super().__init__(message)

    def __str__(self) -> str:
        return self.args[0] if self.args else ""


class SubstitutionError(BootstrapError):
    """Raised when a templated file cannot be read or written back."""

    def __init__(self, message: str, path: str = "") -> None:
        self.path = path
        super().__init__(message)


class ProcessError(BootstrapError):
    """Raised when a fatal pipeline step fails."""

    def __init__(
        self,
        step: str,
        command: str,
        output: str = "",
        exit_code: int = -1,
    ) -> None:
        self.step = step
        self.command = command
        self.output = output
        self.exit_code = exit_code
        super().__init__(f"Step '{step}' failed (exit {exit_code}): {command}")


@dataclass
class ProcessWarning:
    """Record of a tolerated step that did not succeed."""

    step: str
    command: str
    output: str = ""
    exit_code: int = -1

    def __str__(self) -> str:
        return f"Step '{self.step}' failed (exit {self.exit_code}), continuing: {self.command}"
