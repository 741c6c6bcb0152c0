"""Project bootstrapper builder module.

Runs the external tools that turn a templated tree into a built, tested
project.

Key classes:
    ProcessRunner   - Real subprocess execution with combined output
    ProcessOutcome  - Exit code, output and duration of one command
"""

from .runner import ProcessOutcome, ProcessRunner, Runner

__all__ = [
    "ProcessOutcome",
    "ProcessRunner",
    "Runner",
]
