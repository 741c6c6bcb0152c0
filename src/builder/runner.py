"""External process execution for pipeline steps.

``ProcessRunner`` is the only place the pipeline touches real subprocesses.
Tests hand the orchestrator a fake with the same ``run`` coroutine instead.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from src.utils import run_command


@dataclass
class ProcessOutcome:
    """Result of one external command."""

    exit_code: int
    output: str = ""
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.exit_code == 0


class Runner(Protocol):
    async def run(
        self,
        command: str,
        args: list[str],
        cwd: str | Path,
        timeout: float | None = None,
    ) -> ProcessOutcome: ...


class ProcessRunner:
    """Runs commands as real subprocesses with combined stdout/stderr."""

    def __init__(self, env: dict[str, str] | None = None) -> None:
        self.env = env

    async def run(
        self,
        command: str,
        args: list[str],
        cwd: str | Path,
        timeout: float | None = None,
    ) -> ProcessOutcome:
        start = time.monotonic()
        exit_code, output = await run_command(
            [command, *args], cwd=cwd, timeout=timeout, env=self.env
        )
        return ProcessOutcome(
            exit_code=exit_code,
            output=output,
            duration_seconds=time.monotonic() - start,
        )
