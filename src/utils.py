"""Shared utility functions for the project bootstrapper.

Provides async command execution, the small pure helpers the templating step
consumes (random secrets, Postgres DSNs, bash escaping, current user), a scoped
working-directory change, and Rich-based progress reporting.
"""

from __future__ import annotations

import asyncio
import getpass
import os
import re
import secrets
import string
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.rule import Rule
from rich.table import Table

console = Console()

# ---------------------------------------------------------------------------
# Async command execution
# ---------------------------------------------------------------------------


async def run_command(
    cmd: list[str],
    cwd: str | Path | None = None,
    timeout: float | None = None,
    env: dict[str, str] | None = None,
) -> tuple[int, str]:
    """Run a command asynchronously and capture its combined output.

    Args:
        cmd: Program and arguments.  Never passed through a shell.
        cwd: Working directory for the child process.
        timeout: Maximum wall-clock seconds before the process is killed.
            ``None`` waits for as long as the process runs.
        env: Optional extra environment variables merged on top of ``os.environ``.

    Returns:
        A ``(returncode, output)`` tuple where *output* interleaves stdout and
        stderr.  A program that cannot be started yields return code 127
        (126 when it is not executable); a timed-out one yields -1 with the
        output read before the deadline followed by a timeout notice.
    """
    merged_env: dict[str, str] | None = None
    if env:
        merged_env = {**os.environ, **env}

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            cwd=str(cwd) if cwd else None,
            env=merged_env,
        )
    except OSError as exc:
        # A missing or unusable cwd surfaces here too, with the cwd as filename.
        culprit = exc.filename or cmd[0]
        if isinstance(exc, FileNotFoundError) and str(culprit) == cmd[0]:
            return (127, f"Command not found: {cmd[0]}")
        code = 126 if isinstance(exc, PermissionError) else 127
        return (code, f"Cannot execute {cmd[0]}: {exc.strerror or exc} ({culprit})")

    chunks: list[bytes] = []

    async def _collect() -> None:
        assert process.stdout is not None
        while True:
            chunk = await process.stdout.read(65536)
            if not chunk:
                break
            chunks.append(chunk)
        await process.wait()

    try:
        await asyncio.wait_for(_collect(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        partial = _decode(b"".join(chunks))
        notice = f"Command timed out after {timeout}s: {' '.join(cmd)}"
        return (-1, f"{partial}\n{notice}" if partial else notice)

    return (process.returncode or 0, _decode(b"".join(chunks)))


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace").strip()


# ---------------------------------------------------------------------------
# Scoped working directory
# ---------------------------------------------------------------------------


@contextmanager
def working_directory(path: str | Path) -> Iterator[Path]:
    """Temporarily change the process working directory.

    The previous directory is restored when the block exits, whether it
    finishes normally or raises.
    """
    previous = os.getcwd()
    os.chdir(path)
    try:
        yield Path(path)
    finally:
        os.chdir(previous)


# ---------------------------------------------------------------------------
# Value helpers for the placeholder map
# ---------------------------------------------------------------------------

_SECRET_ALPHABET = string.ascii_letters + string.digits
_BASH_SAFE = re.compile(r"[^A-Za-z0-9_@%+=:,./-]")


def random_string(length: int = 16) -> str:
    """Return a cryptographically random alphanumeric string."""
    return "".join(secrets.choice(_SECRET_ALPHABET) for _ in range(length))


def bash_escape(value: str) -> str:
    """Backslash-escape every character bash would treat specially.

    Examples::

        bash_escape("db?sslmode=disable") -> "db\\?sslmode=disable"
        bash_escape("plain-value")        -> "plain-value"
    """
    return _BASH_SAFE.sub(lambda m: "\\" + m.group(0), value)


def default_pg_dsn(
    db_name: str,
    user: str | None = None,
    host: str = "localhost",
    port: int = 5432,
    sslmode: str = "disable",
) -> str:
    """Build the Postgres DSN a freshly generated project connects with."""
    user = user if user is not None else current_user()
    return f"postgres://{user}@{host}:{port}/{db_name}?sslmode={sslmode}"


def current_user() -> str:
    """Return the login name of the invoking operating-system user."""
    return getpass.getuser()


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string.

    Examples::

        format_duration(3.7)    -> "3.7s"
        format_duration(65.2)   -> "1m 5s"
        format_duration(3661.0) -> "1h 1m 1s"
    """
    if seconds < 0:
        return "0.0s"

    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = seconds % 60

    parts: list[str] = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")

    if hours > 0 or minutes > 0:
        parts.append(f"{int(secs)}s")
    else:
        parts.append(f"{secs:.1f}s")

    return " ".join(parts)


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_stage_header(name: str, color: str = "bright_cyan") -> None:
    """Print a full-width rule announcing a bootstrap stage."""
    console.print()
    console.print(Rule(f"[bold {color}] {name} [/bold {color}]", style=color))


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table.

    Args:
        data: Mapping of label -> value.
        title: Table title.
    """
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def print_output(output: str) -> None:
    """Print captured process output, dimmed, if there is any."""
    if output:
        console.print(output, style="dim", markup=False, highlight=False)


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{escape(message)}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{escape(message)}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{escape(message)}[/bold yellow]")
