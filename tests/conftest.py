"""Shared pytest fixtures for the project bootstrapper test suite.

Provides reusable fixtures for:
- A fake root (``$GOPATH``) with a blank template laid out beneath it
- A recording fake process runner with programmable failures
- A ``Config`` pointing at the fake root
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from src.builder import ProcessOutcome
from src.config import DEFAULT_TEMPLATE_SUBPATH, Config
from src.utils import console


@pytest.fixture(autouse=True)
def wide_console(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep Rich from wrapping diagnostics that tests assert on."""
    monkeypatch.setattr(console, "width", 240)


# ---------------------------------------------------------------------------
# Blank template
# ---------------------------------------------------------------------------

MAIN_GO = """package main

// $GO_BOOTSTRAP_REPO_NAME/$GO_BOOTSTRAP_REPO_USER/$GO_BOOTSTRAP_PROJECT_NAME
func main() {
	secret := "$GO_BOOTSTRAP_COOKIE_SECRET"
	dsn := "$GO_BOOTSTRAP_PG_DSN"
	_ = secret
	_ = dsn
}
"""

DB_BOOTSTRAP = """#!/usr/bin/env bash
createdb $GO_BOOTSTRAP_PROJECT_NAME
createdb $GO_BOOTSTRAP_PROJECT_NAME-test
migrate -url $GO_BOOTSTRAP_ESCAPED_PG_DSN -path ./migrations up
migrate -url $GO_BOOTSTRAP_ESCAPED_PG_TEST_DSN -path ./migrations up
"""

ENV_FILE = """DSN=$GO_BOOTSTRAP_PG_DSN
TEST_DSN=$GO_BOOTSTRAP_PG_TEST_DSN
USER=$GO_BOOTSTRAP_CURRENT_USER
"""

BINARY_BLOB = b"\x89PNG\r\n\x1a\n\x00\xff\xfe$GO_BOOTSTRAP_PROJECT_NAME\x00\x80\x81"


def write_blank_template(template_dir: Path) -> Path:
    """Lay out a small blank project that uses every placeholder token."""
    (template_dir / "scripts").mkdir(parents=True)
    (template_dir / "migrations").mkdir()
    (template_dir / "static").mkdir()

    (template_dir / "main.go").write_text(MAIN_GO, encoding="utf-8")
    (template_dir / ".env").write_text(ENV_FILE, encoding="utf-8")
    db_script = template_dir / "scripts" / "db-bootstrap"
    db_script.write_text(DB_BOOTSTRAP, encoding="utf-8")
    db_script.chmod(0o755)
    (template_dir / "migrations" / "1_init.up.sql").write_text(
        "CREATE TABLE users (id SERIAL PRIMARY KEY);\n", encoding="utf-8"
    )
    (template_dir / "static" / "logo.png").write_bytes(BINARY_BLOB)
    os.symlink("main.go", template_dir / "entry.go")
    return template_dir


@pytest.fixture
def gopath(tmp_path: Path) -> Path:
    """A fake ``$GOPATH`` root containing the blank template."""
    root = tmp_path / "go"
    write_blank_template(root / DEFAULT_TEMPLATE_SUBPATH)
    return root


@pytest.fixture
def blank_template(gopath: Path) -> Path:
    """Path to the blank template under the fake root."""
    return gopath / DEFAULT_TEMPLATE_SUBPATH


@pytest.fixture
def config(gopath: Path) -> Config:
    """Config pointing at the fake root with the pipeline enabled."""
    return Config(roots=str(gopath))


# ---------------------------------------------------------------------------
# Fake process runner
# ---------------------------------------------------------------------------


class FakeRunner:
    """Records every command and fails the ones it is told to.

    ``failures`` maps a command line (``"go get ./..."``) to the exit code it
    should report.
    """

    def __init__(self, failures: dict[str, int] | None = None) -> None:
        self.failures = failures or {}
        self.calls: list[dict] = []

    @property
    def command_lines(self) -> list[str]:
        return [call["command_line"] for call in self.calls]

    async def run(self, command, args, cwd, timeout=None) -> ProcessOutcome:
        command_line = " ".join([command, *args])
        self.calls.append(
            {"command_line": command_line, "cwd": Path(cwd), "timeout": timeout}
        )
        exit_code = self.failures.get(command_line, 0)
        output = f"{command_line}: {'ok' if exit_code == 0 else 'boom'}"
        return ProcessOutcome(exit_code=exit_code, output=output, duration_seconds=0.01)


@pytest.fixture
def fake_runner() -> FakeRunner:
    """A runner that succeeds at everything."""
    return FakeRunner()


@pytest.fixture
def make_runner():
    """Factory for runners with programmed failures."""

    def _make(failures: dict[str, int] | None = None) -> FakeRunner:
        return FakeRunner(failures)

    return _make
