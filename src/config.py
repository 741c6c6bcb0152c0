"""Project bootstrapper configuration.

Typed settings for a bootstrap run.  All settings use Pydantic v2 models so
they are validated at construction time and can be built from the environment
without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from src.errors import ConfigError

# Location of the blank project relative to a root, as laid out by ``go get``.
DEFAULT_TEMPLATE_SUBPATH = "src/github.com/go-bootstrap/go-bootstrap/blank"


def split_roots(raw: str | list[str] | None) -> list[str]:
    """Split a colon-separated root list, dropping empty entries."""
    if raw is None:
        return []
    if isinstance(raw, str):
        raw = raw.split(":")
    return [entry for entry in raw if entry]


class PostgresConfig(BaseModel):
    """Connection defaults used to build the generated project's DSNs."""

    host: str = Field(default="localhost")
    port: int = Field(default=5432, ge=1, le=65535)
    sslmode: str = Field(default="disable")


class Config(BaseModel):
    """Settings for a single bootstrap run.

    Instances are typically created once by the CLI entry point via
    :meth:`from_env` and then handed to ``Bootstrapper``.
    """

    roots: list[str] = Field(default_factory=list)
    selected_root: str = Field(default="")
    template_dir: Path | None = Field(
        default=None, description="Explicit blank template location; overrides template_subpath"
    )
    template_subpath: str = Field(default=DEFAULT_TEMPLATE_SUBPATH)
    step_timeout: float | None = Field(
        default=None, gt=0, description="Per-step timeout in seconds; None waits forever"
    )
    secret_length: int = Field(default=16, ge=8)
    require_empty: bool = Field(
        default=False, description="Refuse to materialize into a non-empty target"
    )
    run_pipeline: bool = Field(default=True)
    tool_env: dict[str, str] = Field(
        default_factory=dict, description="Extra environment variables for every pipeline step"
    )
    postgres: PostgresConfig = Field(default_factory=PostgresConfig)

    @field_validator("roots", mode="before")
    @classmethod
    def _split_roots(cls, value: Any) -> list[str]:
        return split_roots(value)

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    def resolve_template_dir(self, root: str) -> Path:
        """Return the blank template directory for the chosen root."""
        if self.template_dir is not None:
            return Path(self.template_dir)
        return Path(root) / self.template_subpath

    def require_roots(self) -> list[str]:
        """Return the root list or raise ``ConfigError`` if it is empty."""
        if not self.roots:
            raise ConfigError("No root paths configured (is $GOPATH set?)")
        return list(self.roots)

    @classmethod
    def from_env(cls, **overrides: Any) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            GOPATH, BOOTSTRAP_TEMPLATE_DIR, BOOTSTRAP_STEP_TIMEOUT.

        Keyword arguments take precedence over the environment.
        """
        kwargs: dict[str, Any] = {"roots": os.environ.get("GOPATH", "")}
        if os.environ.get("BOOTSTRAP_TEMPLATE_DIR"):
            kwargs["template_dir"] = Path(os.environ["BOOTSTRAP_TEMPLATE_DIR"])
        if os.environ.get("BOOTSTRAP_STEP_TIMEOUT"):
            try:
                kwargs["step_timeout"] = float(os.environ["BOOTSTRAP_STEP_TIMEOUT"])
            except ValueError as exc:
                raise ConfigError(
                    f"Invalid BOOTSTRAP_STEP_TIMEOUT: {os.environ['BOOTSTRAP_STEP_TIMEOUT']!r}"
                ) from exc

        kwargs.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**kwargs)
