"""Project path resolution.

Turns a root list plus a path relative to ``<root>/src`` into a ``ProjectSpec``
holding the absolute target directory and the identifiers derived from the
path.  Everything here is pure: no filesystem access happens.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict

from src.config import split_roots
from src.errors import ConfigError, PathFormatError

SOURCE_SUBDIR = "src"


class ProjectSpec(BaseModel):
    """Immutable description of the project being generated."""

    model_config = ConfigDict(frozen=True)

    root_path: Path
    relative_path: str
    target_path: Path
    repo_name: str
    repo_owner: str
    project_name: str
    db_name: str
    test_db_name: str


def select_root(roots: str | list[str], selected: str = "") -> str:
    """Pick the root to generate under.

    A non-empty *selected* value wins when it matches one of *roots* exactly;
    anything else falls back to the first root.

    Raises:
        ConfigError: If *roots* is empty.
    """
    candidates = split_roots(roots)
    if not candidates:
        raise ConfigError("No root paths configured (is $GOPATH set?)")
    if selected and selected in candidates:
        return selected
    return candidates[0]


def resolve_project(
    roots: str | list[str],
    relative_path: str,
    selected_root: str = "",
) -> ProjectSpec:
    """Resolve the target directory and derive the project identifiers.

    The last three ``/``-separated segments of *relative_path* are, from the
    end, the project name, the repository owner and the repository name.

    Raises:
        ConfigError: If no root is configured or *relative_path* is empty.
        PathFormatError: If *relative_path* has fewer than three segments.
    """
    root = select_root(roots, selected_root)

    trimmed = relative_path.strip("/")
    if not trimmed:
        raise ConfigError("Project directory is missing")

    chunks = trimmed.split("/")
    if len(chunks) < 3:
        raise PathFormatError(trimmed, len(chunks))

    repo_name, repo_owner, project_name = chunks[-3:]

    return ProjectSpec(
        root_path=Path(root),
        relative_path=trimmed,
        target_path=Path(root) / SOURCE_SUBDIR / trimmed,
        repo_name=repo_name,
        repo_owner=repo_owner,
        project_name=project_name,
        db_name=project_name,
        test_db_name=f"{project_name}-test",
    )
