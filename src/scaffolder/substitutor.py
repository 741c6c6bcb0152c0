"""Placeholder substitution over a materialized project tree.

The blank template carries literal ``$GO_BOOTSTRAP_*`` tokens.  This module
builds the token -> value map for a project and rewrites every regular file
in a single pass per file.  Matching happens on bytes so binary files pass
through untouched unless they genuinely contain a token.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from pathlib import Path

from src.config import PostgresConfig
from src.errors import SubstitutionError
from src.scaffolder.resolver import ProjectSpec
from src.utils import bash_escape, current_user, default_pg_dsn, random_string

TOKEN_REPO_NAME = "$GO_BOOTSTRAP_REPO_NAME"
TOKEN_REPO_USER = "$GO_BOOTSTRAP_REPO_USER"
TOKEN_PROJECT_NAME = "$GO_BOOTSTRAP_PROJECT_NAME"
TOKEN_COOKIE_SECRET = "$GO_BOOTSTRAP_COOKIE_SECRET"
TOKEN_CURRENT_USER = "$GO_BOOTSTRAP_CURRENT_USER"
TOKEN_PG_DSN = "$GO_BOOTSTRAP_PG_DSN"
TOKEN_ESCAPED_PG_DSN = "$GO_BOOTSTRAP_ESCAPED_PG_DSN"
TOKEN_PG_TEST_DSN = "$GO_BOOTSTRAP_PG_TEST_DSN"
TOKEN_ESCAPED_PG_TEST_DSN = "$GO_BOOTSTRAP_ESCAPED_PG_TEST_DSN"


def build_placeholders(
    spec: ProjectSpec,
    user: str | None = None,
    secret: str | None = None,
    postgres: PostgresConfig | None = None,
    secret_length: int = 16,
) -> dict[str, str]:
    """Build the token -> value map for *spec*.

    Args:
        spec: The resolved project.
        user: Operating-system user name; defaults to the invoking user.
        secret: Cookie secret; a random one is generated when omitted.
        postgres: Connection defaults for the DSNs.
        secret_length: Length of the generated secret.

    Raises:
        SubstitutionError: If any value contains a token.
    """
    user = user if user is not None else current_user()
    secret = secret if secret is not None else random_string(secret_length)
    pg = postgres or PostgresConfig()

    dsn = default_pg_dsn(spec.db_name, user=user, host=pg.host, port=pg.port, sslmode=pg.sslmode)
    test_dsn = default_pg_dsn(
        spec.test_db_name, user=user, host=pg.host, port=pg.port, sslmode=pg.sslmode
    )

    placeholders = {
        TOKEN_REPO_NAME: spec.repo_name,
        TOKEN_REPO_USER: spec.repo_owner,
        TOKEN_PROJECT_NAME: spec.project_name,
        TOKEN_COOKIE_SECRET: secret,
        TOKEN_CURRENT_USER: user,
        TOKEN_PG_DSN: dsn,
        TOKEN_ESCAPED_PG_DSN: bash_escape(dsn),
        TOKEN_PG_TEST_DSN: test_dsn,
        TOKEN_ESCAPED_PG_TEST_DSN: bash_escape(test_dsn),
    }
    check_placeholders(placeholders)
    return placeholders


def check_placeholders(placeholders: Mapping[str, str]) -> None:
    """Reject maps whose values would need a second substitution pass."""
    for token in placeholders:
        if not token:
            raise SubstitutionError("Placeholder tokens must not be empty")
    for key, value in placeholders.items():
        for token in placeholders:
            if token in value:
                raise SubstitutionError(
                    f"Value for {key} contains placeholder {token}: {value!r}"
                )


class PlaceholderSubstitutor:
    """Rewrites placeholder tokens in every regular file of a tree.

    All tokens are matched in one scan of each file, longest token first, and
    inserted values are never scanned again.
    """

    def __init__(self, placeholders: Mapping[str, str]) -> None:
        check_placeholders(placeholders)
        self._replacements = {
            token.encode("utf-8"): value.encode("utf-8") for token, value in placeholders.items()
        }
        tokens = sorted(self._replacements, key=len, reverse=True)
        self._pattern = re.compile(b"|".join(re.escape(t) for t in tokens)) if tokens else None

    def substitute_bytes(self, content: bytes) -> bytes:
        """Return *content* with every token replaced."""
        if self._pattern is None:
            return content
        return self._pattern.sub(lambda m: self._replacements[m.group(0)], content)

    def substitute_file(self, path: str | Path) -> bool:
        """Rewrite a single file in place.

        Returns:
            ``True`` if the file changed and was written back.

        Raises:
            SubstitutionError: If the file cannot be read or written.
        """
        file_path = Path(path)
        try:
            original = file_path.read_bytes()
        except OSError as exc:
            raise SubstitutionError(f"Cannot read {file_path}: {exc}", str(file_path)) from exc

        updated = self.substitute_bytes(original)
        if updated == original:
            return False

        try:
            file_path.write_bytes(updated)
        except OSError as exc:
            raise SubstitutionError(f"Cannot write {file_path}: {exc}", str(file_path)) from exc
        return True

    def substitute_tree(self, root: str | Path) -> list[Path]:
        """Rewrite every regular file below *root*.

        Symbolic links are neither followed nor rewritten.

        Returns:
            The files that were changed.
        """
        root_path = Path(root)
        if not root_path.is_dir():
            raise SubstitutionError(f"Not a directory: {root_path}", str(root_path))

        changed: list[Path] = []
        for file_path in iter_regular_files(root_path):
            if self.substitute_file(file_path):
                changed.append(file_path)
        return changed


def iter_regular_files(root: Path) -> list[Path]:
    """List every regular, non-symlink file below *root* in sorted order."""

    def _on_error(exc: OSError) -> None:
        raise SubstitutionError(f"Cannot list {exc.filename}: {exc.strerror}", str(exc.filename)) from exc

    files: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        dirnames.sort()
        for name in sorted(filenames):
            candidate = Path(dirpath) / name
            if candidate.is_file() and not candidate.is_symlink():
                files.append(candidate)
    return files
