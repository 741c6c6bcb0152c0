"""Blank template materialization.

Copies the blank project tree into the target directory.  The copy walks the
template relative to its own root, so the process working directory is moved
into the template for the duration of the walk and restored afterwards, also
when the copy fails half way.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from src.errors import MaterializeError
from src.utils import working_directory

DIRECTORY_MODE = 0o755


class TemplateMaterializer:
    """Copies a blank template tree into new project directories.

    Re-materializing into a populated target replaces every entry that shares a
    relative path with the template, whatever its kind (a stale directory where
    the template has a file is removed first), and leaves every other entry
    alone.  Pass ``require_empty=True`` to refuse populated targets instead.
    """

    def __init__(self, template_dir: str | Path, require_empty: bool = False) -> None:
        self.template_dir = Path(template_dir)
        self.require_empty = require_empty

    def materialize(self, target_path: str | Path) -> list[str]:
        """Copy the template into *target_path*.

        Returns:
            Relative paths of every entry written, in walk order.

        Raises:
            MaterializeError: If the template is missing, the target cannot be
                created, or any entry fails to copy.  Entries copied before the
                failure stay in place.
        """
        if not self.template_dir.is_dir():
            raise MaterializeError(
                f"Blank template not found: {self.template_dir}", str(self.template_dir)
            )

        # Absolute before the working directory moves.
        target = Path(target_path).absolute()
        self._prepare_target(target)

        copied: list[str] = []
        try:
            with working_directory(self.template_dir):
                for dirpath, dirnames, filenames in os.walk("."):
                    rel_dir = Path(dirpath)
                    for name in sorted(dirnames):
                        rel = rel_dir / name
                        if rel.is_symlink():
                            _copy_symlink(rel, target / rel)
                        else:
                            _make_directory(target / rel)
                        copied.append(rel.as_posix())
                    for name in sorted(filenames):
                        rel = rel_dir / name
                        if rel.is_symlink():
                            _copy_symlink(rel, target / rel)
                        else:
                            _copy_file(rel, target / rel)
                        copied.append(rel.as_posix())
        except OSError as exc:
            # os.symlink reports the link text first and the new link second.
            failed = getattr(exc, "filename2", None) or exc.filename or self.template_dir
            raise MaterializeError(
                f"Copying {self.template_dir} to {target} failed at {failed}: {exc.strerror or exc}",
                str(failed),
            ) from exc

        return copied

    def _prepare_target(self, target: Path) -> None:
        if self.require_empty and target.exists() and any(target.iterdir()):
            raise MaterializeError(f"Target directory is not empty: {target}", str(target))
        try:
            os.makedirs(target, mode=DIRECTORY_MODE, exist_ok=True)
        except OSError as exc:
            raise MaterializeError(
                f"Cannot create {target}: {exc.strerror or exc}", str(target)
            ) from exc


def _make_directory(dest: Path) -> None:
    if dest.is_symlink() or dest.is_file():
        dest.unlink()
    dest.mkdir(mode=DIRECTORY_MODE, exist_ok=True)


def _clear_entry(dest: Path) -> None:
    """Remove whatever occupies *dest* so a file or link can take its place."""
    if dest.is_symlink() or dest.is_file():
        dest.unlink()
    elif dest.is_dir():
        shutil.rmtree(dest)


def _copy_file(src: Path, dest: Path) -> None:
    _clear_entry(dest)
    shutil.copy2(src, dest)


def _copy_symlink(src: Path, dest: Path) -> None:
    _clear_entry(dest)
    os.symlink(os.readlink(src), dest)
