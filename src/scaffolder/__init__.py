"""Project bootstrapper scaffolder -- lays down a new project tree.

Resolves where the project goes, copies the blank template there and fills
in the placeholder tokens.

Quick usage::

    from src.scaffolder import (
        PlaceholderSubstitutor,
        TemplateMaterializer,
        build_placeholders,
        resolve_project,
    )

    spec = resolve_project("/go", "github.com/alice/myapp")
    TemplateMaterializer("/go/src/github.com/go-bootstrap/go-bootstrap/blank").materialize(
        spec.target_path
    )
    PlaceholderSubstitutor(build_placeholders(spec)).substitute_tree(spec.target_path)
"""

from src.scaffolder.materializer import TemplateMaterializer
from src.scaffolder.resolver import ProjectSpec, resolve_project, select_root
from src.scaffolder.substitutor import (
    PlaceholderSubstitutor,
    build_placeholders,
    check_placeholders,
)

__all__ = [
    "PlaceholderSubstitutor",
    "ProjectSpec",
    "TemplateMaterializer",
    "build_placeholders",
    "check_placeholders",
    "resolve_project",
    "select_root",
]
