"""Project bootstrapper pipeline orchestrator.

Generates a new Go web project and brings it to a built, tested state:

Stage 1: RESOLVE     -- Pick the root, derive the target and identifiers.
Stage 2: COPY        -- Materialize the blank template into the target.
Stage 3: TEMPLATE    -- Replace ``$GO_BOOTSTRAP_*`` placeholders in every file.
Stage 4: PIPELINE    -- Fetch tools and dependencies, init VCS, run tests.

Every pipeline step is either fatal (a failure aborts the run) or tolerated
(a failure is reported and the run continues).  Which optional steps run is
decided once, from the repository host name.

Usage::

    python -m src.pipeline --dir github.com/alice/myapp
    python -m src.pipeline --dir bitbucket.org/alice/myapp --gopath /home/alice/go
"""

from __future__ import annotations

import asyncio
import sys
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from pydantic import ValidationError
from rich.panel import Panel

from src.builder import ProcessRunner, Runner
from src.config import Config
from src.errors import BootstrapError, ConfigError, ProcessError, ProcessWarning
from src.scaffolder import (
    PlaceholderSubstitutor,
    ProjectSpec,
    TemplateMaterializer,
    build_placeholders,
    resolve_project,
)
from src.utils import (
    console,
    format_duration,
    print_error,
    print_output,
    print_stage_header,
    print_success,
    print_summary_table,
    print_warning,
)

# ---------------------------------------------------------------------------
# Step model
# ---------------------------------------------------------------------------


class RepoVariant(str, Enum):
    """Version-control family of the target repository."""

    GIT = "git"
    MERCURIAL = "hg"
    NONE = "none"


class StepPolicy(str, Enum):
    """What a step failure does to the run."""

    FATAL = "fatal"
    TOLERATED = "tolerated"


@dataclass(frozen=True)
class PipelineStep:
    """One external command of the pipeline.  It always runs inside the target."""

    name: str
    command: str
    args: tuple[str, ...] = ()
    policy: StepPolicy = StepPolicy.FATAL

    @property
    def command_line(self) -> str:
        return " ".join([self.command, *self.args])


@dataclass
class StepResult:
    """What happened when a step ran."""

    step: PipelineStep
    success: bool
    exit_code: int
    output: str = ""
    duration_seconds: float = 0.0


@dataclass
class PipelineReport:
    """Ordered record of a pipeline run."""

    variant: RepoVariant
    results: list[StepResult] = field(default_factory=list)
    warnings: list[ProcessWarning] = field(default_factory=list)

    @property
    def steps_run(self) -> list[str]:
        return [result.step.name for result in self.results]


def classify_repo(repo_name: str) -> RepoVariant:
    """Classify the repository host by name prefix.

    Examples::

        classify_repo("github.com")    -> RepoVariant.GIT
        classify_repo("bitbucket.org") -> RepoVariant.MERCURIAL
        classify_repo("gopkg.in")      -> RepoVariant.NONE
    """
    if repo_name.startswith("git"):
        return RepoVariant.GIT
    if repo_name.startswith("bitbucket"):
        return RepoVariant.MERCURIAL
    return RepoVariant.NONE


FETCH_MIGRATE = PipelineStep("fetch-migrate", "go", ("get", "github.com/mattes/migrate"))
DB_BOOTSTRAP = PipelineStep("db-bootstrap", "bash", ("scripts/db-bootstrap",), StepPolicy.TOLERATED)
FETCH_DEPENDENCIES = PipelineStep("fetch-dependencies", "go", ("get", "./..."))
INSTALL_GODEP = PipelineStep("install-godep", "go", ("get", "github.com/tools/godep"))
GIT_INIT = PipelineStep("git-init", "git", ("init",))
HG_INIT = PipelineStep("hg-init", "hg", ("init",), StepPolicy.TOLERATED)
GODEP_SAVE = PipelineStep("godep-save", "godep", ("save", "./..."))
GODEP_TEST = PipelineStep("godep-test", "godep", ("go", "test", "./..."), StepPolicy.TOLERATED)
GO_TEST = PipelineStep("go-test", "go", ("test", "./..."), StepPolicy.TOLERATED)


def build_steps(variant: RepoVariant) -> list[PipelineStep]:
    """Return the ordered steps for a repository variant."""
    steps = [FETCH_MIGRATE, DB_BOOTSTRAP, FETCH_DEPENDENCIES]

    if variant is RepoVariant.GIT:
        steps += [INSTALL_GODEP, GIT_INIT, GODEP_SAVE, GODEP_TEST]
    elif variant is RepoVariant.MERCURIAL:
        steps += [INSTALL_GODEP, HG_INIT, GODEP_SAVE, GODEP_TEST]
    elif variant is RepoVariant.NONE:
        steps += [GO_TEST]
    else:
        raise ValueError(f"Unknown repository variant: {variant!r}")

    return steps


# ---------------------------------------------------------------------------
# Pipeline Orchestrator
# ---------------------------------------------------------------------------


class PipelineOrchestrator:
    """Runs the external steps for a project, one at a time, in order.

    Attributes:
        runner: Executes commands; swap in a fake to avoid real processes.
        step_timeout: Seconds each step may take, ``None`` for no limit.
    """

    def __init__(self, runner: Runner | None = None, step_timeout: float | None = None) -> None:
        self.runner = runner or ProcessRunner()
        self.step_timeout = step_timeout

    async def run(self, spec: ProjectSpec) -> PipelineReport:
        """Run every step for *spec*.

        Raises:
            ProcessError: As soon as a fatal step fails.  No later step runs.
        """
        variant = classify_repo(spec.repo_name)
        report = PipelineReport(variant=variant)

        for step in build_steps(variant):
            result = await self.run_step(step, spec.target_path)
            report.results.append(result)
            if result.success:
                continue

            if step.policy is StepPolicy.FATAL:
                raise ProcessError(
                    step.name, step.command_line, result.output, result.exit_code
                )

            warning = ProcessWarning(
                step.name, step.command_line, result.output, result.exit_code
            )
            report.warnings.append(warning)
            print_warning(f"  {warning}")

        return report

    async def run_step(self, step: PipelineStep, cwd: Path) -> StepResult:
        """Run one step and print what it produced."""
        console.print(f"  Running [bold]{step.command_line}[/bold]...")
        outcome = await self.runner.run(
            step.command, list(step.args), cwd, timeout=self.step_timeout
        )
        # Fatal failures surface their output through ProcessError instead.
        if outcome.success or step.policy is StepPolicy.TOLERATED:
            print_output(outcome.output)
        return StepResult(
            step=step,
            success=outcome.success,
            exit_code=outcome.exit_code,
            output=outcome.output,
            duration_seconds=outcome.duration_seconds,
        )


# ---------------------------------------------------------------------------
# Whole run
# ---------------------------------------------------------------------------


@dataclass
class BootstrapResult:
    """Everything a completed run produced."""

    spec: ProjectSpec
    copied: list[str]
    rewritten: list[Path]
    report: PipelineReport | None = None

    @property
    def succeeded_cleanly(self) -> bool:
        return self.report is None or not self.report.warnings


class Bootstrapper:
    """Generates one project: resolve, copy, template, then run the pipeline."""

    def __init__(self, config: Config, runner: Runner | None = None) -> None:
        self.config = config
        runner = runner or ProcessRunner(env=config.tool_env or None)
        self.orchestrator = PipelineOrchestrator(runner, step_timeout=config.step_timeout)

    async def run(self, relative_path: str) -> BootstrapResult:
        start = time.monotonic()

        print_stage_header("Resolve")
        spec = resolve_project(
            self.config.require_roots(), relative_path, self.config.selected_root
        )
        template_dir = self.config.resolve_template_dir(str(spec.root_path))
        console.print(f"  Target   : {spec.target_path}")
        console.print(f"  Template : {template_dir}")

        print_stage_header("Copy")
        console.print(f"  Copying a blank project to [bold]{spec.target_path}[/bold]...")
        materializer = TemplateMaterializer(template_dir, require_empty=self.config.require_empty)
        copied = await asyncio.to_thread(materializer.materialize, spec.target_path)
        console.print(f"  {len(copied)} entries copied")

        print_stage_header("Template")
        console.print(
            f"  Replacing placeholder variables on "
            f"[bold]{spec.repo_owner}/{spec.project_name}[/bold]..."
        )
        placeholders = build_placeholders(
            spec,
            postgres=self.config.postgres,
            secret_length=self.config.secret_length,
        )
        substitutor = PlaceholderSubstitutor(placeholders)
        rewritten = await asyncio.to_thread(substitutor.substitute_tree, spec.target_path)
        console.print(f"  {len(rewritten)} file(s) rewritten")

        result = BootstrapResult(spec=spec, copied=copied, rewritten=rewritten)

        if self.config.run_pipeline:
            print_stage_header("Pipeline")
            result.report = await self.orchestrator.run(spec)

        self._print_final_summary(result, time.monotonic() - start)
        return result

    def _print_final_summary(self, result: BootstrapResult, elapsed: float) -> None:
        report = result.report
        summary = {
            "Project": f"{result.spec.repo_owner}/{result.spec.project_name}",
            "Target": str(result.spec.target_path),
            "Database": result.spec.db_name,
            "Test database": result.spec.test_db_name,
            "Repository": report.variant.value if report else "(pipeline skipped)",
            "Steps run": str(len(report.results)) if report else "0",
            "Warnings": str(len(report.warnings)) if report else "0",
            "Duration": format_duration(elapsed),
        }
        console.print()
        print_summary_table(summary, title="Bootstrap Results")


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def parse_tool_env(pairs: list[str]) -> dict[str, str]:
    """Turn ``KEY=VALUE`` arguments into an environment mapping."""
    env: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ConfigError(f"Invalid --tool-env value {pair!r}; expected KEY=VALUE")
        env[key] = value
    return env


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``python -m src.pipeline``."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Generate a Go web project from the go-bootstrap blank template",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  python -m src.pipeline --dir github.com/alice/myapp\n"
            "  python -m src.pipeline --dir bitbucket.org/alice/myapp --gopath ~/go\n"
            "  python -m src.pipeline --dir gopkg.in/alice/myapp --skip-pipeline\n"
        ),
    )
    parser.add_argument(
        "--dir", "-d",
        default="",
        help="Project directory relative to $GOPATH/src/ (e.g. github.com/alice/myapp)",
    )
    parser.add_argument(
        "--gopath",
        default="",
        help="Choose which $GOPATH entry to use (default: the first one)",
    )
    parser.add_argument(
        "--step-timeout",
        type=float,
        default=None,
        help="Kill any pipeline step running longer than this many seconds",
    )
    parser.add_argument(
        "--require-empty",
        action="store_true",
        help="Refuse to generate into a non-empty directory",
    )
    parser.add_argument(
        "--skip-pipeline",
        action="store_true",
        help="Stop after copying and templating; run no external tools",
    )
    parser.add_argument(
        "--tool-env",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Set an environment variable for every pipeline step (repeatable)",
    )

    args = parser.parse_args(argv)

    try:
        if not args.dir:
            raise ConfigError("dir option is missing.")
        config = Config.from_env(
            selected_root=args.gopath,
            step_timeout=args.step_timeout,
            require_empty=args.require_empty,
            run_pipeline=not args.skip_pipeline,
            tool_env=parse_tool_env(args.tool_env),
        )
    except ValidationError as exc:
        print_error(f"Error: invalid configuration: {exc}")
        sys.exit(1)
    except ConfigError as exc:
        print_error(f"Error: {exc}")
        sys.exit(1)

    console.print(
        Panel(
            f"[bold bright_cyan]Project Bootstrap[/bold bright_cyan]\n"
            f"Directory : {args.dir}\n"
            f"Roots     : {', '.join(config.roots) or '(none)'}",
            title="[bold]Bootstrap Start[/bold]",
            border_style="bright_cyan",
        )
    )

    bootstrapper = Bootstrapper(config)
    try:
        result = asyncio.run(bootstrapper.run(args.dir))
    except ProcessError as exc:
        print_output(exc.output)
        print_error(f"Error: {exc}")
        sys.exit(1)
    except BootstrapError as exc:
        print_error(f"Error: {exc}")
        sys.exit(1)

    if result.succeeded_cleanly:
        print_success("Project generated successfully!")
    else:
        print_warning("Project generated; some tolerated steps failed (see warnings above).")


if __name__ == "__main__":
    main()
