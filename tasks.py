"""Invoke tasks for the designdeck development workflow.

Every task shells out to `uv` so local runs match CI: environment sync,
tests, Ruff, MyPy, builds and publishing.
"""

from __future__ import annotations

import shlex
import shutil
from collections.abc import Mapping, Sequence
from pathlib import Path

from invoke import Collection, Context, task

PROJECT_ROOT = Path(__file__).parent
DIST_DIR = PROJECT_ROOT / "dist"
SOURCE_DIRS = ("src", "tests")
CACHE_DIRS = (".pytest_cache", ".mypy_cache", ".ruff_cache")


def _run_uv(
    ctx: Context,
    args: Sequence[str],
    *,
    echo: bool = True,
    dry_run: bool = False,
    env: Mapping[str, str] | None = None,
) -> None:
    """Run ``uv`` with the given arguments.

    Args:
        ctx: Invoke execution context.
        args: Arguments appended after the `uv` executable.
        echo: Whether to echo the command before running it.
        dry_run: When True, print the command instead of running it.
        env: Extra environment variables for the invocation.
    """
    command = shlex.join(("uv", *args))
    if dry_run:
        print(f"[dry-run] {command}")
        return
    run_env = dict(ctx.config.run.env or {})
    if env:
        run_env.update(env)
    ctx.run(command, echo=echo, pty=True, env=run_env)


@task
def sync(ctx: Context, dev: bool = True) -> None:
    """Create or update the virtual environment.

    Args:
        ctx: Invoke execution context.
        dev: Install the `dev` extra (pytest, Ruff, MyPy) when True.
    """
    args = ["sync"]
    if dev:
        args.extend(["--extra", "dev"])
    _run_uv(ctx, args)


@task
def clean(ctx: Context) -> None:
    """Remove build artifacts and tool caches."""
    for directory in (DIST_DIR, *(PROJECT_ROOT / name for name in CACHE_DIRS)):
        if directory.exists():
            shutil.rmtree(directory)
            print(f"Removed {directory.relative_to(PROJECT_ROOT)}")


@task(help={"clean_first": "Remove dist/ and caches before building."})
def build(ctx: Context, clean_first: bool = False) -> None:
    """Build the sdist and wheel into `dist/`.

    Args:
        ctx: Invoke execution context.
        clean_first: Run the `clean` task first.
    """
    if clean_first:
        ctx.invoke(clean)
    _run_uv(ctx, ["build"])


@task(
    help={
        "part": "Semantic version component to bump (major, minor, patch).",
        "value": "Explicit version string to set instead of bumping.",
        "dry_run": "Print the resolved version without mutating pyproject.toml.",
    }
)
def bump_version(
    ctx: Context,
    part: str = "patch",
    value: str | None = None,
    dry_run: bool = False,
) -> None:
    """Bump or set the project version in pyproject.toml.

    Args:
        ctx: Invoke execution context.
        part: Semantic component to bump.
        value: Explicit version to set when provided.
        dry_run: Show the resulting version without writing it.
    """
    args: list[str] = ["version"]
    if value:
        args.append(value)
    else:
        args.extend(["--bump", part])
    if dry_run:
        args.append("--dry-run")
    _run_uv(ctx, args)


@task(
    help={
        "index_url": "Override the package index URL (defaults to PyPI).",
        "token": "API token to pass to uv publish (will appear in command output).",
        "dry_run": "Log the publish command without executing it.",
    }
)
def publish(
    ctx: Context,
    index_url: str | None = None,
    token: str | None = None,
    dry_run: bool = False,
) -> None:
    """Upload the contents of `dist/` to a package index.

    Args:
        ctx: Invoke execution context.
        index_url: Package index endpoint.
        token: API token included with the upload in clear text.
        dry_run: Print the command instead of executing it.
    """
    args: list[str] = ["publish"]
    if index_url:
        args.extend(["--index-url", index_url])
    if token:
        args.extend(["--token", token])
    _run_uv(ctx, args, dry_run=dry_run, echo=token is None)


@task(
    help={
        "k": "pytest -k expression for test selection.",
        "path": "Path or module to test (defaults to tests/).",
        "options": "Additional CLI flags forwarded verbatim to pytest.",
    }
)
def tests(ctx: Context, k: str = "", path: str = "tests", options: str = "") -> None:
    """Run the pytest suite.

    Args:
        ctx: Invoke execution context.
        k: `pytest -k` expression to select tests.
        path: Target path for pytest discovery.
        options: Extra arguments appended to the pytest call.
    """
    args: list[str] = ["run", "pytest"]
    if k:
        args.extend(["-k", k])
    if options:
        args.extend(shlex.split(options))
    if path:
        args.append(path)
    _run_uv(ctx, args)


@task(
    help={
        "fix": "Apply auto-fixes where possible (ruff --fix).",
        "check_format": "Run ruff format --check before linting.",
    }
)
def lint(ctx: Context, fix: bool = False, check_format: bool = False) -> None:
    """Run Ruff over the source and test trees.

    Args:
        ctx: Invoke execution context.
        fix: Enable Ruff's fix mode.
        check_format: Check formatting before linting.
    """
    if check_format:
        _run_uv(ctx, ["run", "ruff", "format", "--check", *SOURCE_DIRS])
    lint_args: list[str] = ["run", "ruff", "check", *SOURCE_DIRS]
    if fix:
        lint_args.append("--fix")
    _run_uv(ctx, lint_args)


@task
def mypy(ctx: Context) -> None:
    """Type-check the package with MyPy."""
    _run_uv(ctx, ["run", "mypy", "src"])


@task
def ci(ctx: Context) -> None:
    """Run lint, type checks and tests the way CI does."""
    ctx.invoke(lint, check_format=True)
    ctx.invoke(mypy)
    ctx.invoke(tests)


namespace = Collection(
    sync,
    clean,
    build,
    bump_version,
    publish,
    tests,
    lint,
    mypy,
    ci,
)
