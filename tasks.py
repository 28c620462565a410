import os

from invoke import Context, task

WINDOWS = os.name == "nt"
PROJECT_NAME = "radiomic_engine"
PYTHON_VERSION = "3.12"


# Environment commands
@task
def bootstrap(ctx: Context, name: str = ".venv") -> None:
    """Bootstrap a UV virtual environment and install dependencies."""
    ctx.run(f"uv venv {name} --python {PYTHON_VERSION}", echo=True, pty=not WINDOWS)
    ctx.run("uv pip install -e '.[dev]'", echo=True, pty=not WINDOWS)
    print(f"\n✓ Environment created at {name}")
    print(f"To activate: source {name}/bin/activate  (or {name}\\Scripts\\activate on Windows)")


@task
def dev(ctx: Context) -> None:
    """Install with dev dependencies."""
    ctx.run("uv pip install -e '.[dev]'", echo=True, pty=not WINDOWS)


# Check python path and version
@task
def python(ctx):
    """Check Python path and version."""
    ctx.run("which python" if os.name != "nt" else "where python")
    ctx.run("python --version")


# Project commands
@task
def extract(ctx: Context, inputs: str = "", parallel: bool = False, args: str = "") -> None:
    """Extract radiomics features from image files.

    Args:
        inputs: Comma-separated files or directories (NIfTI/DICOM)
        parallel: Process files on a worker pool
        args: Additional Hydra config overrides (e.g., "features.levels=64")

    Examples:
        invoke extract --inputs data/scans
        invoke extract --inputs data/a.nii.gz,data/b.nii.gz --parallel
        invoke extract --inputs data/scans --args "paths.output=outputs/run1.json"
    """
    overrides = []
    if inputs:
        overrides.append(f"paths.inputs=[{inputs}]")
    if parallel:
        overrides.append("extraction.parallel=true")
    full_args = " ".join([*(f"'{o}'" for o in overrides), args]).strip()

    ctx.run(f"uv run python -m {PROJECT_NAME}.features.extract_radiomics {full_args}", echo=True, pty=not WINDOWS)


@task
def test(ctx: Context) -> None:
    """Run tests."""
    ctx.run("uv run coverage run -m pytest tests/", echo=True, pty=not WINDOWS)
    ctx.run("uv run coverage report -m -i", echo=True, pty=not WINDOWS)


@task
def test_unit(ctx: Context) -> None:
    """Run fast unit tests only (excludes slow tests)."""
    ctx.run("uv run pytest tests/ -m 'not slow' -v", echo=True, pty=not WINDOWS)


# Code quality commands
@task
def ruff(ctx: Context) -> None:
    """Run ruff check and format."""
    ctx.run("uv run ruff check .", echo=True, pty=not WINDOWS)
    ctx.run("uv run ruff format .", echo=True, pty=not WINDOWS)


@task
def lint(ctx: Context, fix: bool = False) -> None:
    """Run ruff linter.

    Args:
        fix: Auto-fix issues where possible
    """
    fix_flag = " --fix" if fix else ""
    ctx.run(f"uv run ruff check .{fix_flag}", echo=True, pty=not WINDOWS)


@task
def format(ctx: Context, check: bool = False) -> None:
    """Run ruff formatter.

    Args:
        check: Only check, don't modify files
    """
    check_flag = " --check" if check else ""
    ctx.run(f"uv run ruff format .{check_flag}", echo=True, pty=not WINDOWS)


# Cleanup commands
@task
def clean(ctx: Context) -> None:
    """Remove bytecode, build, test and extraction artifacts."""
    ctx.run("find . -type f -name '*.py[co]' -delete", warn=True, echo=True, pty=not WINDOWS)
    ctx.run("find . -type d -name '__pycache__' -delete", warn=True, echo=True, pty=not WINDOWS)
    ctx.run("rm -rf build/ dist/ *.egg-info .eggs/", warn=True, echo=True, pty=not WINDOWS)
    ctx.run("rm -rf .pytest_cache/ .coverage htmlcov/ outputs/", warn=True, echo=True, pty=not WINDOWS)
    print("✓ Artifacts cleaned")
