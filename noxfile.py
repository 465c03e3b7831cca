"""Nox sessions for earmark development tasks."""

from __future__ import annotations

from pathlib import Path

import nox


ROOT = Path(__file__).parent
PACKAGE = "src/earmark"

nox.options.error_on_missing_interpreters = False
nox.options.sessions = ["lint", "typecheck", "tests"]


def _has_mypy_config() -> bool:
    pyproject = ROOT / "pyproject.toml"
    if (ROOT / "mypy.ini").is_file():
        return True
    return pyproject.is_file() and "[tool.mypy]" in pyproject.read_text(
        encoding="utf-8"
    )


@nox.session
def lint(session: nox.Session) -> None:
    """Run ruff linting and formatting checks."""
    session.install("ruff")
    session.run("ruff", "check", ".")
    session.run("ruff", "format", "--check", ".")


@nox.session(name="lint-fix")
def lint_fix(session: nox.Session) -> None:
    """Apply ruff fixes and formatting."""
    session.install("ruff")
    session.run("ruff", "check", "--fix", ".")
    session.run("ruff", "format", ".")


@nox.session
def tests(session: nox.Session) -> None:
    """Run pytest with VLC-backed tests skipped."""
    session.install("-e", ".[dev]")
    session.env["EARMARK_CI"] = "1"
    session.run("pytest", "-q", *session.posargs)


@nox.session
def typecheck(session: nox.Session) -> None:
    """Run mypy when a config is present."""
    if not _has_mypy_config():
        session.skip("mypy config not found")
    session.install("-e", ".[dev]")
    session.install("mypy")
    session.run("mypy", PACKAGE)


@nox.session
def coverage(session: nox.Session) -> None:
    """Run the suite under coverage."""
    session.install("-e", ".[dev]")
    session.install("coverage")
    session.env["EARMARK_CI"] = "1"
    session.run("coverage", "run", "--source=earmark", "-m", "pytest")
    session.run("coverage", "report", "--fail-under=80", "-m")


@nox.session
def build(session: nox.Session) -> None:
    """Build sdist and wheel artifacts."""
    session.install("build")
    session.run("python", "-m", "build")


@nox.session(name="tests-dev", venv_backend="none")
def tests_dev(session: nox.Session) -> None:
    """Fast local pytest using the active venv, VLC tests included."""
    session.run("python", "-m", "pytest", "-q", *session.posargs, external=True)
