"""Nox sessions orchestrating the console unit suites."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

import nox


PYTHON_VERSIONS = ["3.11"]
PROJECT_ROOT = Path(__file__).parent

nox.options.sessions = [
    "tests(unit_firestore)",
    "tests(unit_devices)",
    "tests(unit_reconcile)",
    "tests(unit_api)",
]


def _install_test_requirements(session: nox.Session) -> None:
    """Install the project with its testing toolchain inside the session environment."""

    session.install("-e", ".[test]")


def _normalize_pythonpath(existing: str | None) -> str:
    parts = [str(PROJECT_ROOT)]
    if existing:
        parts.append(existing)
    return ":".join(part for part in parts if part)


def _build_env(session: nox.Session) -> dict[str, str]:
    env = dict(session.env)
    env["PYTHONPATH"] = _normalize_pythonpath(env.get("PYTHONPATH"))
    return env


def _run_suite(session: nox.Session, suite: str, targets: Iterable[str]) -> None:
    _install_test_requirements(session)

    env = _build_env(session)
    data_file = PROJECT_ROOT / f".coverage.{suite}"

    session.log("Running %s suite: %s", suite, " ".join(targets))
    session.run(
        "coverage", "run", f"--data-file={data_file}", f"--context={suite}",
        "-m", "pytest", *targets, *session.posargs,
        env=env,
    )
    session.run("coverage", "report", f"--data-file={data_file}", env=env)


@nox.session(python=PYTHON_VERSIONS, reuse_venv=True, name="tests(unit_firestore)")
def tests_unit_firestore(session: nox.Session) -> None:
    """Execute repository, config and model suites."""

    targets = ["tests/unit/firestore", "tests/unit/config"]
    _run_suite(session, "firestore", targets)


@nox.session(python=PYTHON_VERSIONS, reuse_venv=True, name="tests(unit_devices)")
def tests_unit_devices(session: nox.Session) -> None:
    """Execute device ledger and admission suites."""

    targets = ["tests/unit/devices"]
    _run_suite(session, "devices", targets)


@nox.session(python=PYTHON_VERSIONS, reuse_venv=True, name="tests(unit_reconcile)")
def tests_unit_reconcile(session: nox.Session) -> None:
    """Execute reconciliation sweep and CLI suites."""

    targets = ["tests/unit/reconcile"]
    _run_suite(session, "reconcile", targets)


@nox.session(python=PYTHON_VERSIONS, reuse_venv=True, name="tests(unit_api)")
def tests_unit_api(session: nox.Session) -> None:
    """Execute API unit + HTTP suites."""

    targets = ["tests/unit/api"]
    _run_suite(session, "api", targets)
