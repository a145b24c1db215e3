"""Sanity checks on the project metadata in pyproject.toml."""

import tomllib
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[2]


def _project_table() -> dict:
    with (PROJECT_ROOT / "pyproject.toml").open("rb") as f:
        return tomllib.load(f)["project"]


def test_readme_is_not_an_internal_design_document() -> None:
    project = _project_table()

    assert project.get("readme") not in {"SPEC_FULL.md", "DESIGN.md"}


def test_runtime_dependencies_are_declared() -> None:
    names = {dep.split(">")[0].split("=")[0].strip() for dep in _project_table()["dependencies"]}

    assert {"httpx", "pydantic", "python-dotenv", "rich", "structlog"} <= names
