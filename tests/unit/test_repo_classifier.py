"""Repository classifier."""
from __future__ import annotations

from pathlib import Path

from eco_pipeline.domain.value_objects.pipeline import StackType
from eco_pipeline.infrastructure.repo_classifier import classify_repository
from tests.helpers import write_json, write_text


def test_react_app_is_frontend_with_capabilities(tmp_path: Path):
    write_json(
        tmp_path / "package.json",
        {
            "scripts": {"build": "vite build", "lint": "eslint .", "test": "vitest"},
            "dependencies": {"react": "^18"},
            "devDependencies": {"vite": "^5", "typescript": "^5"},
        },
    )
    write_text(tmp_path / "Dockerfile", "FROM node:20\n")
    profile = classify_repository(tmp_path)
    assert profile.stack is StackType.FRONTEND
    assert profile.is_frontend
    assert profile.has_build and profile.has_lint and profile.has_test
    assert not profile.has_typecheck
    assert profile.frameworks == ("react", "vite", "typescript")


def test_npm_placeholder_test_script_is_not_a_test(tmp_path: Path):
    write_json(
        tmp_path / "package.json",
        {"scripts": {"test": 'echo "Error: no test specified" && exit 1'}, "dependencies": {"express": "^4"}},
    )
    profile = classify_repository(tmp_path)
    assert profile.stack is StackType.NODE
    assert profile.has_test is False
    assert profile.frameworks == ("express",)


def test_python_project(tmp_path: Path):
    write_text(
        tmp_path / "pyproject.toml",
        '[build-system]\nrequires = ["setuptools"]\n[project]\ndependencies = ["fastapi"]\n'
        '[project.optional-dependencies]\ndev = ["ruff", "mypy"]\n',
    )
    (tmp_path / "tests").mkdir()
    profile = classify_repository(tmp_path)
    assert profile.stack is StackType.PYTHON
    assert profile.has_lint and profile.has_typecheck and profile.has_test and profile.has_build
    assert profile.frameworks == ("fastapi",)


def test_go_module(tmp_path: Path):
    write_text(tmp_path / "go.mod", "module example.com/x\n")
    write_text(tmp_path / "pkg/x_test.go", "package pkg\n")
    profile = classify_repository(tmp_path)
    assert profile.stack is StackType.GO
    assert profile.has_test


def test_gradle_and_container_and_unknown(tmp_path: Path):
    java = tmp_path / "java"
    write_text(java / "build.gradle", "")
    assert classify_repository(java).frameworks == ("gradle",)

    image = tmp_path / "image"
    write_text(image / "Dockerfile", "FROM scratch\n")
    assert classify_repository(image).stack is StackType.CONTAINER

    empty = tmp_path / "empty"
    empty.mkdir()
    assert classify_repository(empty).stack is StackType.UNKNOWN


def test_monorepo_markers(tmp_path: Path):
    write_json(tmp_path / "package.json", {"workspaces": ["packages/*"]})
    assert classify_repository(tmp_path).is_monorepo

    other = tmp_path / "other"
    write_text(other / "turbo.json", "{}")
    assert classify_repository(other).is_monorepo


def test_malformed_package_json_is_tolerated(tmp_path: Path):
    write_text(tmp_path / "package.json", "{oops")
    profile = classify_repository(tmp_path)
    assert profile.stack is StackType.NODE
    assert profile.frameworks == ()
