"""Deterministic CI workflow generation.

The generated document depends only on the repository profile and tree, so
re-running normalization on an unchanged repository is a no-op.
"""
from __future__ import annotations

import shlex
from pathlib import Path
from typing import Any

import yaml

from eco_pipeline.domain.entities.repo_profile import RepoProfile
from eco_pipeline.domain.value_objects.pipeline import StackType
from eco_pipeline.engine.phases.build import build_plan
from eco_pipeline.engine.phases.testing import suite_plan

CI_WORKFLOW_PATH = Path(".github") / "workflows" / "ci.yml"

HEADER = "# Generated by eco-pipeline. Changes are overwritten by the Heal phase.\n"

_SETUP_STEPS: dict[StackType, dict[str, Any]] = {
    StackType.FRONTEND: {"uses": "actions/setup-node@v4", "with": {"node-version": "20"}},
    StackType.NODE: {"uses": "actions/setup-node@v4", "with": {"node-version": "20"}},
    StackType.PYTHON: {"uses": "actions/setup-python@v5", "with": {"python-version": "3.12"}},
    StackType.DOTNET: {"uses": "actions/setup-dotnet@v4", "with": {"dotnet-version": "8.0.x"}},
    StackType.GO: {"uses": "actions/setup-go@v5", "with": {"go-version-file": "go.mod"}},
    StackType.JAVA: {
        "uses": "actions/setup-java@v4",
        "with": {"distribution": "temurin", "java-version": "21"},
    },
}


def ci_workflow(profile: RepoProfile, root: Path, *, default_branch: str = "main") -> dict[str, Any]:
    """Build the CI workflow document for *profile*."""
    steps: list[dict[str, Any]] = [{"name": "Checkout", "uses": "actions/checkout@v4"}]
    setup = _SETUP_STEPS.get(profile.stack)
    if setup is not None:
        steps.append({"name": "Set up toolchain", **setup})

    for argv in build_plan(profile, root):
        steps.append({"name": " ".join(argv[:3]), "run": shlex.join(argv)})
    if profile.has_test:
        for argv in suite_plan(profile, root):
            steps.append({"name": "Test", "run": shlex.join(argv)})

    return {
        "name": "CI",
        "on": {
            "push": {"branches": [default_branch]},
            "pull_request": {"branches": [default_branch]},
        },
        "permissions": {"contents": "read"},
        "concurrency": {
            "group": "ci-${{ github.ref }}",
            "cancel-in-progress": True,
        },
        "jobs": {
            "build": {
                "runs-on": "ubuntu-latest",
                "timeout-minutes": 30,
                "steps": steps,
            }
        },
    }


def render_ci_workflow(profile: RepoProfile, root: Path, *, default_branch: str = "main") -> str:
    """Serialize the CI workflow with a stable key order."""
    document = ci_workflow(profile, root, default_branch=default_branch)
    body = yaml.safe_dump(document, sort_keys=False, default_flow_style=False, width=120)
    return HEADER + body
