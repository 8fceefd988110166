"""Build phase: install, lint, type-check and build for the detected stack."""
from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog

from eco_pipeline.domain.entities.repo_profile import RepoProfile
from eco_pipeline.domain.value_objects.pipeline import Phase, StackType
from eco_pipeline.engine.context import RunContext
from eco_pipeline.engine.phases.common import (
    Command,
    custom_command,
    node_install,
    node_package_manager,
    run_commands,
)

logger = structlog.get_logger(__name__)


def _gradle(root: Path) -> str:
    return "./gradlew" if (root / "gradlew").is_file() else "gradle"


def build_plan(profile: RepoProfile, root: Path) -> list[Command]:
    """Default build commands for *profile*; empty when nothing applies."""
    stack = profile.stack
    if stack in (StackType.FRONTEND, StackType.NODE):
        manager = node_package_manager(root)
        plan = [node_install(root)]
        if profile.has_lint:
            plan.append([manager, "run", "lint"])
        if profile.has_typecheck:
            plan.append([manager, "run", "typecheck"])
        if profile.has_build:
            plan.append([manager, "run", "build"])
        return plan

    if stack is StackType.PYTHON:
        plan = []
        if (root / "requirements.txt").is_file():
            plan.append(["python", "-m", "pip", "install", "-r", "requirements.txt"])
        if (root / "pyproject.toml").is_file() or (root / "setup.py").is_file():
            plan.append(["python", "-m", "pip", "install", "-e", "."])
        if profile.has_lint:
            plan.append(["ruff", "check", "."])
        if profile.has_typecheck:
            plan.append(["mypy", "."])
        return plan

    if stack is StackType.DOTNET:
        return [
            ["dotnet", "restore"],
            ["dotnet", "build", "--no-restore", "--configuration", "Release"],
        ]

    if stack is StackType.GO:
        plan = [["go", "mod", "download"]]
        if profile.has_lint:
            plan.append(["golangci-lint", "run"])
        plan.append(["go", "build", "./..."])
        return plan

    if stack is StackType.JAVA:
        if "maven" in profile.frameworks:
            return [["mvn", "-B", "-DskipTests", "package"]]
        return [[_gradle(root), "build", "-x", "test"]]

    if stack is StackType.CONTAINER:
        return [["docker", "build", "-t", f"{root.resolve().name.lower()}:ci", "."]]

    return []


def run_build(ctx: RunContext) -> dict[str, Any]:
    """Run the build; ``build_command`` replaces the stack default.

    Raises:
        PhaseFailure: If any build command fails.
    """
    custom = custom_command(ctx, "build_command")
    commands = [custom] if custom else build_plan(ctx.profile, ctx.repo_root)
    if not commands:
        logger.info("build_skipped", stack=ctx.profile.stack.value)
        return {"skipped": True, "reason": f"no build steps for stack {ctx.profile.stack.value}"}
    metadata = run_commands(ctx, Phase.BUILD.value, commands)
    metadata["custom"] = custom is not None
    return metadata
