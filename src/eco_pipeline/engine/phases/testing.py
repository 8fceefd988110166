"""Test phase."""
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
    node_package_manager,
    run_commands,
)

logger = structlog.get_logger(__name__)


def suite_plan(profile: RepoProfile, root: Path) -> list[Command]:
    """Default test command for *profile*; empty when the stack has none."""
    stack = profile.stack
    if stack in (StackType.FRONTEND, StackType.NODE):
        return [[node_package_manager(root), "test"]]
    if stack is StackType.PYTHON:
        return [["python", "-m", "pytest"]]
    if stack is StackType.DOTNET:
        return [["dotnet", "test", "--configuration", "Release"]]
    if stack is StackType.GO:
        return [["go", "test", "./..."]]
    if stack is StackType.JAVA:
        if "maven" in profile.frameworks:
            return [["mvn", "-B", "test"]]
        gradle = "./gradlew" if (root / "gradlew").is_file() else "gradle"
        return [[gradle, "test"]]
    return []


def run_tests(ctx: RunContext) -> dict[str, Any]:
    """Run the test suite; skipped when the repository has no tests.

    Raises:
        PhaseFailure: If the test command fails.
    """
    custom = custom_command(ctx, "test_command")
    if custom is None and not ctx.profile.has_test:
        logger.info("tests_skipped", stack=ctx.profile.stack.value)
        return {"skipped": True, "reason": "repository has no tests"}
    commands = [custom] if custom else suite_plan(ctx.profile, ctx.repo_root)
    if not commands:
        return {"skipped": True, "reason": f"no test runner for stack {ctx.profile.stack.value}"}
    metadata = run_commands(ctx, Phase.TEST.value, commands)
    metadata["custom"] = custom is not None
    return metadata
