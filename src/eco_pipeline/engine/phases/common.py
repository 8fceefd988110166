"""Helpers shared by the command-running phases."""
from __future__ import annotations

import shlex
from pathlib import Path
from typing import Any

import structlog

from eco_pipeline.engine.context import RunContext
from eco_pipeline.infrastructure.process import mask_command
from eco_pipeline.shared.exceptions import CommandExecutionError, PhaseFailure

logger = structlog.get_logger(__name__)

Command = list[str]


def node_package_manager(root: Path) -> str:
    """Package manager implied by the lockfile in *root*."""
    if (root / "pnpm-lock.yaml").is_file():
        return "pnpm"
    if (root / "yarn.lock").is_file():
        return "yarn"
    return "npm"


def node_install(root: Path) -> Command:
    manager = node_package_manager(root)
    if manager == "pnpm":
        return ["pnpm", "install", "--frozen-lockfile"]
    if manager == "yarn":
        return ["yarn", "install", "--frozen-lockfile"]
    if (root / "package-lock.json").is_file():
        return ["npm", "ci"]
    return ["npm", "install"]


def custom_command(ctx: RunContext, key: str) -> Command | None:
    """Parse a configured command string (or argv list) for *key*."""
    value = ctx.get(key)
    if not value:
        return None
    if isinstance(value, (list, tuple)):
        return [str(part) for part in value]
    return shlex.split(str(value))


def run_commands(ctx: RunContext, phase: str, commands: list[Command]) -> dict[str, Any]:
    """Run *commands* in order inside the repository root.

    Dry runs only report the masked command lines.

    Raises:
        PhaseFailure: On the first command that cannot start, exits
            non-zero or times out.
    """
    secrets = ctx.secret_values()
    rendered = [mask_command(argv, secrets) for argv in commands]
    if ctx.dry_run:
        logger.info("phase_dry_run", phase=phase, commands=rendered)
        return {"commands": rendered, "dry_run": True}

    durations: list[float] = []
    for argv, display in zip(commands, rendered):
        try:
            result = ctx.runner.run(argv, cwd=ctx.repo_root)
        except CommandExecutionError as exc:
            raise PhaseFailure(
                f"{phase}: {exc.message}",
                phase=phase,
                context={"command": display},
            ) from exc
        if not result.ok:
            reason = "timed out" if result.timed_out else f"exited {result.returncode}"
            raise PhaseFailure(
                f"{phase}: `{display}` {reason}\n{result.diagnostic()}",
                phase=phase,
                context={"command": display, "returncode": result.returncode},
            )
        durations.append(round(result.duration_seconds, 3))
    return {"commands": rendered, "durations": durations}
