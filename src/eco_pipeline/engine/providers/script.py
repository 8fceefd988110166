"""Generic-script provider: runs a repository-supplied deploy script."""
from __future__ import annotations

from pathlib import Path
from typing import Any

from eco_pipeline.engine.providers.base import BaseDeployProvider, DeployRequest, PlannedCommand

_INTERPRETERS: dict[str, tuple[str, ...]] = {
    ".sh": ("bash",),
    ".ps1": ("pwsh", "-NoProfile", "-File"),
    ".py": ("python",),
}


def interpreter_for(script: str) -> tuple[str, ...]:
    """Interpreter prefix for *script*; empty means execute directly."""
    return _INTERPRETERS.get(Path(script).suffix.lower(), ())


class ScriptProvider(BaseDeployProvider):
    """Executes ``script_path`` with the environment name as first argument."""

    name = "generic-script"
    required_keys = ("script_path",)

    def resolve_params(self, request: DeployRequest) -> dict[str, Any]:
        script = str(self.require(request, "script_path"))
        if not request.dry_run and not (Path(request.workdir) / script).is_file():
            raise self.fail(f"deploy script not found: {script}")
        return {"script_path": script}

    def plan(self, request: DeployRequest, params: dict[str, Any]) -> list[PlannedCommand]:
        script = params["script_path"]
        return [PlannedCommand((*interpreter_for(script), script, request.environment.value))]
