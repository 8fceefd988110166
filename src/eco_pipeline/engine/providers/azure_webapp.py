"""Cloud web-app provider backed by the Azure CLI.

Production deploys with a configured slot go to the slot first and are
promoted with a slot swap; other deploys are verified by reading the app
state.
"""
from __future__ import annotations

from typing import Any

from eco_pipeline.domain.value_objects.pipeline import Environment
from eco_pipeline.engine.providers.base import BaseDeployProvider, DeployRequest, PlannedCommand
from eco_pipeline.infrastructure.process import CommandResult


class AzureWebAppProvider(BaseDeployProvider):
    """Deploys a package to an Azure App Service web app."""

    name = "cloud-webapp"
    required_tools = ("az",)
    required_keys = ("resource_group", "app_name")

    def resolve_params(self, request: DeployRequest) -> dict[str, Any]:
        return {
            "resource_group": self.require(request, "resource_group"),
            "app_name": self.require(request, "app_name"),
            "source_path": request.get("source_path", "."),
            "slot": request.get("slot") or None,
        }

    @staticmethod
    def _swaps(request: DeployRequest, params: dict[str, Any]) -> bool:
        return request.environment is Environment.PROD and bool(params["slot"])

    def plan(self, request: DeployRequest, params: dict[str, Any]) -> list[PlannedCommand]:
        group, app = params["resource_group"], params["app_name"]
        deploy = [
            "az", "webapp", "deploy",
            "--resource-group", group,
            "--name", app,
            "--src-path", params["source_path"],
            "--type", "zip",
        ]
        if params["slot"]:
            deploy += ["--slot", params["slot"]]
        commands = [PlannedCommand(tuple(deploy))]

        if self._swaps(request, params):
            commands.append(
                PlannedCommand(
                    (
                        "az", "webapp", "deployment", "slot", "swap",
                        "--resource-group", group,
                        "--name", app,
                        "--slot", params["slot"],
                        "--target-slot", "production",
                    ),
                    purpose="slot swap",
                )
            )
        else:
            show = [
                "az", "webapp", "show",
                "--resource-group", group,
                "--name", app,
                "--query", "state",
                "-o", "tsv",
            ]
            if params["slot"]:
                show += ["--slot", params["slot"]]
            commands.append(PlannedCommand(tuple(show), purpose="state verification"))
        return commands

    def describe(self, request: DeployRequest, params: dict[str, Any]) -> dict[str, Any]:
        return {
            "resource_group": params["resource_group"],
            "app_name": params["app_name"],
            "slot": params["slot"],
            "swapped_to_production": self._swaps(request, params),
        }

    def verify(
        self,
        request: DeployRequest,
        params: dict[str, Any],
        results: list[CommandResult],
    ) -> dict[str, Any]:
        if self._swaps(request, params):
            return {}
        state = results[-1].stdout.strip()
        if state.lower() != "running":
            raise self.fail(f"web app reports state {state or 'unknown'!r}", results[-1])
        return {"state": state}
