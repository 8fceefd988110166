"""Static-site provider backed by the Vercel CLI.

The access token is mandatory and only accepted from override arguments;
a token found in the configuration file is refused.
"""
from __future__ import annotations

import re
from typing import Any

from eco_pipeline.domain.value_objects.pipeline import Environment
from eco_pipeline.engine.providers.base import BaseDeployProvider, DeployRequest, PlannedCommand
from eco_pipeline.infrastructure.process import CommandResult
from eco_pipeline.shared.exceptions import ProviderExecutionError

_URL_PATTERN = re.compile(r"https://[^\s\"'<>]+")


class VercelProvider(BaseDeployProvider):
    """Deploys a static site; production flag set for ``Prod``."""

    name = "static-site"
    required_tools = ("vercel",)
    required_keys = ("site_org", "site_project")
    secret_keys = ("site_token",)

    def resolve_params(self, request: DeployRequest) -> dict[str, Any]:
        token = request.overrides.get("site_token")
        if not token:
            hint = (
                " (a value in the configuration file is ignored)"
                if request.config.from_file("site_token")
                else ""
            )
            raise ProviderExecutionError(
                f"{self.name}: site_token must be passed as an override argument{hint}",
                provider=self.name,
            )
        return {
            "site_token": str(token),
            "site_org": self.require(request, "site_org"),
            "site_project": self.require(request, "site_project"),
            "production": request.environment is Environment.PROD,
        }

    def plan(self, request: DeployRequest, params: dict[str, Any]) -> list[PlannedCommand]:
        argv = ["vercel", "deploy", "--yes", "--token", params["site_token"]]
        if params["production"]:
            argv.append("--prod")
        return [PlannedCommand(tuple(argv))]

    def command_env(self, params: dict[str, Any]) -> dict[str, str] | None:
        return {
            "VERCEL_ORG_ID": str(params["site_org"]),
            "VERCEL_PROJECT_ID": str(params["site_project"]),
        }

    def describe(self, request: DeployRequest, params: dict[str, Any]) -> dict[str, Any]:
        return {
            "org": params["site_org"],
            "project": params["site_project"],
            "production": params["production"],
        }

    def verify(
        self,
        request: DeployRequest,
        params: dict[str, Any],
        results: list[CommandResult],
    ) -> dict[str, Any]:
        urls = _URL_PATTERN.findall(results[-1].stdout)
        if not urls:
            raise self.fail("no deployment URL found in CLI output", results[-1])
        return {"url": urls[-1]}
