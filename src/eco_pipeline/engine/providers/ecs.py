"""Container-service provider backed by the AWS CLI (ECS)."""
from __future__ import annotations

from typing import Any

from eco_pipeline.engine.providers.base import BaseDeployProvider, DeployRequest, PlannedCommand
from eco_pipeline.shared.exceptions import ProviderExecutionError


class EcsProvider(BaseDeployProvider):
    """Forces a new ECS deployment and waits for the service to settle."""

    name = "container-service"
    required_tools = ("aws",)
    required_keys = ("cluster", "service")

    def resolve_params(self, request: DeployRequest) -> dict[str, Any]:
        raw_timeout = request.get("wait_timeout", 600)
        try:
            wait_timeout = float(raw_timeout)
        except (TypeError, ValueError):
            raise ProviderExecutionError(
                f"{self.name}: wait_timeout must be a number of seconds, got {raw_timeout!r}",
                provider=self.name,
            ) from None
        return {
            "cluster": self.require(request, "cluster"),
            "service": self.require(request, "service"),
            "wait_timeout": wait_timeout,
        }

    def plan(self, request: DeployRequest, params: dict[str, Any]) -> list[PlannedCommand]:
        cluster, service = params["cluster"], params["service"]
        return [
            PlannedCommand(
                (
                    "aws", "ecs", "update-service",
                    "--cluster", cluster,
                    "--service", service,
                    "--force-new-deployment",
                ),
            ),
            PlannedCommand(
                (
                    "aws", "ecs", "wait", "services-stable",
                    "--cluster", cluster,
                    "--services", service,
                ),
                purpose="service stability wait",
                timeout=params["wait_timeout"],
            ),
        ]

    def describe(self, request: DeployRequest, params: dict[str, Any]) -> dict[str, Any]:
        return {"cluster": params["cluster"], "service": params["service"]}
