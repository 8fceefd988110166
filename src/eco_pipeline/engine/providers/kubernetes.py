"""Cluster provider: ``kubectl apply`` followed by a rollout status wait."""
from __future__ import annotations

from typing import Any

from eco_pipeline.engine.providers.base import BaseDeployProvider, DeployRequest, PlannedCommand


class KubernetesProvider(BaseDeployProvider):
    """Deploys manifests to a Kubernetes cluster."""

    name = "cluster"
    required_tools = ("kubectl",)
    required_keys = ("deployment_name",)

    def resolve_params(self, request: DeployRequest) -> dict[str, Any]:
        return {
            "namespace": request.get("namespace", "default"),
            "manifest_path": request.get("manifest_path", "k8s"),
            "deployment_name": self.require_for_plan(request, "deployment_name"),
            "rollout_timeout": str(request.get("rollout_timeout", "300s")),
        }

    def plan(self, request: DeployRequest, params: dict[str, Any]) -> list[PlannedCommand]:
        namespace = params["namespace"]
        return [
            PlannedCommand(
                ("kubectl", "apply", "-n", namespace, "-f", params["manifest_path"]),
            ),
            PlannedCommand(
                (
                    "kubectl",
                    "rollout",
                    "status",
                    f"deployment/{params['deployment_name']}",
                    "-n",
                    namespace,
                    f"--timeout={params['rollout_timeout']}",
                ),
                purpose="rollout verification",
            ),
        ]

    def describe(self, request: DeployRequest, params: dict[str, Any]) -> dict[str, Any]:
        return {
            "namespace": params["namespace"],
            "deployment": params["deployment_name"],
            "manifest_path": params["manifest_path"],
        }
