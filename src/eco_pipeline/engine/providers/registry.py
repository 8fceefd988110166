"""Provider registry and the ``deploy`` entry point.

Adding a back-end means adding a :class:`ProviderName` member and one
registry entry; the import-time check below keeps the two in step.
"""
from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Mapping

import structlog

from eco_pipeline.config.resolver import ConfigResolver
from eco_pipeline.domain.value_objects.pipeline import Environment
from eco_pipeline.engine.providers.azure_webapp import AzureWebAppProvider
from eco_pipeline.engine.providers.base import BaseDeployProvider, DeployRequest, ProviderResult
from eco_pipeline.engine.providers.ecs import EcsProvider
from eco_pipeline.engine.providers.kubernetes import KubernetesProvider
from eco_pipeline.engine.providers.script import ScriptProvider
from eco_pipeline.engine.providers.vercel import VercelProvider
from eco_pipeline.infrastructure.process import CommandRunner
from eco_pipeline.shared.exceptions import UnknownProvider

logger = structlog.get_logger(__name__)


class ProviderName(str, Enum):
    """Supported deploy targets."""

    CLUSTER = "cluster"
    CLOUD_WEBAPP = "cloud-webapp"
    CONTAINER_SERVICE = "container-service"
    STATIC_SITE = "static-site"
    GENERIC_SCRIPT = "generic-script"


DEFAULT_PROVIDER = ProviderName.GENERIC_SCRIPT

PROVIDERS: dict[ProviderName, type[BaseDeployProvider]] = {
    ProviderName.CLUSTER: KubernetesProvider,
    ProviderName.CLOUD_WEBAPP: AzureWebAppProvider,
    ProviderName.CONTAINER_SERVICE: EcsProvider,
    ProviderName.STATIC_SITE: VercelProvider,
    ProviderName.GENERIC_SCRIPT: ScriptProvider,
}

_missing = set(ProviderName) - set(PROVIDERS)
if _missing:
    raise RuntimeError(f"Providers without an implementation: {sorted(m.value for m in _missing)}")


def supported_providers() -> list[str]:
    return [member.value for member in ProviderName]


def get_provider(name: str | ProviderName) -> BaseDeployProvider:
    """Instantiate the provider registered under *name*.

    Raises:
        UnknownProvider: If *name* is not a supported provider.
    """
    try:
        key = ProviderName(name)
    except ValueError:
        raise UnknownProvider(str(name), supported_providers()) from None
    return PROVIDERS[key]()


def deploy(
    provider_name: str | ProviderName,
    env: Environment,
    overrides: Mapping[str, Any] | None,
    dry_run: bool,
    *,
    config: ConfigResolver,
    runner: CommandRunner,
    workdir: Path | None = None,
) -> ProviderResult:
    """Deploy with the named provider.

    Raises:
        UnknownProvider: If *provider_name* is not supported.
        ProviderExecutionError: On any deploy or verification failure.
    """
    provider = get_provider(provider_name)
    logger.info(
        "deploy_started",
        provider=provider.name,
        environment=env.value,
        dry_run=dry_run,
    )
    request = DeployRequest(
        environment=env,
        config=config,
        runner=runner,
        overrides=dict(overrides or {}),
        dry_run=dry_run,
        workdir=Path(workdir) if workdir else Path.cwd(),
    )
    return provider.deploy(request)
