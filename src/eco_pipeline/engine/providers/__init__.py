"""Deploy providers: one contract over every supported back-end."""
from eco_pipeline.engine.providers.base import (
    BaseDeployProvider,
    DeployRequest,
    PlannedCommand,
    ProviderResult,
)
from eco_pipeline.engine.providers.registry import (
    DEFAULT_PROVIDER,
    PROVIDERS,
    ProviderName,
    deploy,
    get_provider,
    supported_providers,
)

__all__ = [
    "BaseDeployProvider",
    "DEFAULT_PROVIDER",
    "DeployRequest",
    "PROVIDERS",
    "PlannedCommand",
    "ProviderName",
    "ProviderResult",
    "deploy",
    "get_provider",
    "supported_providers",
]
