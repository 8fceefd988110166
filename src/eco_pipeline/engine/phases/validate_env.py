"""ValidateEnv phase: pre-flight checks for the configured provider."""
from __future__ import annotations

from typing import Any

import structlog

from eco_pipeline.domain.value_objects.pipeline import Phase
from eco_pipeline.engine.context import RunContext
from eco_pipeline.engine.providers import DEFAULT_PROVIDER, get_provider
from eco_pipeline.shared.exceptions import PhaseFailure

logger = structlog.get_logger(__name__)


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def run_validate_env(ctx: RunContext) -> dict[str, Any]:
    """Check tools, provider keys and override-only secrets.

    Tool lookups are skipped in dry-run.

    Raises:
        UnknownProvider: If ``deploy_provider`` is not supported.
        PhaseFailure: Listing every missing item.
    """
    provider = get_provider(str(ctx.get("deploy_provider", DEFAULT_PROVIDER.value)))
    missing: list[str] = []

    if not ctx.dry_run:
        for tool in provider.required_tools:
            if ctx.runner.which(tool) is None:
                missing.append(f"tool:{tool}")

    for key in provider.required_keys:
        if _blank(ctx.get(key)):
            missing.append(f"config:{key}")

    overrides = ctx.args.overrides
    for key in provider.secret_keys:
        if _blank(overrides.get(key)):
            missing.append(f"override:{key}")

    metadata = {
        "provider": provider.name,
        "tools_checked": not ctx.dry_run,
        "missing": missing,
    }
    if missing:
        logger.error("environment_invalid", provider=provider.name, missing=missing)
        raise PhaseFailure(
            f"{Phase.VALIDATE_ENV.value}: missing {', '.join(missing)}",
            phase=Phase.VALIDATE_ENV.value,
            context=metadata,
        )
    logger.info("environment_valid", provider=provider.name)
    return metadata
