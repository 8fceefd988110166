"""Deploy phase and the front-end build-output gate."""
from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog

from eco_pipeline.domain.value_objects.pipeline import Phase
from eco_pipeline.engine.context import RunContext
from eco_pipeline.engine.providers import DEFAULT_PROVIDER, deploy
from eco_pipeline.infrastructure.pattern_scanner import SECRET_PATTERNS
from eco_pipeline.shared.exceptions import PhaseFailure

logger = structlog.get_logger(__name__)

BUILD_OUTPUT_CANDIDATES: tuple[str, ...] = ("dist", "build", "out")


def build_output_dir(ctx: RunContext) -> Path | None:
    """Configured ``build_output_dir``, else the first existing candidate."""
    configured = ctx.get("build_output_dir")
    if configured:
        path = ctx.repo_root / str(configured)
        return path if path.is_dir() else None
    for name in BUILD_OUTPUT_CANDIDATES:
        path = ctx.repo_root / name
        if path.is_dir():
            return path
    return None


def frontend_gate(ctx: RunContext, phase: str = Phase.DEPLOY.value) -> dict[str, Any]:
    """Require a built output directory free of critical secret matches.

    Raises:
        PhaseFailure: If the directory is missing or leaks a secret.
    """
    output = build_output_dir(ctx)
    if output is None:
        expected = ctx.get("build_output_dir") or " or ".join(BUILD_OUTPUT_CANDIDATES)
        raise PhaseFailure(
            f"{phase}: front-end build output not found (expected {expected}); run Build first",
            phase=phase,
        )

    display = output.relative_to(ctx.repo_root).as_posix()
    matches = ctx.scanner([output], SECRET_PATTERNS)
    critical = [m for m in matches if m.severity.is_blocking]
    if critical:
        listing = ", ".join(f"{m.location} ({m.category})" for m in critical)
        raise PhaseFailure(
            f"{phase}: secrets found in front-end build output {display}/: {listing}",
            phase=phase,
            context={"locations": [m.location for m in critical]},
        )

    logger.info("frontend_gate_passed", output=display, warnings=len(matches))
    return {"build_output": display, "secret_warnings": len(matches)}


def run_deploy(ctx: RunContext) -> dict[str, Any]:
    """Deploy through the configured provider.

    Raises:
        PhaseFailure: If the front-end gate fails.
        UnknownProvider: If ``deploy_provider`` is not supported.
        ProviderExecutionError: If the provider fails.
    """
    provider = str(ctx.get("deploy_provider", DEFAULT_PROVIDER.value))
    metadata: dict[str, Any] = {"provider": provider}

    if ctx.profile.is_frontend and not ctx.dry_run:
        metadata["gate"] = frontend_gate(ctx)

    result = deploy(
        provider,
        ctx.args.environment,
        ctx.args.override_args(),
        ctx.dry_run,
        config=ctx.config,
        runner=ctx.runner,
        workdir=ctx.repo_root,
    )
    metadata["result"] = result.model_dump()
    return metadata
