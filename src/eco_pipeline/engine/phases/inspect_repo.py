"""DetectRepo and Policy phases."""
from __future__ import annotations

from typing import Any

import structlog

from eco_pipeline.domain.entities.policy import PolicyResult
from eco_pipeline.engine.context import RunContext
from eco_pipeline.engine.policy import PolicyEngine, evaluate_policy
from eco_pipeline.infrastructure.reporting import render_policy
from eco_pipeline.shared.exceptions import PolicyViolationError

logger = structlog.get_logger(__name__)


def run_detect_repo(ctx: RunContext) -> dict[str, Any]:
    """Return the boot-time repository profile."""
    return ctx.profile.summary()


def policy_engine_for(ctx: RunContext) -> PolicyEngine:
    return PolicyEngine(
        ctx.repo_root,
        config=ctx.config,
        overrides=ctx.args.overrides,
        config_root=ctx.args.resolved_config_root,
        scanner=ctx.scanner,
        github_api_url=ctx.settings.github_api_url,
        http_timeout=ctx.settings.http_timeout_seconds,
    )


def policy_metadata(result: PolicyResult, score: int) -> dict[str, Any]:
    """Published metadata: numeric score plus the per-rule map."""
    return {
        "score": score,
        "rules": {name: status.value for name, status in result.rules.items()},
    }


def run_policy(ctx: RunContext) -> dict[str, Any]:
    """Evaluate governance rules and publish the score.

    Raises:
        PolicyViolationError: If any rule produced a violation.
    """
    result, score = evaluate_policy(
        policy_engine_for(ctx),
        ctx.args.environment,
        ctx.args.token,
        ctx.args.repository,
    )
    metadata = policy_metadata(result, score)
    logger.info("policy_scored", score=score, passed=result.passed)
    ctx.report("policy", render_policy(result, score, metadata))

    if not result.passed:
        raise PolicyViolationError(
            f"{len(result.violations)} policy violation(s); governance score {score}/100: "
            + "; ".join(f"{v.rule_id} {v.location}".strip() for v in result.violations),
            score=score,
            context=metadata,
        )
    metadata["warnings"] = len(result.warnings)
    return metadata
