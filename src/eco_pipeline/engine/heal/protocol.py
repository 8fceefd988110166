"""Nine-step self-healing protocol.

Steps run strictly in order.  Each step returns an explicit
:class:`StepResult`; the driver wraps every step in its own failure
boundary, records one :class:`HealStepOutcome` per step and always moves
on.  A heal run is ``pass`` when every step passed and ``partial``
otherwise; it never aborts early.

Skipped steps are recorded as ``pass`` with ``skipped: true`` metadata.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, NamedTuple

import structlog
import yaml

from eco_pipeline.domain.entities.run import HealStepOutcome
from eco_pipeline.domain.value_objects.pipeline import PhaseStatus
from eco_pipeline.engine.context import RunContext
from eco_pipeline.engine.heal.ci_templates import CI_WORKFLOW_PATH, render_ci_workflow
from eco_pipeline.engine.phases import (
    build_output_dir,
    frontend_gate,
    run_build,
    run_policy,
    run_tests,
    run_validate_env,
)
from eco_pipeline.engine.policy import dangerous_reasons, workflow_files
from eco_pipeline.shared.exceptions import PipelineError

logger = structlog.get_logger(__name__)

UNSAFE_WORKFLOW_DENYLIST: tuple[str, ...] = (
    ".github/workflows/auto-merge.yml",
    ".github/workflows/auto-merge.yaml",
    ".github/workflows/auto-fix.yml",
    ".github/workflows/auto-fix.yaml",
    ".github/workflows/self-heal-push.yml",
    ".github/workflows/pr-comment-exec.yml",
)


# ---------------------------------------------------------------------------
# Step result
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StepResult:
    """What a heal step reports back to the driver."""

    status: PhaseStatus
    metadata: dict[str, Any] = field(default_factory=dict)
    error: str = ""

    @classmethod
    def ok(cls, **metadata: Any) -> StepResult:
        return cls(PhaseStatus.PASS, metadata)

    @classmethod
    def skipped(cls, reason: str, **metadata: Any) -> StepResult:
        return cls(PhaseStatus.PASS, {"skipped": True, "reason": reason, **metadata})

    @classmethod
    def failed(cls, error: str, **metadata: Any) -> StepResult:
        return cls(PhaseStatus.FAIL, metadata, error)


class HealStep(NamedTuple):
    name: str
    run: Callable[[RunContext], StepResult]


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------


def remove_unsafe_workflows(ctx: RunContext) -> StepResult:
    root = ctx.repo_root
    denylisted = [rel for rel in UNSAFE_WORKFLOW_DENYLIST if (root / rel).is_file()]
    if not ctx.dry_run:
        for rel in denylisted:
            (root / rel).unlink()
            logger.warning("unsafe_workflow_removed", path=rel)

    flagged: dict[str, list[str]] = {}
    unparseable: list[str] = []
    for path in workflow_files(root):
        rel = path.relative_to(root).as_posix()
        if rel in denylisted:
            continue
        try:
            reasons = dangerous_reasons(path)
        except (yaml.YAMLError, ValueError) as exc:
            logger.warning("workflow_unparseable", path=rel, error=str(exc))
            unparseable.append(rel)
            continue
        if reasons:
            flagged[rel] = reasons

    key = "would_remove" if ctx.dry_run else "removed"
    metadata = {key: denylisted, "flagged": flagged, "unparseable": unparseable}
    if flagged:
        return StepResult.failed(
            "dangerous workflows remain: " + ", ".join(sorted(flagged)),
            **metadata,
        )
    return StepResult.ok(**metadata)


def classify_repo(ctx: RunContext) -> StepResult:
    return StepResult.ok(**ctx.profile.summary())


def normalize_ci(ctx: RunContext) -> StepResult:
    path = ctx.repo_root / CI_WORKFLOW_PATH
    content = render_ci_workflow(
        ctx.profile,
        ctx.repo_root,
        default_branch=str(ctx.get("default_branch", "main") or "main"),
    )
    current = path.read_text(encoding="utf-8") if path.is_file() else None
    display = CI_WORKFLOW_PATH.as_posix()
    if current == content:
        return StepResult.ok(path=display, changed=False)
    if ctx.dry_run:
        return StepResult.ok(path=display, changed=False, would_write=True)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    logger.info("ci_workflow_written", path=display)
    return StepResult.ok(path=display, changed=True)


def validate_env(ctx: RunContext) -> StepResult:
    return StepResult.ok(**run_validate_env(ctx))


def build_and_test(ctx: RunContext) -> StepResult:
    build = run_build(ctx)
    tests = run_tests(ctx)
    return StepResult.ok(build=build, test=tests)


def frontend_secret_gate(ctx: RunContext) -> StepResult:
    if not ctx.profile.is_frontend:
        return StepResult.skipped("not a front-end repository")
    if ctx.dry_run and build_output_dir(ctx) is None:
        return StepResult.skipped("dry run: no build output to inspect")
    return StepResult.ok(**frontend_gate(ctx, phase="frontend-secret-gate"))


def review_threads(ctx: RunContext) -> StepResult:
    if not ctx.has_pr_context or ctx.github is None or ctx.args.pr_number is None:
        return StepResult.skipped("no pull-request context")
    unresolved = ctx.github.count_unresolved_review_threads(ctx.args.pr_number)
    ctx.report(
        "review-threads",
        f"### Review threads\n\nUnresolved review threads: **{unresolved}**",
    )
    return StepResult.ok(unresolved=unresolved)


def auto_merge(ctx: RunContext) -> StepResult:
    if not ctx.has_pr_context or ctx.github is None or ctx.args.pr_number is None:
        return StepResult.skipped("no pull-request context")
    pr_number = ctx.args.pr_number
    pull = ctx.github.get_pull(pr_number)
    state = pull.get("mergeable_state") or "unknown"
    if state != "clean":
        return StepResult.skipped(
            f"pull request is not cleanly mergeable ({state})",
            mergeable_state=state,
        )
    if ctx.dry_run:
        return StepResult.ok(mergeable_state=state, would_merge=True, method="squash")
    response = ctx.github.merge_pull(pr_number, method="squash", commit_title=pull.get("title"))
    logger.info("pull_request_merged", pr=pr_number, sha=response.get("sha"))
    return StepResult.ok(
        mergeable_state=state,
        merged=bool(response.get("merged", True)),
        sha=response.get("sha"),
    )


def policy_check(ctx: RunContext) -> StepResult:
    return StepResult.ok(**run_policy(ctx))


HEAL_STEPS: tuple[HealStep, ...] = (
    HealStep("remove-unsafe-workflows", remove_unsafe_workflows),
    HealStep("classify-repo", classify_repo),
    HealStep("normalize-ci", normalize_ci),
    HealStep("validate-env", validate_env),
    HealStep("build-and-test", build_and_test),
    HealStep("frontend-secret-gate", frontend_secret_gate),
    HealStep("review-threads", review_threads),
    HealStep("auto-merge", auto_merge),
    HealStep("policy-check", policy_check),
)


# ---------------------------------------------------------------------------
# Driver
# ---------------------------------------------------------------------------


def _run_step(ctx: RunContext, index: int, step: HealStep) -> HealStepOutcome:
    started = time.perf_counter()
    try:
        result = step.run(ctx)
    except PipelineError as exc:
        result = StepResult.failed(exc.message)
        error_kind = exc.error_code
    except Exception as exc:
        result = StepResult.failed(f"{type(exc).__name__}: {exc}")
        error_kind = type(exc).__name__
    else:
        error_kind = "" if result.status is PhaseStatus.PASS else "HEAL_STEP_FAILED"

    return HealStepOutcome(
        index=index,
        step=step.name,
        status=result.status,
        duration_seconds=time.perf_counter() - started,
        error_kind=error_kind,
        error=result.error,
        metadata=result.metadata,
    )


def run_heal(
    ctx: RunContext,
    steps: tuple[HealStep, ...] | list[HealStep] = HEAL_STEPS,
) -> list[HealStepOutcome]:
    """Run every heal step in order and record each outcome in the ledger."""
    outcomes: list[HealStepOutcome] = []
    for index, step in enumerate(steps, start=1):
        outcome = _run_step(ctx, index, step)
        ctx.ledger.record_step(outcome)
        outcomes.append(outcome)
        log = logger.info if outcome.passed else logger.warning
        log(
            "heal_step_finished",
            index=index,
            step=step.name,
            status=outcome.status.value,
            skipped=outcome.skipped,
            error=outcome.error or None,
        )
    return outcomes
