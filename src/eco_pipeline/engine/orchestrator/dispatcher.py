"""Pipeline orchestrator: boot, phase routing, summary and publication.

Control flow is linear::

    Boot -> {Build | Test | Deploy | ValidateEnv | Heal | DetectRepo | Policy | Full}

Every phase result is appended to the run ledger.  A failing phase is
recorded, reported to the pull request and re-raised.  ``Full`` and
``Heal`` additionally produce a run summary that is published to the pull
request and exported as CI metrics.
"""
from __future__ import annotations

import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

import structlog

from eco_pipeline.config.settings import PipelineSettings
from eco_pipeline.domain.entities.repo_profile import RepoProfile
from eco_pipeline.domain.entities.run import PhaseResult, RunArgs, RunSummary
from eco_pipeline.domain.value_objects.pipeline import Phase, PhaseStatus
from eco_pipeline.engine.context import RunContext, Scanner
from eco_pipeline.engine.heal import run_heal
from eco_pipeline.engine.phases import PHASE_HANDLERS
from eco_pipeline.infrastructure.github import GitHubClient
from eco_pipeline.infrastructure.logging import bind_run_context
from eco_pipeline.infrastructure.metrics import export_metrics
from eco_pipeline.infrastructure.process import CommandRunner
from eco_pipeline.infrastructure.repo_classifier import classify_repository
from eco_pipeline.infrastructure.reporting import (
    render_boot,
    render_phase_failure,
    render_summary,
)
from eco_pipeline.shared.exceptions import PipelineError

logger = structlog.get_logger(__name__)

FULL_SEQUENCE: tuple[Phase, ...] = (Phase.BUILD, Phase.TEST, Phase.DEPLOY)

Classifier = Callable[[Path], RepoProfile]


class PipelineOrchestrator:
    """Runs one pipeline invocation over a :class:`RunContext`.

    Usage::

        orchestrator = PipelineOrchestrator(ctx)
        summary = orchestrator.run()
    """

    def __init__(self, ctx: RunContext, *, classifier: Classifier = classify_repository) -> None:
        self._ctx = ctx
        self._classifier = classifier
        self._booted = False

    @property
    def context(self) -> RunContext:
        return self._ctx

    # -- boot ---------------------------------------------------------------

    def boot(self) -> None:
        """Load config, reject committed secrets and classify the repository.

        Raises:
            ConfigParseError: If the environment config file is malformed.
            SecretDetected: If the config file holds a live-looking secret.
        """
        ctx = self._ctx
        args = ctx.args
        bind_run_context(
            phase=args.phase.value,
            environment=args.environment.value,
            pr=args.pr_number,
            dry_run=args.dry_run,
        )

        source = ctx.config.load(args.environment, args.resolved_config_root)
        ctx.config.assert_no_secrets()
        ctx.profile = self._classifier(ctx.repo_root)

        display = str(source.relative_to(args.resolved_config_root)) if source else None
        ctx.report("boot", render_boot(args, ctx.profile, display))
        self._booted = True
        logger.info("pipeline_booted", config=display, stack=ctx.profile.stack.value)

    # -- dispatch -----------------------------------------------------------

    def run(self) -> RunSummary:
        """Boot and run the requested phase.

        Returns:
            The run summary derived from the ledger.

        Raises:
            PipelineError: If boot or a non-Heal phase fails.
        """
        if not self._booted:
            self.boot()

        phase = self._ctx.args.phase
        if phase is Phase.FULL:
            try:
                for step in FULL_SEQUENCE:
                    self.execute_phase(step)
            finally:
                summary = self.finalize()
            return summary

        if phase is Phase.HEAL:
            run_heal(self._ctx)
            return self.finalize()

        self.execute_phase(phase)
        return self._ctx.ledger.summarize(self._ctx.args)

    def execute_phase(self, phase: Phase) -> PhaseResult:
        """Run one phase handler and record its result.

        Raises:
            PipelineError: Re-raised after the failure is recorded and reported.
        """
        ctx = self._ctx
        handler = PHASE_HANDLERS[phase]
        started_at = datetime.now(timezone.utc)
        started = time.perf_counter()
        logger.info("phase_started", phase=phase.value)

        try:
            metadata = handler(ctx)
        except Exception as exc:
            error_kind = exc.error_code if isinstance(exc, PipelineError) else type(exc).__name__
            detail = exc.message if isinstance(exc, PipelineError) else str(exc)
            result = PhaseResult(
                name=phase.value,
                status=PhaseStatus.FAIL,
                started_at=started_at,
                duration_seconds=time.perf_counter() - started,
                metadata=exc.context if isinstance(exc, PipelineError) else {},
                error_kind=error_kind,
                error=detail,
            )
            ctx.ledger.record_phase(result)
            logger.error("phase_failed", phase=phase.value, error_kind=error_kind, error=detail)
            ctx.report(
                f"phase-{phase.value.lower()}",
                render_phase_failure(phase.value, error_kind, detail),
            )
            raise

        result = PhaseResult(
            name=phase.value,
            status=PhaseStatus.PASS,
            started_at=started_at,
            duration_seconds=time.perf_counter() - started,
            metadata=metadata,
        )
        ctx.ledger.record_phase(result)
        logger.info("phase_passed", phase=phase.value, duration=round(result.duration_seconds, 3))
        return result

    # -- summary ------------------------------------------------------------

    def finalize(self) -> RunSummary:
        """Summarize the ledger, publish it and export CI metrics."""
        ctx = self._ctx
        summary = ctx.ledger.summarize(ctx.args)
        ctx.report("summary", render_summary(summary))

        settings = ctx.settings
        if settings.ci:
            metrics_path = Path(settings.metrics_path)
            if not metrics_path.is_absolute():
                metrics_path = ctx.repo_root / metrics_path
            step_summary = Path(settings.step_summary_path) if settings.step_summary_path else None
            export_metrics(summary, metrics_path, step_summary)

        logger.info(
            "pipeline_finished",
            status=summary.status.value,
            duration=summary.total_duration_seconds,
        )
        return summary


def run_pipeline(
    args: RunArgs,
    settings: PipelineSettings,
    *,
    runner: CommandRunner | None = None,
    github: GitHubClient | None = None,
    scanner: Scanner | None = None,
    classifier: Classifier = classify_repository,
) -> RunSummary:
    """Create a run context, run the pipeline and release its resources."""
    ctx = RunContext.create(args, settings, runner=runner, github=github, scanner=scanner)
    try:
        return PipelineOrchestrator(ctx, classifier=classifier).run()
    finally:
        ctx.close()
