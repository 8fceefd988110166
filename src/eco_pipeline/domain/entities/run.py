"""Run-scoped entities: invocation arguments, phase results and the ledger.

The ledger is append-only and has a single writer (the orchestrator or the
heal driver).  Readers always receive copies.
"""
from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from eco_pipeline.domain.value_objects.pipeline import (
    Environment,
    Phase,
    PhaseStatus,
    RunStatus,
)


class RunArgs(BaseModel):
    """Immutable per-invocation parameters.

    Attributes:
        phase: Target phase.
        environment: Environment the run is scoped to.
        dry_run: Report intended external actions without executing them.
        overrides: Highest-precedence values; the only channel for secrets.
        pr_number: Pull-request number, when running for a PR.
        token: Access token for the remote repository API.
        repository: ``owner/name`` of the remote repository.
        repo_root: Working tree of the consuming repository.
        config_root: Directory searched for environment config files.
    """

    model_config = ConfigDict(frozen=True)

    phase: Phase
    environment: Environment
    dry_run: bool = False
    overrides: dict[str, Any] = Field(default_factory=dict, repr=False)
    pr_number: int | None = None
    token: str | None = Field(default=None, repr=False)
    repository: str | None = None
    repo_root: Path = Field(default_factory=Path.cwd)
    config_root: Path | None = None

    @property
    def has_pr_context(self) -> bool:
        return bool(self.pr_number and self.token and self.repository)

    @property
    def resolved_config_root(self) -> Path:
        return self.config_root or self.repo_root

    def override_args(self) -> dict[str, Any]:
        """Return a copy of the override arguments."""
        return dict(self.overrides)


class PhaseResult(BaseModel):
    """Outcome of a single phase.

    Attributes:
        name: Phase name.
        status: ``pass`` or ``fail``.
        started_at: When the phase started.
        duration_seconds: Wall-clock time for the phase.
        metadata: Free-form structured output.
        error_kind: ``error_code`` of the failure, if any.
        error: Failure detail, if any.
    """

    name: str
    status: PhaseStatus = PhaseStatus.PASS
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    duration_seconds: float = 0.0
    metadata: dict[str, Any] = Field(default_factory=dict)
    error_kind: str = ""
    error: str = ""

    @property
    def passed(self) -> bool:
        return self.status is PhaseStatus.PASS


class HealStepOutcome(BaseModel):
    """Recorded outcome of one heal step."""

    index: int
    step: str
    status: PhaseStatus = PhaseStatus.PASS
    duration_seconds: float = 0.0
    error_kind: str = ""
    error: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def passed(self) -> bool:
        return self.status is PhaseStatus.PASS

    @property
    def skipped(self) -> bool:
        return bool(self.metadata.get("skipped"))


class SummaryRow(BaseModel):
    """One line of the per-phase table in a run summary."""

    model_config = ConfigDict(frozen=True)

    name: str
    status: str
    duration_seconds: float
    detail: str = ""


class RunSummary(BaseModel):
    """Aggregate view over a run's ledger.  Derived, never stored."""

    phase: str
    environment: str
    status: RunStatus
    dry_run: bool = False
    total_duration_seconds: float = 0.0
    rows: list[SummaryRow] = Field(default_factory=list)

    def to_metrics(self) -> dict[str, Any]:
        """Return the summary as a flat metrics document."""
        return {
            "phase": self.phase,
            "environment": self.environment,
            "status": self.status.value,
            "dry_run": self.dry_run,
            "total_duration_seconds": self.total_duration_seconds,
            "rows": [row.model_dump() for row in self.rows],
        }


class RunLedger:
    """Append-only record of phase results and heal step outcomes."""

    def __init__(self) -> None:
        self._phases: list[PhaseResult] = []
        self._steps: list[HealStepOutcome] = []

    def record_phase(self, result: PhaseResult) -> None:
        self._phases.append(result.model_copy(deep=True))

    def record_step(self, outcome: HealStepOutcome) -> None:
        self._steps.append(outcome.model_copy(deep=True))

    @property
    def phases(self) -> list[PhaseResult]:
        return [p.model_copy(deep=True) for p in self._phases]

    @property
    def steps(self) -> list[HealStepOutcome]:
        return [s.model_copy(deep=True) for s in self._steps]

    def __len__(self) -> int:
        return len(self._phases) + len(self._steps)

    def summarize(self, args: RunArgs) -> RunSummary:
        """Build a RunSummary for *args* from everything recorded so far.

        Heal runs report ``pass`` or ``partial``; other runs ``pass`` or
        ``fail``.
        """
        rows: list[SummaryRow] = []
        if args.phase is Phase.HEAL:
            for step in self._steps:
                rows.append(
                    SummaryRow(
                        name=f"{step.index}. {step.step}",
                        status="skipped" if step.skipped else step.status.value,
                        duration_seconds=round(step.duration_seconds, 3),
                        detail=step.error,
                    )
                )
            ok = all(step.passed for step in self._steps)
            status = RunStatus.PASS if ok else RunStatus.PARTIAL
            total = sum(step.duration_seconds for step in self._steps)
        else:
            for phase in self._phases:
                rows.append(
                    SummaryRow(
                        name=phase.name,
                        status=phase.status.value,
                        duration_seconds=round(phase.duration_seconds, 3),
                        detail=phase.error,
                    )
                )
            ok = all(phase.passed for phase in self._phases)
            status = RunStatus.PASS if ok else RunStatus.FAIL
            total = sum(phase.duration_seconds for phase in self._phases)

        return RunSummary(
            phase=args.phase.value,
            environment=args.environment.value,
            status=status,
            dry_run=args.dry_run,
            total_duration_seconds=round(total, 3),
            rows=rows,
        )
