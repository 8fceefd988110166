"""Domain entities for the pipeline engine."""
from __future__ import annotations

from eco_pipeline.domain.entities.policy import (
    PolicyFinding,
    PolicyResult,
    PolicyViolation,
    PolicyWarning,
)
from eco_pipeline.domain.entities.repo_profile import RepoProfile
from eco_pipeline.domain.entities.run import (
    HealStepOutcome,
    PhaseResult,
    RunArgs,
    RunLedger,
    RunSummary,
    SummaryRow,
)

__all__: list[str] = [
    "HealStepOutcome",
    "PhaseResult",
    "PolicyFinding",
    "PolicyResult",
    "PolicyViolation",
    "PolicyWarning",
    "RepoProfile",
    "RunArgs",
    "RunLedger",
    "RunSummary",
    "SummaryRow",
]
