"""Policy finding and result entities.

Findings are produced only by the policy engine and are immutable once
created.  A PolicyResult is built fresh for every evaluation and is never
merged with another run's result.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from eco_pipeline.domain.value_objects.pipeline import RuleStatus
from eco_pipeline.domain.value_objects.severity import Severity


class PolicyFinding(BaseModel):
    """A single governance finding.

    Attributes:
        rule_id: Identifier of the rule that produced the finding.
        severity: Finding severity.
        location: ``path[:line]`` or a remote resource reference.
        detail: Human-readable description.
        remediation: How to resolve the finding.
    """

    model_config = ConfigDict(frozen=True)

    rule_id: str
    severity: Severity
    location: str = ""
    detail: str
    remediation: str = ""


class PolicyViolation(PolicyFinding):
    """A blocking finding; any violation fails the policy check."""

    severity: Severity = Severity.CRITICAL


class PolicyWarning(PolicyFinding):
    """An advisory finding; lowers the score but never fails the check."""

    severity: Severity = Severity.WARN


class PolicyResult(BaseModel):
    """Aggregated outcome of one policy evaluation.

    ``passed`` is derived: true iff the violation list is empty.
    """

    violations: list[PolicyViolation] = Field(default_factory=list)
    warnings: list[PolicyWarning] = Field(default_factory=list)
    rules: dict[str, RuleStatus] = Field(default_factory=dict)
    evaluated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def passed(self) -> bool:
        return len(self.violations) == 0

    def count(self, status: RuleStatus) -> int:
        """Number of rules recorded with *status*."""
        return sum(1 for value in self.rules.values() if value is status)

    def summary(self) -> dict[str, Any]:
        """Return a concise dictionary summary for logging."""
        return {
            "passed": self.passed,
            "violations": len(self.violations),
            "warnings": len(self.warnings),
            "rules": {name: status.value for name, status in self.rules.items()},
        }
