"""Severity value object for governance findings.

Policy findings carry one of three severities.  Only ``CRITICAL`` findings
become violations; ``WARN`` and ``INFO`` findings are advisory and never
affect pass/fail.
"""
from __future__ import annotations

import enum

_SEVERITY_WEIGHTS: dict[str, int] = {
    "critical": 30,
    "warn": 20,
    "info": 10,
}


class Severity(str, enum.Enum):
    """Ordered severity levels: CRITICAL > WARN > INFO."""

    CRITICAL = "critical"
    WARN = "warn"
    INFO = "info"

    @property
    def weight(self) -> int:
        """Return the numeric weight for this severity level."""
        return _SEVERITY_WEIGHTS[self.value]

    @property
    def is_blocking(self) -> bool:
        """Return True for severities that produce a policy violation."""
        return self is Severity.CRITICAL

