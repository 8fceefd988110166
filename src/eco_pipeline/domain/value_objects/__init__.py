"""Value objects for the pipeline domain layer.

Re-exports all public value objects so consumers can write::

    from eco_pipeline.domain.value_objects import Environment, Severity
"""
from __future__ import annotations

from eco_pipeline.domain.value_objects.pipeline import (
    Environment,
    Phase,
    PhaseStatus,
    RuleStatus,
    RunStatus,
    StackType,
)
from eco_pipeline.domain.value_objects.severity import Severity

__all__: list[str] = [
    "Environment",
    "Phase",
    "PhaseStatus",
    "RuleStatus",
    "RunStatus",
    "Severity",
    "StackType",
]
