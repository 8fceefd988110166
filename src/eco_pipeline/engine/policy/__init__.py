"""Governance policy engine."""
from eco_pipeline.engine.policy.engine import (
    APPROVED_ACTION_PREFIXES,
    RULE_IDS,
    UNSAFE_TRIGGERS,
    PolicyEngine,
    dangerous_reasons,
    evaluate_policy,
    workflow_files,
)

__all__ = [
    "APPROVED_ACTION_PREFIXES",
    "PolicyEngine",
    "RULE_IDS",
    "UNSAFE_TRIGGERS",
    "dangerous_reasons",
    "evaluate_policy",
    "workflow_files",
]
