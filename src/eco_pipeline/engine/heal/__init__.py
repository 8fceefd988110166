"""Self-healing protocol and CI workflow normalization."""
from eco_pipeline.engine.heal.ci_templates import CI_WORKFLOW_PATH, render_ci_workflow
from eco_pipeline.engine.heal.protocol import (
    HEAL_STEPS,
    UNSAFE_WORKFLOW_DENYLIST,
    HealStep,
    StepResult,
    run_heal,
)

__all__ = [
    "CI_WORKFLOW_PATH",
    "HEAL_STEPS",
    "HealStep",
    "StepResult",
    "UNSAFE_WORKFLOW_DENYLIST",
    "render_ci_workflow",
    "run_heal",
]
