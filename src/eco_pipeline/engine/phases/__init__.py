"""Phase handlers.

Each handler takes the run context and returns phase metadata, raising a
:class:`~eco_pipeline.shared.exceptions.PipelineError` on failure.
"""
from __future__ import annotations

from typing import Any, Callable

from eco_pipeline.domain.value_objects.pipeline import Phase
from eco_pipeline.engine.context import RunContext
from eco_pipeline.engine.phases.build import build_plan, run_build
from eco_pipeline.engine.phases.deploy import build_output_dir, frontend_gate, run_deploy
from eco_pipeline.engine.phases.inspect_repo import run_detect_repo, run_policy
from eco_pipeline.engine.phases.testing import run_tests, suite_plan
from eco_pipeline.engine.phases.validate_env import run_validate_env

PhaseHandler = Callable[[RunContext], dict[str, Any]]

PHASE_HANDLERS: dict[Phase, PhaseHandler] = {
    Phase.BUILD: run_build,
    Phase.TEST: run_tests,
    Phase.DEPLOY: run_deploy,
    Phase.VALIDATE_ENV: run_validate_env,
    Phase.DETECT_REPO: run_detect_repo,
    Phase.POLICY: run_policy,
}

__all__ = [
    "PHASE_HANDLERS",
    "PhaseHandler",
    "build_output_dir",
    "build_plan",
    "frontend_gate",
    "run_build",
    "run_deploy",
    "run_detect_repo",
    "run_policy",
    "run_tests",
    "run_validate_env",
    "suite_plan",
]
