"""Shared fixtures: a recording command runner and a run-context factory."""
from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from eco_pipeline.config.settings import PipelineSettings
from eco_pipeline.domain.entities.repo_profile import RepoProfile
from eco_pipeline.domain.entities.run import RunArgs
from eco_pipeline.domain.value_objects.pipeline import Environment, Phase
from eco_pipeline.engine.context import RunContext
from eco_pipeline.infrastructure.process import CommandRunner
from tests.helpers import FakeRunner


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def settings() -> PipelineSettings:
    return PipelineSettings(ci=False, github_token=None, repository=None, step_summary_path=None)


@pytest.fixture
def make_context(tmp_path: Path, settings: PipelineSettings):
    """Factory building a RunContext rooted at ``tmp_path`` with config loaded."""

    def _make(
        phase: Phase = Phase.BUILD,
        env: Environment = Environment.DEV,
        *,
        dry_run: bool = False,
        overrides: dict[str, Any] | None = None,
        profile: RepoProfile | None = None,
        runner: CommandRunner | None = None,
        **arg_fields: Any,
    ) -> RunContext:
        args = RunArgs(
            phase=phase,
            environment=env,
            dry_run=dry_run,
            overrides=overrides or {},
            repo_root=tmp_path,
            **arg_fields,
        )
        ctx = RunContext(args=args, settings=settings, runner=runner or FakeRunner())
        ctx.config.load(env, tmp_path)
        if profile is not None:
            ctx.profile = profile
        return ctx

    return _make
