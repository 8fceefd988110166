"""Phase handlers: build/test plans, validation and the deploy gate."""
from __future__ import annotations

from pathlib import Path

import pytest

from eco_pipeline.domain.entities.repo_profile import RepoProfile
from eco_pipeline.domain.value_objects.pipeline import Phase, StackType
from eco_pipeline.engine.phases import (
    build_plan,
    run_build,
    run_deploy,
    run_detect_repo,
    run_tests,
    run_validate_env,
    suite_plan,
)
from eco_pipeline.shared.exceptions import PhaseFailure, UnknownProvider
from tests.helpers import FAKE_AWS_KEY, FakeRunner, write_json, write_text

FRONTEND = RepoProfile(
    stack=StackType.FRONTEND,
    has_lint=True,
    has_build=True,
    has_test=True,
    frameworks=("react",),
)


class TestBuild:
    def test_node_plan_uses_lockfile_manager(self, tmp_path: Path):
        write_text(tmp_path / "pnpm-lock.yaml", "")
        assert build_plan(FRONTEND, tmp_path) == [
            ["pnpm", "install", "--frozen-lockfile"],
            ["pnpm", "run", "lint"],
            ["pnpm", "run", "build"],
        ]

    def test_npm_ci_with_package_lock(self, tmp_path: Path):
        write_text(tmp_path / "package-lock.json", "{}")
        assert build_plan(RepoProfile(stack=StackType.NODE), tmp_path) == [["npm", "ci"]]

    def test_build_command_override_replaces_plan(self, make_context):
        runner = FakeRunner()
        ctx = make_context(profile=FRONTEND, runner=runner, overrides={"build_command": "make dist"})
        metadata = run_build(ctx)
        assert runner.calls == [["make", "dist"]]
        assert metadata["custom"] is True

    def test_dry_run_reports_only(self, make_context):
        runner = FakeRunner()
        ctx = make_context(profile=RepoProfile(stack=StackType.GO), runner=runner, dry_run=True)
        metadata = run_build(ctx)
        assert runner.calls == []
        assert metadata["commands"] == ["go mod download", "go build ./..."]

    def test_failure_raises_phase_failure(self, make_context):
        runner = FakeRunner(responses={"dotnet build": (1, "")})
        ctx = make_context(profile=RepoProfile(stack=StackType.DOTNET), runner=runner)
        with pytest.raises(PhaseFailure, match="dotnet build"):
            run_build(ctx)

    def test_unknown_stack_is_skipped(self, make_context):
        assert run_build(make_context())["skipped"] is True


class TestTest:
    def test_skipped_without_tests(self, make_context):
        runner = FakeRunner()
        metadata = run_tests(make_context(profile=RepoProfile(stack=StackType.PYTHON), runner=runner))
        assert metadata["skipped"] is True
        assert runner.calls == []

    def test_stack_default(self, make_context):
        runner = FakeRunner()
        run_tests(make_context(profile=RepoProfile(stack=StackType.PYTHON, has_test=True), runner=runner))
        assert runner.calls == [["python", "-m", "pytest"]]

    def test_gradle_wrapper_is_preferred(self, tmp_path: Path):
        write_text(tmp_path / "gradlew", "")
        profile = RepoProfile(stack=StackType.JAVA, has_test=True, frameworks=("gradle",))
        assert suite_plan(profile, tmp_path) == [["./gradlew", "test"]]


class TestValidateEnv:
    def test_missing_items_are_listed(self, make_context):
        ctx = make_context(Phase.VALIDATE_ENV, overrides={"deploy_provider": "static-site", "site_org": "org"})
        with pytest.raises(PhaseFailure) as excinfo:
            run_validate_env(ctx)
        message = excinfo.value.message
        assert "tool:vercel" in message
        assert "config:site_project" in message
        assert "override:site_token" in message

    def test_dry_run_skips_tool_lookup(self, make_context):
        ctx = make_context(
            Phase.VALIDATE_ENV,
            dry_run=True,
            overrides={"deploy_provider": "cluster", "deployment_name": "web"},
        )
        metadata = run_validate_env(ctx)
        assert metadata["tools_checked"] is False
        assert metadata["missing"] == []

    def test_tools_found_on_path(self, make_context):
        runner = FakeRunner(tools={"kubectl"})
        ctx = make_context(
            Phase.VALIDATE_ENV,
            runner=runner,
            overrides={"deploy_provider": "cluster", "deployment_name": "web"},
        )
        assert run_validate_env(ctx)["provider"] == "cluster"

    def test_unknown_provider_propagates(self, make_context):
        ctx = make_context(Phase.VALIDATE_ENV, overrides={"deploy_provider": "ftp"})
        with pytest.raises(UnknownProvider):
            run_validate_env(ctx)


class TestDeploy:
    site = {
        "deploy_provider": "static-site",
        "site_token": "tok_live_123456",
        "site_org": "o",
        "site_project": "p",
    }

    def test_frontend_without_build_output_fails_before_provider(self, make_context):
        runner = FakeRunner()
        ctx = make_context(Phase.DEPLOY, profile=FRONTEND, runner=runner, overrides=self.site)
        with pytest.raises(PhaseFailure, match="build output not found"):
            run_deploy(ctx)
        assert runner.calls == []

    def test_frontend_with_leaked_secret_fails_before_provider(self, make_context, tmp_path: Path):
        write_text(tmp_path / "dist/assets/app.js", f'const k="{FAKE_AWS_KEY}";\n')
        runner = FakeRunner()
        ctx = make_context(Phase.DEPLOY, profile=FRONTEND, runner=runner, overrides=self.site)
        with pytest.raises(PhaseFailure, match="dist") as excinfo:
            run_deploy(ctx)
        assert FAKE_AWS_KEY not in excinfo.value.message
        assert runner.calls == []

    def test_clean_frontend_output_deploys(self, make_context, tmp_path: Path):
        write_text(tmp_path / "build/index.html", "<html></html>\n")
        runner = FakeRunner(responses={"vercel": (0, "https://p-1.vercel.app\n")})
        ctx = make_context(Phase.DEPLOY, profile=FRONTEND, runner=runner, overrides=self.site)
        metadata = run_deploy(ctx)
        assert metadata["gate"]["build_output"] == "build"
        assert metadata["result"]["url"] == "https://p-1.vercel.app"

    def test_configured_output_dir_is_used(self, make_context, tmp_path: Path):
        write_json(tmp_path / "pipeline.dev.json", {"build_output_dir": "public"})
        write_text(tmp_path / "dist/index.html", "ok")
        ctx = make_context(Phase.DEPLOY, profile=FRONTEND, overrides=self.site)
        with pytest.raises(PhaseFailure, match="public"):
            run_deploy(ctx)

    def test_dry_run_skips_gate_and_defaults_to_generic_script(self, make_context):
        runner = FakeRunner()
        ctx = make_context(
            Phase.DEPLOY,
            profile=FRONTEND,
            runner=runner,
            dry_run=True,
            overrides={"script_path": "ops/deploy.sh"},
        )
        metadata = run_deploy(ctx)
        assert metadata["provider"] == "generic-script"
        assert metadata["result"]["commands"] == ["bash ops/deploy.sh Dev"]
        assert runner.calls == []


def test_detect_repo_returns_profile(make_context):
    ctx = make_context(Phase.DETECT_REPO, profile=FRONTEND)
    assert run_detect_repo(ctx)["stack"] == "frontend"
