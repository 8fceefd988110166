"""Policy engine: rule isolation, findings and scoring."""
from __future__ import annotations

from pathlib import Path

import httpx
import pytest
import respx

from eco_pipeline.config.resolver import ConfigResolver
from eco_pipeline.domain.entities.policy import PolicyResult
from eco_pipeline.domain.value_objects.pipeline import Environment, RuleStatus
from eco_pipeline.engine.policy import RULE_IDS, PolicyEngine, dangerous_reasons
from tests.helpers import FAKE_AWS_KEY, write_json, write_text

API = "https://api.github.com"

SAFE_WORKFLOW = """\
name: CI
on:
  pull_request:
permissions:
  contents: read
jobs:
  build:
    runs-on: ubuntu-latest
    steps:
      - uses: actions/checkout@v4
      - run: make test
"""


def _engine(root: Path, overrides: dict | None = None) -> PolicyEngine:
    config = ConfigResolver()
    config.load(Environment.DEV, root)
    return PolicyEngine(root, config=config, overrides=overrides)


def test_clean_repo_without_token_scores_seventy(tmp_path: Path):
    write_text(tmp_path / ".github/workflows/ci.yml", SAFE_WORKFLOW)
    engine = _engine(tmp_path)

    result = engine.evaluate(Environment.DEV)

    assert list(result.rules) == list(RULE_IDS)
    assert result.rules["branch-protection"] is RuleStatus.WARN
    assert result.count(RuleStatus.PASS) == 4
    assert result.passed is True
    assert any("unverified" in w.detail for w in result.warnings)
    assert PolicyEngine.score(result) == 70


@pytest.mark.parametrize(
    ("passed", "warned", "failed", "expected"),
    [(5, 0, 0, 100), (4, 1, 0, 70), (3, 1, 1, 50), (0, 0, 5, 0), (1, 1, 3, 10), (0, 5, 0, 0)],
)
def test_score_formula(passed: int, warned: int, failed: int, expected: int):
    statuses = [RuleStatus.PASS] * passed + [RuleStatus.WARN] * warned + [RuleStatus.FAIL] * failed
    result = PolicyResult(rules={f"rule-{i}": status for i, status in enumerate(statuses)})
    assert PolicyEngine.score(result) == expected


def test_score_rounds_half_up():
    # 100 * (1 - 0.5 * 1) / 4 = 12.5
    result = PolicyResult(
        rules={
            "a": RuleStatus.PASS,
            "b": RuleStatus.WARN,
            "c": RuleStatus.FAIL,
            "d": RuleStatus.FAIL,
        }
    )
    assert PolicyEngine.score(result) == 13


@pytest.mark.parametrize("trigger", ["issue_comment", "pull_request_target", "workflow_run"])
def test_unsafe_trigger_is_critical_violation(tmp_path: Path, trigger: str):
    write_text(
        tmp_path / ".github/workflows/bot.yml",
        f"on:\n  {trigger}:\n    types: [created]\njobs:\n  run:\n    runs-on: ubuntu-latest\n    steps:\n      - run: echo hi\n",
    )
    result = _engine(tmp_path).evaluate(Environment.DEV)
    assert result.rules["workflow-permissions"] is RuleStatus.FAIL
    assert result.passed is False
    assert result.violations[0].location == ".github/workflows/bot.yml"
    assert trigger in result.violations[0].detail


def test_broad_write_with_auto_merge_is_violation(tmp_path: Path):
    write_text(
        tmp_path / ".github/workflows/merge.yml",
        "on: [push]\npermissions: write-all\njobs:\n  m:\n    runs-on: ubuntu-latest\n"
        "    steps:\n      - run: gh pr merge --auto --squash\n",
    )
    result = _engine(tmp_path).evaluate(Environment.DEV)
    assert result.rules["workflow-permissions"] is RuleStatus.FAIL


def test_auto_approve_flag_is_not_auto_merge(tmp_path: Path):
    write_text(
        tmp_path / ".github/workflows/infra.yml",
        "on: push\npermissions:\n  contents: write\njobs:\n  apply:\n    runs-on: ubuntu-latest\n"
        "    steps:\n      - run: terraform apply --auto-approve\n",
    )
    assert dangerous_reasons(tmp_path / ".github/workflows/infra.yml") == []
    result = _engine(tmp_path).evaluate(Environment.DEV)
    assert result.rules["workflow-permissions"] is RuleStatus.PASS


def test_job_level_contents_write_with_push_is_violation(tmp_path: Path):
    write_text(
        tmp_path / ".github/workflows/fmt.yml",
        "on: push\njobs:\n  fmt:\n    permissions:\n      contents: write\n    runs-on: ubuntu-latest\n"
        "    steps:\n      - run: git push origin HEAD\n",
    )
    result = _engine(tmp_path).evaluate(Environment.DEV)
    assert result.rules["workflow-permissions"] is RuleStatus.FAIL


def test_unparseable_workflow_is_warning(tmp_path: Path):
    write_text(tmp_path / ".github/workflows/broken.yml", "on: [push\njobs: {")
    result = _engine(tmp_path).evaluate(Environment.DEV)
    assert result.rules["workflow-permissions"] is RuleStatus.WARN
    assert result.passed is True


def test_unapproved_action_is_warning_with_line(tmp_path: Path):
    write_text(
        tmp_path / ".github/workflows/ci.yml",
        SAFE_WORKFLOW + "      - uses: someone/cool-action@v1\n      - uses: ./local-action\n",
    )
    result = _engine(tmp_path).evaluate(Environment.DEV)
    assert result.rules["approved-actions"] is RuleStatus.WARN
    [warning] = [w for w in result.warnings if w.rule_id == "approved-actions"]
    assert warning.location == ".github/workflows/ci.yml:12"
    assert "someone/cool-action@v1" in warning.detail


def test_approved_actions_config_extends_allowlist(tmp_path: Path):
    write_text(tmp_path / ".github/workflows/ci.yml", SAFE_WORKFLOW + "      - uses: someone/cool-action@v1\n")
    result = _engine(tmp_path, {"approved_actions": ["someone/"]}).evaluate(Environment.DEV)
    assert result.rules["approved-actions"] is RuleStatus.PASS


def test_hardcoded_secret_is_violation_with_location(tmp_path: Path):
    write_text(tmp_path / "src/settings.py", f"x = 1\nAWS_KEY = '{FAKE_AWS_KEY}'\n")
    result = _engine(tmp_path).evaluate(Environment.DEV)
    assert result.rules["hardcoded-secrets"] is RuleStatus.FAIL
    [violation] = result.violations
    assert violation.location == "src/settings.py:2"
    assert "cloud-credential" in violation.detail
    assert FAKE_AWS_KEY not in violation.detail


def test_provider_drift_is_warning(tmp_path: Path):
    write_json(tmp_path / "pipeline.dev.json", {"deploy_provider": "cluster"})
    write_json(tmp_path / "config/pipeline.prod.json", {"deploy_provider": "static-site"})
    result = _engine(tmp_path).evaluate(Environment.DEV)
    assert result.rules["provider-consistency"] is RuleStatus.WARN


def test_consistent_providers_pass(tmp_path: Path):
    for env in ("dev", "staging", "prod"):
        write_json(tmp_path / f"pipeline.{env}.json", {"deploy_provider": "cluster"})
    result = _engine(tmp_path).evaluate(Environment.DEV)
    assert result.rules["provider-consistency"] is RuleStatus.PASS


def test_erroring_rule_does_not_stop_others(tmp_path: Path):
    def exploding_scanner(*args, **kwargs):
        raise RuntimeError("scanner crashed")

    config = ConfigResolver()
    config.load(Environment.DEV, tmp_path)
    engine = PolicyEngine(tmp_path, config=config, scanner=exploding_scanner)

    result = engine.evaluate(Environment.DEV)
    assert result.rules["hardcoded-secrets"] is RuleStatus.FAIL
    assert result.violations == []
    assert set(result.rules) == set(RULE_IDS)
    assert result.rules["provider-consistency"] is RuleStatus.PASS


class TestBranchProtection:
    url = f"{API}/repos/acme/web/branches/main/protection"

    @respx.mock
    def test_unprotected_branch_is_violation(self, tmp_path: Path):
        respx.get(self.url).mock(return_value=httpx.Response(404, json={"message": "Branch not protected"}))
        result = _engine(tmp_path).evaluate(Environment.PROD, "tok", "acme/web")
        assert result.rules["branch-protection"] is RuleStatus.FAIL
        assert result.violations[0].rule_id == "branch-protection"

    @respx.mock
    def test_missing_reviews_and_checks_are_warnings(self, tmp_path: Path):
        respx.get(self.url).mock(return_value=httpx.Response(200, json={"enforce_admins": {"enabled": True}}))
        result = _engine(tmp_path).evaluate(Environment.PROD, "tok", "acme/web")
        assert result.rules["branch-protection"] is RuleStatus.WARN
        assert len([w for w in result.warnings if w.rule_id == "branch-protection"]) == 2

    @respx.mock
    def test_fully_protected_branch_passes(self, tmp_path: Path):
        respx.get(self.url).mock(
            return_value=httpx.Response(
                200,
                json={
                    "required_pull_request_reviews": {"required_approving_review_count": 1},
                    "required_status_checks": {"contexts": ["ci"]},
                },
            )
        )
        result = _engine(tmp_path).evaluate(Environment.PROD, "tok", "acme/web")
        assert result.rules["branch-protection"] is RuleStatus.PASS
        assert PolicyEngine.score(result) == 100

    @respx.mock
    def test_other_failure_marks_rule_fail_without_violation(self, tmp_path: Path):
        respx.get(self.url).mock(return_value=httpx.Response(500))
        result = _engine(tmp_path).evaluate(Environment.PROD, "tok", "acme/web")
        assert result.rules["branch-protection"] is RuleStatus.FAIL
        assert result.violations == []
        assert result.passed is True

    @respx.mock
    def test_branch_name_comes_from_config(self, tmp_path: Path):
        write_json(tmp_path / "pipeline.dev.json", {"default_branch": "trunk"})
        route = respx.get(f"{API}/repos/acme/web/branches/trunk/protection").mock(
            return_value=httpx.Response(404)
        )
        _engine(tmp_path).evaluate(Environment.DEV, "tok", "acme/web")
        assert route.called
