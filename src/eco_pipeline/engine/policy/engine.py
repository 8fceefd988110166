"""Governance policy engine.

Evaluates five independent rules against a repository working tree (and,
for branch protection, the remote repository API) and aggregates the
findings into a :class:`PolicyResult` plus a 0-100 governance score.

Each rule runs inside its own failure boundary: a rule that raises is
recorded as ``fail`` and the remaining rules still run.

Usage::

    engine = PolicyEngine(Path("."), config=resolver)
    result = engine.evaluate(Environment.PROD, token, "acme/web")
    score = PolicyEngine.score(result)
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping

import structlog
import yaml

from eco_pipeline.config.resolver import (
    SEARCH_DIRS,
    ConfigResolver,
    config_file_name,
    read_config_file,
)
from eco_pipeline.domain.entities.policy import PolicyResult, PolicyViolation, PolicyWarning
from eco_pipeline.domain.value_objects.pipeline import Environment, RuleStatus
from eco_pipeline.infrastructure.github import GitHubClient
from eco_pipeline.infrastructure.pattern_scanner import SECRET_PATTERNS, PatternMatch, scan
from eco_pipeline.shared.exceptions import ConfigParseError, RemoteApiError

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Rule catalogue
# ---------------------------------------------------------------------------

RULE_WORKFLOW_PERMISSIONS = "workflow-permissions"
RULE_APPROVED_ACTIONS = "approved-actions"
RULE_HARDCODED_SECRETS = "hardcoded-secrets"
RULE_BRANCH_PROTECTION = "branch-protection"
RULE_PROVIDER_CONSISTENCY = "provider-consistency"

RULE_IDS: tuple[str, ...] = (
    RULE_WORKFLOW_PERMISSIONS,
    RULE_APPROVED_ACTIONS,
    RULE_HARDCODED_SECRETS,
    RULE_BRANCH_PROTECTION,
    RULE_PROVIDER_CONSISTENCY,
)

WORKFLOWS_DIR = Path(".github") / "workflows"

UNSAFE_TRIGGERS: frozenset[str] = frozenset({"issue_comment", "pull_request_target", "workflow_run"})

AUTO_PUSH_MERGE_PATTERN = re.compile(
    r"git\s+push|gh\s+pr\s+merge|--auto(?![\w-])|enable-pull-request-automerge|merge_method"
)

APPROVED_ACTION_PREFIXES: tuple[str, ...] = (
    "actions/",
    "github/",
    "docker/",
    "azure/",
    "aws-actions/",
    "hashicorp/",
    "google-github-actions/",
)

_USES_PATTERN = re.compile(r"^\s*(?:-\s*)?uses:\s*[\"']?([^\s\"'#]+)")

Scanner = Callable[..., list[PatternMatch]]
ClientFactory = Callable[[str, str], GitHubClient]


@dataclass
class RuleOutcome:
    """Findings produced by one rule."""

    violations: list[PolicyViolation] = field(default_factory=list)
    warnings: list[PolicyWarning] = field(default_factory=list)

    @property
    def status(self) -> RuleStatus:
        if self.violations:
            return RuleStatus.FAIL
        if self.warnings:
            return RuleStatus.WARN
        return RuleStatus.PASS


# ---------------------------------------------------------------------------
# Workflow helpers
# ---------------------------------------------------------------------------


def workflow_files(repo_root: Path) -> list[Path]:
    directory = Path(repo_root) / WORKFLOWS_DIR
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.iterdir() if p.suffix in (".yml", ".yaml") and p.is_file())


def load_workflow(path: Path) -> dict[str, Any]:
    """Parse a workflow file.

    Raises:
        yaml.YAMLError: If the file is not valid YAML.
        ValueError: If the document is not a mapping.
    """
    document = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(document, dict):
        raise ValueError(f"workflow document is {type(document).__name__}, not a mapping")
    return document


def workflow_triggers(document: Mapping[Any, Any]) -> set[str]:
    """Event names a workflow reacts to.

    YAML 1.1 loads a bare ``on:`` key as boolean ``True``.
    """
    raw = document.get("on", document.get(True))
    if isinstance(raw, str):
        return {raw}
    if isinstance(raw, (list, tuple)):
        return {str(item) for item in raw}
    if isinstance(raw, Mapping):
        return {str(key) for key in raw}
    return set()


def _is_broad_write(permissions: Any) -> bool:
    if isinstance(permissions, str):
        return permissions.strip() == "write-all"
    if isinstance(permissions, Mapping):
        return str(permissions.get("contents", "")).strip() == "write"
    return False


def grants_broad_write(document: Mapping[Any, Any]) -> bool:
    """True when the workflow or any of its jobs grants write-all or contents: write."""
    if _is_broad_write(document.get("permissions")):
        return True
    jobs = document.get("jobs") or {}
    if isinstance(jobs, Mapping):
        return any(
            _is_broad_write(job.get("permissions"))
            for job in jobs.values()
            if isinstance(job, Mapping)
        )
    return False


def dangerous_reasons(path: Path) -> list[str]:
    """Reasons *path* is a dangerous workflow; empty when it is safe.

    Raises:
        yaml.YAMLError: If the workflow cannot be parsed.
        ValueError: If the workflow is not a mapping.
    """
    document = load_workflow(path)
    reasons = [f"triggered by {name}" for name in sorted(workflow_triggers(document) & UNSAFE_TRIGGERS)]
    text = path.read_text(encoding="utf-8")
    if grants_broad_write(document) and AUTO_PUSH_MERGE_PATTERN.search(text):
        reasons.append("broad write permission combined with auto-push or auto-merge")
    return reasons


# ---------------------------------------------------------------------------
# PolicyEngine
# ---------------------------------------------------------------------------


class PolicyEngine:
    """Rule-based governance evaluation for one repository."""

    def __init__(
        self,
        repo_root: Path,
        *,
        config: ConfigResolver,
        overrides: Mapping[str, Any] | None = None,
        config_root: Path | None = None,
        scanner: Scanner = scan,
        client_factory: ClientFactory | None = None,
        github_api_url: str = "https://api.github.com",
        http_timeout: float = 30.0,
    ) -> None:
        self._root = Path(repo_root)
        self._config = config
        self._overrides = dict(overrides or {})
        self._config_root = Path(config_root) if config_root else self._root
        self._scanner = scanner
        self._client_factory = client_factory or (
            lambda token, repository: GitHubClient(
                token, repository, base_url=github_api_url, timeout=http_timeout
            )
        )

    def _get(self, key: str, default: Any = None) -> Any:
        return self._config.get(key, default, self._overrides)

    # -- evaluation ---------------------------------------------------------

    def evaluate(
        self,
        env: Environment,
        token: str | None = None,
        repo_ref: str | None = None,
    ) -> PolicyResult:
        """Run every rule and aggregate the findings."""
        rules: list[tuple[str, Callable[[], RuleOutcome]]] = [
            (RULE_WORKFLOW_PERMISSIONS, self.check_workflow_permissions),
            (RULE_APPROVED_ACTIONS, self.check_approved_actions),
            (RULE_HARDCODED_SECRETS, self.check_hardcoded_secrets),
            (RULE_BRANCH_PROTECTION, lambda: self.check_branch_protection(token, repo_ref)),
            (RULE_PROVIDER_CONSISTENCY, self.check_provider_consistency),
        ]

        violations: list[PolicyViolation] = []
        warnings: list[PolicyWarning] = []
        statuses: dict[str, RuleStatus] = {}

        for rule_id, rule in rules:
            try:
                outcome = rule()
            except Exception as exc:
                logger.error("policy_rule_errored", rule=rule_id, error=str(exc))
                statuses[rule_id] = RuleStatus.FAIL
                continue
            violations.extend(outcome.violations)
            warnings.extend(outcome.warnings)
            statuses[rule_id] = outcome.status

        result = PolicyResult(violations=violations, warnings=warnings, rules=statuses)
        logger.info("policy_evaluated", environment=env.value, **result.summary())
        return result

    @staticmethod
    def score(result: PolicyResult) -> int:
        """Governance score 0..100: pass counts fully, warn half, fail zero."""
        total = len(result.rules)
        if total == 0:
            return 100
        passed = result.count(RuleStatus.PASS)
        warned = result.count(RuleStatus.WARN)
        raw = 100 * (2 * passed - warned) / (2 * total)
        return max(0, math.floor(raw + 0.5))

    # -- rules --------------------------------------------------------------

    def check_workflow_permissions(self) -> RuleOutcome:
        outcome = RuleOutcome()
        for path in workflow_files(self._root):
            location = path.relative_to(self._root).as_posix()
            try:
                reasons = dangerous_reasons(path)
            except (yaml.YAMLError, ValueError, OSError) as exc:
                outcome.warnings.append(
                    PolicyWarning(
                        rule_id=RULE_WORKFLOW_PERMISSIONS,
                        location=location,
                        detail=f"Workflow could not be parsed: {exc}",
                        remediation="Fix the YAML syntax so the workflow can be audited.",
                    )
                )
                continue
            for reason in reasons:
                outcome.violations.append(
                    PolicyViolation(
                        rule_id=RULE_WORKFLOW_PERMISSIONS,
                        location=location,
                        detail=f"Unsafe workflow: {reason}",
                        remediation=(
                            "Remove privileged triggers and automated push/merge; "
                            "grant only the permissions each job needs."
                        ),
                    )
                )
        return outcome

    def approved_prefixes(self) -> tuple[str, ...]:
        extra = self._get("approved_actions", []) or []
        if isinstance(extra, str):
            extra = [item.strip() for item in extra.split(",")]
        return APPROVED_ACTION_PREFIXES + tuple(str(item) for item in extra if item)

    def check_approved_actions(self) -> RuleOutcome:
        outcome = RuleOutcome()
        prefixes = self.approved_prefixes()
        for path in workflow_files(self._root):
            location = path.relative_to(self._root).as_posix()
            for lineno, line in enumerate(path.read_text(encoding="utf-8").splitlines(), start=1):
                match = _USES_PATTERN.match(line)
                if match is None:
                    continue
                ref = match.group(1)
                if ref.startswith("./") or ref.startswith(prefixes):
                    continue
                outcome.warnings.append(
                    PolicyWarning(
                        rule_id=RULE_APPROVED_ACTIONS,
                        location=f"{location}:{lineno}",
                        detail=f"Action {ref!r} is not on the approved list",
                        remediation="Use an approved action or add its owner to approved_actions.",
                    )
                )
        return outcome

    def check_hardcoded_secrets(self) -> RuleOutcome:
        outcome = RuleOutcome()
        for match in self._scanner([self._root], SECRET_PATTERNS):
            detail = f"{match.category} ({match.pattern}) detected: {match.masked}"
            if match.severity.is_blocking:
                outcome.violations.append(
                    PolicyViolation(
                        rule_id=RULE_HARDCODED_SECRETS,
                        location=match.location,
                        detail=detail,
                        remediation="Remove the value, rotate it and inject it at runtime.",
                    )
                )
            else:
                outcome.warnings.append(
                    PolicyWarning(
                        rule_id=RULE_HARDCODED_SECRETS,
                        severity=match.severity,
                        location=match.location,
                        detail=detail,
                    )
                )
        return outcome

    def check_branch_protection(self, token: str | None, repo_ref: str | None) -> RuleOutcome:
        outcome = RuleOutcome()
        branch = str(self._get("default_branch", "main") or "main")
        if not token or not repo_ref:
            outcome.warnings.append(
                PolicyWarning(
                    rule_id=RULE_BRANCH_PROTECTION,
                    location=branch,
                    detail="Branch protection unverified: no token or repository supplied",
                )
            )
            return outcome

        with self._client_factory(token, repo_ref) as client:
            try:
                protection = client.get_branch_protection(branch)
            except RemoteApiError as exc:
                if exc.status_code != 404:
                    raise
                outcome.violations.append(
                    PolicyViolation(
                        rule_id=RULE_BRANCH_PROTECTION,
                        location=f"{repo_ref}@{branch}",
                        detail=f"Branch {branch!r} is not protected",
                        remediation="Enable branch protection with required reviews and status checks.",
                    )
                )
                return outcome

        location = f"{repo_ref}@{branch}"
        if not protection.get("required_pull_request_reviews"):
            outcome.warnings.append(
                PolicyWarning(
                    rule_id=RULE_BRANCH_PROTECTION,
                    location=location,
                    detail="Required pull-request reviews are not enabled",
                )
            )
        if not protection.get("required_status_checks"):
            outcome.warnings.append(
                PolicyWarning(
                    rule_id=RULE_BRANCH_PROTECTION,
                    location=location,
                    detail="Required status checks are not enabled",
                )
            )
        return outcome

    def check_provider_consistency(self) -> RuleOutcome:
        outcome = RuleOutcome()
        seen: dict[str, list[str]] = {}
        for env in Environment:
            name = config_file_name(env)
            for directory in SEARCH_DIRS:
                path = self._config_root / directory / name
                if not path.is_file():
                    continue
                display = path.relative_to(self._config_root).as_posix()
                try:
                    data = read_config_file(path)
                except ConfigParseError as exc:
                    outcome.warnings.append(
                        PolicyWarning(
                            rule_id=RULE_PROVIDER_CONSISTENCY,
                            location=display,
                            detail=exc.message,
                        )
                    )
                    continue
                provider = data.get("deploy_provider")
                if provider:
                    seen.setdefault(str(provider), []).append(display)

        if len(seen) > 1:
            drift = "; ".join(f"{name}: {', '.join(files)}" for name, files in sorted(seen.items()))
            outcome.warnings.append(
                PolicyWarning(
                    rule_id=RULE_PROVIDER_CONSISTENCY,
                    detail=f"Deploy provider drift across environments ({drift})",
                    remediation="Use one deploy_provider for every environment.",
                )
            )
        return outcome


def evaluate_policy(
    engine: PolicyEngine,
    env: Environment,
    token: str | None,
    repo_ref: str | None,
) -> tuple[PolicyResult, int]:
    """Evaluate and score in one call."""
    result = engine.evaluate(env, token, repo_ref)
    return result, PolicyEngine.score(result)


__all__ = [
    "APPROVED_ACTION_PREFIXES",
    "PolicyEngine",
    "RULE_IDS",
    "RuleOutcome",
    "UNSAFE_TRIGGERS",
    "dangerous_reasons",
    "evaluate_policy",
    "workflow_files",
]
