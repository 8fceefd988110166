"""Run context: the one object every phase and heal step receives.

Created at boot and discarded when the run ends.  It owns the config
store, the ledger and the repository profile, and carries the injected
collaborators (command runner, GitHub client, scanner) so that tests can
swap any of them.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import structlog

from eco_pipeline.config.resolver import ConfigResolver, is_secret_key
from eco_pipeline.config.settings import PipelineSettings
from eco_pipeline.domain.entities.repo_profile import RepoProfile
from eco_pipeline.domain.entities.run import RunArgs, RunLedger
from eco_pipeline.infrastructure.github import GitHubClient
from eco_pipeline.infrastructure.pattern_scanner import PatternMatch, scan
from eco_pipeline.infrastructure.process import CommandRunner
from eco_pipeline.shared.exceptions import RemoteApiError

logger = structlog.get_logger(__name__)

Scanner = Callable[..., list[PatternMatch]]


@dataclass
class RunContext:
    """Run-scoped state and collaborators.

    Attributes:
        args: Invocation arguments.
        settings: Process-level settings.
        config: Environment configuration store.
        ledger: Append-only phase and heal-step record.
        runner: External command runner.
        github: Remote API client; ``None`` without PR context.
        profile: Repository classification, set during boot.
        scanner: File-pattern scanner.
    """

    args: RunArgs
    settings: PipelineSettings = field(default_factory=PipelineSettings)
    config: ConfigResolver = field(default_factory=ConfigResolver)
    ledger: RunLedger = field(default_factory=RunLedger)
    runner: CommandRunner = field(default_factory=CommandRunner)
    github: GitHubClient | None = None
    profile: RepoProfile = field(default_factory=RepoProfile)
    scanner: Scanner = scan

    def __post_init__(self) -> None:
        known = set(self.runner.secrets)
        for value in self.secret_values():
            if value not in known:
                self.runner.secrets.append(value)

    @classmethod
    def create(
        cls,
        args: RunArgs,
        settings: PipelineSettings,
        *,
        runner: CommandRunner | None = None,
        github: GitHubClient | None = None,
        scanner: Scanner | None = None,
    ) -> RunContext:
        """Build a context, opening a GitHub client when PR context exists."""
        if github is None and args.has_pr_context:
            github = GitHubClient(
                args.token or "",
                args.repository or "",
                base_url=settings.github_api_url,
                timeout=settings.http_timeout_seconds,
            )
        return cls(
            args=args,
            settings=settings,
            runner=runner or CommandRunner(),
            github=github,
            scanner=scanner or scan,
        )

    # -- accessors ----------------------------------------------------------

    @property
    def repo_root(self) -> Path:
        return self.args.repo_root

    @property
    def dry_run(self) -> bool:
        return self.args.dry_run

    @property
    def has_pr_context(self) -> bool:
        return self.args.has_pr_context and self.github is not None

    def get(self, key: str, default: Any = None) -> Any:
        """Resolve *key* through overrides, config file and *default*."""
        return self.config.get(key, default, self.args.overrides)

    def secret_values(self) -> list[str]:
        """Values that must never appear in logs or reports."""
        values = [
            str(value)
            for key, value in self.args.overrides.items()
            if is_secret_key(key) and value
        ]
        if self.args.token:
            values.append(self.args.token)
        return values

    # -- reporting ----------------------------------------------------------

    def report(self, key: str, body: str) -> None:
        """Upsert the PR comment tagged *key*; no-op without PR context.

        Comment publication is best effort: an API failure is logged and
        the run continues.
        """
        if not self.has_pr_context or self.github is None or self.args.pr_number is None:
            logger.debug("pr_report_skipped", key=key)
            return
        try:
            self.github.upsert_comment(self.args.pr_number, key, body)
        except RemoteApiError as exc:
            logger.warning(
                "pr_report_failed",
                key=key,
                status=exc.status_code,
                error=exc.message,
            )

    def close(self) -> None:
        if self.github is not None:
            self.github.close()
