"""Base contract for deploy providers.

Every back-end implements the same three hooks and inherits one
:meth:`BaseDeployProvider.deploy` template:

1. :meth:`resolve_params` -- read settings through the config precedence
   chain (overrides > config file > default).
2. :meth:`plan` -- build the ordered deploy and verification commands.
3. :meth:`verify` -- inspect command output after a live run.

Dry runs stop after planning and return the masked command list, so no
external process is ever started.
"""
from __future__ import annotations

import abc
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar, Mapping

import structlog
from pydantic import BaseModel, ConfigDict, Field

from eco_pipeline.config.resolver import ConfigResolver
from eco_pipeline.domain.value_objects.pipeline import Environment
from eco_pipeline.infrastructure.process import CommandResult, CommandRunner, mask_command
from eco_pipeline.shared.exceptions import CommandExecutionError, ProviderExecutionError

logger = structlog.get_logger(__name__)


class ProviderResult(BaseModel):
    """Outcome of a deploy call.

    Attributes:
        provider: Provider name.
        environment: Target environment.
        dry_run: True when nothing was executed.
        details: Back-end identifying fields (namespace, app name, ...).
        commands: Commands that ran or would run, secrets masked.
        url: Deployment URL when the back-end reports one.
    """

    model_config = ConfigDict(frozen=True)

    provider: str
    environment: str
    dry_run: bool = False
    details: dict[str, Any] = Field(default_factory=dict)
    commands: list[str] = Field(default_factory=list)
    url: str | None = None


@dataclass(frozen=True)
class PlannedCommand:
    """One external command in a deploy plan."""

    argv: tuple[str, ...]
    purpose: str = "deploy"
    timeout: float | None = None


@dataclass(frozen=True)
class DeployRequest:
    """Uniform parameters passed to every provider."""

    environment: Environment
    config: ConfigResolver
    runner: CommandRunner
    overrides: Mapping[str, Any] = field(default_factory=dict)
    dry_run: bool = False
    workdir: Path = field(default_factory=Path.cwd)

    def get(self, key: str, default: Any = None) -> Any:
        return self.config.get(key, default, self.overrides)


class BaseDeployProvider(abc.ABC):
    """Abstract deploy back-end."""

    name: ClassVar[str]
    required_tools: ClassVar[tuple[str, ...]] = ()
    required_keys: ClassVar[tuple[str, ...]] = ()
    secret_keys: ClassVar[tuple[str, ...]] = ()

    # -- hooks --------------------------------------------------------------

    @abc.abstractmethod
    def resolve_params(self, request: DeployRequest) -> dict[str, Any]:
        """Resolve provider settings from the request."""

    @abc.abstractmethod
    def plan(self, request: DeployRequest, params: dict[str, Any]) -> list[PlannedCommand]:
        """Return the ordered deploy and verification commands."""

    def describe(self, request: DeployRequest, params: dict[str, Any]) -> dict[str, Any]:
        """Identifying fields embedded in the result."""
        return {key: value for key, value in params.items() if key not in self.secret_keys}

    def verify(
        self,
        request: DeployRequest,
        params: dict[str, Any],
        results: list[CommandResult],
    ) -> dict[str, Any]:
        """Inspect live output; return extra detail fields or raise."""
        return {}

    def command_env(self, params: dict[str, Any]) -> dict[str, str] | None:
        return None

    # -- helpers ------------------------------------------------------------

    def require(self, request: DeployRequest, key: str) -> Any:
        """Resolve a mandatory setting.

        Raises:
            ProviderExecutionError: If *key* resolves to nothing.
        """
        value = request.get(key)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ProviderExecutionError(
                f"{self.name}: required setting {key!r} is not configured",
                provider=self.name,
                context={"key": key},
            )
        return value

    def require_for_plan(self, request: DeployRequest, key: str) -> Any:
        """Like :meth:`require`, but a dry run plans with a ``<key>`` placeholder."""
        if request.dry_run:
            value = request.get(key)
            if value is None or (isinstance(value, str) and not value.strip()):
                return f"<{key}>"
            return value
        return self.require(request, key)

    def fail(self, message: str, result: CommandResult | None = None) -> ProviderExecutionError:
        return ProviderExecutionError(
            f"{self.name}: {message}",
            provider=self.name,
            diagnostic=result.diagnostic() if result else "",
        )

    # -- template -----------------------------------------------------------

    def deploy(self, request: DeployRequest) -> ProviderResult:
        """Resolve, plan and (unless dry-run) execute and verify a deploy.

        Raises:
            ProviderExecutionError: On a missing setting, a non-zero exit,
                a timeout or a failed verification.
        """
        params = self.resolve_params(request)
        commands = self.plan(request, params)
        secrets = [str(params[key]) for key in self.secret_keys if params.get(key)]
        rendered = [mask_command(command.argv, secrets) for command in commands]
        details = self.describe(request, params)

        if request.dry_run:
            logger.info(
                "provider_dry_run",
                provider=self.name,
                environment=request.environment.value,
                commands=rendered,
            )
            return ProviderResult(
                provider=self.name,
                environment=request.environment.value,
                dry_run=True,
                details=details,
                commands=rendered,
            )

        results: list[CommandResult] = []
        for command, display in zip(commands, rendered):
            try:
                result = request.runner.run(
                    command.argv,
                    cwd=request.workdir,
                    env=self.command_env(params),
                    timeout=command.timeout,
                )
            except CommandExecutionError as exc:
                raise ProviderExecutionError(
                    f"{self.name}: {exc.message}",
                    provider=self.name,
                    diagnostic=display,
                ) from exc
            if not result.ok:
                reason = "timed out" if result.timed_out else f"exited {result.returncode}"
                raise self.fail(f"{command.purpose} step {reason}: {display}", result)
            results.append(result)

        extra = self.verify(request, params, results)
        url = extra.pop("url", None)
        details.update(extra)

        logger.info(
            "provider_deploy_succeeded",
            provider=self.name,
            environment=request.environment.value,
            url=url,
        )
        return ProviderResult(
            provider=self.name,
            environment=request.environment.value,
            dry_run=False,
            details=details,
            commands=rendered,
            url=url,
        )
