"""Exception hierarchy for the pipeline governance engine.

Every exception carries a machine-readable ``error_code``, a ``severity``
indicator, and an arbitrary ``context`` dict for structured logging.  The
orchestrator records ``error_code`` as the failure kind of a phase or heal
step; the CLI echoes ``message`` to stderr.
"""
from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorSeverity(str, Enum):
    """Impact of a pipeline failure."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class PipelineError(Exception):
    """Root exception for every pipeline failure.

    Attributes:
        message:    Human-readable description.
        error_code: Machine-readable code (e.g. ``"SECRET_DETECTED"``).
        severity:   Impact severity.
        context:    Arbitrary key-value context for structured logging.
    """

    def __init__(
        self,
        message: str = "Pipeline error",
        error_code: str = "PIPELINE_ERROR",
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.severity = severity
        self.context: dict[str, Any] = context or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}("
            f"error_code={self.error_code!r}, "
            f"severity={self.severity.value!r}, "
            f"message={self.message!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialise the exception for reports and metrics."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "severity": self.severity.value,
            "context": self.context,
        }


# ---------------------------------------------------------------------------
# Configuration exceptions
# ---------------------------------------------------------------------------

class ConfigParseError(PipelineError):
    """Raised when an environment configuration file cannot be parsed."""

    def __init__(self, message: str = "Configuration file is malformed", **kwargs: Any) -> None:
        super().__init__(
            message,
            error_code=kwargs.pop("error_code", "CONFIG_PARSE_ERROR"),
            severity=kwargs.pop("severity", ErrorSeverity.HIGH),
            **kwargs,
        )


class SecretDetected(PipelineError):
    """Raised when a configuration file holds a live-looking secret.

    ``keys`` lists every offending key; values are never included.
    """

    def __init__(self, keys: list[str], source: str | None = None, **kwargs: Any) -> None:
        self.keys = list(keys)
        where = f" in {source}" if source else ""
        super().__init__(
            f"Live secret values found{where} for key(s): {', '.join(self.keys)}. "
            "Secrets must be passed as override arguments, never committed to config.",
            error_code=kwargs.pop("error_code", "SECRET_DETECTED"),
            severity=kwargs.pop("severity", ErrorSeverity.CRITICAL),
            context={"keys": self.keys, "source": source},
            **kwargs,
        )


# ---------------------------------------------------------------------------
# Deploy exceptions
# ---------------------------------------------------------------------------

class UnknownProvider(PipelineError):
    """Raised when a deploy target is not in the supported provider set."""

    def __init__(self, name: str, supported: list[str], **kwargs: Any) -> None:
        self.name = name
        self.supported = list(supported)
        super().__init__(
            f"Unknown deploy provider {name!r}. Supported: {', '.join(self.supported)}",
            error_code=kwargs.pop("error_code", "UNKNOWN_PROVIDER"),
            severity=kwargs.pop("severity", ErrorSeverity.HIGH),
            context={"provider": name, "supported": self.supported},
            **kwargs,
        )


class ProviderExecutionError(PipelineError):
    """Raised when a deploy command or its verification step fails."""

    def __init__(
        self,
        message: str = "Provider execution failed",
        *,
        provider: str = "",
        diagnostic: str = "",
        **kwargs: Any,
    ) -> None:
        self.provider = provider
        self.diagnostic = diagnostic
        context = kwargs.pop("context", None) or {}
        context.setdefault("provider", provider)
        if diagnostic:
            context.setdefault("diagnostic", diagnostic)
        super().__init__(
            message,
            error_code=kwargs.pop("error_code", "PROVIDER_EXECUTION_ERROR"),
            severity=kwargs.pop("severity", ErrorSeverity.HIGH),
            context=context,
            **kwargs,
        )


# ---------------------------------------------------------------------------
# Governance and phase exceptions
# ---------------------------------------------------------------------------

class PolicyViolationError(PipelineError):
    """Raised when a policy check reports one or more critical findings."""

    def __init__(self, message: str = "Policy violations detected", *, score: int | None = None, **kwargs: Any) -> None:
        self.score = score
        super().__init__(
            message,
            error_code=kwargs.pop("error_code", "POLICY_VIOLATION"),
            severity=kwargs.pop("severity", ErrorSeverity.CRITICAL),
            **kwargs,
        )


class PhaseFailure(PipelineError):
    """Raised when a build, test, deploy-gate or validation phase fails."""

    def __init__(self, message: str = "Phase failed", *, phase: str = "", **kwargs: Any) -> None:
        self.phase = phase
        context = kwargs.pop("context", None) or {}
        context.setdefault("phase", phase)
        super().__init__(
            message,
            error_code=kwargs.pop("error_code", "PHASE_FAILURE"),
            context=context,
            **kwargs,
        )


# ---------------------------------------------------------------------------
# Collaborator exceptions
# ---------------------------------------------------------------------------

class RemoteApiError(PipelineError):
    """Raised when the remote repository API returns a non-success status."""

    def __init__(self, message: str = "Remote API request failed", *, status_code: int | None = None, **kwargs: Any) -> None:
        self.status_code = status_code
        context = kwargs.pop("context", None) or {}
        context.setdefault("status_code", status_code)
        super().__init__(
            message,
            error_code=kwargs.pop("error_code", "REMOTE_API_ERROR"),
            context=context,
            **kwargs,
        )


class CommandExecutionError(PipelineError):
    """Raised when an external command cannot be started at all."""

    def __init__(self, message: str = "Command could not be started", **kwargs: Any) -> None:
        super().__init__(message, error_code=kwargs.pop("error_code", "COMMAND_EXECUTION_ERROR"), **kwargs)


__all__ = [
    "CommandExecutionError",
    "ConfigParseError",
    "ErrorSeverity",
    "PhaseFailure",
    "PipelineError",
    "PolicyViolationError",
    "ProviderExecutionError",
    "RemoteApiError",
    "SecretDetected",
    "UnknownProvider",
]
