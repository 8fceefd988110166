"""Closed enumerations for pipeline phases, environments and outcomes."""
from __future__ import annotations

import enum


class Environment(str, enum.Enum):
    """Deployment environment a run is scoped to."""

    DEV = "Dev"
    STAGING = "Staging"
    PROD = "Prod"

    @property
    def config_name(self) -> str:
        """Lower-case name used in configuration file names."""
        return self.value.lower()

    @classmethod
    def parse(cls, value: str | Environment) -> Environment:
        """Parse an environment name case-insensitively.

        Raises:
            ValueError: If *value* is not one of Dev, Staging, Prod.
        """
        if isinstance(value, Environment):
            return value
        for member in cls:
            if member.value.lower() == value.strip().lower():
                return member
        valid = ", ".join(m.value for m in cls)
        raise ValueError(f"Invalid environment {value!r}; expected one of: {valid}")


class Phase(str, enum.Enum):
    """Operations the orchestrator can run after boot."""

    BUILD = "Build"
    TEST = "Test"
    DEPLOY = "Deploy"
    VALIDATE_ENV = "ValidateEnv"
    HEAL = "Heal"
    DETECT_REPO = "DetectRepo"
    POLICY = "Policy"
    FULL = "Full"

    @classmethod
    def parse(cls, value: str | Phase) -> Phase:
        """Parse a phase name case-insensitively.

        Raises:
            ValueError: If *value* is not a known phase.
        """
        if isinstance(value, Phase):
            return value
        for member in cls:
            if member.value.lower() == value.strip().lower():
                return member
        valid = ", ".join(m.value for m in cls)
        raise ValueError(f"Invalid phase {value!r}; expected one of: {valid}")


class PhaseStatus(str, enum.Enum):
    """Outcome of a single phase or heal step."""

    PASS = "pass"
    FAIL = "fail"


class RunStatus(str, enum.Enum):
    """Aggregate outcome of a run."""

    PASS = "pass"
    FAIL = "fail"
    PARTIAL = "partial"


class RuleStatus(str, enum.Enum):
    """Per-rule entry in a policy score map."""

    PASS = "pass"
    FAIL = "fail"
    WARN = "warn"


class StackType(str, enum.Enum):
    """Technology stack detected for a repository."""

    FRONTEND = "frontend"
    NODE = "node"
    PYTHON = "python"
    DOTNET = "dotnet"
    GO = "go"
    JAVA = "java"
    CONTAINER = "container"
    UNKNOWN = "unknown"
