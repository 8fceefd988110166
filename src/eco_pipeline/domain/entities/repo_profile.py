"""Repository profile entity.

A RepoProfile is produced once per run by the repository classifier and
treated as immutable for the rest of the run.
"""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from eco_pipeline.domain.value_objects.pipeline import StackType


class RepoProfile(BaseModel):
    """Classification of a repository's technology stack.

    Attributes:
        stack: Detected stack type.
        has_lint: A lint step is available.
        has_typecheck: A type-check step is available.
        has_test: A test step is available.
        has_build: A build step is available.
        frameworks: Declared frameworks, in detection order.
        is_monorepo: Workspace markers or several package manifests found.
    """

    model_config = ConfigDict(frozen=True)

    stack: StackType = StackType.UNKNOWN
    has_lint: bool = False
    has_typecheck: bool = False
    has_test: bool = False
    has_build: bool = False
    frameworks: tuple[str, ...] = Field(default_factory=tuple)
    is_monorepo: bool = False

    @property
    def is_frontend(self) -> bool:
        return self.stack is StackType.FRONTEND

    def summary(self) -> dict[str, Any]:
        """Return a flat dictionary for logging and phase metadata."""
        return {
            "stack": self.stack.value,
            "has_lint": self.has_lint,
            "has_typecheck": self.has_typecheck,
            "has_test": self.has_test,
            "has_build": self.has_build,
            "frameworks": list(self.frameworks),
            "is_monorepo": self.is_monorepo,
        }
