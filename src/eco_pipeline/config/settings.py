"""Process-level settings for the pipeline, loaded from environment variables.

These are distinct from the per-environment ``pipeline.<env>.json`` files
handled by :mod:`eco_pipeline.config.resolver`: settings describe how the
pipeline process itself runs (logging, remote API endpoint, CI detection),
never what a consuming repository deploys.
"""
from __future__ import annotations

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PipelineSettings(BaseSettings):
    """Pipeline runtime configuration."""

    model_config = SettingsConfigDict(
        env_prefix="ECO_PIPELINE_",
        extra="ignore",
        populate_by_name=True,
    )

    log_level: str = "info"
    json_logs: bool = False

    # Remote repository API
    github_api_url: str = "https://api.github.com"
    github_token: str | None = Field(
        default=None,
        repr=False,
        validation_alias=AliasChoices("ECO_PIPELINE_GITHUB_TOKEN", "GITHUB_TOKEN"),
    )
    repository: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ECO_PIPELINE_REPOSITORY", "GITHUB_REPOSITORY"),
    )
    http_timeout_seconds: float = Field(default=30.0, gt=0)

    # CI detection and metrics export
    ci: bool = Field(
        default=False,
        validation_alias=AliasChoices("ECO_PIPELINE_CI", "CI"),
    )
    metrics_path: str = "pipeline-metrics.json"
    step_summary_path: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ECO_PIPELINE_STEP_SUMMARY_PATH", "GITHUB_STEP_SUMMARY"),
    )


def get_settings() -> PipelineSettings:
    """Build settings from the current process environment."""
    return PipelineSettings()
