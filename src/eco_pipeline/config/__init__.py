"""Configuration: per-environment JSON resolver and process settings."""
from __future__ import annotations

from eco_pipeline.config.resolver import ConfigResolver
from eco_pipeline.config.settings import PipelineSettings, get_settings

__all__ = ["ConfigResolver", "PipelineSettings", "get_settings"]
