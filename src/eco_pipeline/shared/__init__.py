"""Shared layer for the pipeline engine.

Cross-cutting concerns: the exception hierarchy used by every layer.
"""
from __future__ import annotations

__all__: list[str] = []
