"""eco-pipeline: reusable CI/CD pipeline governance and remediation engine.

Sequences build, test and deploy phases for a consuming repository,
dispatches deployments to pluggable providers, scores the repository
against organisation governance rules and runs the nine-step heal
protocol.
"""
from __future__ import annotations

__version__ = "1.4.0"

__all__ = ["__version__"]
