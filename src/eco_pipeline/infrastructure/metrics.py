"""CI metrics export.

After a ``Full`` or ``Heal`` run under CI, the run summary is written as a
JSON document and, when the CI system exposes a step-summary file, appended
to it as Markdown.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import structlog

from eco_pipeline.domain.entities.run import RunSummary
from eco_pipeline.infrastructure.reporting import render_summary

logger = structlog.get_logger(__name__)


def export_metrics(
    summary: RunSummary,
    metrics_path: Path,
    step_summary_path: Path | None = None,
    extra: dict[str, Any] | None = None,
) -> Path:
    """Write *summary* to *metrics_path* and the optional step summary.

    Returns:
        The metrics file path.
    """
    document = summary.to_metrics()
    if extra:
        document.update(extra)

    metrics_path.parent.mkdir(parents=True, exist_ok=True)
    metrics_path.write_text(
        json.dumps(document, indent=2, sort_keys=True) + "\n",
        encoding="utf-8",
    )

    if step_summary_path is not None:
        with step_summary_path.open("a", encoding="utf-8") as handle:
            handle.write(render_summary(summary) + "\n")

    logger.info(
        "metrics_exported",
        path=str(metrics_path),
        step_summary=str(step_summary_path) if step_summary_path else None,
        status=summary.status.value,
    )
    return metrics_path
