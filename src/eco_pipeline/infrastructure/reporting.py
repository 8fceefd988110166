"""Markdown rendering for pull-request comments and CI step summaries."""
from __future__ import annotations

import json
from typing import Any

from eco_pipeline.domain.entities.policy import PolicyResult
from eco_pipeline.domain.entities.repo_profile import RepoProfile
from eco_pipeline.domain.entities.run import RunArgs, RunSummary

_STATUS_ICONS: dict[str, str] = {
    "pass": "✅",
    "fail": "❌",
    "warn": "⚠️",
    "partial": "⚠️",
    "skipped": "⏭️",
}


def _icon(status: str) -> str:
    return _STATUS_ICONS.get(status, "•")


def _escape(text: str) -> str:
    return text.replace("|", "\\|").replace("\n", " ")


def render_boot(args: RunArgs, profile: RepoProfile, config_source: str | None) -> str:
    lines = [
        "### eco-pipeline boot",
        "",
        f"- **Phase:** `{args.phase.value}`",
        f"- **Environment:** `{args.environment.value}`",
        f"- **Dry run:** `{str(args.dry_run).lower()}`",
        f"- **Stack:** `{profile.stack.value}`"
        + (f" ({', '.join(profile.frameworks)})" if profile.frameworks else ""),
        f"- **Config:** `{config_source or 'none (defaults and overrides only)'}`",
    ]
    return "\n".join(lines)


def render_phase_failure(phase: str, error_kind: str, detail: str) -> str:
    return "\n".join(
        [
            f"### ❌ {phase} failed",
            "",
            f"**{error_kind}**",
            "",
            "```",
            detail.strip()[-3000:],
            "```",
        ]
    )


def render_summary(summary: RunSummary) -> str:
    lines = [
        f"### {_icon(summary.status.value)} eco-pipeline {summary.phase} "
        f"({summary.environment}): **{summary.status.value}**",
        "",
        "| Step | Status | Duration (s) | Detail |",
        "|------|--------|-------------:|--------|",
    ]
    for row in summary.rows:
        lines.append(
            f"| {_escape(row.name)} | {_icon(row.status)} {row.status} "
            f"| {row.duration_seconds:.2f} | {_escape(row.detail)} |"
        )
    lines.append("")
    lines.append(f"Total duration: {summary.total_duration_seconds:.2f}s")
    if summary.dry_run:
        lines.append("")
        lines.append("_Dry run: no external commands were executed._")
    return "\n".join(lines)


def render_policy(result: PolicyResult, score: int, metadata: dict[str, Any] | None = None) -> str:
    lines = [
        f"### {_icon('pass' if result.passed else 'fail')} Governance score: **{score}/100**",
        "",
        "| Rule | Status |",
        "|------|--------|",
    ]
    for rule, status in result.rules.items():
        lines.append(f"| {rule} | {_icon(status.value)} {status.value} |")

    if result.violations:
        lines += ["", "#### Violations", ""]
        for item in result.violations:
            where = f" `{item.location}`" if item.location else ""
            lines.append(f"- **{item.rule_id}**{where}: {item.detail}")
            if item.remediation:
                lines.append(f"  - Fix: {item.remediation}")
    if result.warnings:
        lines += ["", "#### Warnings", ""]
        for item in sorted(result.warnings, key=lambda finding: -finding.severity.weight):
            where = f" `{item.location}`" if item.location else ""
            lines.append(f"- **{item.rule_id}**{where}: {item.detail}")
    if metadata:
        lines += ["", "<details><summary>metadata</summary>", "", "```json"]
        lines.append(json.dumps(metadata, indent=2, sort_keys=True))
        lines += ["```", "</details>"]
    return "\n".join(lines)
