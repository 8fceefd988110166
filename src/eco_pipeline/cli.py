"""Command-line entry point: ``eco-pipeline --phase <Phase> --env <Env>``.

Exit codes: 0 on success (including a ``partial`` Heal run), 1 on a fatal
pipeline failure, 2 on a usage error.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Sequence

import structlog

from eco_pipeline import __version__
from eco_pipeline.config.settings import get_settings
from eco_pipeline.domain.entities.run import RunArgs
from eco_pipeline.domain.value_objects.pipeline import Environment, Phase
from eco_pipeline.engine.orchestrator import run_pipeline
from eco_pipeline.infrastructure.logging import clear_run_context, setup_logging
from eco_pipeline.infrastructure.reporting import render_summary
from eco_pipeline.shared.exceptions import PipelineError

logger = structlog.get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


def phase(value: str) -> Phase:
    return Phase.parse(value)


def environment(value: str) -> Environment:
    return Environment.parse(value)


def parse_overrides(pairs: Sequence[str]) -> dict[str, str]:
    """Turn ``KEY=VALUE`` strings into a dict; later keys win.

    Raises:
        ValueError: If a pair has no ``=`` or an empty key.
    """
    overrides: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ValueError(f"expected KEY=VALUE, got {pair!r}")
        overrides[key] = value
    return overrides


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="eco-pipeline",
        description="Build, test, deploy and self-heal a repository's CI/CD pipeline.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--phase",
        required=True,
        type=phase,
        help=f"one of: {', '.join(p.value for p in Phase)}",
    )
    parser.add_argument(
        "--env",
        required=True,
        type=environment,
        help=f"one of: {', '.join(e.value for e in Environment)}",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="report external actions without running them",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="override argument (highest precedence; the only channel for secrets)",
    )
    parser.add_argument("--pr", type=int, default=None, help="pull-request number")
    parser.add_argument("--token", default=None, help="repository API token (default: $GITHUB_TOKEN)")
    parser.add_argument("--repo", default=None, help="owner/name (default: $GITHUB_REPOSITORY)")
    parser.add_argument("--root", type=Path, default=Path("."), help="repository working tree")
    parser.add_argument(
        "--config-root",
        type=Path,
        default=None,
        help="directory searched for pipeline.<env>.json (default: --root)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["debug", "info", "warning", "error", "critical"],
    )
    parser.add_argument("--json-logs", action="store_true", help="emit JSON log lines")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    ns = parser.parse_args(argv)
    try:
        overrides = parse_overrides(ns.overrides)
    except ValueError as exc:
        parser.error(str(exc))

    settings = get_settings()
    setup_logging(
        ns.log_level or settings.log_level,
        json_output=ns.json_logs or settings.json_logs or settings.ci,
    )

    args = RunArgs(
        phase=ns.phase,
        environment=ns.env,
        dry_run=ns.dry_run,
        overrides=overrides,
        pr_number=ns.pr,
        token=ns.token or settings.github_token,
        repository=ns.repo or settings.repository,
        repo_root=ns.root.resolve(),
        config_root=ns.config_root.resolve() if ns.config_root else None,
    )

    try:
        summary = run_pipeline(args, settings)
    except PipelineError as exc:
        logger.error("pipeline_failed", **exc.to_dict())
        print(f"eco-pipeline: {exc.error_code}: {exc.message}", file=sys.stderr)
        return EXIT_FAILURE
    except Exception as exc:
        logger.exception("pipeline_crashed", error_type=type(exc).__name__)
        print(f"eco-pipeline: {type(exc).__name__}: {exc}", file=sys.stderr)
        return EXIT_FAILURE
    finally:
        clear_run_context()

    print(render_summary(summary))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
