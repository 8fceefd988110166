"""File-pattern scanning primitive.

Walks one or more roots, filters files by include/exclude globs and reports
every line matching any pattern in a pattern set.  Matched text is masked
before it leaves this module so that secrets never reach logs or reports.

The canonical secret pattern set used by the policy engine and the
front-end build gate lives here as :data:`SECRET_PATTERNS`.
"""
from __future__ import annotations

import fnmatch
import os
import re
from pathlib import Path
from typing import Iterable, Iterator, Sequence

import structlog
from pydantic import BaseModel, ConfigDict

from eco_pipeline.domain.value_objects.severity import Severity

logger = structlog.get_logger(__name__)

# Directories never descended into
_SKIP_DIRS: frozenset[str] = frozenset(
    {
        ".git",
        "__pycache__",
        "node_modules",
        ".venv",
        "venv",
        ".tox",
        ".mypy_cache",
        ".ruff_cache",
        ".pytest_cache",
        ".idea",
        ".vscode",
    }
)

_MAX_FILE_BYTES = 2 * 1024 * 1024


class ScanPattern(BaseModel):
    """A named regular expression with a category and severity."""

    model_config = ConfigDict(frozen=True)

    name: str
    regex: str
    category: str
    severity: Severity = Severity.CRITICAL

    def compile(self) -> re.Pattern[str]:
        return re.compile(self.regex)


class PatternMatch(BaseModel):
    """A single pattern hit."""

    model_config = ConfigDict(frozen=True)

    file: str
    line: int
    pattern: str
    category: str
    severity: Severity
    masked: str

    @property
    def location(self) -> str:
        return f"{self.file}:{self.line}"


SECRET_PATTERNS: tuple[ScanPattern, ...] = (
    ScanPattern(
        name="aws-access-key-id",
        regex=r"\b(?:AKIA|ASIA)[0-9A-Z]{16}\b",
        category="cloud-credential",
    ),
    ScanPattern(
        name="github-token",
        regex=r"\b(?:ghp|gho|ghu|ghs|ghr)_[A-Za-z0-9]{36,}\b|\bgithub_pat_[A-Za-z0-9_]{40,}\b",
        category="vcs-token",
    ),
    ScanPattern(
        name="private-key-block",
        regex=r"-----BEGIN (?:RSA |EC |DSA |OPENSSH |PGP )?PRIVATE KEY( BLOCK)?-----",
        category="private-key",
    ),
    ScanPattern(
        name="slack-token",
        regex=r"\bxox[baprs]-[A-Za-z0-9-]{10,}\b",
        category="chat-token",
    ),
    ScanPattern(
        name="stripe-live-key",
        regex=r"\b(?:sk|rk)_live_[A-Za-z0-9]{20,}\b",
        category="payment-key",
    ),
    ScanPattern(
        name="google-api-key",
        regex=r"\bAIza[0-9A-Za-z_\-]{35}\b",
        category="cloud-credential",
    ),
    ScanPattern(
        name="azure-storage-key",
        regex=r"AccountKey=[A-Za-z0-9+/=]{40,}",
        category="cloud-credential",
    ),
    ScanPattern(
        name="generic-password-assignment",
        regex=r"""(?i)\b(?:password|passwd|pwd|secret|api_key|apikey)\b\s*[:=]\s*["'][^"'\s]{8,}["']""",
        category="hardcoded-credential",
        severity=Severity.WARN,
    ),
    ScanPattern(
        name="jwt",
        regex=r"\beyJ[A-Za-z0-9_-]{10,}\.eyJ[A-Za-z0-9_-]{10,}\.[A-Za-z0-9_-]{10,}\b",
        category="bearer-token",
        severity=Severity.WARN,
    ),
)

DEFAULT_SOURCE_EXCLUDES: tuple[str, ...] = (
    "*.min.js",
    "*.map",
    "*.lock",
    "package-lock.json",
    "*.png",
    "*.jpg",
    "*.gif",
    "*.ico",
    "*.woff",
    "*.woff2",
    "*.pdf",
    "*.zip",
)


def mask(text: str) -> str:
    """Keep the first four characters of *text*, mask the rest."""
    if len(text) <= 4:
        return "*" * len(text)
    return text[:4] + "*" * min(len(text) - 4, 12)


def _matches_any(rel_path: str, globs: Sequence[str]) -> bool:
    name = rel_path.rsplit("/", 1)[-1]
    return any(
        fnmatch.fnmatch(rel_path, pattern) or fnmatch.fnmatch(name, pattern)
        for pattern in globs
    )


def iter_files(
    roots: Iterable[Path],
    include: Sequence[str] = ("*",),
    exclude: Sequence[str] = (),
) -> Iterator[tuple[Path, str]]:
    """Yield ``(path, display_path)`` for every file selected by the globs."""
    for root in roots:
        root = Path(root)
        if root.is_file():
            if _matches_any(root.name, include) and not _matches_any(root.name, exclude):
                yield root, root.as_posix()
            continue
        if not root.is_dir():
            continue
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(d for d in dirnames if d not in _SKIP_DIRS)
            for filename in sorted(filenames):
                path = Path(dirpath) / filename
                rel = path.relative_to(root).as_posix()
                if not _matches_any(rel, include) or _matches_any(rel, exclude):
                    continue
                yield path, rel


def scan(
    roots: Iterable[Path],
    patterns: Sequence[ScanPattern] = SECRET_PATTERNS,
    *,
    include: Sequence[str] = ("*",),
    exclude: Sequence[str] = DEFAULT_SOURCE_EXCLUDES,
) -> list[PatternMatch]:
    """Scan files under *roots* for *patterns*.

    Binary and oversized files are skipped.  Results are ordered by file,
    then line.
    """
    compiled = [(pattern, pattern.compile()) for pattern in patterns]
    matches: list[PatternMatch] = []
    files_scanned = 0

    for path, display in iter_files(roots, include, exclude):
        try:
            if path.stat().st_size > _MAX_FILE_BYTES:
                continue
            data = path.read_bytes()
        except OSError as exc:
            logger.debug("scan_file_unreadable", path=str(path), error=str(exc))
            continue
        if b"\x00" in data[:1024]:
            continue
        files_scanned += 1
        text = data.decode("utf-8", errors="replace")
        for lineno, line in enumerate(text.splitlines(), start=1):
            for pattern, regex in compiled:
                hit = regex.search(line)
                if hit is None:
                    continue
                matches.append(
                    PatternMatch(
                        file=display,
                        line=lineno,
                        pattern=pattern.name,
                        category=pattern.category,
                        severity=pattern.severity,
                        masked=mask(hit.group(0)),
                    )
                )

    logger.debug(
        "pattern_scan_complete",
        files_scanned=files_scanned,
        matches=len(matches),
    )
    return matches
