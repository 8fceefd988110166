"""Blocking external command execution.

Every build, test and deploy action goes through a :class:`CommandRunner`
so that callers can be exercised with a fake runner and so that command
lines are logged with secrets masked.
"""
from __future__ import annotations

import os
import shutil
import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping, Sequence

import structlog

from eco_pipeline.shared.exceptions import CommandExecutionError

logger = structlog.get_logger(__name__)

MASK = "***"


def mask_command(argv: Sequence[str], secrets: Iterable[str] = ()) -> str:
    """Render *argv* as one string with every secret value replaced."""
    rendered = " ".join(argv)
    for secret in secrets:
        if secret:
            rendered = rendered.replace(secret, MASK)
    return rendered


@dataclass
class CommandResult:
    """Outcome of a single external command.

    Attributes:
        argv: The command that ran.
        returncode: Process exit status (``-1`` when timed out).
        stdout: Captured standard output.
        stderr: Captured standard error.
        duration_seconds: Wall-clock time.
        timed_out: The command exceeded its timeout.
    """

    argv: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    duration_seconds: float = 0.0
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    def diagnostic(self, limit: int = 2000) -> str:
        """Return the most useful tail of the command output."""
        if self.timed_out:
            return "command timed out"
        text = (self.stderr or self.stdout).strip()
        return text[-limit:]


@dataclass
class CommandRunner:
    """Runs external commands synchronously via :func:`subprocess.run`.

    Attributes:
        secrets: Values masked whenever a command line is logged.
    """

    secrets: list[str] = field(default_factory=list)

    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        """Run *argv* and wait for it to finish.

        A non-zero exit is returned, not raised; callers decide what a
        failure means.  Expiry of *timeout* is reported as ``timed_out``.

        Raises:
            CommandExecutionError: If the executable cannot be started.
        """
        command = list(argv)
        merged_env = {**os.environ, **env} if env else None
        display = mask_command(command, self.secrets)
        logger.info("command_started", command=display, cwd=str(cwd) if cwd else None)

        start = time.perf_counter()
        try:
            completed = subprocess.run(
                command,
                cwd=str(cwd) if cwd else None,
                env=merged_env,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            duration = time.perf_counter() - start
            logger.error("command_timed_out", command=display, timeout=timeout)
            return CommandResult(
                argv=command,
                returncode=-1,
                stdout=_decode(exc.stdout),
                stderr=_decode(exc.stderr),
                duration_seconds=duration,
                timed_out=True,
            )
        except OSError as exc:
            logger.error("command_start_failed", command=display, error=str(exc))
            raise CommandExecutionError(
                f"Cannot start {command[0]!r}: {exc}",
                context={"command": display},
            ) from exc

        duration = time.perf_counter() - start
        result = CommandResult(
            argv=command,
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
            duration_seconds=duration,
        )
        log = logger.info if result.ok else logger.warning
        log(
            "command_finished",
            command=display,
            returncode=result.returncode,
            duration=round(duration, 3),
        )
        return result

    @staticmethod
    def which(tool: str) -> str | None:
        """Return the resolved path of *tool* on PATH, if any."""
        return shutil.which(tool)


def _decode(data: bytes | str | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data
