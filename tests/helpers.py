"""Test doubles and tree-building helpers."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Sequence

from eco_pipeline.infrastructure.process import CommandResult, CommandRunner


@dataclass
class FakeRunner(CommandRunner):
    """Records every command instead of starting a process.

    ``responses`` maps a command-line prefix to ``(returncode, stdout)``;
    unmatched commands succeed with empty output.
    """

    responses: dict[str, tuple[int, str]] = field(default_factory=dict)
    tools: set[str] = field(default_factory=set)
    calls: list[list[str]] = field(default_factory=list)
    envs: list[Mapping[str, str] | None] = field(default_factory=list)
    timeouts: list[float | None] = field(default_factory=list)

    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        command = list(argv)
        self.calls.append(command)
        self.envs.append(env)
        self.timeouts.append(timeout)
        joined = " ".join(command)
        for prefix, (returncode, stdout) in self.responses.items():
            if joined.startswith(prefix):
                return CommandResult(
                    argv=command,
                    returncode=returncode,
                    stdout=stdout,
                    stderr="" if returncode == 0 else f"{command[0]} failed",
                )
        return CommandResult(argv=command, returncode=0)

    def which(self, tool: str) -> str | None:  # type: ignore[override]
        return f"/usr/bin/{tool}" if tool in self.tools else None

    def invoked(self, prefix: str) -> bool:
        return any(" ".join(call).startswith(prefix) for call in self.calls)


def write_json(path: Path, data: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def write_text(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


# Assembled at runtime so the literal never appears in the source tree.
FAKE_AWS_KEY = "AKIA" + "ABCDEFGHIJKLMNOP"
