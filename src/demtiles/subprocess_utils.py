"""Subprocess helpers with timeouts and captured output."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

TIMEOUT_RETURNCODE = 124


@dataclass(frozen=True)
class CommandResult:
    """Captured output from a command invocation."""

    command: list[str]
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out


def _as_text(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def run_command(
    command: Sequence[str | Path],
    *,
    cwd: Path | None = None,
    timeout: float | None = None,
) -> CommandResult:
    """Run a command and capture its output; timeouts map to returncode 124."""
    cmd_list = [str(item) for item in command]
    try:
        result = subprocess.run(
            cmd_list,
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        timeout_message = f"Command timed out after {timeout} seconds."
        stderr = _as_text(exc.stderr)
        stderr = f"{stderr}\n{timeout_message}" if stderr else timeout_message
        return CommandResult(cmd_list, TIMEOUT_RETURNCODE, _as_text(exc.stdout), stderr, True)
    return CommandResult(cmd_list, result.returncode, result.stdout, result.stderr, False)
