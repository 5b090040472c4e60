"""Subprocess execution with Result-based error handling.

Two flavours:

- ``run`` captures stdout/stderr (git queries, ssh commands whose output
  is echoed through the console afterwards).
- ``run_streaming`` lets the child write straight to the terminal (hooks,
  the compiler), like running the tool by hand.

Usage:
    match run(["git", "describe", "--tags", "--abbrev=0"], cwd=Path(".")):
        case Ok(stdout):
            tag = stdout.strip()
        case Err(error):
            console.warning(str(error))
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from crossrel.core.result import Err, Ok, Result

__all__ = ["ProcessError", "merged_env", "run", "run_streaming"]

SPAWN_FAILED = -1


@dataclass(frozen=True, slots=True)
class ProcessError:
    """A subprocess that could not be started or exited non-zero.

    Attributes:
        command: The command that was executed.
        returncode: Exit code, or -1 when the process could not be spawned
            or timed out.
        stdout: Captured standard output (empty when streamed).
        stderr: Captured standard error, or the spawn/timeout reason.
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def spawn_failed(self) -> bool:
        return self.returncode == SPAWN_FAILED

    @property
    def output(self) -> str:
        """Combined output, stdout first."""
        return "\n".join(part for part in (self.stdout.strip(), self.stderr.strip()) if part)

    def __str__(self) -> str:
        cmd_str = " ".join(self.command[:3])
        if len(self.command) > 3:
            cmd_str += " ..."
        if self.spawn_failed:
            return f"{cmd_str} failed: {self.stderr}"
        return f"{cmd_str} failed (exit {self.returncode})"


def merged_env(overlay: Mapping[str, str] | None) -> dict[str, str] | None:
    """Current process environment with overlay applied (None if no overlay)."""
    if not overlay:
        return None
    env = dict(os.environ)
    env.update(overlay)
    return env


def run(
    cmd: list[str],
    cwd: Path,
    env: Mapping[str, str] | None = None,
    *,
    timeout: float | None = None,
    input_text: str | None = None,
    merge_stderr: bool = False,
) -> Result[str, ProcessError]:
    """Execute a command and return its stdout.

    Args:
        cmd: Command and arguments.
        cwd: Working directory.
        env: Full environment (inherits the current one when None).
        timeout: Maximum seconds to wait (None for no limit).
        input_text: Text fed to stdin.
        merge_stderr: Interleave stderr into stdout, in emission order.

    Returns:
        Ok(stdout) on exit 0, Err(ProcessError) otherwise.
    """
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            env=dict(env) if env is not None else None,
            input=input_text,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT if merge_stderr else subprocess.PIPE,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        stdout = e.stdout if isinstance(e.stdout, str) else ""
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=SPAWN_FAILED,
                stdout=stdout,
                stderr=f"timed out after {timeout}s",
            )
        )
    except OSError as e:
        return Err(
            ProcessError(command=tuple(cmd), returncode=SPAWN_FAILED, stdout="", stderr=str(e))
        )

    if proc.returncode != 0:
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=proc.returncode,
                stdout=proc.stdout,
                stderr=proc.stderr or "",
            )
        )
    return Ok(proc.stdout)


def run_streaming(
    cmd: list[str],
    cwd: Path,
    env: Mapping[str, str] | None = None,
    *,
    timeout: float | None = None,
) -> Result[None, ProcessError]:
    """Execute a command with output going straight to the terminal.

    Returns:
        Ok(None) on exit 0, Err(ProcessError) otherwise.
    """
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            env=dict(env) if env is not None else None,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired:
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=SPAWN_FAILED,
                stdout="",
                stderr=f"timed out after {timeout}s",
            )
        )
    except OSError as e:
        return Err(
            ProcessError(command=tuple(cmd), returncode=SPAWN_FAILED, stdout="", stderr=str(e))
        )

    if proc.returncode != 0:
        return Err(
            ProcessError(command=tuple(cmd), returncode=proc.returncode, stdout="", stderr="")
        )
    return Ok(None)
