"""Before/after hook commands.

Hooks are split shell-style into argv and executed without a shell, one
after another, with output going straight to the terminal.
"""

from __future__ import annotations

import shlex
from collections.abc import Sequence
from pathlib import Path

from crossrel.core.result import Err, Ok, Result
from crossrel.output.console import ConsoleProtocol
from crossrel.platform.process import run_streaming

from .errors import HookError


def run_hooks(
    hooks: Sequence[str],
    *,
    cwd: Path,
    console: ConsoleProtocol,
    timeout: float | None = None,
) -> Result[None, HookError]:
    """Run hooks in order; the first failure stops the rest."""
    for hook in hooks:
        try:
            argv = shlex.split(hook)
        except ValueError as e:
            return Err(HookError(hook=hook, returncode=-1, reason=str(e)))
        if not argv:
            continue

        console.info(f"Executing hook: {hook}")
        result = run_streaming(argv, cwd=cwd, timeout=timeout)
        if isinstance(result, Err):
            error = result.error
            reason = error.stderr if error.spawn_failed else ""
            return Err(HookError(hook=hook, returncode=error.returncode, reason=reason))
    return Ok(None)
