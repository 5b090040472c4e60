"""Bounded fan-out with first-error semantics.

Used for the OS dimension of the build matrix and for archive creation.
When a task fails the wait stops and the error is returned at once. Tasks
still queued are cancelled; tasks already running (an external compiler
process, for instance) are left to finish in the background and their
results are discarded.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed

from crossrel.core.result import Err, Ok, Result

__all__ = ["default_workers", "run_all"]


def default_workers() -> int:
    return os.cpu_count() or 1


def run_all[T, E](
    tasks: Sequence[Callable[[], Result[T, E]]],
    *,
    max_workers: int,
) -> Result[list[T], E]:
    """Run tasks on a thread pool of at most ``max_workers`` threads.

    Returns:
        Ok(values) in task order when every task succeeds, otherwise the
        first Err to complete.
    """
    if not tasks:
        return Ok([])

    pool = ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(tasks))))
    try:
        futures = [pool.submit(task) for task in tasks]
        for future in as_completed(futures):
            outcome = future.result()
            if isinstance(outcome, Err):
                return outcome
        values: list[T] = []
        for future in futures:
            outcome = future.result()
            assert isinstance(outcome, Ok)
            values.append(outcome.value)
        return Ok(values)
    finally:
        pool.shutdown(wait=False, cancel_futures=True)
