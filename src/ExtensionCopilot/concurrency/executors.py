"""Executor factory utilities used by bulk identifier lookups."""

from __future__ import annotations

from concurrent import futures
from typing import Optional, Tuple

Executor = futures.Executor


def create_executor(
    workers: int, *, thread_name_prefix: str = "extcopilot-io"
) -> Tuple[Optional[Executor], bool]:
    """
    Return a thread pool sized for IO-bound work.

    Args:
        workers: Desired concurrency level.
        thread_name_prefix: Prefix applied to worker thread names.

    Returns:
        Tuple of (executor, needs_shutdown). When ``workers`` is one or less no
        executor is created and callers run the work inline. Caller is
        responsible for shutting down the returned executor when
        ``needs_shutdown`` is ``True``.
    """
    if workers <= 1:
        return None, False
    return (
        futures.ThreadPoolExecutor(max_workers=workers, thread_name_prefix=thread_name_prefix),
        True,
    )
