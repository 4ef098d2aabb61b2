"""Ordered map over a bounded pool of worker threads."""

from __future__ import annotations

import threading
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Callable, List, Optional, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")


def bounded_map(
    items: Sequence[T],
    limit: int,
    transform: Callable[[T], R],
    on_complete: Optional[Callable[[int, R], None]] = None,
    thread_name_prefix: str = "render",
) -> List[R]:
    """Apply ``transform`` to every item with at most ``limit`` calls in flight.

    Results come back in input order. ``on_complete(index, result)`` runs in
    completion order, on the worker that finished the item and before that
    worker picks up the next one; calls never overlap. The first failure is
    raised as soon as it happens: queued items are cancelled, items already
    running are left to finish on their own.
    """
    if not items:
        return []

    limit = max(1, int(limit))
    callback_lock = threading.Lock()

    def _run(index: int, item: T) -> R:
        result = transform(item)
        if on_complete is not None:
            with callback_lock:
                on_complete(index, result)
        return result

    executor = ThreadPoolExecutor(
        max_workers=min(limit, len(items)),
        thread_name_prefix=thread_name_prefix,
    )
    try:
        futures = [executor.submit(_run, index, item) for index, item in enumerate(items)]
        done, _pending = wait(futures, return_when=FIRST_EXCEPTION)
        for future in done:
            error = future.exception()
            if error is not None:
                raise error
        return [future.result() for future in futures]
    finally:
        executor.shutdown(wait=False, cancel_futures=True)
