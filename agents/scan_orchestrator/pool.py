"""
Bounded worker pool for provider fan-out.

At most max_workers tasks run at once. Results are collected under a
lock in completion order. When the cancel event fires, queued tasks are
cancelled and the pool waits for calls already in flight, so no worker
outlives the run and the next stage starts under the same bound. Tasks
are expected to watch the cancel event themselves and return early.
"""

import logging
import threading
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from typing import Callable, List, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

POLL_INTERVAL = 0.05


def run_bounded(
    tasks: Sequence[Callable[[], T]],
    max_workers: int,
    cancel_event: Optional[threading.Event] = None,
    on_result: Optional[Callable[[T], None]] = None,
) -> List[T]:
    """
    Run zero-argument tasks with bounded concurrency.

    Args:
        tasks: Callables to run
        max_workers: Concurrency bound
        cancel_event: Optional event that stops the run early
        on_result: Optional callback for each result (called from worker threads)

    Returns:
        Results of every task that finished, including calls that were
        already in flight when the run was cancelled
    """
    if not tasks:
        return []

    results: List[T] = []
    lock = threading.Lock()

    def run(task: Callable[[], T]):
        if cancel_event is not None and cancel_event.is_set():
            return
        result = task()
        with lock:
            results.append(result)
        if on_result is not None:
            on_result(result)

    executor = ThreadPoolExecutor(max_workers=max(1, max_workers))
    try:
        pending = {executor.submit(run, task) for task in tasks}
        while pending:
            if cancel_event is not None and cancel_event.is_set():
                for future in pending:
                    future.cancel()
                logger.warning(f"⚠️ Cancelled with {len(pending)} task(s) unfinished")
                break

            done, pending = wait(pending, timeout=POLL_INTERVAL, return_when=FIRST_COMPLETED)
            for future in done:
                error = future.exception()
                if error is not None:
                    logger.error(f"Task failed: {type(error).__name__}: {error}")
    finally:
        executor.shutdown(wait=True, cancel_futures=True)

    with lock:
        return list(results)
