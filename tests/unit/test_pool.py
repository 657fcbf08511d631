"""
Unit tests for the bounded worker pool.
"""

import threading
import time

from agents.scan_orchestrator import run_bounded
from tests.fakes import InFlightTracker


def tracked_task(tracker, value, delay=0.02):
    def task():
        tracker.enter()
        try:
            time.sleep(delay)
            return value
        finally:
            tracker.exit()
    return task


def test_concurrency_never_exceeds_bound():
    tracker = InFlightTracker()
    results = run_bounded([tracked_task(tracker, i) for i in range(12)], max_workers=3)

    assert sorted(results) == list(range(12))
    assert tracker.max_in_flight <= 3
    assert tracker.calls == 12


def test_single_worker_runs_serially():
    tracker = InFlightTracker()
    run_bounded([tracked_task(tracker, i, delay=0.005) for i in range(5)], max_workers=1)
    assert tracker.max_in_flight == 1


def test_empty_task_list():
    assert run_bounded([], max_workers=4) == []


def test_raising_task_does_not_stop_the_others():
    def boom():
        raise RuntimeError("boom")

    results = run_bounded([lambda: 1, boom, lambda: 3], max_workers=2)
    assert sorted(results) == [1, 3]


def test_on_result_sees_every_result():
    seen = []
    lock = threading.Lock()

    def record(value):
        with lock:
            seen.append(value)

    run_bounded([lambda i=i: i for i in range(6)], max_workers=2, on_result=record)
    assert sorted(seen) == list(range(6))


def test_cancel_returns_partial_results():
    tracker = InFlightTracker()
    cancel = threading.Event()

    def task_for(i):
        def task():
            if i == 3:
                cancel.set()
            return tracked_task(tracker, i, delay=0.02)()
        return task

    start = time.monotonic()
    results = run_bounded([task_for(i) for i in range(40)], max_workers=2, cancel_event=cancel)

    assert 0 < len(results) < 40
    assert tracker.calls < 40
    assert time.monotonic() - start < 1.0


def test_cancel_before_start_runs_nothing():
    cancel = threading.Event()
    cancel.set()
    tracker = InFlightTracker()

    assert run_bounded([tracked_task(tracker, i) for i in range(5)], max_workers=2, cancel_event=cancel) == []
    assert tracker.calls == 0


def test_cancel_waits_for_calls_in_flight():
    tracker = InFlightTracker()
    cancel = threading.Event()

    def slow(i):
        def task():
            tracker.enter()
            try:
                if i == 0:
                    cancel.set()
                time.sleep(0.1)
                return i
            finally:
                tracker.exit()
        return task

    results = run_bounded([slow(i) for i in range(10)], max_workers=2, cancel_event=cancel)

    assert tracker.in_flight == 0
    assert 0 in results
    assert tracker.calls <= 2
