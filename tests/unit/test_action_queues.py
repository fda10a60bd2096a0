"""
Unit tests for the per-action work queues.
"""

import threading
import time

import pytest

from src.adapters.action_queues import ActionQueues
from src.components.subscription import QueueFullError, ResultCode, WorkKind


@pytest.fixture
def queues():
    created: list[ActionQueues] = []

    def make(handler, **kwargs) -> ActionQueues:
        q = ActionQueues(handler, poll_interval=0.01, **kwargs)
        created.append(q)
        return q

    yield make
    for q in created:
        q.stop()


class TestProcessing:
    def test_result_returned_through_future(self, queues) -> None:
        q = queues(lambda payload: payload * 2)
        q.start()

        assert q.submit(WorkKind.SUBSCRIBE, 21).result(timeout=2) == 42

    def test_fifo_per_kind(self, queues) -> None:
        seen: list[int] = []
        q = queues(seen.append)
        q.start()

        futures = [q.submit(WorkKind.SUBSCRIBE_CONFIRM, i) for i in range(5)]
        for f in futures:
            f.result(timeout=2)

        assert seen == [0, 1, 2, 3, 4]

    def test_one_worker_per_kind_never_overlaps(self, queues) -> None:
        active = 0
        peak = 0
        lock = threading.Lock()

        def handler(payload: int) -> None:
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            time.sleep(0.01)
            with lock:
                active -= 1

        q = queues(handler)
        q.start()
        futures = [q.submit(WorkKind.UNSUBSCRIBE, i) for i in range(5)]
        for f in futures:
            f.result(timeout=2)

        assert peak == 1

    def test_handler_exception_set_on_future(self, queues) -> None:
        def handler(payload):
            raise RuntimeError("boom")

        q = queues(handler)
        q.start()

        with pytest.raises(RuntimeError, match="boom"):
            q.submit(WorkKind.SUBSCRIBE, 1).result(timeout=2)


class TestBackpressure:
    def test_full_queue_raises_after_timeout(self, queues) -> None:
        release = threading.Event()
        started = threading.Event()

        def handler(payload):
            started.set()
            release.wait(timeout=5)

        q = queues(handler, queue_size=1, enqueue_timeout=0.05)
        q.start()

        q.submit(WorkKind.SUBSCRIBE, "in-flight")
        assert started.wait(timeout=2)
        q.submit(WorkKind.SUBSCRIBE, "queued")

        with pytest.raises(QueueFullError) as exc:
            q.submit(WorkKind.SUBSCRIBE, "rejected")
        assert exc.value.code == ResultCode.QUEUE_FULL
        assert exc.value.kind == WorkKind.SUBSCRIBE

        # Other kinds have their own queue
        q.submit(WorkKind.UNSUBSCRIBE, "other")
        release.set()

    def test_submit_requires_start(self, queues) -> None:
        q = queues(lambda p: p)
        with pytest.raises(RuntimeError):
            q.submit(WorkKind.SUBSCRIBE, 1)


class TestShutdown:
    def test_queued_items_cancelled_in_flight_completes(self, queues) -> None:
        release = threading.Event()
        started = threading.Event()

        def handler(payload):
            started.set()
            release.wait(timeout=5)
            return payload

        q = queues(handler, queue_size=5)
        q.start()
        in_flight = q.submit(WorkKind.SUBSCRIBE, "first")
        assert started.wait(timeout=2)
        waiting = q.submit(WorkKind.SUBSCRIBE, "second")

        stopper = threading.Thread(target=q.stop)
        stopper.start()
        time.sleep(0.05)
        release.set()
        stopper.join(timeout=5)

        assert in_flight.result(timeout=1) == "first"
        assert waiting.cancelled()
        assert not q.is_running

    def test_submit_refused_as_soon_as_stop_begins(self, queues) -> None:
        release = threading.Event()
        started = threading.Event()

        def handler(payload):
            started.set()
            release.wait(timeout=5)
            return payload

        q = queues(handler)
        q.start()
        in_flight = q.submit(WorkKind.SUBSCRIBE, "first")
        assert started.wait(timeout=2)

        stopper = threading.Thread(target=q.stop)
        stopper.start()
        deadline = time.monotonic() + 2
        while q.is_running and time.monotonic() < deadline:
            time.sleep(0.005)

        # Workers are still draining, but new work is turned away
        with pytest.raises(RuntimeError):
            q.submit(WorkKind.UNSUBSCRIBE, "late")

        release.set()
        stopper.join(timeout=5)
        assert in_flight.result(timeout=1) == "first"

    def test_every_accepted_future_resolves_across_stop(self, queues) -> None:
        q = queues(lambda p: p, queue_size=50)
        q.start()
        accepted = []
        done = threading.Event()

        def producer() -> None:
            while not done.is_set():
                try:
                    accepted.append(q.submit(WorkKind.SUBSCRIBE, len(accepted)))
                except (RuntimeError, QueueFullError):
                    if not q.is_running:
                        return

        thread = threading.Thread(target=producer)
        thread.start()
        time.sleep(0.05)
        q.stop()
        done.set()
        thread.join(timeout=5)

        assert accepted
        for future in accepted:
            assert future.done()
