"""
Per-action work queues.

Four bounded FIFO queues (subscribe, unsubscribe, subscribe-confirm,
unsubscribe-confirm), each drained by exactly one background worker, so
work of one kind is processed in arrival order and never overlaps.

Backpressure: submit() blocks up to enqueue_timeout seconds while the
queue is full, then raises QueueFullError. Nothing is dropped silently.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Any

from src.components.subscription.models import QueueFullError, WorkKind

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Any]


@dataclass
class WorkItem:
    payload: Any
    future: Future = field(default_factory=Future)


class ActionQueues:
    """One bounded queue and one worker thread per WorkKind."""

    def __init__(
        self,
        handler: Handler,
        queue_size: int = 10,
        enqueue_timeout: float = 2.0,
        poll_interval: float = 0.2,
    ) -> None:
        self._handler = handler
        self._enqueue_timeout = enqueue_timeout
        self._poll_interval = poll_interval
        self._queues: dict[WorkKind, queue.Queue[WorkItem]] = {
            kind: queue.Queue(maxsize=queue_size) for kind in WorkKind
        }
        self._stop_event = threading.Event()
        self._threads: dict[WorkKind, threading.Thread] = {}
        self._running = False
        self._state_lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Start one worker per queue."""
        with self._state_lock:
            if self._running:
                return

            self._stop_event.clear()
            for kind in WorkKind:
                thread = threading.Thread(
                    target=self._worker_loop,
                    args=(kind,),
                    name=f"{kind.value}-worker",
                    daemon=True,
                )
                thread.start()
                self._threads[kind] = thread
            self._running = True
        logger.info("Action queues started (%d workers)", len(self._threads))

    def submit(self, kind: WorkKind, payload: Any) -> Future:
        """
        Enqueue work and return a Future for its result.

        Raises QueueFullError if the queue stays full past the enqueue
        timeout, RuntimeError if the queues are not running.
        """
        with self._state_lock:
            if not self._running:
                raise RuntimeError("Action queues are not running")

        item = WorkItem(payload)
        try:
            self._queues[kind].put(item, timeout=self._enqueue_timeout)
        except queue.Full:
            logger.warning("%s queue full; rejecting request", kind.value)
            raise QueueFullError(kind) from None

        # stop() began while we were enqueueing; the item may never be picked up
        with self._state_lock:
            stopping = not self._running
        if stopping and item.future.cancel():
            raise RuntimeError("Action queues are not running")
        return item.future

    def stop(self, timeout: float = 5.0) -> None:
        """
        Stop the workers.

        New submissions are refused from the start of the call. In-flight
        items complete; items still queued are cancelled.
        """
        with self._state_lock:
            if not self._running:
                return
            self._running = False

        self._stop_event.set()
        for thread in self._threads.values():
            thread.join(timeout=timeout)
        self._threads.clear()

        cancelled = 0
        for q in self._queues.values():
            while True:
                try:
                    item = q.get_nowait()
                except queue.Empty:
                    break
                item.future.cancel()
                cancelled += 1

        logger.info("Action queues stopped (%d queued items cancelled)", cancelled)

    def _worker_loop(self, kind: WorkKind) -> None:
        q = self._queues[kind]
        while not self._stop_event.is_set():
            try:
                item = q.get(timeout=self._poll_interval)
            except queue.Empty:
                continue

            try:
                if item.future.set_running_or_notify_cancel():
                    self._process(kind, item)
            finally:
                q.task_done()

    def _process(self, kind: WorkKind, item: WorkItem) -> None:
        try:
            result = self._handler(item.payload)
        except Exception as e:
            logger.exception("Error processing %s work item", kind.value)
            item.future.set_exception(e)
        else:
            item.future.set_result(result)
