"""
Timed micro-batching of saved-image records into the store.

Delivery is at-most-once: a batch the store rejects is logged and
dropped, never retried or re-queued.
"""

from __future__ import annotations

import queue
import threading
import time
from typing import List, Optional

from core.models import ImageRecord
from core.store import ImageRepository
from utils.concurrency import CLOSED, AtomicCounter, close_queue
from utils.log_config import get_logger

log = get_logger(__name__)


class BatchWriter:
    """
    Single consumer thread. Records are appended as they arrive and the
    whole accumulator is written with one ``create_batch`` call per tick.
    Closing the queue triggers one last flush before the thread exits.
    """

    def __init__(
        self,
        repo: ImageRepository,
        interval: float = 1.0,
        queue_length: int = 20_000,
    ) -> None:
        self.repo = repo
        self.interval = interval
        self.queue: queue.Queue = queue.Queue(maxsize=queue_length)
        self.stored = AtomicCounter()
        self.flushes = AtomicCounter()
        self.failures = AtomicCounter()
        self._batch: List[ImageRecord] = []
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name="batch-writer", daemon=True)
        self._thread.start()

    def put(self, record: ImageRecord) -> None:
        self.queue.put(record)

    def close(self, timeout: Optional[float] = None) -> None:
        if self._thread is None:
            return
        close_queue(self.queue)
        self._thread.join(timeout)
        self._thread = None

    def _run(self) -> None:
        next_tick = time.monotonic() + self.interval
        while True:
            wait = next_tick - time.monotonic()
            if wait <= 0:
                self._flush()
                next_tick = time.monotonic() + self.interval
                continue
            try:
                item = self.queue.get(timeout=wait)
            except queue.Empty:
                continue
            if item is CLOSED:
                self._flush()
                log.debug("Batch writer stopped")
                return
            self._batch.append(item)

    def _flush(self) -> int:
        if not self._batch:
            return 0
        batch, self._batch = self._batch, []
        self.flushes.increment()
        try:
            self.repo.create_batch(batch)
        except Exception as exc:
            self.failures.increment()
            log.error("Dropped batch of %d records: %s", len(batch), exc)
            return 0
        self.stored.increment(len(batch))
        log.debug("Flushed %d records", len(batch))
        return len(batch)
