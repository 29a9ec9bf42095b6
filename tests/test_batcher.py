"""Tests for the timed batch writer."""

import threading

from core.batcher import BatchWriter
from core.models import ImageRecord


def _records(*names):
    return [ImageRecord(file=n) for n in names]


class TestBatchWriter:

    def test_flushes_on_tick(self, fake_repo):
        writer = BatchWriter(fake_repo, interval=0.05)
        writer.start()
        for r in _records("a.jpg", "b.jpg", "c.jpg"):
            writer.put(r)
        threading.Event().wait(0.3)
        assert [r.file for r in fake_repo.records] == ["a.jpg", "b.jpg", "c.jpg"]
        assert len(fake_repo.batches) == 1
        writer.close(timeout=1.0)

    def test_empty_ticks_do_not_call_store(self, fake_repo):
        writer = BatchWriter(fake_repo, interval=0.02)
        writer.start()
        threading.Event().wait(0.15)
        writer.close(timeout=1.0)
        assert fake_repo.batches == []
        assert writer.flushes.value == 0

    def test_close_flushes_remainder(self, fake_repo):
        writer = BatchWriter(fake_repo, interval=60.0)
        writer.start()
        for r in _records("a.jpg", "b.jpg"):
            writer.put(r)
        writer.close(timeout=1.0)
        assert [r.file for r in fake_repo.records] == ["a.jpg", "b.jpg"]
        assert writer.stored.value == 2

    def test_failed_batch_is_logged_and_dropped(self, fake_repo, caplog):
        fake_repo.fail = True
        writer = BatchWriter(fake_repo, interval=0.05)
        writer.start()
        for r in _records("a.jpg", "b.jpg"):
            writer.put(r)
        threading.Event().wait(0.2)

        fake_repo.fail = False
        writer.put(ImageRecord(file="c.jpg"))
        with caplog.at_level("ERROR", logger="core.batcher"):
            writer.close(timeout=1.0)

        assert writer.failures.value == 1
        assert writer.stored.value == 1
        assert [r.file for r in fake_repo.records] == ["c.jpg"]

    def test_failure_message(self, fake_repo, caplog):
        fake_repo.fail = True
        writer = BatchWriter(fake_repo, interval=60.0)
        writer.start()
        writer.put(ImageRecord(file="a.jpg"))
        with caplog.at_level("ERROR", logger="core.batcher"):
            writer.close(timeout=1.0)
        assert "Dropped batch of 1 records" in caplog.text

    def test_close_without_start(self, fake_repo):
        BatchWriter(fake_repo).close()
