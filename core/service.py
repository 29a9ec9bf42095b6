"""
Entry points the CLI drives: start an ingestion run, read records back.
"""

from __future__ import annotations

import queue
import threading
from pathlib import Path
from typing import Iterator, Optional, Tuple

from config.settings import AppConfig
from core.batcher import BatchWriter
from core.health import HealthMonitor
from core.models import ImageRecord
from core.pipeline import Downloader, DownloadResizer
from core.reader import PageReader
from core.store import ImageRepository
from utils.concurrency import CLOSED
from utils.log_config import get_logger

log = get_logger(__name__)


class ImageService:
    """
    Owns the long-lived batch writer. Each ``create()`` call wires one
    downloader's result queue into it; ``close()`` flushes what is left.
    """

    def __init__(
        self,
        repo: ImageRepository,
        storage_dir: Path,
        cfg: Optional[AppConfig] = None,
    ) -> None:
        self.cfg = cfg or AppConfig()
        self.repo = repo
        self.storage_dir = Path(storage_dir)
        self.writer = BatchWriter(
            repo,
            interval=self.cfg.store.batch_interval,
            queue_length=self.cfg.store.queue_length,
        )
        self.reader = PageReader(repo, self.cfg.store)
        self.writer.start()

    # ── create ──────────────────────────────────────────────
    def create(self, downloader: Downloader) -> threading.Event:
        """
        Run *downloader* in the background. The returned event is set
        once its result queue has been closed and fully forwarded.
        """
        done = threading.Event()
        results: queue.Queue = queue.Queue()

        threading.Thread(
            target=downloader.download, args=(results,),
            name="crawler", daemon=True,
        ).start()
        threading.Thread(
            target=self._forward, args=(results, done),
            name="forwarder", daemon=True,
        ).start()
        return done

    def _forward(self, results: queue.Queue, done: threading.Event) -> None:
        try:
            while True:
                path = results.get()
                if path is CLOSED:
                    return
                self.writer.put(ImageRecord(file=path))
        finally:
            done.set()

    def start_ingestion(
        self,
        save_dir: Optional[Path],
        target_count: int,
        use_proxy: bool = False,
        health: Optional[HealthMonitor] = None,
    ) -> Tuple[DownloadResizer, threading.Event]:
        """
        Build a run for *target_count* images and start it. *save_dir*
        defaults to the service storage directory. Returns the run (for
        progress and ``stop()``) and its completion event.
        """
        target_dir = Path(save_dir) if save_dir is not None else self.storage_dir
        target_dir.mkdir(parents=True, exist_ok=True)
        run = DownloadResizer(target_dir, target_count, self.cfg, use_proxy, health=health)
        log.info(
            "Ingesting %d images into %s (proxy=%s, workers=%d)",
            target_count, target_dir, use_proxy, self.cfg.crawl.workers,
        )
        return run, self.create(run)

    # ── read ────────────────────────────────────────────────
    def read_records(self, count: int) -> Iterator[ImageRecord]:
        return self.reader.read(count)

    def close(self, timeout: Optional[float] = None) -> None:
        self.writer.close(timeout)
