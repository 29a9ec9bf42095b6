"""
Crawl → fetch → decode → resize → save, bounded by a quota.

``DownloadResizer`` owns one run: the URL queue, the worker threads, the
rate limiter, the optional proxy refresher and the quota gate whose
cancel event ends the run.
"""

from __future__ import annotations

import os
import queue
import signal
import threading
import time
from pathlib import Path
from typing import Any, Callable, List, Optional, Protocol

from config.settings import AppConfig
from core.health import HealthMonitor
from imaging.downloader import ImageFetcher
from search.crawler import URLCrawler
from search.manager import SearchManager
from search.proxy import ProxyPool
from utils.concurrency import CLOSED, AtomicCounter, QuotaGate, RateLimiter, close_queue
from utils.exceptions import ImageFetchError, ImageSaveError, RateLimitTimeout
from utils.log_config import get_logger

log = get_logger(__name__)


class Downloader(Protocol):
    def download(self, results: queue.Queue) -> None:
        """Push saved relative paths onto *results*, then close it."""


class Stats:
    def __init__(self) -> None:
        self.attempted    = AtomicCounter()
        self.dropped      = AtomicCounter()
        self.saved        = AtomicCounter()
        self.over_quota   = AtomicCounter()
        self.write_failed = AtomicCounter()
        self._t0          = time.monotonic()

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self._t0

    def as_dict(self) -> dict:
        return {
            "attempted":    self.attempted.value,
            "dropped":      self.dropped.value,
            "saved":        self.saved.value,
            "over_quota":   self.over_quota.value,
            "write_failed": self.write_failed.value,
            "elapsed":      self.elapsed,
        }


class ShutdownHandler:
    """
    First Ctrl+C finishes the run gracefully through *on_stop*; a second
    one exits immediately. Signals can only be installed from the main
    thread, so elsewhere this is a no-op.
    """

    def __init__(self, on_stop: Callable[[], None]) -> None:
        self._on_stop = on_stop
        self._count = 0
        self._lock = threading.Lock()
        self._previous: List[Any] = []

        if threading.current_thread() is threading.main_thread():
            try:
                self._previous = [
                    (sig, signal.signal(sig, self._handle))
                    for sig in (signal.SIGINT, signal.SIGTERM)
                ]
            except (OSError, ValueError):
                pass

    def _handle(self, signum: int, frame: Any) -> None:
        with self._lock:
            self._count += 1
            count = self._count

        if count == 1:
            log.warning("⚠️  Ctrl+C detected — stopping the crawl, press again to force quit")
            self._on_stop()
        else:
            log.warning("🛑 Force quit!")
            os._exit(1)

    def restore(self) -> None:
        for sig, handler in self._previous:
            signal.signal(sig, handler)
        self._previous = []


class DownloadResizer:
    """
    One ingestion run. ``download()`` blocks the calling thread running
    the crawler until the quota is met (or ``stop()`` is called), then
    closes the URL queue and the result queue.
    """

    def __init__(
        self,
        save_dir: Path,
        target_count: int,
        cfg: AppConfig,
        use_proxy: bool = False,
        manager: Optional[SearchManager] = None,
        health: Optional[HealthMonitor] = None,
    ) -> None:
        self.cfg = cfg
        self.save_dir = Path(save_dir)
        self.cancel = threading.Event()
        self.gate = QuotaGate(target_count, self.cancel)
        self.urls: queue.Queue = queue.Queue(maxsize=cfg.crawl.url_queue_size)
        self.limiter = RateLimiter(cfg.crawl.rate_limit, cfg.crawl.rate_limit)
        self.proxies = ProxyPool(cfg.proxy, self.cancel) if use_proxy else None
        self.fetcher = ImageFetcher(
            self.save_dir,
            width=cfg.crawl.image_width,
            timeout=cfg.crawl.request_timeout,
            max_bytes=cfg.crawl.max_image_bytes,
            jpeg_quality=cfg.crawl.jpeg_quality,
            proxies=self.proxies,
        )
        self.health = health or HealthMonitor()
        self.crawler = URLCrawler(
            cfg.crawl,
            manager or SearchManager(cfg.crawl.queries),
            self.urls,
            self.cancel,
            self.health,
        )
        self.stats = Stats()
        self._results: Optional[queue.Queue] = None
        self._workers: List[threading.Thread] = []

    @property
    def saved(self) -> int:
        return self.gate.count

    # ── lifecycle ───────────────────────────────────────────
    def download(self, results: queue.Queue) -> None:
        self._results = results
        if self.proxies:
            # free proxies go stale fast, so every run refreshes its own list
            self.proxies.start()
        self._start_workers()

        try:
            self.crawler.crawl()
        finally:
            self.gate.close()
            close_queue(self.urls, len(self._workers))
            close_queue(results)
            if self.proxies:
                self.proxies.stop(timeout=self.cfg.proxy.timeout)
            log.info("Finished downloading and processing images.")

    def stop(self) -> None:
        """Request a graceful end of the run before the quota is met."""
        self.cancel.set()

    def join(self, timeout: Optional[float] = None) -> None:
        deadline = None if timeout is None else time.monotonic() + timeout
        for t in self._workers:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            t.join(remaining)

    def _start_workers(self) -> None:
        for i in range(self.cfg.crawl.workers):
            t = threading.Thread(target=self._worker, name=f"fetch-{i}", daemon=True)
            t.start()
            self._workers.append(t)
        log.debug("Started %d fetch workers", len(self._workers))

    # ── worker ──────────────────────────────────────────────
    def _worker(self) -> None:
        while True:
            url = self.urls.get()
            if url is CLOSED:
                return
            # queued but not yet started work is dropped once the run ends
            if self.cancel.is_set():
                continue
            if not self._acquire_token():
                continue
            try:
                self.process(url)
            except Exception:
                log.exception("Unexpected failure processing %s", url[:80])

    def _acquire_token(self) -> bool:
        while not self.cancel.is_set():
            try:
                self.limiter.wait(timeout=self.cfg.crawl.limiter_wait)
                return True
            except RateLimitTimeout:
                time.sleep(self.cfg.crawl.limiter_retry_delay)
        return False

    def process(self, url: str) -> bool:
        """Turn one URL into at most one saved file. Returns True if saved."""
        self.stats.attempted.increment()
        name = self.fetcher.new_name()
        try:
            img = self.fetcher.resize(self.fetcher.decode(self.fetcher.fetch(url)))
        except ImageFetchError as exc:
            self.stats.dropped.increment()
            log.debug("Dropped %s", exc)
            return False

        try:
            admitted = self.gate.admit(
                lambda: self.fetcher.save(img, name),
                lambda n: self._publish(name, n),
            )
        except ImageSaveError as exc:
            self.stats.write_failed.increment()
            log.warning("Save failed: %s", exc)
            return False

        if not admitted:
            self.stats.over_quota.increment()
            return False
        self.stats.saved.increment()
        return True

    def _publish(self, name: str, count: int) -> None:
        self._results.put(name)
        log.info("downloaded %d images", count)
