"""
Endless image-URL discovery: random engine × random query, forever,
until the run's cancel event fires.
"""

from __future__ import annotations

import queue
import threading
import time
from typing import Optional

import requests

from config.settings import DEFAULT_HEADERS, CrawlConfig
from core.health import HealthMonitor
from search.base import BaseSearchEngine
from search.manager import SearchManager
from utils.log_config import get_logger
from utils.net import read_body

log = get_logger(__name__)

_PUT_POLL = 0.5


class URLCrawler:
    """
    Single producer for the URL queue.

    The queue is bounded, so a slow worker pool blocks ``_push`` and with
    it the whole crawl loop. Pushes poll *cancel* so a finished run never
    leaves the crawler stuck on a full queue.
    """

    def __init__(
        self,
        cfg: CrawlConfig,
        manager: SearchManager,
        urls: queue.Queue,
        cancel: threading.Event,
        health: Optional[HealthMonitor] = None,
    ) -> None:
        self.cfg = cfg
        self.manager = manager
        self.urls = urls
        self.cancel = cancel
        self.health = health
        self.session = requests.Session()
        self.session.headers.update(DEFAULT_HEADERS)

    def crawl(self) -> None:
        while not self.cancel.is_set():
            engine, query = self.manager.pick()
            log.info("Scraping %s for '%s'...", engine.name, query.replace(" ", "+"))
            try:
                self.visit(engine, query)
            except requests.RequestException as exc:
                log.error("%s visit failed: %s", engine.name, exc)
                if self.cfg.error_pause:
                    self.cancel.wait(self.cfg.error_pause)
        self.session.close()

    def visit(self, engine: BaseSearchEngine, query: str) -> int:
        """Fetch one results page and queue every URL found on it."""
        t0 = time.monotonic()
        try:
            resp = self.session.get(
                engine.search_url(query), timeout=self.cfg.request_timeout, stream=True,
            )
            try:
                resp.raise_for_status()
                body = read_body(resp, t0 + self.cfg.request_timeout, self.cfg.max_page_bytes)
            finally:
                resp.close()
        except requests.RequestException as exc:
            if self.health:
                self.health.record_call(engine.name, False, error=str(exc))
            raise

        found = engine.links(body.decode(resp.encoding or "utf-8", errors="replace"))
        if self.health:
            self.health.record_call(
                engine.name, True,
                result_count=len(found),
                latency=time.monotonic() - t0,
            )

        pushed = 0
        for url in found:
            if not self._push(url):
                break
            pushed += 1
        return pushed

    def _push(self, url: str) -> bool:
        while not self.cancel.is_set():
            try:
                self.urls.put(url, timeout=_PUT_POLL)
                return True
            except queue.Full:
                continue
        return False
