"""
Free-proxy pool, scraped from a public list and refreshed in the background.
"""

from __future__ import annotations

import random
import threading
from typing import Dict, List, Optional

import requests
from bs4 import BeautifulSoup

from config.settings import DEFAULT_HEADERS, ProxyConfig
from utils.log_config import get_logger

log = get_logger(__name__)


def parse_proxy_table(html: str) -> List[str]:
    """Read ``ip``/``port`` cells row by row from the list page."""
    soup = BeautifulSoup(html, "html.parser")
    proxies: List[str] = []
    for row in soup.select("table.table tr"):
        ip = row.select_one("td:nth-of-type(1)")
        port = row.select_one("td:nth-of-type(2)")
        if ip is None or port is None:
            continue
        ip_text, port_text = ip.get_text(strip=True), port.get_text(strip=True)
        if ip_text and port_text:
            proxies.append(f"http://{ip_text}:{port_text}")
    return proxies


class ProxyPool:
    """
    Best-effort proxy list.

    ``proxies`` is replaced in a single assignment on every refresh and is
    read without a lock; a stale read only means one fetch goes through an
    older proxy. A failed refresh empties the list so fetches go direct.
    """

    def __init__(
        self,
        cfg: ProxyConfig,
        stop: threading.Event,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.cfg = cfg
        self.proxies: List[str] = []
        self._stop = stop
        self._rng = rng or random.Random()
        self._thread: Optional[threading.Thread] = None

    # ── refresh ─────────────────────────────────────────────
    def refresh(self) -> int:
        try:
            resp = requests.get(
                self.cfg.source_url,
                headers=DEFAULT_HEADERS,
                timeout=self.cfg.timeout,
            )
            resp.raise_for_status()
            fresh = parse_proxy_table(resp.text)
        except Exception as exc:
            log.warning("Failed to fetch new proxies: %s", exc)
            log.info("Running without proxies...")
            self.proxies = []
            return 0

        self.proxies = fresh
        log.debug("Proxy pool refreshed: %d entries", len(fresh))
        return len(fresh)

    def _loop(self) -> None:
        while not self._stop.is_set():
            self.refresh()
            self._stop.wait(self.cfg.refresh_interval)
        log.debug("Proxy refresher stopped")

    # ── lifecycle ───────────────────────────────────────────
    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._loop, name="proxy-refresh", daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Wait for the refresher to notice the pipeline's cancel event."""
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    # ── selection ───────────────────────────────────────────
    def get_proxy(self) -> Optional[Dict[str, str]]:
        """Return a random proxy dict for requests, or None for direct."""
        current = self.proxies
        if not current:
            return None
        url = self._rng.choice(current)
        return {"http": url, "https": url}
