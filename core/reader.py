"""
Paged, wraparound reads of stored records.

The store is treated as circular: when a page comes back empty the
cursor restarts at zero, so callers may ask for more records than exist.
"""

from __future__ import annotations

import queue
import threading
import time
from typing import Iterator, List, Optional

from config.settings import StoreConfig
from core.models import ImageRecord
from core.store import ImageRepository
from utils.log_config import get_logger

log = get_logger(__name__)


class PageReader:
    """
    Each page request runs on its own daemon thread and the reader waits
    at most ``read_timeout`` for the answer. A store call that never
    returns is abandoned, never joined, so it cannot block interpreter
    exit. Timeouts and store errors are logged once and count as empty
    pages.

    Consecutive empty pages back off exponentially, and once no page has
    produced a record for ``stall_timeout`` the read ends short.
    """

    def __init__(self, repo: ImageRepository, cfg: Optional[StoreConfig] = None) -> None:
        self.repo = repo
        self.cfg = cfg or StoreConfig()

    def read(self, count: int) -> Iterator[ImageRecord]:
        if count <= 0:
            return

        page_size = self.cfg.page_size
        emitted = 0
        offset = 0
        misses = 0
        stalled_since: Optional[float] = None

        while True:
            page = self._page(offset)

            if not page:
                now = time.monotonic()
                if stalled_since is None:
                    stalled_since = now
                elif now - stalled_since >= self.cfg.stall_timeout:
                    log.warning(
                        "No records for %.1fs, ending read at %d of %d",
                        now - stalled_since, emitted, count,
                    )
                    return

                # None means the failure was already logged by _page
                if page is not None:
                    if offset == 0:
                        log.warning("Store returned nothing at offset 0")
                    else:
                        log.info("Store exhausted at offset %d, wrapping around", offset)
                offset = 0

                misses += 1
                if misses > 1:
                    time.sleep(min(
                        self.cfg.read_backoff * 2 ** (misses - 2),
                        self.cfg.read_backoff_max,
                    ))
                continue

            misses = 0
            stalled_since = None
            for record in page:
                yield record
                emitted += 1
                if emitted >= count:
                    return
            offset += page_size

    def _page(self, offset: int) -> Optional[List[ImageRecord]]:
        """One page, or ``None`` if the store failed or timed out."""
        box: queue.Queue = queue.Queue(maxsize=1)

        def fetch() -> None:
            try:
                box.put((self.repo.list(offset), None))
            except Exception as exc:
                box.put((None, exc))

        threading.Thread(target=fetch, name="page-reader", daemon=True).start()
        try:
            page, exc = box.get(timeout=self.cfg.read_timeout)
        except queue.Empty:
            log.error(
                "Page read at offset %d timed out after %.0fms",
                offset, self.cfg.read_timeout * 1000,
            )
            return None
        if exc is not None:
            log.error("Page read at offset %d failed: %s", offset, exc)
            return None
        return page
