"""Download, decode, resize and persist a single scraped image."""

from __future__ import annotations

import random
import threading
import time
from io import BytesIO
from pathlib import Path
from typing import Optional

import requests
from PIL import Image

from config.settings import DEFAULT_HEADERS
from search.proxy import ProxyPool
from utils.exceptions import ImageFetchError, ImageSaveError
from utils.log_config import get_logger
from utils.net import read_body

log = get_logger(__name__)


class ImageFetcher:
    """
    Thread-safe: each thread gets its own ``requests.Session``.

    Every step raises a ``ScraperError`` subclass on failure; the worker
    pool drops the URL on any of them.
    """

    def __init__(
        self,
        save_dir: Path,
        width: int = 100,
        timeout: float = 2.0,
        max_bytes: int = 10 * 1024 * 1024,
        jpeg_quality: int = 75,
        proxies: Optional[ProxyPool] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.save_dir = Path(save_dir)
        self.width = width
        self.timeout = timeout
        self.max_bytes = max_bytes
        self.jpeg_quality = jpeg_quality
        self.proxies = proxies
        self._rng = rng or random.Random()
        self._local = threading.local()

    @property
    def session(self) -> requests.Session:
        s = getattr(self._local, "session", None)
        if s is None:
            s = requests.Session()
            s.headers.update({
                "User-Agent": DEFAULT_HEADERS["User-Agent"],
                "Accept": "image/webp,image/apng,image/*,*/*;q=0.8",
            })
            self._local.session = s
        return s

    # ── steps ───────────────────────────────────────────────
    def new_name(self) -> str:
        """Time-based file name with a random suffix against same-ns collisions."""
        return f"{time.time_ns()}_{self._rng.randrange(10_000):04d}.jpg"

    def fetch(self, url: str) -> bytes:
        """Download the body within ``timeout`` seconds overall and ``max_bytes``."""
        proxy = self.proxies.get_proxy() if self.proxies else None
        deadline = time.monotonic() + self.timeout
        try:
            resp = self.session.get(url, timeout=self.timeout, proxies=proxy, stream=True)
            try:
                resp.raise_for_status()
                return read_body(resp, deadline, self.max_bytes)
            finally:
                resp.close()
        except requests.RequestException as exc:
            raise ImageFetchError(f"{url[:80]}: {exc}") from exc

    @staticmethod
    def decode(data: bytes) -> Image.Image:
        try:
            img = Image.open(BytesIO(data))
            img.load()
        except (OSError, ValueError, Image.DecompressionBombError) as exc:
            raise ImageFetchError(f"undecodable image: {exc}") from exc
        return img

    def resize(self, img: Image.Image) -> Image.Image:
        """Scale to ``width`` keeping the aspect ratio."""
        if img.mode != "RGB":
            img = img.convert("RGB")
        height = max(1, round(img.height * self.width / img.width))
        return img.resize((self.width, height), Image.Resampling.LANCZOS)

    def save(self, img: Image.Image, name: str) -> Path:
        """Write *img* as JPEG; a partially written file is removed on error."""
        path = self.save_dir / name
        try:
            img.save(path, "JPEG", quality=self.jpeg_quality)
        except (OSError, ValueError) as exc:
            path.unlink(missing_ok=True)
            raise ImageSaveError(f"{path}: {exc}") from exc
        return path
