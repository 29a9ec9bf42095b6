"""
All configuration — flags, knobs, feature toggles.
Edit THIS file to change any behaviour.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Tuple

from utils.exceptions import ConfigurationError

ROOT_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = Path(os.environ.get("IMGHARVEST_DATA", ROOT_DIR / "data"))

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  FLAGS — toggle without touching other files
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

ENABLE_PROXY      = False    # refresh a free proxy list and route fetches through it
VERBOSE_LOGGING   = False

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  DATACLASS CONFIGS
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


@dataclass(frozen=True)
class PathConfig:
    """Every filesystem path the pipeline touches."""

    root:        Path = DATA_DIR
    images_dir:  Path = DATA_DIR / "images"
    db_path:     Path = Path(os.environ.get("IMGHARVEST_DB", DATA_DIR / "images.db"))
    log_file:    Path = DATA_DIR / "logs" / "imgharvest.log"

    def ensure(self) -> None:
        for d in (self.images_dir, self.db_path.parent, self.log_file.parent):
            d.mkdir(parents=True, exist_ok=True)


@dataclass(frozen=True)
class CrawlConfig:
    queries: Tuple[str, ...] = (
        "cute kittens", "puppies", "hamsters", "bunnies", "goldfish",
        "parrots", "turtles", "guinea pigs", "hedgehogs", "ferrets",
        "pet snakes", "pet lizards", "pet frogs", "pet spiders", "pet mice",
        "pet rats", "pet birds", "pet rabbits", "pet ducks", "pet chickens",
    )
    workers:             int   = 1000
    rate_limit:          int   = 1000     # tokens/sec, also the burst size
    limiter_wait:        float = 1.0      # max wait for one token before retrying
    limiter_retry_delay: float = 0.001
    url_queue_size:      int   = 100_000
    request_timeout:     float = 2.0      # whole request, body included
    max_image_bytes:     int   = 10 * 1024 * 1024
    max_page_bytes:      int   = 5 * 1024 * 1024
    error_pause:         float = 0.25     # after a failed search visit
    image_width:         int   = 100
    jpeg_quality:        int   = 75


@dataclass(frozen=True)
class ProxyConfig:
    enabled:          bool  = ENABLE_PROXY
    source_url:       str   = "https://www.sslproxies.org/"
    refresh_interval: float = 7.0
    timeout:          float = 10.0


@dataclass(frozen=True)
class StoreConfig:
    page_size:        int   = 10
    read_timeout:     float = 0.1
    batch_interval:   float = 1.0
    queue_length:     int   = 20_000
    stall_timeout:    float = 1.0     # reader gives up after this long without a record
    read_backoff:     float = 0.005
    read_backoff_max: float = 0.05


@dataclass
class AppConfig:
    paths:   PathConfig  = field(default_factory=PathConfig)
    crawl:   CrawlConfig = field(default_factory=CrawlConfig)
    proxy:   ProxyConfig = field(default_factory=ProxyConfig)
    store:   StoreConfig = field(default_factory=StoreConfig)

    verbose: bool = VERBOSE_LOGGING

    def validate(self) -> None:
        if self.crawl.workers < 1:
            raise ConfigurationError("workers must be >= 1")
        if self.crawl.rate_limit < 1:
            raise ConfigurationError("rate_limit must be >= 1")
        if self.crawl.image_width < 1:
            raise ConfigurationError("image_width must be >= 1")
        if not self.crawl.queries:
            raise ConfigurationError("at least one search query is required")
        if self.store.page_size < 1:
            raise ConfigurationError("page_size must be >= 1")
        if self.paths.images_dir.exists() and not self.paths.images_dir.is_dir():
            raise ConfigurationError(f"Not a directory: {self.paths.images_dir}")
        if not os.access(self.paths.images_dir, os.W_OK):
            raise ConfigurationError(f"Images dir not writable: {self.paths.images_dir}")


# ── singleton ───────────────────────────────────────────────
cfg = AppConfig()


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  SHARED CONSTANTS
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

DEFAULT_HEADERS: Dict[str, str] = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "DNT": "1",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
}
