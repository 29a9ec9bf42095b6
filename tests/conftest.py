"""Shared test fixtures."""

import shutil
import tempfile
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from io import BytesIO
from pathlib import Path
from typing import List, Sequence
from unittest.mock import MagicMock

import numpy as np
import pytest
import requests
from PIL import Image

from config.settings import AppConfig, CrawlConfig, PathConfig, StoreConfig
from core.models import ImageRecord


class FakeRepository:
    """In-memory store. ``fail`` makes every call raise, ``delay`` makes it hang."""

    def __init__(self, files: Sequence[str] = (), page_size: int = 10) -> None:
        self.records: List[ImageRecord] = [ImageRecord(file=f) for f in files]
        self.page_size = page_size
        self.batches: List[List[ImageRecord]] = []
        self.fail = False
        self.delay = 0.0
        self.list_calls = 0
        self._lock = threading.Lock()

    def create_batch(self, records):
        if self.fail:
            raise RuntimeError("store unavailable")
        with self._lock:
            self.batches.append(list(records))
            self.records.extend(records)

    def list(self, offset):
        self.list_calls += 1
        if self.delay:
            threading.Event().wait(self.delay)
        if self.fail:
            raise RuntimeError("store unavailable")
        with self._lock:
            return self.records[offset:offset + self.page_size]


@pytest.fixture
def tmp_dir():
    d = Path(tempfile.mkdtemp())
    yield d
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def jpeg_bytes():
    """Random 400x300 JPEG."""
    arr = np.random.randint(0, 255, (300, 400, 3), dtype=np.uint8)
    buf = BytesIO()
    Image.fromarray(arr).save(buf, "JPEG", quality=90)
    return buf.getvalue()


@pytest.fixture
def fake_repo():
    return FakeRepository()


@pytest.fixture
def make_repo():
    return FakeRepository


@pytest.fixture
def test_config(tmp_dir):
    paths = PathConfig(
        root=tmp_dir,
        images_dir=tmp_dir / "images",
        db_path=tmp_dir / "images.db",
        log_file=tmp_dir / "test.log",
    )
    cfg = AppConfig(
        paths=paths,
        crawl=CrawlConfig(workers=4, rate_limit=1000, error_pause=0.0),
        store=StoreConfig(batch_interval=0.1),
    )
    cfg.paths.ensure()
    return cfg


class StubCrawler:
    """Drop-in for ``URLCrawler`` that queues *limit* fake URLs and idles until cancelled."""

    limit = 50

    def __init__(self, cfg, manager, urls, cancel, health=None):
        self.urls = urls
        self.cancel = cancel
        self.pushed = 0

    def crawl(self):
        while not self.cancel.is_set() and self.pushed < self.limit:
            self.urls.put(f"http://example.com/{self.pushed}.jpg")
            self.pushed += 1
        self.cancel.wait(5.0)


@pytest.fixture
def stub_crawler():
    return StubCrawler


def streamed_response(body: bytes, status: int = 200, encoding: str = "utf-8"):
    """MagicMock of a ``stream=True`` response that yields *body* then EOF."""
    resp = MagicMock()
    resp.status_code = status
    resp.encoding = encoding
    resp.headers = {"Content-Length": str(len(body))}
    resp.raw.read1.side_effect = [body, b""]
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status} Error")
    return resp


@pytest.fixture
def make_response():
    return streamed_response


class _DripHandler(BaseHTTPRequestHandler):
    """``/drip`` sends one byte every 0.2s; ``/huge`` declares a 50MB body."""

    def do_GET(self):
        if self.path.startswith("/huge"):
            self.send_response(200)
            self.send_header("Content-Type", "image/jpeg")
            self.send_header("Content-Length", str(50 * 1024 * 1024))
            self.end_headers()
            return
        self.send_response(200)
        self.send_header("Content-Type", "text/html")
        self.send_header("Content-Length", "1000")
        self.end_headers()
        try:
            for _ in range(1000):
                self.wfile.write(b"x")
                self.wfile.flush()
                time.sleep(0.2)
        except OSError:
            pass

    def log_message(self, format, *args):
        pass


@pytest.fixture
def drip_server():
    """Base URL of a local HTTP server that never finishes a body on time."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), _DripHandler)
    server.daemon_threads = True
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    host, port = server.server_address
    yield f"http://{host}:{port}"
    server.shutdown()
    server.server_close()
