"""Tests for search engines, the engine picker and the URL crawler."""

import queue
import random
import threading
import time
from unittest.mock import patch

import pytest
import requests

from config.settings import CrawlConfig
from core.health import HealthMonitor
from search.bing_engine import BingEngine
from search.crawler import URLCrawler
from search.google_engine import GoogleEngine
from search.manager import ENGINE_REGISTRY, SearchManager

GOOGLE_HTML = """
<html><body>
  <img src="/images/branding/logo.png">
  <img src="https://encrypted-tbn0.gstatic.com/images?q=cat1">
  <img src="data:image/gif;base64,R0lGOD">
  <img src="https://encrypted-tbn0.gstatic.com/images?q=cat2">
  <img src="https://encrypted-tbn0.gstatic.com/images?q=cat1">
  <img>
</body></html>
"""

BING_HTML = """
<html><body>
  <a class="iusc" m='{"cid":"1","murl":"https:\\/\\/example.com\\/dog.jpg","turl":"x"}'></a>
  <a class="iusc" m='{"cid":"2","murl":"http://example.org/puppy.png"}'></a>
  <a class="iusc" m='{"cid":"3"}'></a>
  <a class="other" m='{"murl":"http://ignored.com/a.jpg"}'></a>
</body></html>
"""


class TestGoogleEngine:

    def test_extracts_absolute_img_sources(self):
        urls = GoogleEngine().links(GOOGLE_HTML)
        assert urls == [
            "https://encrypted-tbn0.gstatic.com/images?q=cat1",
            "https://encrypted-tbn0.gstatic.com/images?q=cat2",
        ]

    def test_search_url_encodes_query(self):
        url = GoogleEngine().search_url("cute kittens")
        assert url == "https://www.google.com/search?tbm=isch&q=cute+kittens"


class TestBingEngine:

    def test_extracts_murl_and_unescapes_slashes(self):
        urls = BingEngine().links(BING_HTML)
        assert urls == [
            "https://example.com/dog.jpg",
            "http://example.org/puppy.png",
        ]

    def test_no_matches(self):
        assert BingEngine().links("<html><body><p>nothing</p></body></html>") == []


class TestSearchManager:

    def test_defaults_to_all_engines(self):
        mgr = SearchManager(["cats"])
        assert sorted(e.name for e in mgr.engines) == sorted(ENGINE_REGISTRY)

    def test_pick_draws_from_sets(self):
        mgr = SearchManager(["cats", "dogs"], rng=random.Random(7))
        for _ in range(50):
            engine, query = mgr.pick()
            assert engine.name in ENGINE_REGISTRY
            assert query in ("cats", "dogs")

    def test_pick_covers_every_pair(self):
        mgr = SearchManager(["cats", "dogs"], rng=random.Random(1))
        seen = {(e.name, q) for e, q in (mgr.pick() for _ in range(500))}
        assert len(seen) == 4

    def test_requires_queries(self):
        with pytest.raises(ValueError):
            SearchManager([])


class TestURLCrawler:

    def setup_method(self):
        self.cfg = CrawlConfig(error_pause=0.0)
        self.urls = queue.Queue(maxsize=100)
        self.cancel = threading.Event()
        self.health = HealthMonitor()
        self.mgr = SearchManager(["cats"], engines=["bing"])
        self.crawler = URLCrawler(self.cfg, self.mgr, self.urls, self.cancel, self.health)

    def test_visit_pushes_links(self, make_response):
        with patch.object(self.crawler.session, "get", return_value=make_response(BING_HTML.encode())):
            pushed = self.crawler.visit(BingEngine(), "cats")
        assert pushed == 2
        assert self.urls.get_nowait() == "https://example.com/dog.jpg"
        assert self.urls.get_nowait() == "http://example.org/puppy.png"
        assert self.health.get_report()["bing"]["visits"] == 1

    def test_http_error_recorded_and_raised(self, make_response):
        with patch.object(self.crawler.session, "get", return_value=make_response(b"", 503)):
            with pytest.raises(requests.HTTPError):
                self.crawler.visit(BingEngine(), "cats")
        report = self.health.get_report()["bing"]
        assert report["failures"] == 1
        assert self.urls.empty()

    def test_crawl_survives_errors_until_cancelled(self, make_response):
        calls = []

        def fake_get(url, **kwargs):
            calls.append(url)
            if len(calls) == 1:
                raise requests.ConnectionError("refused")
            if len(calls) >= 3:
                self.cancel.set()
            return make_response(BING_HTML.encode())

        with patch.object(self.crawler.session, "get", side_effect=fake_get):
            self.crawler.crawl()

        assert len(calls) == 3
        # the third page arrives after cancel, so nothing from it is queued
        assert self.urls.qsize() == 2

    def test_push_gives_up_on_cancel_when_full(self):
        full = queue.Queue(maxsize=1)
        full.put("x")
        crawler = URLCrawler(self.cfg, self.mgr, full, self.cancel)
        threading.Timer(0.1, self.cancel.set).start()
        assert crawler._push("http://example.com/a.jpg") is False

    def test_cancelled_before_start_makes_no_requests(self):
        self.cancel.set()
        with patch.object(self.crawler.session, "get") as mock_get:
            self.crawler.crawl()
        mock_get.assert_not_called()

    def test_slow_results_page_bounded_by_timeout(self, drip_server):
        class LocalEngine(BingEngine):
            search_template = drip_server + "/drip?q={query}"

        crawler = URLCrawler(
            CrawlConfig(request_timeout=0.5), self.mgr, self.urls, self.cancel, self.health,
        )
        t0 = time.monotonic()
        with pytest.raises(requests.Timeout):
            crawler.visit(LocalEngine(), "cats")
        assert time.monotonic() - t0 < 1.5
        assert self.health.get_report()["bing"]["failures"] == 1
