"""Tests for paged wraparound reads."""

import subprocess
import sys
import time
from pathlib import Path

from config.settings import StoreConfig
from core.reader import PageReader


class TestPageReader:

    def test_zero_count_reads_nothing(self, make_repo):
        repo = make_repo(["a.jpg"])
        assert list(PageReader(repo).read(0)) == []
        assert repo.list_calls == 0

    def test_count_within_store(self, make_repo):
        repo = make_repo([f"{i}.jpg" for i in range(25)])
        got = [r.file for r in PageReader(repo).read(12)]
        assert got == [f"{i}.jpg" for i in range(12)]
        assert repo.list_calls == 2

    def test_wraps_around_small_store(self, make_repo):
        repo = make_repo(["a.jpg", "b.jpg", "c.jpg"])
        got = [r.file for r in PageReader(repo).read(7)]
        assert got == ["a.jpg", "b.jpg", "c.jpg"] * 2 + ["a.jpg"]

    def test_wraps_at_page_boundary(self, make_repo):
        repo = make_repo([f"{i}.jpg" for i in range(10)])
        got = [r.file for r in PageReader(repo).read(15)]
        assert got == [f"{i}.jpg" for i in range(10)] + [f"{i}.jpg" for i in range(5)]

    def test_empty_store_terminates(self, make_repo, caplog):
        repo = make_repo()
        t0 = time.monotonic()
        with caplog.at_level("WARNING", logger="core.reader"):
            got = list(PageReader(repo).read(5))
        assert got == []
        assert time.monotonic() - t0 < 2.0
        warnings = [r for r in caplog.records if "offset 0" in r.getMessage()]
        assert len(warnings) >= 10

    def test_failing_store_terminates(self, make_repo, caplog):
        repo = make_repo(["a.jpg"])
        repo.fail = True
        t0 = time.monotonic()
        with caplog.at_level("WARNING", logger="core.reader"):
            got = list(PageReader(repo).read(5))
        assert got == []
        assert time.monotonic() - t0 < 2.0
        errors = [r for r in caplog.records if r.levelname == "ERROR"]
        assert len(errors) >= 10
        assert "Store returned nothing" not in caplog.text

    def test_slow_store_times_out(self, make_repo, caplog):
        repo = make_repo(["a.jpg"])
        repo.delay = 0.3
        cfg = StoreConfig(read_timeout=0.05, stall_timeout=0.3)
        t0 = time.monotonic()
        with caplog.at_level("ERROR", logger="core.reader"):
            got = list(PageReader(repo, cfg).read(3))
        assert got == []
        assert time.monotonic() - t0 < 2.0
        assert "timed out" in caplog.text

    def test_slow_consumer_does_not_stall(self, make_repo):
        repo = make_repo(["a.jpg", "b.jpg"])
        cfg = StoreConfig(stall_timeout=0.1)
        got = []
        for record in PageReader(repo, cfg).read(6):
            got.append(record.file)
            time.sleep(0.05)
        assert len(got) == 6

    def test_recovers_after_transient_failure(self, make_repo):
        repo = make_repo(["a.jpg"])
        repo.fail = True
        reader = PageReader(repo).read(2)

        original = repo.list

        def flaky(offset):
            if repo.list_calls >= 3:
                repo.fail = False
            return original(offset)

        repo.list = flaky
        assert [r.file for r in reader] == ["a.jpg", "a.jpg"]


HUNG_STORE_SCRIPT = """
import threading
from config.settings import StoreConfig
from core.reader import PageReader

class Hung:
    def list(self, offset):
        threading.Event().wait()

got = list(PageReader(Hung(), StoreConfig(stall_timeout=0.3)).read(3))
print("done", len(got))
"""


class TestHungStore:

    def test_process_exits_after_store_hangs(self):
        root = Path(__file__).resolve().parent.parent
        t0 = time.monotonic()
        proc = subprocess.run(
            [sys.executable, "-c", HUNG_STORE_SCRIPT],
            cwd=root,
            capture_output=True,
            text=True,
            timeout=15,
        )
        assert proc.returncode == 0, proc.stderr
        assert "done 0" in proc.stdout
        assert time.monotonic() - t0 < 10.0
