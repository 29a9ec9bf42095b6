"""
Per-engine crawl statistics: visits, failures, URLs found, latency.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict

from utils.log_config import get_logger

log = get_logger(__name__)


@dataclass
class EngineMetrics:
    visits:        int   = 0
    successes:     int   = 0
    failures:      int   = 0
    urls_found:    int   = 0
    total_latency: float = 0.0
    last_error:    str   = ""

    @property
    def success_rate(self) -> float:
        return self.successes / max(self.visits, 1)

    @property
    def avg_latency(self) -> float:
        return self.total_latency / max(self.successes, 1)

    @property
    def avg_urls(self) -> float:
        return self.urls_found / max(self.successes, 1)


class HealthMonitor:
    """Thread-safe engine health tracker."""

    def __init__(self) -> None:
        self._metrics: Dict[str, EngineMetrics] = defaultdict(EngineMetrics)
        self._lock = threading.Lock()

    def record_call(
        self,
        engine: str,
        success: bool,
        result_count: int = 0,
        latency: float = 0.0,
        error: str = "",
    ) -> None:
        with self._lock:
            m = self._metrics[engine]
            m.visits += 1
            if success:
                m.successes += 1
                m.urls_found += result_count
                m.total_latency += latency
            else:
                m.failures += 1
                m.last_error = error

    def get_report(self) -> Dict[str, Dict]:
        with self._lock:
            return {
                name: {
                    "visits":       m.visits,
                    "success_rate": f"{m.success_rate:.1%}",
                    "avg_latency":  f"{m.avg_latency:.2f}s",
                    "avg_urls":     f"{m.avg_urls:.1f}",
                    "failures":     m.failures,
                    "last_error":   m.last_error[:50],
                }
                for name, m in self._metrics.items()
            }

    def log_report(self) -> None:
        report = self.get_report()
        log.info("─── Engine Health ───")
        for name, data in report.items():
            log.info(
                "  %-8s │ visits=%-4d │ success=%-6s │ latency=%-6s │ urls/visit=%-5s │ failures=%d",
                name,
                data["visits"],
                data["success_rate"],
                data["avg_latency"],
                data["avg_urls"],
                data["failures"],
            )
