"""
Closed set of search engines and the uniform engine/query picker.
"""

from __future__ import annotations

import random
from typing import Dict, List, Optional, Sequence, Tuple, Type

from search.base import BaseSearchEngine
from search.bing_engine import BingEngine
from search.google_engine import GoogleEngine

ENGINE_REGISTRY: Dict[str, Type[BaseSearchEngine]] = {
    "google": GoogleEngine,
    "bing":   BingEngine,
}


class SearchManager:
    """
    Instantiate once per run. Engine and query are drawn independently
    and uniformly on every ``pick()``.
    """

    def __init__(
        self,
        queries: Sequence[str],
        engines: Optional[List[str]] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        if not queries:
            raise ValueError("at least one query is required")
        names = engines or list(ENGINE_REGISTRY)
        self.engines: List[BaseSearchEngine] = [ENGINE_REGISTRY[n]() for n in names]
        self.queries = list(queries)
        self._rng = rng or random.Random()

    def pick(self) -> Tuple[BaseSearchEngine, str]:
        return self._rng.choice(self.engines), self._rng.choice(self.queries)
