"""Base class every search engine inherits from."""

from __future__ import annotations

import urllib.parse
from typing import List, Set

from bs4 import BeautifulSoup, Tag

from utils.log_config import get_logger

log = get_logger(__name__)


class BaseSearchEngine:
    """
    Subclass must set ``name``, ``search_template`` and ``selector`` and
    implement ``extract()``.

    Engines are stateless: one instance is shared by the crawler for the
    whole run and the extractor is bound once per engine.
    """

    name: str = "base"
    search_template: str = ""
    selector: str = ""

    def search_url(self, query: str) -> str:
        return self.search_template.format(query=urllib.parse.quote_plus(query))

    def extract(self, tag: Tag) -> str:
        """Return the image URL carried by one matching element, or ``""``."""
        raise NotImplementedError

    def links(self, html: str) -> List[str]:
        """Run ``extract`` over every element matching ``selector``."""
        soup = BeautifulSoup(html, "html.parser")
        seen: Set[str] = set()
        urls: List[str] = []
        for tag in soup.select(self.selector):
            url = self.extract(tag)
            if url and url not in seen:
                seen.add(url)
                urls.append(url)
        log.debug("%s → %d candidate URLs", self.name, len(urls))
        return urls

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
