"""Bing Images scraper."""

from __future__ import annotations

import re

from bs4 import Tag

from search.base import BaseSearchEngine

_MURL = re.compile(r'"murl":"(.*?)"')


class BingEngine(BaseSearchEngine):
    name = "bing"
    search_template = "https://www.bing.com/images/search?q={query}"
    selector = "a.iusc"

    def extract(self, tag: Tag) -> str:
        """Pull the full-size image URL out of the anchor's ``m`` JSON blob."""
        match = _MURL.search(tag.get("m", ""))
        if not match:
            return ""
        return match.group(1).replace("\\/", "/")
