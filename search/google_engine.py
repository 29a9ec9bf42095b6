"""Google Images scraper."""

from __future__ import annotations

from bs4 import Tag

from search.base import BaseSearchEngine


class GoogleEngine(BaseSearchEngine):
    name = "google"
    search_template = "https://www.google.com/search?tbm=isch&q={query}"
    selector = "img"

    def extract(self, tag: Tag) -> str:
        # inline data: URIs and relative branding images are not fetchable
        src = (tag.get("src") or "").strip()
        return src if src.startswith(("http://", "https://")) else ""
