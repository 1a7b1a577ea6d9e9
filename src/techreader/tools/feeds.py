"""
Zenn and Qiita article feeds.

The feed document is downloaded with httpx and handed to feedparser, which
copes with both the RSS 2.0 (Zenn) and Atom (Qiita) flavours.
"""
from __future__ import annotations

import html
import re
from dataclasses import dataclass
from urllib.parse import quote

import feedparser
import httpx

from .errors import ToolRequestError, from_http_error

ZENN_FEED_URL = "https://zenn.dev/feed"
ZENN_TOPIC_FEED_URL = "https://zenn.dev/topics/{topic}/feed"
QIITA_FEED_URL = "https://qiita.com/popular-items/feed.atom"
QIITA_TAG_FEED_URL = "https://qiita.com/tags/{topic}/feed"

_FEED_HEADERS = {
    "User-Agent": "techreader/0.0.1 (+feed reader)",
    "Accept": "application/rss+xml,application/atom+xml,application/xml;q=0.9,*/*;q=0.8",
}


class FeedToolError(ToolRequestError):
    pass


@dataclass(frozen=True)
class FeedItem:
    title: str
    link: str
    published: str
    snippet: str
    creator: str


def _strip_html(text: str) -> str:
    text = re.sub(r"<[^>]+>", " ", text)
    text = html.unescape(text)
    return re.sub(r"\s+", " ", text).strip()


def zenn_feed_url(topic: str | None = None) -> str:
    if not topic:
        return ZENN_FEED_URL
    return ZENN_TOPIC_FEED_URL.format(topic=quote(topic, safe=""))


def qiita_feed_url(topic: str | None = None) -> str:
    if not topic:
        return QIITA_FEED_URL
    return QIITA_TAG_FEED_URL.format(topic=quote(topic, safe=""))


class FeedTool:
    def __init__(self, item_limit: int = 100, snippet_chars: int = 300, timeout: float = 20.0) -> None:
        self.item_limit = item_limit
        self.snippet_chars = snippet_chars
        self.timeout = timeout

    async def _download(self, url: str) -> str:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                response = await client.get(url, headers=_FEED_HEADERS)
                response.raise_for_status()
                return response.text
        except httpx.HTTPError as exc:
            raise from_http_error(FeedToolError, f"Feed request failed for {url}", exc) from exc

    def parse(self, document: str, url: str = "") -> list[FeedItem]:
        parsed = feedparser.parse(document)
        if parsed.bozo and not parsed.entries:
            raise FeedToolError(f"Malformed feed at {url or 'document'}: {parsed.get('bozo_exception')}")
        items: list[FeedItem] = []
        for entry in parsed.entries[: self.item_limit]:
            content = entry.get("content") or [{}]
            summary = _strip_html(entry.get("summary") or content[0].get("value", ""))
            items.append(
                FeedItem(
                    title=entry.get("title", ""),
                    link=entry.get("link", ""),
                    published=entry.get("published", entry.get("updated", "")),
                    snippet=summary[: self.snippet_chars],
                    creator=entry.get("author", ""),
                )
            )
        return items

    async def fetch(self, url: str) -> list[FeedItem]:
        return self.parse(await self._download(url), url)

    async def zenn(self, topic: str | None = None) -> str:
        items = await self.fetch(zenn_feed_url(topic))
        text = "\n".join(
            f"## {item.title}\n  - URL: {item.link}\n  - Published: {item.published}\n"
            f"  - Creator: {item.creator}\n  - Snippet: {item.snippet}\n"
            for item in items
        )
        return text or f"No articles found for topic: {topic or 'all'}"

    async def qiita(self, topic: str | None = None) -> str:
        items = await self.fetch(qiita_feed_url(topic))
        text = "\n".join(
            f"## {item.title}\n  - URL: {item.link}\n  - Published: {item.published}\n"
            f"  - Snippet: {item.snippet}\n"
            for item in items
        )
        return text or "No articles found from Qiita."
