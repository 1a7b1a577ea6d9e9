from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from ..config import AppConfig
from ..history import HistoryError, tool_response
from .chrome_history import ChromeHistoryTool
from .errors import ToolRequestError
from .feeds import FeedTool
from .search import GeminiSearchTool

log = logging.getLogger(__name__)


class ToolName(str, Enum):
    ZENN_FEED = "zenn-feed"
    QIITA_FEED = "qiita-feed"
    GEMINI_SEARCH = "grounding-search-gemini"
    CHROME_HISTORY = "chrome-hist-tool"


class ToolManager:
    """Owns one client per tool and turns every outcome into a tool response.

    Each ``run_*`` method returns ``{content, structuredContent}``; failures
    come back in the same shape with ``isError`` set instead of raising.
    """

    def __init__(self, cfg: dict[str, Any] | None = None) -> None:
        settings = {**AppConfig().__dict__, **(cfg or {})}
        self.feeds = FeedTool(
            item_limit=settings["feed_item_limit"],
            snippet_chars=settings["feed_snippet_chars"],
            timeout=settings["feed_timeout"],
        )
        self.search_tool = GeminiSearchTool(
            api_key=settings["gemini_api_key"],
            model=settings["gemini_model"],
        )
        self.history = ChromeHistoryTool(
            history_path=settings["history_path"],
            snapshot_dir=settings["snapshot_dir"],
            default_limit=settings["history_limit"],
        )

    async def run_zenn_feed(self, topic: str | None = None) -> dict[str, Any]:
        try:
            text = await self.feeds.zenn(topic)
        except ToolRequestError as exc:
            log.warning("zenn-feed failed for topic %r: %s", topic, exc)
            return tool_response(f'Error fetching articles for topic "{topic}": {exc}', is_error=True)
        return tool_response(text)

    async def run_qiita_feed(self, topic: str | None = None) -> dict[str, Any]:
        try:
            text = await self.feeds.qiita(topic)
        except ToolRequestError as exc:
            log.warning("qiita-feed failed for topic %r: %s", topic, exc)
            return tool_response(f"Error fetching articles from Qiita: {exc}", is_error=True)
        return tool_response(text)

    async def run_gemini_search(self, query: str) -> dict[str, Any]:
        try:
            text = await self.search_tool.search(query)
        except ToolRequestError as exc:
            log.warning("grounding-search-gemini failed: %s", exc)
            return tool_response(f"Error searching with Gemini: {exc}", is_error=True)
        return tool_response(text)

    async def run_chrome_history(self, limit: object = None) -> dict[str, Any]:
        try:
            text = await self.history.recent(limit)
        except HistoryError as exc:
            log.warning("chrome-hist-tool failed [%s]: %s", exc.code, exc)
            return tool_response(f"Error reading Chrome history: {exc}", is_error=True)
        return tool_response(text)
