"""
GeminiSearchTool: web search through the Gemini API with Google Search
grounding enabled.

The model is asked for "Search results for query: <q>" with the
``google_search`` tool attached, so the answer is built from live search
results rather than from the model's training data alone.
"""
from __future__ import annotations

import httpx

from .errors import ToolRequestError, from_http_error

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"
NO_RESULTS_MESSAGE = "No results found."


class SearchToolError(ToolRequestError):
    pass


def _candidate_text(payload: dict) -> str:
    candidates = payload.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts if isinstance(part, dict)).strip()


class GeminiSearchTool:
    def __init__(
        self,
        api_key: str = "",
        model: str = DEFAULT_GEMINI_MODEL,
        base_url: str = GEMINI_API_BASE,
        timeout: float = 60.0,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def _request(self, body: dict) -> dict:
        url = f"{self.base_url}/models/{self.model}:generateContent"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, json=body, headers={"x-goog-api-key": self.api_key})
                response.raise_for_status()
                return response.json()
        except httpx.HTTPError as exc:
            raise from_http_error(SearchToolError, "Gemini request failed", exc) from exc
        except ValueError as exc:
            raise SearchToolError(f"Gemini returned a non-JSON response: {exc}") from exc

    async def search(self, query: str) -> str:
        if not self.api_key:
            raise SearchToolError("GOOGLE_GENAI_API_KEY is not configured")
        payload = await self._request(
            {
                "contents": [{"parts": [{"text": f"Search results for query: {query}"}]}],
                "tools": [{"google_search": {}}],
            }
        )
        return _candidate_text(payload) or NO_RESULTS_MESSAGE
