"""
External web search through the Tavily API.

Used for questions about the hotel's surroundings (weather, restaurants,
transport, events) that the inventory cannot answer. Results are cached by
the orchestrator in a WebSearchCache; this module only talks to Tavily.
"""

import logging
import re
from typing import Any

import httpx
import pybreaker
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from agent.errors import SearchProviderError
from agent.services.collaborators import SearchResponse, SearchResult
from shared.circuit_breaker import call_with_breaker, tavily_breaker
from shared.config import Settings, get_settings

logger = logging.getLogger(__name__)

WEB_SEARCH_KEYWORDS = (
    "clima",
    "weather",
    "temperatura",
    "restaurantes cerca",
    "donde comer",
    "dónde comer",
    "atracciones",
    "lugares para visitar",
    "que hacer",
    "qué hacer",
    "que visitar",
    "qué visitar",
    "eventos",
    "festivales",
    "transporte",
    "como llegar",
    "cómo llegar",
    "taxi",
    "bus",
    "uber",
    "metropolitano",
    "aeropuerto",
    "vuelo",
    "flight",
    "terminal",
    "noticias",
    "actualidad",
)


def should_search_web(message: str) -> bool:
    """Whole-word keyword match ("bus" must not fire inside "busco")."""
    lowered = message.lower()
    return any(
        re.search(rf"(?<!\w){re.escape(keyword)}(?!\w)", lowered) for keyword in WEB_SEARCH_KEYWORDS
    )


def build_search_query(message: str, location: str | None) -> str:
    """Qualify the message with the hotel location, when one is configured."""
    query = message.strip()
    if location:
        query = f"{query} near {location}"
    return query


class TavilySearchClient:
    """Client for the Tavily search API."""

    def __init__(self, settings: Settings | None = None):
        settings = settings or get_settings()
        self.api_url = settings.TAVILY_API_URL.rstrip("/")
        self.api_key = settings.TAVILY_API_KEY

        logger.info(f"TavilySearchClient initialized: {self.api_url}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        retry=retry_if_exception_type(httpx.HTTPError),
        reraise=True,
    )
    async def _post_search(self, query: str, max_results: int) -> dict[str, Any]:
        async with httpx.AsyncClient() as client:
            try:
                response = await client.post(
                    f"{self.api_url}/search",
                    json={
                        "api_key": self.api_key,
                        "query": query,
                        "max_results": max_results,
                        "search_depth": "basic",
                        "include_answer": False,
                    },
                    timeout=10.0,
                )
                response.raise_for_status()
                return response.json()

            except httpx.HTTPError as e:
                logger.error(f"HTTP error searching Tavily: {e}")
                raise

    async def search(self, query: str, max_results: int = 3) -> SearchResponse:
        """
        Search the web.

        Raises:
            SearchProviderError: If Tavily is unreachable, failing or short-circuited
        """
        try:
            payload = await call_with_breaker(tavily_breaker, self._post_search, query, max_results)
        except pybreaker.CircuitBreakerError as e:
            raise SearchProviderError("Tavily circuit breaker is open") from e
        except (httpx.HTTPError, ValueError) as e:
            raise SearchProviderError(f"Tavily search failed: {e}") from e

        results = [
            SearchResult(
                title=item.get("title", ""),
                content=item.get("content", ""),
                url=item.get("url", ""),
            )
            for item in payload.get("results", [])[:max_results]
        ]

        logger.info(f"Web search completed | results={len(results)} | query={query[:80]}")
        return SearchResponse(query=query, results=results)
