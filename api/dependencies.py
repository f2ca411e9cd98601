"""
Wiring of the chat orchestrator and its collaborators.

The conversation store is Redis when REDIS_URL is set, in-memory otherwise.
Web search is only enabled when TAVILY_API_KEY is configured.
"""

import logging

from fastapi import Request

from agent.orchestrator import ChatOrchestrator
from agent.services.in_memory import (
    InMemoryConversationStore,
    InMemoryHotel,
    default_room_types,
    default_rooms,
)
from agent.services.llm_backend import OpenRouterBackend
from agent.services.redis_store import RedisConversationStore
from agent.services.web_search import TavilySearchClient
from shared.config import Settings
from shared.rate_limiter import RateLimiter
from shared.redis_client import get_redis_client
from shared.web_cache import WebSearchCache

logger = logging.getLogger(__name__)


def build_orchestrator(settings: Settings) -> ChatOrchestrator:
    if settings.REDIS_URL:
        conversations = RedisConversationStore(
            get_redis_client(), ttl_seconds=settings.CONVERSATION_TTL_SECONDS
        )
        logger.info("Conversation store: Redis")
    else:
        conversations = InMemoryConversationStore()
        logger.warning("REDIS_URL not set, conversations are kept in memory only")

    hotel = InMemoryHotel(default_room_types(), default_rooms())

    search = None
    if settings.TAVILY_API_KEY:
        search = TavilySearchClient(settings)
    else:
        logger.info("TAVILY_API_KEY not set, web search disabled")

    return ChatOrchestrator(
        conversations=conversations,
        inventory=hotel,
        booking=hotel,
        llm=OpenRouterBackend(settings),
        rate_limiter=RateLimiter(
            max_messages=settings.RATE_LIMIT_MAX_MESSAGES,
            window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
        ),
        web_cache=WebSearchCache(ttl_seconds=settings.WEB_CACHE_TTL_SECONDS),
        search=search,
        settings=settings,
    )


def get_orchestrator(request: Request) -> ChatOrchestrator:
    return request.app.state.orchestrator
