"""
Generative backend: OpenRouter chat completions through langchain-openai.

Every call goes through the openrouter circuit breaker. Transport failures,
an open circuit and empty replies all surface as GenerativeBackendError.
"""

import logging

import pybreaker
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from agent.errors import GenerativeBackendError
from agent.services.collaborators import LLMReply
from shared.circuit_breaker import call_with_breaker, openrouter_breaker
from shared.config import Settings, get_settings

logger = logging.getLogger(__name__)

_ROLE_TO_MESSAGE = {
    "system": SystemMessage,
    "user": HumanMessage,
    "assistant": AIMessage,
}


def to_langchain_messages(messages: list[dict[str, str]]) -> list[BaseMessage]:
    converted = []
    for message in messages:
        message_class = _ROLE_TO_MESSAGE.get(message["role"])
        if message_class is None:
            raise ValueError(f"Unsupported message role: {message['role']}")
        converted.append(message_class(content=message["content"]))
    return converted


class OpenRouterBackend:
    """Chat completions via OpenRouter's OpenAI-compatible API."""

    def __init__(self, settings: Settings | None = None, llm: ChatOpenAI | None = None):
        self.settings = settings or get_settings()
        self.llm = llm or ChatOpenAI(
            model=self.settings.LLM_MODEL,
            base_url="https://openrouter.ai/api/v1",
            api_key=self.settings.OPENROUTER_API_KEY,
            temperature=self.settings.LLM_TEMPERATURE,
            max_tokens=self.settings.LLM_MAX_TOKENS,
            request_timeout=30.0,
            max_retries=2,
            default_headers={
                "HTTP-Referer": self.settings.SITE_URL,
                "X-Title": self.settings.SITE_NAME,
            },
        )

    async def complete(
        self,
        messages: list[dict[str, str]],
        temperature: float,
        max_tokens: int,
    ) -> LLMReply:
        runnable = self.llm.bind(temperature=temperature, max_tokens=max_tokens)

        try:
            response = await call_with_breaker(
                openrouter_breaker, runnable.ainvoke, to_langchain_messages(messages)
            )
        except pybreaker.CircuitBreakerError as e:
            raise GenerativeBackendError("OpenRouter circuit breaker is open") from e
        except Exception as e:
            logger.error(f"OpenRouter call failed: {type(e).__name__}: {e}", exc_info=True)
            raise GenerativeBackendError(f"OpenRouter call failed: {e}") from e

        content = response.content if isinstance(response.content, str) else str(response.content)
        if not content.strip():
            raise GenerativeBackendError("OpenRouter returned an empty response")

        usage = response.usage_metadata or {}
        return LLMReply(
            content=content,
            tokens_used=usage.get("total_tokens", 0),
            model=response.response_metadata.get("model_name", self.settings.LLM_MODEL),
        )
