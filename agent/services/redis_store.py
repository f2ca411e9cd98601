"""
Conversation store backed by Redis.

Key patterns:
- conversation:{conversation_id} → ConversationHistory JSON (by alias)
- client:{client_id}:conversations → set of conversation ids
- client:{client_id}:messages → list of message log entries (JSON)

All keys expire after CONVERSATION_TTL_SECONDS. Redis failures are raised as
ConversationStoreError; the orchestrator decides whether to swallow them.
"""

import json
import logging
from datetime import UTC, datetime

import redis.asyncio as redis
from pydantic import ValidationError
from redis.exceptions import RedisError

from agent.errors import ConversationStoreError
from agent.state.schemas import ConversationHistory

logger = logging.getLogger(__name__)


class RedisConversationStore:
    def __init__(self, client: "redis.Redis[str]", ttl_seconds: int = 86400):
        self.client = client
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def _conversation_key(conversation_id: str) -> str:
        return f"conversation:{conversation_id}"

    @staticmethod
    def _client_index_key(client_id: int) -> str:
        return f"client:{client_id}:conversations"

    @staticmethod
    def _message_log_key(client_id: int) -> str:
        return f"client:{client_id}:messages"

    async def save(self, conversation: ConversationHistory) -> None:
        payload = conversation.model_dump_json(by_alias=True)
        try:
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.set(self._conversation_key(conversation.id), payload, ex=self.ttl_seconds)
                if conversation.client_id is not None:
                    index_key = self._client_index_key(conversation.client_id)
                    pipe.sadd(index_key, conversation.id)
                    pipe.expire(index_key, self.ttl_seconds)
                await pipe.execute()
        except RedisError as e:
            raise ConversationStoreError(
                f"Failed to save conversation {conversation.id}: {e}"
            ) from e

        logger.debug(
            f"Conversation saved to Redis | messages={len(conversation.messages)}",
            extra={"conversation_id": conversation.id},
        )

    async def update(self, conversation: ConversationHistory) -> None:
        conversation.updated_at = datetime.now(UTC)
        await self.save(conversation)

    async def get(self, conversation_id: str) -> ConversationHistory | None:
        try:
            raw = await self.client.get(self._conversation_key(conversation_id))
        except RedisError as e:
            raise ConversationStoreError(
                f"Failed to load conversation {conversation_id}: {e}"
            ) from e

        if raw is None:
            return None

        try:
            return ConversationHistory.model_validate_json(raw)
        except ValidationError as e:
            raise ConversationStoreError(
                f"Corrupted conversation {conversation_id}: {e}"
            ) from e

    async def save_message(self, client_id: int, role: str, content: str) -> None:
        entry = json.dumps(
            {"role": role, "content": content, "timestamp": datetime.now(UTC).isoformat()},
            ensure_ascii=False,
        )
        key = self._message_log_key(client_id)
        try:
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.rpush(key, entry)
                pipe.expire(key, self.ttl_seconds)
                await pipe.execute()
        except RedisError as e:
            raise ConversationStoreError(
                f"Failed to log message for client {client_id}: {e}"
            ) from e

    async def list_by_client(self, client_id: int) -> list[ConversationHistory]:
        try:
            conversation_ids = await self.client.smembers(self._client_index_key(client_id))
        except RedisError as e:
            raise ConversationStoreError(
                f"Failed to list conversations for client {client_id}: {e}"
            ) from e

        conversations = []
        for conversation_id in conversation_ids:
            conversation = await self.get(conversation_id)
            if conversation is not None:
                conversations.append(conversation)
        return sorted(conversations, key=lambda conversation: conversation.updated_at, reverse=True)
