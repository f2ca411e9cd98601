"""
Agent services module.

Collaborators used by the chat orchestrator:
- collaborators: protocols and data shapes shared by every implementation
- in_memory: conversation store, room inventory and booking domain in process memory
- redis_store: conversation store backed by Redis
- llm_backend: OpenRouter generative backend (langchain-openai)
- web_search: Tavily web search client (httpx + tenacity)
"""
