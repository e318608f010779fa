"""
LLM Module for FloatChat
========================

Upstream answer-generation clients.

Quick Start:
    from floatchat.llm import LLMConfig, LLMProvider, LLMRequest, LLMMessage, create_llm_client

    client = create_llm_client(LLMConfig(provider=LLMProvider.OPENAI, api_key="sk-..."))
    request = LLMRequest(messages=[LLMMessage(role="user", content="Hello!")])
    response = await client.complete(request)
"""

from .llm_client import (
    # Core classes
    BaseLLMClient,
    OpenAIClient,
    SelfHostedClient,
    create_llm_client,

    # Configuration
    LLMConfig,
    LLMRequest,
    LLMResponse,
    LLMMessage,
    LLMProvider,

    # Utilities
    ContentFilter,
    error_for_status,
    extract_completion,
)

__all__ = [
    "BaseLLMClient",
    "OpenAIClient",
    "SelfHostedClient",
    "create_llm_client",
    "LLMConfig",
    "LLMRequest",
    "LLMResponse",
    "LLMMessage",
    "LLMProvider",
    "ContentFilter",
    "error_for_status",
    "extract_completion",
]
