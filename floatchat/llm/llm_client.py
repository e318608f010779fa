"""
LLM Client Module for FloatChat
===============================

Async clients for the upstream answer-generation service.

Key Features:
- OpenAI SDK client and an OpenAI-compatible self-hosted HTTP client
- One error taxonomy for both (401, 429, 503, network, malformed reply)
- Strict response-shape validation
- Log sanitization so credentials never reach the logs

Requests are never retried here. A failure is raised once and the
dispatcher falls back to its offline responder.
"""

import asyncio
import json
import logging
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

import aiohttp
import openai

from ..error_handling import (
    CredentialInvalid, CredentialMissing, FloatChatError, MalformedUpstreamResponse,
    NetworkFailure, RateLimited, ServiceUnavailable, UpstreamError
)

logger = logging.getLogger(__name__)


class LLMProvider(Enum):
    """Where completions come from."""
    OPENAI = "openai"
    SELF_HOSTED = "self_hosted"


@dataclass
class LLMConfig:
    """Connection and sampling settings for an upstream client."""
    provider: LLMProvider
    model_name: str = "gpt-3.5-turbo"
    api_key: Optional[str] = None
    api_base: Optional[str] = None
    max_tokens: int = 500
    temperature: float = 0.7
    presence_penalty: float = 0.1
    frequency_penalty: float = 0.1
    timeout: float = 30.0
    custom_headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class LLMMessage:
    """Chat message in the service's role vocabulary."""
    role: str  # "user", "assistant", "system"
    content: str


@dataclass
class LLMRequest:
    """One completion request: the persona prompt, trimmed history and new message."""
    messages: List[LLMMessage]
    model: Optional[str] = None
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class LLMResponse:
    """A validated completion."""
    content: str
    finish_reason: str
    model: str
    response_time: float
    provider: LLMProvider
    usage: Dict[str, int] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ContentFilter:
    """Log sanitization."""

    SENSITIVE_PATTERNS = [
        r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b',  # Email
        r'Bearer\s+[A-Za-z0-9\-\._~\+\/]+=*',  # Bearer token
        r'sk-[A-Za-z0-9_\-]{8,}',  # API key
    ]

    def __init__(self, max_length: int = 500):
        self.max_length = max_length
        self.sensitive_regex = re.compile('|'.join(self.SENSITIVE_PATTERNS), re.IGNORECASE)

    def sanitize_for_logging(self, text: str) -> str:
        """Redact credentials and addresses, then truncate."""
        sanitized = self.sensitive_regex.sub('[REDACTED]', str(text))

        if len(sanitized) > self.max_length:
            sanitized = sanitized[:self.max_length - 3] + "..."

        return sanitized


VALID_ROLES = {"system", "user", "assistant"}


def extract_completion(data: Any) -> Tuple[str, str]:
    """
    Validate a chat-completion body and pull out its answer.

    Args:
        data: Decoded JSON body

    Returns:
        Tuple of (content, finish_reason)

    Raises:
        MalformedUpstreamResponse: If the body is not a usable completion
    """
    try:
        choice = data["choices"][0]
        content = choice["message"]["content"]
    except (KeyError, IndexError, TypeError) as e:
        raise MalformedUpstreamResponse(f"Unexpected completion shape: {e!r}")

    if not isinstance(content, str) or not content.strip():
        raise MalformedUpstreamResponse("Completion content is empty")

    return content.strip(), choice.get("finish_reason") or "stop"


def error_for_status(status: int, detail: str = "") -> FloatChatError:
    """Map an HTTP status from the service onto the error taxonomy."""
    if status == 401:
        return CredentialInvalid(f"Upstream rejected the credential: {detail}", status_code=status)
    if status == 429:
        return RateLimited(f"Upstream rate limit exceeded: {detail}")
    if status >= 500:
        return ServiceUnavailable(f"Upstream unavailable ({status}): {detail}", status_code=status)
    return UpstreamError(f"Upstream error {status}: {detail}", status_code=status)


class BaseLLMClient(ABC):
    """Shared request validation and logging for upstream clients."""

    def __init__(self, config: LLMConfig):
        self.config = config
        self.content_filter = ContentFilter()

    def _validate_request(self, request: LLMRequest) -> None:
        """Reject requests the service would refuse anyway."""
        if not request.messages:
            raise ValueError("Messages cannot be empty")

        for message in request.messages:
            if message.role not in VALID_ROLES:
                raise ValueError(f"Invalid message role: {message.role}")

    def _build_params(self, request: LLMRequest) -> Dict[str, Any]:
        return {
            "model": request.model or self.config.model_name,
            "messages": [{"role": m.role, "content": m.content} for m in request.messages],
            "max_tokens": request.max_tokens or self.config.max_tokens,
            "temperature": request.temperature if request.temperature is not None else self.config.temperature,
            "presence_penalty": self.config.presence_penalty,
            "frequency_penalty": self.config.frequency_penalty,
        }

    @abstractmethod
    async def _make_request(self, request: LLMRequest) -> LLMResponse:
        """Send the request; raise a FloatChatError on any failure."""
        pass

    async def complete(self, request: LLMRequest) -> LLMResponse:
        """Send one request. Failures are logged once and re-raised."""
        start_time = time.time()
        self._validate_request(request)

        try:
            response = await self._make_request(request)
        except FloatChatError as e:
            logger.warning(
                f"LLM request failed after {time.time() - start_time:.2f}s: "
                f"{self.content_filter.sanitize_for_logging(str(e))}",
                extra={'provider': self.config.provider.value, 'error_code': e.error_code}
            )
            raise

        sanitized_content = self.content_filter.sanitize_for_logging(response.content)
        logger.info(f"LLM request completed in {response.response_time:.2f}s, "
                    f"content: {sanitized_content[:100]}...")
        return response

    async def close(self) -> None:
        """Release client resources."""


class OpenAIClient(BaseLLMClient):
    """Client for the OpenAI chat completions API."""

    def __init__(self, config: LLMConfig):
        super().__init__(config)

        if not config.api_key:
            raise CredentialMissing("OpenAI API key not provided")

        self._client: Optional[openai.AsyncOpenAI] = None
        self._client_loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def client(self) -> openai.AsyncOpenAI:
        """SDK client for the running event loop, rebuilt when the loop changes.

        The SDK connection pool is bound to the loop it was opened on, and
        Flask runs each async view on a new loop.
        """
        loop = asyncio.get_running_loop()
        if self._client is None or self._client_loop is not loop:
            self._client = openai.AsyncOpenAI(
                api_key=self.config.api_key,
                base_url=self.config.api_base,
                timeout=self.config.timeout,
                max_retries=0,
            )
            self._client_loop = loop
        return self._client

    async def _make_request(self, request: LLMRequest) -> LLMResponse:
        start_time = time.time()

        try:
            response = await self.client.chat.completions.create(**self._build_params(request))

        except openai.AuthenticationError as e:
            raise CredentialInvalid(f"OpenAI authentication failed: {e}", status_code=401)

        except openai.RateLimitError as e:
            retry_after = e.response.headers.get('retry-after') if e.response is not None else None
            raise RateLimited(
                f"OpenAI rate limit exceeded: {e}",
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None
            )

        except openai.APIStatusError as e:
            raise error_for_status(e.status_code, str(e))

        except openai.APITimeoutError as e:
            raise NetworkFailure(f"OpenAI request timed out: {e}")

        except openai.APIConnectionError as e:
            raise NetworkFailure(f"OpenAI connection failed: {e}")

        except openai.APIResponseValidationError as e:
            raise MalformedUpstreamResponse(f"OpenAI response invalid: {e}")

        if not response.choices:
            raise MalformedUpstreamResponse("OpenAI response has no choices")
        choice = response.choices[0]
        content = choice.message.content if choice.message is not None else None
        if not isinstance(content, str) or not content.strip():
            raise MalformedUpstreamResponse("OpenAI response content is empty")

        usage = {}
        if response.usage is not None:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        return LLMResponse(
            content=content.strip(),
            finish_reason=choice.finish_reason or "stop",
            model=response.model,
            usage=usage,
            response_time=time.time() - start_time,
            provider=LLMProvider.OPENAI,
            metadata={"request_id": getattr(response, 'id', None)}
        )

    async def close(self) -> None:
        # A client from a finished loop cannot be closed from this one
        if self._client is not None and self._client_loop is asyncio.get_running_loop():
            await self._client.close()
        self._client = None
        self._client_loop = None


class SelfHostedClient(BaseLLMClient):
    """OpenAI-compatible self-hosted model client."""

    def __init__(self, config: LLMConfig):
        super().__init__(config)

        if not config.api_base:
            raise ValueError("API base URL required for self-hosted models")

        parsed = urlparse(config.api_base)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError(f"Invalid API base URL: {config.api_base}")

        self.api_base = config.api_base.rstrip('/')
        self.headers = {
            "Content-Type": "application/json",
            **config.custom_headers
        }

        if config.api_key:
            self.headers["Authorization"] = f"Bearer {config.api_key}"

    async def _post(self, payload: Dict[str, Any]) -> Tuple[int, bytes]:
        """POST a completion request; returns (status, raw body)."""
        timeout = aiohttp.ClientTimeout(total=self.config.timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(
                    f"{self.api_base}/v1/chat/completions",
                    json=payload,
                    headers=self.headers,
                ) as response:
                    return response.status, await response.read()

        except asyncio.TimeoutError as e:
            raise NetworkFailure(f"Self-hosted API timed out after {self.config.timeout}s") from e

        except aiohttp.ClientError as e:
            raise NetworkFailure(f"Self-hosted API connection failed: {e}") from e

    async def _make_request(self, request: LLMRequest) -> LLMResponse:
        start_time = time.time()
        payload = {**self._build_params(request), "stream": False}

        status, body = await self._post(payload)

        if status >= 400:
            raise error_for_status(status, body[:200].decode("utf-8", errors="replace"))

        try:
            data = json.loads(body.decode("utf-8"))
        except ValueError as e:
            raise MalformedUpstreamResponse(f"Self-hosted API returned invalid JSON: {e}")

        content, finish_reason = extract_completion(data)

        return LLMResponse(
            content=content,
            finish_reason=finish_reason,
            model=data.get('model', self.config.model_name),
            usage=data.get('usage') or {},
            response_time=time.time() - start_time,
            provider=LLMProvider.SELF_HOSTED,
            metadata={"api_base": self.api_base}
        )


def create_llm_client(config: LLMConfig) -> BaseLLMClient:
    """Create a client for the configured provider."""
    if config.provider == LLMProvider.OPENAI:
        return OpenAIClient(config)
    if config.provider == LLMProvider.SELF_HOSTED:
        return SelfHostedClient(config)
    raise ValueError(f"Unsupported provider: {config.provider}")
