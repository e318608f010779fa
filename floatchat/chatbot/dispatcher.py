"""
Response Dispatcher
===================

Orchestrates one chat turn:

1. Empty input gets a clarification prompt.
2. When an upstream client is configured, one completion request is made
   with the trimmed conversation history.
3. Otherwise, or when that request fails, the offline path answers:
   knowledge matching gated by the mode policy, with the fallback responder
   covering anything the knowledge base does not know.

``respond`` never raises to its caller; every path ends in a ``Response``.
"""

import asyncio
import logging
import random
from typing import Any, Dict, Iterable, List, Optional, Type, Union

from ..error_handling import (
    CredentialInvalid, CredentialMissing, ErrorInfo, FloatChatError, InputEmpty,
    MalformedUpstreamResponse, NetworkFailure, RateLimited, ServiceUnavailable,
    UpstreamError
)
from ..config.validation import validate_credential
from ..llm import BaseLLMClient, LLMConfig, LLMMessage, LLMProvider, LLMRequest, create_llm_client
from .fallback_handler import FallbackResponder
from .intent_recognizer import CLARIFY_ENTRY, IntentMatcher
from .knowledge import DEFAULT_ENTRY, MODE_EXAMPLE_QUERIES
from .mode_policy import ModePolicy
from .models import Message, Mode, Response, Sender

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = """You are FloatChat, a helpful and friendly AI assistant for exploring ocean data.

Your personality:
- Helpful, engaging, and conversational
- Knowledgeable about oceanography, ARGO floats and marine science
- Can perform calculations and explain concepts clearly
- Keep responses concise but informative (usually 1-3 sentences unless more detail is needed)

Your capabilities include:
- Answering questions about ocean temperature, salinity, oxygen and circulation
- Explaining how ocean observing instruments work
- Performing calculations and explaining math concepts
- Having friendly conversations

If you don't know something, be honest about it and suggest alternatives when possible."""

# Looked up along the exception's MRO, so the most specific class wins
FAILURE_PREFIXES: Dict[Type[FloatChatError], str] = {
    CredentialInvalid: "My API key seems to be invalid. I'll use basic responses for now.",
    RateLimited: "I'm getting a lot of requests right now. Please try again in a moment!",
    ServiceUnavailable: "The answer service is temporarily unavailable, so here is a basic response:",
    NetworkFailure: "I'm having connection issues. Let me try to help with a basic response:",
    MalformedUpstreamResponse: "I received an unexpected reply from my AI brain, so here is a basic response:",
    UpstreamError: "I'm having trouble connecting to my AI brain right now.",
}

APOLOGY_TEXT = "I'm sorry, I'm experiencing some technical difficulties. Please try again."

HistoryItem = Union[Message, Dict[str, Any]]


def failure_prefix(error: FloatChatError) -> Optional[str]:
    """Get the user-facing prefix for an upstream failure."""
    for cls in type(error).__mro__:
        if cls in FAILURE_PREFIXES:
            return FAILURE_PREFIXES[cls]
    return None


class Dispatcher:
    """
    Chat turn dispatcher.

    Without an intent matcher the fallback responder answers every offline
    turn directly. With both wired in, the fallback responder only answers
    queries that fall through to the knowledge base default.
    """

    def __init__(self,
                 llm_client: Optional[BaseLLMClient] = None,
                 intent_matcher: Optional[IntentMatcher] = None,
                 mode_policy: Optional[ModePolicy] = None,
                 fallback: Optional[FallbackResponder] = None,
                 history_window: int = 6,
                 timeout: float = 30.0,
                 system_prompt: str = SYSTEM_PROMPT):
        """
        Initialize the dispatcher.

        Args:
            llm_client: Upstream client, or None to always answer offline
            intent_matcher: Knowledge matcher for offline replies
            mode_policy: Mode gate applied to knowledge replies
            fallback: Offline responder; created when no matcher is given either
            history_window: Number of most recent history messages sent upstream
            timeout: Seconds to wait for the upstream reply
            system_prompt: Persona text sent with every upstream request
        """
        if intent_matcher is None and fallback is None:
            fallback = FallbackResponder()

        self.llm_client = llm_client
        self.intent_matcher = intent_matcher
        self.mode_policy = mode_policy or ModePolicy()
        self.fallback = fallback
        self.history_window = history_window
        self.timeout = timeout
        self.system_prompt = system_prompt

    @classmethod
    def from_settings(cls, settings, rng: Optional[random.Random] = None) -> "Dispatcher":
        """
        Build a dispatcher from loaded settings.

        The credential is checked structurally here, once. A missing or
        malformed key leaves the dispatcher offline and no request is ever
        made with it.
        """
        llm = settings.llm
        llm_client = None
        try:
            if llm.provider != LLMProvider.SELF_HOSTED.value or llm.api_key:
                validate_credential(llm.api_key, prefix=llm.api_key_prefix,
                                    min_length=llm.api_key_min_length)
            llm_client = create_llm_client(LLMConfig(
                provider=LLMProvider(llm.provider),
                model_name=llm.model,
                api_key=llm.api_key or None,
                api_base=llm.api_base,
                max_tokens=llm.max_tokens,
                temperature=llm.temperature,
                timeout=llm.timeout,
            ))
            logger.info(f"Upstream client configured: {llm.provider}/{llm.model}")
        except CredentialMissing:
            logger.warning("No API key configured; answering with offline responses")
        except CredentialInvalid as e:
            logger.warning(f"API key rejected ({e}); answering with offline responses")
        except ValueError as e:
            logger.error(f"Invalid upstream configuration ({e}); answering with offline responses")

        if rng is None and settings.fallback.seed is not None:
            rng = random.Random(settings.fallback.seed)

        intent_matcher = IntentMatcher() if settings.fallback.use_knowledge_base else None

        return cls(
            llm_client=llm_client,
            intent_matcher=intent_matcher,
            fallback=FallbackResponder(rng=rng),
            history_window=llm.history_window,
            timeout=llm.timeout,
        )

    @property
    def has_upstream(self) -> bool:
        return self.llm_client is not None

    async def respond(self, message: str, mode: Union[Mode, str, None] = Mode.UNSET,
                      history: Optional[Iterable[HistoryItem]] = None) -> Response:
        """
        Answer one chat message.

        Args:
            message: The user's message
            mode: Active interaction mode
            history: Earlier messages, oldest first

        Returns:
            A well-formed Response; never raises, except on task cancellation
        """
        try:
            mode = self._coerce_mode(mode)
            if not isinstance(message, str) or not message.strip():
                raise InputEmpty("Message is empty")

            if self.llm_client is None:
                return self._offline(message, mode)

            try:
                content = await self._ask_upstream(message, history or ())
            except Exception as e:
                if isinstance(e, (UpstreamError, CredentialInvalid)):
                    error = e
                else:
                    error = UpstreamError(f"Unexpected upstream failure: {e!r}")
                info = ErrorInfo.from_exception(error, "dispatcher", context={"mode": mode.value})
                logger.warning(
                    f"Upstream call failed ({info.error_code}); answering offline",
                    extra={'error_info': info.to_dict()},
                    exc_info=error is not e
                )
                return self._with_prefix(failure_prefix(error), self._offline(message, mode))

            return Response.text_only(content, source="upstream")

        except InputEmpty:
            return CLARIFY_ENTRY.to_response(source="system")

        except Exception as e:
            info = ErrorInfo.from_exception(e, "dispatcher")
            logger.error(f"Unexpected dispatch failure: {e}", exc_info=True,
                         extra={'error_info': info.to_dict()})
            return Response.text_only(APOLOGY_TEXT, source="system")

    def welcome(self, mode: Union[Mode, str, None] = Mode.UNSET) -> Response:
        """Onboarding message for a mode, listing its example queries."""
        mode = self._coerce_mode(mode)
        if mode == Mode.UNSET:
            default = self.intent_matcher.repository.default if self.intent_matcher else DEFAULT_ENTRY
            return Response.text_only(default.text, source="system")

        query_list = "\n".join(
            f"{i}. **{query}**" for i, query in enumerate(MODE_EXAMPLE_QUERIES[mode], 1)
        )
        text = (f"Hello! I'm **FloatChat**. You are in **{mode.value.upper()}** mode.\n\n"
                f"Try one of these queries optimized for this mode:\n\n{query_list}")
        return Response.text_only(text, source="system")

    async def close(self) -> None:
        if self.llm_client is not None:
            await self.llm_client.close()

    async def _ask_upstream(self, message: str, history: Iterable[HistoryItem]) -> str:
        messages = [LLMMessage(role="system", content=self.system_prompt)]
        for item in self._trim_history(history):
            role = "user" if item.sender == Sender.USER else "assistant"
            messages.append(LLMMessage(role=role, content=item.text))
        messages.append(LLMMessage(role="user", content=message))

        try:
            response = await asyncio.wait_for(
                self.llm_client.complete(LLMRequest(messages=messages)),
                timeout=self.timeout
            )
        except asyncio.TimeoutError:
            raise NetworkFailure(f"No upstream reply within {self.timeout}s")

        return response.content

    def _trim_history(self, history: Iterable[HistoryItem]) -> List[Message]:
        """Keep the most recent valid messages, oldest first."""
        valid = []
        for item in history:
            if isinstance(item, dict):
                try:
                    item = Message.from_dict(item)
                except ValueError:
                    continue
            if isinstance(item, Message) and item.text.strip():
                valid.append(item)

        if self.history_window <= 0:
            return []
        return valid[-self.history_window:]

    def _offline(self, message: str, mode: Mode) -> Response:
        if self.intent_matcher is not None:
            entry = self.intent_matcher.match(message)
            if self.fallback is None or not self.intent_matcher.is_default(entry):
                return self.mode_policy.apply(mode, entry.to_response())

        reply = self.fallback.reply(message)
        return Response.text_only(reply.text, source="fallback")

    @staticmethod
    def _with_prefix(prefix: Optional[str], response: Response) -> Response:
        if not prefix:
            return response
        return Response(kind=response.kind, text=f"{prefix}\n\n{response.text}",
                        data=response.data, source=response.source)

    @staticmethod
    def _coerce_mode(mode: Union[Mode, str, None]) -> Mode:
        try:
            return Mode.parse(mode)
        except ValueError:
            logger.warning(f"Unknown mode {mode!r}; treating it as unset")
            return Mode.UNSET
