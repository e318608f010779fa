"""
Chatbot Core Module
===================

Response dispatch engine: knowledge matching, mode gating, offline
fallback replies and the dispatcher that ties them to the upstream service.
"""

from .models import (
    Message, Sender, Mode, PayloadKind, Response,
    SeriesPayload, GeoPoint, GeoPayload
)
from .knowledge import KnowledgeEntry, KnowledgeRepository, OCEAN_KNOWLEDGE, DEFAULT_ENTRY
from .intent_recognizer import IntentMatcher, CLARIFY_ENTRY
from .mode_policy import ModePolicy, PolicyDecision
from .fallback_handler import FallbackResponder, FallbackReply, FallbackTrigger, ArithmeticEvaluator
from .dispatcher import Dispatcher

__version__ = "1.0.0"

__all__ = [
    'Message',
    'Sender',
    'Mode',
    'PayloadKind',
    'Response',
    'SeriesPayload',
    'GeoPoint',
    'GeoPayload',
    'KnowledgeEntry',
    'KnowledgeRepository',
    'OCEAN_KNOWLEDGE',
    'DEFAULT_ENTRY',
    'IntentMatcher',
    'CLARIFY_ENTRY',
    'ModePolicy',
    'PolicyDecision',
    'FallbackResponder',
    'FallbackReply',
    'FallbackTrigger',
    'ArithmeticEvaluator',
    'Dispatcher'
]
