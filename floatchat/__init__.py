"""
FloatChat
=========

Conversational front-end engine for ocean-science queries.
"""

from .chatbot import Dispatcher, Mode, Response

__version__ = "1.0.0"

__all__ = ['Dispatcher', 'Mode', 'Response']
