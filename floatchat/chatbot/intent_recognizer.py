"""
Keyword Intent Matching
=======================

Selects the knowledge entry a raw query is about.
"""

import logging
from typing import List, Optional

from .knowledge import OCEAN_KNOWLEDGE, KnowledgeEntry, KnowledgeRepository
from .models import PayloadKind

logger = logging.getLogger(__name__)


CLARIFY_ENTRY = KnowledgeEntry(
    topic="clarify",
    keys=(),
    kind=PayloadKind.TEXT,
    label="Clarification",
    text="I didn't catch that. What would you like to talk about?",
)


class IntentMatcher:
    """
    Case-insensitive substring matcher over a knowledge repository.

    Entries are scanned in repository order and the first entry with a trigger
    key contained in the query wins. There is no tokenizing or ranking, so the
    result depends only on the query and the entry order.
    """

    def __init__(self, repository: Optional[KnowledgeRepository] = None):
        self.repository = repository or OCEAN_KNOWLEDGE

    def match(self, raw_query: str) -> KnowledgeEntry:
        """
        Match a query against the repository.

        Args:
            raw_query: Free text as typed by the user

        Returns:
            The first matching entry, the repository default when nothing
            matches, or ``CLARIFY_ENTRY`` for blank input
        """
        if not raw_query or not raw_query.strip():
            return CLARIFY_ENTRY

        query = raw_query.lower()
        for entry in self.repository.lookup():
            if any(key in query for key in entry.keys):
                logger.debug("Matched topic '%s'", entry.topic)
                return entry

        return self.repository.default

    def is_default(self, entry: KnowledgeEntry) -> bool:
        return entry is self.repository.default

    def get_supported_topics(self) -> List[str]:
        """Get list of supported topics."""
        return [entry.topic for entry in self.repository]
