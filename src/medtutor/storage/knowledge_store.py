"""Per-user knowledge storage.

Each user id maps to one :class:`KnowledgeEntry`. Uploads replace the entry
wholesale; there is no merge and no delete. Entries are immutable, so a
reader sees either the previous entry or the new one, never a mix.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

from medtutor.models.content import KnowledgeEntry

logger = logging.getLogger(__name__)


class KnowledgeStore(ABC):
    """Repository interface for user knowledge."""

    @abstractmethod
    def get(self, user_id: str) -> Optional[KnowledgeEntry]:
        """Return the user's entry, or None if nothing was uploaded."""

    @abstractmethod
    def put(self, user_id: str, entry: KnowledgeEntry) -> None:
        """Replace the user's entry."""

    @abstractmethod
    def __len__(self) -> int:
        ...

    def __contains__(self, user_id: object) -> bool:
        return isinstance(user_id, str) and self.get(user_id) is not None


class InMemoryKnowledgeStore(KnowledgeStore):
    """Process-lifetime, dict-backed store.

    Not synchronized. Writes are single dict assignments, which is enough
    for disjoint users and gives last-writer-wins for the same user.

    Example:
        >>> store = InMemoryKnowledgeStore()
        >>> store.put("user-1", KnowledgeEntry(chunks=("a", "b")))
        >>> len(store.get("user-1").chunks)
        2
    """

    def __init__(self):
        self._entries: Dict[str, KnowledgeEntry] = {}

    def get(self, user_id: str) -> Optional[KnowledgeEntry]:
        return self._entries.get(user_id)

    def put(self, user_id: str, entry: KnowledgeEntry) -> None:
        self._entries[user_id] = entry
        logger.debug("Stored %d chunks for user %s", len(entry.chunks), user_id)

    def __len__(self) -> int:
        return len(self._entries)
