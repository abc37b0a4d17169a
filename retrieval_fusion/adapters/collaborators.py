"""Interfaces of the external collaborators consumed by the fusion core.

Implementations may be coroutine-based or plain synchronous objects; the
candidate adapters and the search service await results only when needed.
"""

from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Sequence, Tuple

from ..models.core import Record, RecordId


ScoredId = Tuple[RecordId, float]


class LexicalRetriever(ABC):
    """Keyword relevance engine."""

    @abstractmethod
    def search(self, query_text: str, limit: int) -> List[ScoredId]:
        """Return up to ``limit`` (id, score) pairs ordered by score descending."""


class VectorRetriever(ABC):
    """Nearest-neighbour similarity engine."""

    @abstractmethod
    def search(self, query_embedding: Sequence[float], limit: int) -> List[ScoredId]:
        """Return up to ``limit`` (id, similarity) pairs, similarity in [0, 1], descending."""


class RecordStore(ABC):
    """Record storage."""

    @abstractmethod
    def fetch_by_ids(self, ids: Iterable[RecordId]) -> Dict[RecordId, Record]:
        """Return records keyed by id, omitting ids that do not exist."""


class QueryEmbedder(ABC):
    """Query embedding provider."""

    @abstractmethod
    def embed(self, query_text: str) -> List[float]:
        """Return a fixed-length embedding for ``query_text``."""
