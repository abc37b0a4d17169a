"""Candidate source adapters for the lexical and vector collaborators."""

import logging
from typing import Any, Dict, Optional, Sequence

from .base import AdapterError, CandidateSourceAdapter, maybe_await
from .collaborators import LexicalRetriever, VectorRetriever
from ..models.core import CandidateList


logger = logging.getLogger(__name__)


LEXICAL_SOURCE = "lexical"
VECTOR_SOURCE = "vector"


class LexicalCandidateAdapter(CandidateSourceAdapter):
    """Wraps the lexical relevance engine.

    Empty (or whitespace-only) query text yields an empty list without calling
    the engine.
    """

    def __init__(self, retriever: LexicalRetriever, timeout: float = 5.0,
                 source_id: str = LEXICAL_SOURCE):
        super().__init__(source_id, timeout)
        self.retriever = retriever

    async def search(self, query: str, limit: int) -> CandidateList:
        query_text = (query or "").strip()
        if not query_text:
            return CandidateList.empty(self.source_id)

        raw_results = await maybe_await(self.retriever.search(query_text, limit))
        results = self._normalize_result_format(raw_results, limit)

        logger.debug(f"Lexical source returned {len(results)} candidates for '{query_text}'")
        return CandidateList(source_id=self.source_id, results=results, query=query_text)

    def get_configuration(self) -> Dict[str, Any]:
        return {
            "source_id": self.source_id,
            "retriever": type(self.retriever).__name__,
            "timeout": self.timeout
        }


class VectorCandidateAdapter(CandidateSourceAdapter):
    """Wraps the vector similarity engine.

    Scores are similarities already mapped to [0, 1]. Callers skip this
    adapter entirely when no embedding is available.
    """

    def __init__(self, retriever: VectorRetriever, timeout: float = 5.0,
                 source_id: str = VECTOR_SOURCE, dimension: Optional[int] = None):
        super().__init__(source_id, timeout)
        self.retriever = retriever
        self.dimension = dimension

    async def search(self, query: Sequence[float], limit: int) -> CandidateList:
        if query is None:
            return CandidateList.empty(self.source_id)

        if self.dimension is not None and len(query) != self.dimension:
            raise AdapterError(
                f"Embedding has {len(query)} dimensions, source '{self.source_id}' "
                f"expects {self.dimension}"
            )

        raw_results = await maybe_await(self.retriever.search(list(query), limit))
        results = self._normalize_result_format(raw_results, limit)

        logger.debug(f"Vector source returned {len(results)} candidates")
        return CandidateList(source_id=self.source_id, results=results)

    def get_configuration(self) -> Dict[str, Any]:
        return {
            "source_id": self.source_id,
            "retriever": type(self.retriever).__name__,
            "timeout": self.timeout,
            "dimension": self.dimension
        }
