"""Abstract base class for candidate source adapters."""

import asyncio
import inspect
from abc import ABC, abstractmethod
from typing import Any, Iterable, List, Optional, Tuple
import logging

from ..models.core import CandidateList, CandidateResult, RecordId
from ..utils.error_handling import AdapterUnavailableError, ErrorContext, get_error_handler


logger = logging.getLogger(__name__)


class AdapterError(AdapterUnavailableError):
    """Base exception for candidate source adapter errors."""
    pass


class AdapterTimeoutError(AdapterError):
    """Exception raised when a candidate source call times out."""
    pass


class AdapterConnectionError(AdapterError):
    """Exception raised when connection to a retrieval collaborator fails."""
    pass


async def maybe_await(value: Any) -> Any:
    """Resolve ``value`` if it is awaitable, so sync and async collaborators both work."""
    if inspect.isawaitable(value):
        return await value
    return value


class CandidateSourceAdapter(ABC):
    """Abstract base class for candidate source adapters.

    An adapter wraps one external retrieval collaborator and returns an ordered,
    duplicate-free list of at most ``limit`` candidates.
    """

    def __init__(self, source_id: str, timeout: float = 5.0):
        """Initialize the candidate source adapter.

        Args:
            source_id: Identifier of this source ("lexical" or "vector")
            timeout: Default timeout for search operations in seconds
        """
        self.source_id = source_id
        self.timeout = timeout
        self.error_handler = get_error_handler()

    @abstractmethod
    async def search(self, query: Any, limit: int) -> CandidateList:
        """Fetch candidates for ``query``.

        Args:
            query: Query text or query embedding, depending on the source
            limit: Candidate pool depth

        Returns:
            CandidateList ordered by native score, descending

        Raises:
            AdapterError: If the collaborator call fails
        """
        pass

    async def search_with_timeout(self, query: Any, limit: int,
                                  timeout: Optional[float] = None) -> CandidateList:
        """Execute a search with timeout handling.

        Args:
            query: Query text or embedding
            limit: Candidate pool depth
            timeout: Timeout in seconds (uses default if None)

        Returns:
            CandidateList for this source

        Raises:
            AdapterTimeoutError: If the operation times out
            AdapterError: If the search operation fails
        """
        timeout = timeout if timeout is not None else self.timeout
        query_label = query if isinstance(query, str) else None

        try:
            return await asyncio.wait_for(self.search(query, limit), timeout=timeout)
        except asyncio.TimeoutError:
            timeout_error = AdapterTimeoutError(
                f"Candidate source '{self.source_id}' timed out after {timeout} seconds"
            )
            self.error_handler.handle_error(timeout_error, ErrorContext(
                component="CandidateSourceAdapter",
                operation="search_with_timeout",
                source_id=self.source_id,
                query=query_label
            ))
            raise timeout_error
        except AdapterError as e:
            self.error_handler.handle_error(e, ErrorContext(
                component="CandidateSourceAdapter",
                operation="search_with_timeout",
                source_id=self.source_id,
                query=query_label
            ))
            raise
        except Exception as e:
            search_error = AdapterError(f"Candidate source '{self.source_id}' failed: {str(e)}")
            self.error_handler.handle_error(search_error, ErrorContext(
                component="CandidateSourceAdapter",
                operation="search_with_timeout",
                source_id=self.source_id,
                query=query_label
            ))
            raise search_error from e

    def _normalize_result_format(self, raw_results: Iterable[Tuple[RecordId, float]],
                                 limit: int) -> List[CandidateResult]:
        """Convert raw (id, score) pairs into sorted, duplicate-free candidates.

        Malformed entries are skipped. Duplicate ids keep their best score.
        Ordering is score descending with the collaborator's order kept for ties.

        Args:
            raw_results: Iterable of (id, score) pairs
            limit: Maximum number of candidates to keep

        Returns:
            List of CandidateResult objects
        """
        best = {}
        order = []

        for position, result_data in enumerate(raw_results or []):
            try:
                record_id, score = result_data
                score = float(score)
            except (TypeError, ValueError):
                logger.warning(f"Invalid result format from source {self.source_id}: {result_data!r}")
                continue

            if score != score:  # NaN
                logger.warning(f"NaN score for id {record_id} from source {self.source_id}")
                continue

            if record_id not in best:
                order.append(record_id)
                best[record_id] = (score, position)
            elif score > best[record_id][0]:
                best[record_id] = (score, best[record_id][1])

        ranked = sorted(order, key=lambda rid: (-best[rid][0], best[rid][1]))
        return [CandidateResult(id=rid, score=best[rid][0]) for rid in ranked[:max(limit, 0)]]

    def __str__(self) -> str:
        return f"{self.__class__.__name__}(source_id='{self.source_id}')"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(source_id='{self.source_id}', timeout={self.timeout})"
