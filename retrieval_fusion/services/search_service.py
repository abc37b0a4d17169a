"""Hybrid search service orchestrating retrieval, fusion, filtering, facets and paging."""

import asyncio
import dataclasses
import logging
import math
from dataclasses import dataclass
from typing import Any, Awaitable, Dict, Iterable, List, Optional, Tuple, Union

from ..adapters.base import AdapterError, AdapterTimeoutError, CandidateSourceAdapter, maybe_await
from ..adapters.candidate_sources import (
    LEXICAL_SOURCE, VECTOR_SOURCE, LexicalCandidateAdapter, VectorCandidateAdapter
)
from ..adapters.collaborators import LexicalRetriever, QueryEmbedder, RecordStore, VectorRetriever
from ..config.settings import (
    get_analytics_config, get_degradation_config, get_facet_config, get_fusion_config,
    get_search_config
)
from ..models.core import (
    CandidateList, CatalogAnalytics, Filters, Record, RecordId, SearchMode,
    SearchRequest, SearchResponse, SortOption
)
from ..utils.error_handling import (
    AdapterUnavailableError, ErrorContext, ErrorHandler, InvalidRequestError,
    RecordNotFoundError, RequestFailedError, get_error_handler
)
from ..utils.graceful_degradation import DegradationConfig, GracefulDegradationManager, SourceOutcome
from ..utils.logging import LoggerMixin
from .facets import FacetAggregator
from .filtering import FilterEvaluator
from .fusion import FusionEngine
from .pagination import SortPaginationController


logger = logging.getLogger(__name__)


@dataclass
class SearchSettings:
    """Typed search parameters, usually read from the ``search`` and ``fusion`` sections."""
    timeout: float = 5.0
    candidate_pool_depth: int = 100
    default_page_size: int = 10
    max_page_size: int = 100
    browse_wildcard: str = "*"
    fusion_strategy: str = "weighted"
    lexical_weight: float = 0.3
    vector_weight: float = 0.7
    rrf_k: int = 60
    lexical_normalization: str = "divisor"
    lexical_score_divisor: float = 1.0

    @classmethod
    def from_config(cls, search_config: Optional[Dict[str, Any]] = None,
                    fusion_config: Optional[Dict[str, Any]] = None) -> "SearchSettings":
        search_config = search_config if search_config is not None else get_search_config()
        fusion_config = fusion_config if fusion_config is not None else get_fusion_config()
        defaults = cls()
        return cls(
            timeout=float(search_config.get("timeout", defaults.timeout)),
            candidate_pool_depth=int(search_config.get("candidate_pool_depth", defaults.candidate_pool_depth)),
            default_page_size=int(search_config.get("default_page_size", defaults.default_page_size)),
            max_page_size=int(search_config.get("max_page_size", defaults.max_page_size)),
            browse_wildcard=str(search_config.get("browse_wildcard", defaults.browse_wildcard)),
            fusion_strategy=str(fusion_config.get("strategy", defaults.fusion_strategy)),
            lexical_weight=float(fusion_config.get("lexical_weight", defaults.lexical_weight)),
            vector_weight=float(fusion_config.get("vector_weight", defaults.vector_weight)),
            rrf_k=int(fusion_config.get("rrf_k", defaults.rrf_k)),
            lexical_normalization=str(fusion_config.get("lexical_normalization", defaults.lexical_normalization)),
            lexical_score_divisor=float(fusion_config.get("lexical_score_divisor", defaults.lexical_score_divisor)),
        )

    def fusion_config(self) -> Dict[str, Any]:
        return {
            "strategy": self.fusion_strategy,
            "lexical_weight": self.lexical_weight,
            "vector_weight": self.vector_weight,
            "rrf_k": self.rrf_k,
            "lexical_normalization": self.lexical_normalization,
            "lexical_score_divisor": self.lexical_score_divisor,
        }


class CandidateDispatcher:
    """Runs the candidate source calls of one request concurrently under a deadline."""

    def __init__(self, timeout: float = 5.0, error_handler: Optional[ErrorHandler] = None):
        """Initialize the dispatcher.

        Args:
            timeout: Per-request deadline for all source calls, in seconds
            error_handler: Optional error handler instance
        """
        self.timeout = timeout
        self.error_handler = error_handler or get_error_handler()

    async def dispatch(self, calls: List[Tuple[str, Awaitable[CandidateList]]],
                       query: str = "") -> List[SourceOutcome]:
        """Await every source call and report one outcome per source.

        Failures never propagate from here; the degradation policy decides
        what they mean for the request.

        Args:
            calls: (source_id, awaitable) pairs
            query: Query text, for error context

        Returns:
            List of SourceOutcome in the order of ``calls``
        """
        if not calls:
            return []

        results = await asyncio.gather(
            *[asyncio.wait_for(call, timeout=self.timeout) for _, call in calls],
            return_exceptions=True
        )

        outcomes = []
        for (source_id, _), result in zip(calls, results):
            if isinstance(result, AdapterUnavailableError):
                # Already reported by the adapter
                outcomes.append(SourceOutcome(source_id=source_id, error=result))
            elif isinstance(result, asyncio.TimeoutError):
                error = AdapterTimeoutError(
                    f"Candidate source '{source_id}' missed the {self.timeout}s request deadline"
                )
                self._report(error, source_id, query)
                outcomes.append(SourceOutcome(source_id=source_id, error=error))
            elif isinstance(result, asyncio.CancelledError):
                raise result
            elif isinstance(result, BaseException):
                error = AdapterError(f"Candidate source '{source_id}' failed: {result}")
                error.__cause__ = result
                self._report(error, source_id, query)
                outcomes.append(SourceOutcome(source_id=source_id, error=error))
            else:
                outcomes.append(SourceOutcome(source_id=source_id, candidates=result))

        responded = sum(1 for outcome in outcomes if outcome.succeeded)
        logger.info(f"Candidate dispatch completed: {responded}/{len(outcomes)} sources responded")
        return outcomes

    def _report(self, error: Exception, source_id: str, query: str) -> None:
        self.error_handler.handle_error(error, ErrorContext(
            component="CandidateDispatcher",
            operation="dispatch",
            source_id=source_id,
            query=query
        ))


class HybridSearchService(LoggerMixin):
    """Public entry point: ``search(request) -> SearchResponse``.

    Collaborators are injected; nothing is looked up from global state except
    configuration defaults for arguments left unset.
    """

    def __init__(self,
                 lexical: Union[LexicalRetriever, CandidateSourceAdapter, None],
                 vector: Union[VectorRetriever, CandidateSourceAdapter, None],
                 record_store: RecordStore,
                 embedder: Optional[QueryEmbedder] = None,
                 settings: Optional[SearchSettings] = None,
                 degradation_manager: Optional[GracefulDegradationManager] = None,
                 facet_aggregator: Optional[FacetAggregator] = None,
                 fusion_engine: Optional[FusionEngine] = None,
                 error_handler: Optional[ErrorHandler] = None):
        """Initialize the search service.

        Args:
            lexical: Lexical retriever, or a ready-made candidate adapter
            vector: Vector retriever, or a ready-made candidate adapter
            record_store: Record storage
            embedder: Optional query embedding provider
            settings: Search settings (read from configuration if None)
            degradation_manager: Degradation policy (read from configuration if None)
            facet_aggregator: Facet aggregator (read from configuration if None)
            fusion_engine: Fusion engine (built from settings if None)
            error_handler: Optional error handler instance
        """
        self.settings = settings or SearchSettings.from_config()
        self.error_handler = error_handler or get_error_handler()

        self.lexical_adapter = self._wrap(lexical, LexicalCandidateAdapter)
        self.vector_adapter = self._wrap(vector, VectorCandidateAdapter)
        self.record_store = record_store
        self.embedder = embedder

        self.degradation_manager = degradation_manager or GracefulDegradationManager(
            DegradationConfig.from_dict(get_degradation_config())
        )
        self.facet_aggregator = facet_aggregator or FacetAggregator.from_config(
            get_facet_config(), get_analytics_config()
        )
        self.fusion_engine = fusion_engine or FusionEngine.from_config(
            self.settings.fusion_config(), pool_depth=self.settings.candidate_pool_depth
        )
        self.dispatcher = CandidateDispatcher(self.settings.timeout, self.error_handler)
        self.filter_evaluator = FilterEvaluator()
        self.paginator = SortPaginationController()

    def _wrap(self, collaborator, adapter_cls):
        if collaborator is None or isinstance(collaborator, CandidateSourceAdapter):
            return collaborator
        return adapter_cls(collaborator, timeout=self.settings.timeout)

    def validate_request(self, request: Union[SearchRequest, Dict[str, Any]]) -> SearchRequest:
        """Check a request before any retrieval call and fill in defaults.

        Raises:
            InvalidRequestError: On malformed paging, filters, enums or embedding
        """
        if isinstance(request, dict):
            request = SearchRequest.from_dict(request)
        if not isinstance(request, SearchRequest):
            raise InvalidRequestError(f"Expected a SearchRequest, got {type(request).__name__}")

        page = request.page
        if isinstance(page, bool) or not isinstance(page, int) or page < 0:
            raise InvalidRequestError(f"page must be a non-negative integer, got {page!r}")

        page_size = request.page_size if request.page_size is not None else self.settings.default_page_size
        if isinstance(page_size, bool) or not isinstance(page_size, int):
            raise InvalidRequestError(f"page_size must be an integer, got {page_size!r}")
        if not 1 <= page_size <= self.settings.max_page_size:
            raise InvalidRequestError(
                f"page_size must be between 1 and {self.settings.max_page_size}, got {page_size}"
            )

        filters = request.filters if request.filters is not None else Filters()
        for name in ("price_min", "price_max", "min_rating"):
            value = getattr(filters, name)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
                raise InvalidRequestError(f"Filter {name} must be a number, got {value!r}")

        embedding = request.query_embedding
        if embedding is not None:
            if not embedding:
                raise InvalidRequestError("query_embedding must not be empty")
            if not all(math.isfinite(v) for v in embedding):
                raise InvalidRequestError("query_embedding must contain finite numbers only")

        return dataclasses.replace(
            request,
            query_text=request.query_text or "",
            filters=filters,
            sort=SortOption.parse(request.sort),
            mode=SearchMode.parse(request.mode),
            page_size=page_size
        )

    async def search(self, request: Union[SearchRequest, Dict[str, Any]]) -> SearchResponse:
        """Answer one search request.

        Raises:
            InvalidRequestError: If the request is malformed
            RequestFailedError: If too few candidate sources respond or storage fails
        """
        request = self.validate_request(request)
        query_text = self._effective_query(request.query_text)

        self.logger.info(
            f"Search accepted: query='{query_text}', mode={request.mode.value}, "
            f"sort={request.sort.value}, page={request.page}, page_size={request.page_size}, "
            f"filters={self.filter_evaluator.describe(request.filters)}"
        )

        try:
            response = await self._search_internal(request, query_text)
        except RequestFailedError as e:
            self.logger.error(f"Search failed for query '{query_text}': {e}")
            raise

        self.logger.info(
            f"Search completed: {response.total_count} admissible, "
            f"{len(response.results)} returned on page {response.page}"
        )
        return response

    async def _search_internal(self, request: SearchRequest, query_text: str) -> SearchResponse:
        if request.filters.is_contradictory:
            return self._empty_response(request)

        calls = self._candidate_calls(request, query_text)
        outcomes = await self.dispatcher.dispatch(calls, query=query_text)
        candidates = self.degradation_manager.resolve(outcomes, query=query_text)

        fused = self.fusion_engine.fuse(
            candidates.get(LEXICAL_SOURCE), candidates.get(VECTOR_SOURCE), request.mode
        )
        if not fused:
            return self._empty_response(request)

        records = await self._fetch_records([result.id for result in fused], query_text)
        admissible = self.filter_evaluator.apply(fused, records, request.filters)

        facets = self.facet_aggregator.aggregate([item.record for item in admissible])
        page_items, total_count = self.paginator.paginate(
            admissible, request.sort, request.page, request.page_size
        )

        return SearchResponse(
            results=page_items,
            total_count=total_count,
            page=request.page,
            page_size=request.page_size,
            facets=facets
        )

    def _effective_query(self, query_text: str) -> str:
        query_text = (query_text or "").strip()
        if query_text == self.settings.browse_wildcard:
            return ""
        return query_text

    def _candidate_calls(self, request: SearchRequest,
                         query_text: str) -> List[Tuple[str, Awaitable[CandidateList]]]:
        depth = self.settings.candidate_pool_depth
        calls = []

        if request.mode.uses_lexical and self.lexical_adapter is not None:
            calls.append((
                self.lexical_adapter.source_id,
                self.lexical_adapter.search_with_timeout(query_text, depth)
            ))

        if request.mode.uses_vector and self.vector_adapter is not None:
            if request.query_embedding is not None:
                calls.append((
                    self.vector_adapter.source_id,
                    self.vector_adapter.search_with_timeout(request.query_embedding, depth)
                ))
            elif query_text and self.embedder is not None:
                calls.append((self.vector_adapter.source_id, self._embed_and_search(query_text, depth)))

        return calls

    async def _embed_and_search(self, query_text: str, depth: int) -> CandidateList:
        try:
            embedding = await maybe_await(self.embedder.embed(query_text))
        except Exception as e:
            error = AdapterError(f"Query embedding failed: {str(e)}")
            self.error_handler.handle_error(error, ErrorContext(
                component="HybridSearchService",
                operation="embed_query",
                source_id=self.vector_adapter.source_id,
                query=query_text
            ))
            raise error from e

        return await self.vector_adapter.search_with_timeout(embedding, depth)

    async def _fetch_records(self, ids: List[RecordId], query_text: str = "") -> Dict[RecordId, Record]:
        try:
            records = await asyncio.wait_for(
                maybe_await(self.record_store.fetch_by_ids(ids)), timeout=self.settings.timeout
            )
        except Exception as e:
            error = RequestFailedError(f"Record storage unavailable: {str(e)}")
            self.error_handler.handle_error(error, ErrorContext(
                component="HybridSearchService",
                operation="fetch_records",
                query=query_text,
                additional_data={"requested_ids": len(ids)}
            ))
            raise error from e

        return dict(records or {})

    def _empty_response(self, request: SearchRequest) -> SearchResponse:
        return SearchResponse(
            results=[],
            total_count=0,
            page=request.page,
            page_size=request.page_size,
            facets=self.facet_aggregator.aggregate([])
        )

    async def get_record(self, record_id: RecordId) -> Record:
        """Fetch one record.

        Raises:
            RecordNotFoundError: If no record has this id
            RequestFailedError: If storage fails
        """
        records = await self._fetch_records([record_id])
        record = records.get(record_id)
        if record is None:
            raise RecordNotFoundError(f"Record {record_id!r} not found")
        return record

    async def analyze(self, ids: Iterable[RecordId]) -> CatalogAnalytics:
        """Catalog analytics over the stored records among ``ids``."""
        ids = list(dict.fromkeys(ids))
        records = await self._fetch_records(ids)
        # Keep caller order so the result does not depend on storage iteration order
        ordered = [records[rid] for rid in ids if rid in records]
        self.logger.info(f"Building analytics over {len(ordered)}/{len(ids)} records")
        return self.facet_aggregator.build_analytics(ordered)

    def get_error_statistics(self) -> Dict[str, Any]:
        return {
            "error_handler_stats": self.error_handler.get_error_statistics(),
            "degradation_status": self.degradation_manager.get_degradation_status(),
        }
