# Data models package

from .core import (
    CandidateList,
    CandidateResult,
    CatalogAnalytics,
    FacetCount,
    FacetResults,
    FacetSummary,
    Filters,
    FusedResult,
    FusionStrategyType,
    HistogramBucket,
    Record,
    RecordId,
    ScoredRecord,
    SearchMode,
    SearchRequest,
    SearchResponse,
    SortOption,
    id_sort_key,
)

__all__ = [
    "CandidateList",
    "CandidateResult",
    "CatalogAnalytics",
    "FacetCount",
    "FacetResults",
    "FacetSummary",
    "Filters",
    "FusedResult",
    "FusionStrategyType",
    "HistogramBucket",
    "Record",
    "RecordId",
    "ScoredRecord",
    "SearchMode",
    "SearchRequest",
    "SearchResponse",
    "SortOption",
    "id_sort_key",
]
