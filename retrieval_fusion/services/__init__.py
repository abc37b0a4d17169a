# Fusion, filtering, facet, pagination and search services

from .facets import FacetAggregator
from .filtering import FilterEvaluator
from .fusion import (
    FusionEngine,
    FusionStrategy,
    ReciprocalRankFusion,
    ScoreNormalizer,
    WeightedLinearFusion,
    create_fusion_strategy,
)
from .pagination import SortPaginationController
from .search_service import CandidateDispatcher, HybridSearchService, SearchSettings

__all__ = [
    "CandidateDispatcher",
    "FacetAggregator",
    "FilterEvaluator",
    "FusionEngine",
    "FusionStrategy",
    "HybridSearchService",
    "ReciprocalRankFusion",
    "ScoreNormalizer",
    "SearchSettings",
    "SortPaginationController",
    "WeightedLinearFusion",
    "create_fusion_strategy",
]
