# Retrieval Fusion - Main package

from .config.settings import config, config_manager
from .utils.logging import setup_logging, get_logger
from .utils.error_handling import (
    FusionSearchError,
    InvalidRequestError,
    RecordNotFoundError,
    RequestFailedError,
)
from .models import (
    Filters,
    FusedResult,
    Record,
    SearchMode,
    SearchRequest,
    SearchResponse,
    SortOption,
)
from .services import HybridSearchService, SearchSettings

__version__ = "0.1.0"

__all__ = [
    "config",
    "config_manager",
    "setup_logging",
    "get_logger",
    "FusionSearchError",
    "InvalidRequestError",
    "RecordNotFoundError",
    "RequestFailedError",
    "Filters",
    "FusedResult",
    "Record",
    "SearchMode",
    "SearchRequest",
    "SearchResponse",
    "SortOption",
    "HybridSearchService",
    "SearchSettings",
]
