"""Facet aggregation over the admissible record set, plus catalog analytics."""

import logging
import math
from collections import Counter, defaultdict
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

import numpy as np

from ..models.core import (
    CatalogAnalytics, FacetCount, FacetResults, FacetSummary, HistogramBucket, Record
)


logger = logging.getLogger(__name__)


CATEGORICAL_DIMENSIONS: Dict[str, Callable[[Record], str]] = {
    "category": lambda record: record.category,
    "brand": lambda record: record.brand,
    "stock_status": lambda record: record.stock_status,
}

NUMERIC_DIMENSIONS: Dict[str, Callable[[Record], float]] = {
    "price": lambda record: record.price,
    "rating": lambda record: record.rating,
}

DEFAULT_DIMENSIONS = ("category", "brand", "stock_status", "price", "rating")


def _finite(values: Iterable[float]) -> List[float]:
    return [value for value in values if math.isfinite(value)]


def _mean(values: Sequence[float]) -> float:
    values = _finite(values)
    if not values:
        return 0.0
    return float(np.mean(np.asarray(values, dtype=np.float64)))


def _sorted_counts(dimension: str, counts: Counter, limit: Optional[int] = None) -> List[FacetCount]:
    ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    if limit is not None:
        ordered = ordered[:limit]
    return [FacetCount(dimension=dimension, value=value, count=count) for value, count in ordered]


def fixed_width_histogram(dimension: str, values: Iterable[float], width: float) -> List[HistogramBucket]:
    """Buckets ``[i*width, (i+1)*width)``; only non-empty buckets are returned."""
    if width <= 0:
        raise ValueError(f"Bucket width for '{dimension}' must be positive")

    counts: Counter = Counter(math.floor(value / width) for value in _finite(values))
    return [
        HistogramBucket(dimension=dimension, min=index * width, max=(index + 1) * width, count=count)
        for index, count in sorted(counts.items())
    ]


def boundary_histogram(dimension: str, values: Iterable[float],
                       boundaries: Sequence[float]) -> List[HistogramBucket]:
    """Buckets ``[b[i], b[i+1])`` for every configured pair, including empty ones.

    Values below the first or at/above the last boundary land in open-ended
    edge buckets, emitted only when non-empty, so counts always add up.
    """
    edges = sorted(float(b) for b in boundaries)
    if len(edges) < 2:
        raise ValueError(f"Histogram boundaries for '{dimension}' need at least two values")

    below = 0
    above = 0
    inner = [0] * (len(edges) - 1)
    for value in _finite(values):
        if value < edges[0]:
            below += 1
        elif value >= edges[-1]:
            above += 1
        else:
            index = int(np.searchsorted(edges, value, side="right")) - 1
            inner[index] += 1

    buckets = []
    if below:
        buckets.append(HistogramBucket(dimension=dimension, min=None, max=edges[0], count=below))
    for i, count in enumerate(inner):
        buckets.append(HistogramBucket(dimension=dimension, min=edges[i], max=edges[i + 1], count=count))
    if above:
        buckets.append(HistogramBucket(dimension=dimension, min=edges[-1], max=None, count=above))
    return buckets


class FacetAggregator:
    """Computes facet counts and summary statistics, independent of sort order."""

    def __init__(self, dimensions: Sequence[str] = DEFAULT_DIMENSIONS,
                 price_bucket_width: float = 50.0,
                 price_boundaries: Optional[Sequence[float]] = None,
                 rating_bucket_width: float = 1.0,
                 rating_boundaries: Optional[Sequence[float]] = None,
                 max_values: Optional[Dict[str, int]] = None,
                 analytics_price_bucket_width: float = 100.0,
                 top_brands: int = 10):
        """Initialize the facet aggregator.

        Args:
            dimensions: Facet dimensions to compute
            price_bucket_width: Fixed price bucket width (ignored when boundaries are set)
            price_boundaries: Explicit price bucket boundaries
            rating_bucket_width: Fixed rating bucket width (ignored when boundaries are set)
            rating_boundaries: Explicit rating bucket boundaries
            max_values: Optional per-dimension cap on categorical values returned
            analytics_price_bucket_width: Price bucket width for catalog analytics
            top_brands: Number of brands reported by catalog analytics
        """
        unknown = [d for d in dimensions if d not in CATEGORICAL_DIMENSIONS and d not in NUMERIC_DIMENSIONS]
        if unknown:
            raise ValueError(f"Unknown facet dimensions: {unknown}")

        self.dimensions = list(dimensions)
        self.bucket_widths = {"price": price_bucket_width, "rating": rating_bucket_width}
        self.boundaries = {"price": price_boundaries, "rating": rating_boundaries}
        self.max_values = dict(max_values or {})
        self.analytics_price_bucket_width = analytics_price_bucket_width
        self.top_brands = top_brands

    @classmethod
    def from_config(cls, facet_config: Dict[str, Any],
                    analytics_config: Optional[Dict[str, Any]] = None) -> "FacetAggregator":
        analytics_config = analytics_config or {}
        return cls(
            dimensions=facet_config.get("dimensions") or DEFAULT_DIMENSIONS,
            price_bucket_width=float(facet_config.get("price_bucket_width", 50)),
            price_boundaries=facet_config.get("price_boundaries"),
            rating_bucket_width=float(facet_config.get("rating_bucket_width", 1)),
            rating_boundaries=facet_config.get("rating_boundaries"),
            max_values=facet_config.get("max_values") or {},
            analytics_price_bucket_width=float(analytics_config.get("price_bucket_width", 100)),
            top_brands=int(analytics_config.get("top_brands", 10))
        )

    def aggregate(self, records: Sequence[Record]) -> FacetResults:
        """Compute facets over the admissible records (never a single page)."""
        facets = FacetResults(summary=self.summarize(records))

        for dimension in self.dimensions:
            if dimension in CATEGORICAL_DIMENSIONS:
                facets.categorical[dimension] = self.categorical_counts(records, dimension)
            else:
                facets.histograms[dimension] = self.histogram(records, dimension)

        logger.debug(
            f"Computed facets over {len(records)} records: "
            f"{sum(len(v) for v in facets.categorical.values())} categorical values, "
            f"{sum(len(v) for v in facets.histograms.values())} buckets"
        )
        return facets

    def categorical_counts(self, records: Sequence[Record], dimension: str) -> List[FacetCount]:
        """Value counts ordered by count descending, then value.

        The category dimension also carries ``avg_price`` and ``avg_rating``.
        """
        key = CATEGORICAL_DIMENSIONS[dimension]
        counts = Counter(key(record) for record in records)
        facets = _sorted_counts(dimension, counts, self.max_values.get(dimension))

        if dimension != "category":
            return facets

        prices = defaultdict(list)
        ratings = defaultdict(list)
        for record in records:
            prices[record.category].append(record.price)
            ratings[record.category].append(record.rating)

        return [
            FacetCount(
                dimension=facet.dimension,
                value=facet.value,
                count=facet.count,
                stats={
                    "avg_price": _mean(prices[facet.value]),
                    "avg_rating": _mean(ratings[facet.value])
                }
            )
            for facet in facets
        ]

    def histogram(self, records: Sequence[Record], dimension: str) -> List[HistogramBucket]:
        key = NUMERIC_DIMENSIONS[dimension]
        values = [key(record) for record in records]
        boundaries = self.boundaries.get(dimension)
        if boundaries:
            return boundary_histogram(dimension, values, boundaries)
        return fixed_width_histogram(dimension, values, self.bucket_widths[dimension])

    def summarize(self, records: Sequence[Record]) -> FacetSummary:
        if not records:
            return FacetSummary()

        prices = np.array(_finite(record.price for record in records), dtype=np.float64)
        return FacetSummary(
            count=len(records),
            avg_price=_mean(prices),
            avg_rating=_mean([record.rating for record in records]),
            min_price=float(np.min(prices)) if prices.size else None,
            max_price=float(np.max(prices)) if prices.size else None
        )

    def build_analytics(self, records: Sequence[Record]) -> CatalogAnalytics:
        """Dashboard statistics for a record collection.

        Category stats carry count and average price, ratings are bucketed by
        their floor, prices use the analytics bucket width and only the most
        frequent brands are kept.
        """
        prices = defaultdict(list)
        for record in records:
            prices[record.category].append(record.price)

        category_stats = [
            FacetCount(
                dimension=facet.dimension,
                value=facet.value,
                count=facet.count,
                stats={"avg_price": _mean(prices[facet.value])}
            )
            for facet in _sorted_counts("category", Counter(r.category for r in records))
        ]

        return CatalogAnalytics(
            total_records=len(records),
            category_stats=category_stats,
            rating_distribution=fixed_width_histogram("rating", [r.rating for r in records], 1.0),
            price_histogram=fixed_width_histogram(
                "price", [r.price for r in records], self.analytics_price_bucket_width
            ),
            top_brands=_sorted_counts("brand", Counter(r.brand for r in records), self.top_brands)
        )
