"""Core data models for the retrieval fusion core."""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple, Union

from ..utils.error_handling import InvalidRequestError


RecordId = Union[int, str]


def id_sort_key(record_id: RecordId) -> Tuple[int, Any]:
    """Total ordering over record ids (numbers before strings) for tie-breaks."""
    if isinstance(record_id, (int, float)) and not isinstance(record_id, bool):
        return (0, record_id)
    return (1, str(record_id))


class _ParsableEnum(Enum):
    """Enum that parses its members from values or names at the request boundary."""

    @classmethod
    def parse(cls, value: Any):
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower().replace("-", "_").replace(" ", "_")
            for member in cls:
                if key in (member.value, member.name.lower()):
                    return member
        allowed = ", ".join(member.value for member in cls)
        raise InvalidRequestError(f"Unsupported {cls.__name__} '{value}'. Allowed: {allowed}")


class SearchMode(_ParsableEnum):
    """Which candidate sources a request consults."""
    LEXICAL = "lexical"
    VECTOR = "vector"
    HYBRID = "hybrid"

    @property
    def uses_lexical(self) -> bool:
        return self in (SearchMode.LEXICAL, SearchMode.HYBRID)

    @property
    def uses_vector(self) -> bool:
        return self in (SearchMode.VECTOR, SearchMode.HYBRID)


class FusionStrategyType(_ParsableEnum):
    """Named fusion strategies."""
    WEIGHTED = "weighted"
    RRF = "rrf"


class SortOption(_ParsableEnum):
    """Result orderings offered to callers."""
    RELEVANCE = "relevance"
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"
    RATING_DESC = "rating_desc"
    NEWEST = "newest"

    @property
    def label(self) -> str:
        return {
            SortOption.RELEVANCE: "Relevance",
            SortOption.PRICE_ASC: "Price: Low to High",
            SortOption.PRICE_DESC: "Price: High to Low",
            SortOption.RATING_DESC: "Rating: High to Low",
            SortOption.NEWEST: "Newest First",
        }[self]


@dataclass(frozen=True)
class CandidateResult:
    """An (id, score) pair emitted by a single candidate source."""
    id: RecordId
    score: float


@dataclass
class CandidateList:
    """Ordered candidates from one source, best first."""
    source_id: str
    results: List[CandidateResult]
    query: str = ""

    @property
    def ids(self) -> List[RecordId]:
        return [result.id for result in self.results]

    def __len__(self) -> int:
        return len(self.results)

    @classmethod
    def empty(cls, source_id: str, query: str = "") -> "CandidateList":
        return cls(source_id=source_id, results=[], query=query)


@dataclass(frozen=True)
class FusedResult:
    """A candidate after fusion.

    ``lexical_score``/``vector_score`` are the normalized per-source scores and
    are 0.0 when the id was absent from that source. Ranks are 1-based
    positions in each source list, ``None`` when absent.
    """
    id: RecordId
    lexical_score: float
    vector_score: float
    combined_score: float
    lexical_rank: Optional[int] = None
    vector_rank: Optional[int] = None


def _to_float(value: Any, default: float = 0.0) -> float:
    if value is None:
        return default
    # Storage rows may carry Decimal prices; NaN and infinities count as missing
    number = float(value)
    return number if math.isfinite(number) else default


def _to_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


@dataclass
class Record:
    """Full catalog entity addressed by id. Owned by record storage, read-only here."""
    id: RecordId
    name: str
    brand: str = ""
    category: str = ""
    price: float = 0.0
    rating: float = 0.0
    in_stock: bool = True
    description: str = ""
    subcategory: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    review_count: int = 0
    stock_quantity: int = 0
    featured: bool = False
    attributes: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def stock_status(self) -> str:
        return "in_stock" if self.in_stock else "out_of_stock"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Record":
        """Build a record from a storage row or JSON document."""
        return cls(
            id=data["id"],
            name=str(data.get("name", "")),
            brand=str(data.get("brand") or ""),
            category=str(data.get("category") or ""),
            price=_to_float(data.get("price")),
            rating=_to_float(data.get("rating")),
            in_stock=bool(data.get("in_stock", True)),
            description=str(data.get("description") or ""),
            subcategory=data.get("subcategory"),
            tags=list(data.get("tags") or []),
            review_count=int(data.get("review_count") or 0),
            stock_quantity=int(data.get("stock_quantity") or 0),
            featured=bool(data.get("featured", False)),
            attributes=dict(data.get("attributes") or {}),
            created_at=_to_datetime(data.get("created_at")),
            updated_at=_to_datetime(data.get("updated_at")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "brand": self.brand,
            "category": self.category,
            "subcategory": self.subcategory,
            "description": self.description,
            "price": self.price,
            "rating": self.rating,
            "review_count": self.review_count,
            "in_stock": self.in_stock,
            "stock_quantity": self.stock_quantity,
            "featured": self.featured,
            "tags": list(self.tags),
            "attributes": dict(self.attributes),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


def _category_set(value: Any) -> FrozenSet[str]:
    """A lone string is one category; other values must be collections of strings."""
    if not value:
        return frozenset()
    if isinstance(value, str):
        return frozenset([value])
    if not isinstance(value, (list, tuple, set, frozenset)):
        raise InvalidRequestError(f"Filter categories must be a string or a list of strings, got {value!r}")
    if not all(isinstance(category, str) for category in value):
        raise InvalidRequestError(f"Filter categories must be strings, got {value!r}")
    return frozenset(value)


@dataclass(frozen=True)
class Filters:
    """Structured filters. Unset fields do not constrain."""
    categories: FrozenSet[str] = frozenset()
    price_min: Optional[float] = None
    price_max: Optional[float] = None
    min_rating: Optional[float] = None
    in_stock_only: bool = False

    def __post_init__(self):
        if not isinstance(self.categories, frozenset):
            object.__setattr__(self, "categories", _category_set(self.categories))

    @property
    def is_contradictory(self) -> bool:
        """Both price bounds present with lower > upper."""
        return (
            self.price_min is not None
            and self.price_max is not None
            and self.price_min > self.price_max
        )

    @property
    def is_empty(self) -> bool:
        return (
            not self.categories
            and self.price_min is None
            and self.price_max is None
            and self.min_rating is None
            and not self.in_stock_only
        )

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Filters":
        data = data or {}
        return cls(
            categories=_category_set(data.get("categories")),
            price_min=data.get("price_min"),
            price_max=data.get("price_max"),
            min_rating=data.get("min_rating"),
            in_stock_only=bool(data.get("in_stock_only", False)),
        )


@dataclass(frozen=True)
class SearchRequest:
    """A search request. ``page`` is zero-based; ``page_size`` falls back to configuration."""
    query_text: str = ""
    query_embedding: Optional[Tuple[float, ...]] = None
    filters: Filters = field(default_factory=Filters)
    sort: SortOption = SortOption.RELEVANCE
    page: int = 0
    page_size: Optional[int] = None
    mode: SearchMode = SearchMode.HYBRID

    def __post_init__(self):
        if self.query_embedding is not None and not isinstance(self.query_embedding, tuple):
            object.__setattr__(self, "query_embedding", tuple(float(v) for v in self.query_embedding))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SearchRequest":
        """Parse a transport payload; string enums are validated here."""
        embedding = data.get("query_embedding")
        return cls(
            query_text=str(data.get("query_text") or data.get("query") or ""),
            query_embedding=tuple(embedding) if embedding is not None else None,
            filters=Filters.from_dict(data.get("filters")),
            sort=SortOption.parse(data.get("sort", SortOption.RELEVANCE)),
            page=data.get("page", 0),
            page_size=data.get("page_size"),
            mode=SearchMode.parse(data.get("mode", SearchMode.HYBRID)),
        )


@dataclass(frozen=True)
class FacetCount:
    """Count of admissible records sharing one value of a categorical dimension."""
    dimension: str
    value: str
    count: int
    stats: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = {"dimension": self.dimension, "value": self.value, "count": self.count}
        if self.stats:
            data["stats"] = dict(sorted(self.stats.items()))
        return data


@dataclass(frozen=True)
class HistogramBucket:
    """Numeric bucket; ``None`` bounds are open-ended."""
    dimension: str
    min: Optional[float]
    max: Optional[float]
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"dimension": self.dimension, "min": self.min, "max": self.max, "count": self.count}


@dataclass
class FacetSummary:
    """Aggregates over the admissible set."""
    count: int = 0
    avg_price: float = 0.0
    avg_rating: float = 0.0
    min_price: Optional[float] = None
    max_price: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "avg_price": self.avg_price,
            "avg_rating": self.avg_rating,
            "min_price": self.min_price,
            "max_price": self.max_price,
        }


@dataclass
class FacetResults:
    """Facet collections computed for one request."""
    categorical: Dict[str, List[FacetCount]] = field(default_factory=dict)
    histograms: Dict[str, List[HistogramBucket]] = field(default_factory=dict)
    summary: FacetSummary = field(default_factory=FacetSummary)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "categorical": {
                dimension: [facet.to_dict() for facet in facets]
                for dimension, facets in self.categorical.items()
            },
            "histograms": {
                dimension: [bucket.to_dict() for bucket in buckets]
                for dimension, buckets in self.histograms.items()
            },
            "summary": self.summary.to_dict(),
        }


@dataclass
class ScoredRecord:
    """A record joined with its fusion scores."""
    record: Record
    lexical_score: float
    vector_score: float
    combined_score: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record": self.record.to_dict(),
            "lexical_score": self.lexical_score,
            "vector_score": self.vector_score,
            "combined_score": self.combined_score,
        }


@dataclass
class SearchResponse:
    """One page of results with the total over the full filtered set and its facets."""
    results: List[ScoredRecord]
    total_count: int
    page: int
    page_size: int
    facets: FacetResults = field(default_factory=FacetResults)

    @property
    def total_pages(self) -> int:
        return (self.total_count + self.page_size - 1) // self.page_size

    @property
    def ids(self) -> List[RecordId]:
        return [item.record.id for item in self.results]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "results": [item.to_dict() for item in self.results],
            "total_count": self.total_count,
            "page": self.page,
            "page_size": self.page_size,
            "total_pages": self.total_pages,
            "facets": self.facets.to_dict(),
        }


@dataclass
class CatalogAnalytics:
    """Dashboard-style statistics over a record collection."""
    total_records: int
    category_stats: List[FacetCount]
    rating_distribution: List[HistogramBucket]
    price_histogram: List[HistogramBucket]
    top_brands: List[FacetCount]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_records": self.total_records,
            "category_stats": [stat.to_dict() for stat in self.category_stats],
            "rating_distribution": [bucket.to_dict() for bucket in self.rating_distribution],
            "price_histogram": [bucket.to_dict() for bucket in self.price_histogram],
            "top_brands": [brand.to_dict() for brand in self.top_brands],
        }
