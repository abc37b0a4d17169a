"""Score normalization and fusion of the lexical and vector candidate lists."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import numpy as np

from ..models.core import (
    CandidateList, FusedResult, FusionStrategyType, RecordId, SearchMode, id_sort_key
)


logger = logging.getLogger(__name__)


class ScoreNormalizer:
    """Puts engine-local scores on a common footing so the two sources can be blended."""

    METHODS = ("divisor", "min_max")

    def __init__(self, lexical_method: str = "divisor", lexical_divisor: float = 1.0):
        """Initialize the score normalizer.

        Args:
            lexical_method: ``divisor`` (scale by a fixed divisor, keeping the
                engine order; negative scores floor at 0) or
                ``min_max`` (rescale over the candidate pool)
            lexical_divisor: Divisor applied to raw lexical scores
        """
        if lexical_method not in self.METHODS:
            raise ValueError(f"Unknown lexical normalization method '{lexical_method}'")
        if lexical_divisor <= 0:
            raise ValueError("lexical_divisor must be positive")

        self.lexical_method = lexical_method
        self.lexical_divisor = lexical_divisor

    def normalize_lexical(self, candidates: Optional[CandidateList]) -> Dict[RecordId, float]:
        if not candidates:
            return {}

        scores = np.array([result.score for result in candidates.results], dtype=np.float64)
        if self.lexical_method == "min_max":
            normalized = self._min_max_normalize(scores)
        else:
            # No upper bound: BM25-style scores above the divisor keep their order
            normalized = np.maximum(scores / self.lexical_divisor, 0.0)

        return {result.id: float(normalized[i]) for i, result in enumerate(candidates.results)}

    def normalize_vector(self, candidates: Optional[CandidateList]) -> Dict[RecordId, float]:
        if not candidates:
            return {}

        scores = np.array([result.score for result in candidates.results], dtype=np.float64)
        normalized = np.clip(scores, 0.0, 1.0)
        return {result.id: float(normalized[i]) for i, result in enumerate(candidates.results)}

    def _min_max_normalize(self, scores: np.ndarray) -> np.ndarray:
        """Apply min-max normalization to scores."""
        if len(scores) <= 1:
            return np.ones_like(scores)

        min_score = np.min(scores)
        max_score = np.max(scores)

        if max_score == min_score:
            return np.ones_like(scores)

        return (scores - min_score) / (max_score - min_score)


class FusionStrategy(ABC):
    """A named rule for turning per-source evidence into one combined score."""

    strategy_type: FusionStrategyType

    @abstractmethod
    def combine(self, lexical_score: float, vector_score: float,
                lexical_rank: Optional[int], vector_rank: Optional[int]) -> float:
        """Combined score for one candidate. Ranks are 1-based, ``None`` when absent."""

    @abstractmethod
    def describe(self) -> Dict[str, Any]:
        pass


class WeightedLinearFusion(FusionStrategy):
    """``lexical * w_lex + vector * w_vec``; a missing side contributes 0."""

    strategy_type = FusionStrategyType.WEIGHTED

    def __init__(self, lexical_weight: float = 0.3, vector_weight: float = 0.7):
        if lexical_weight < 0 or vector_weight < 0:
            raise ValueError("Fusion weights must be non-negative")
        self.lexical_weight = lexical_weight
        self.vector_weight = vector_weight

    def combine(self, lexical_score: float, vector_score: float,
                lexical_rank: Optional[int], vector_rank: Optional[int]) -> float:
        return lexical_score * self.lexical_weight + vector_score * self.vector_weight

    def describe(self) -> Dict[str, Any]:
        return {
            "strategy": self.strategy_type.value,
            "lexical_weight": self.lexical_weight,
            "vector_weight": self.vector_weight
        }


class ReciprocalRankFusion(FusionStrategy):
    """``1/(k + lexical_rank) + 1/(k + vector_rank)``.

    An id missing from a list is given ``sentinel_rank`` for that list, so it is
    penalized but never dropped.
    """

    strategy_type = FusionStrategyType.RRF

    def __init__(self, k: int = 60, sentinel_rank: int = 101):
        if k < 0:
            raise ValueError("RRF constant k must be non-negative")
        if sentinel_rank < 1:
            raise ValueError("sentinel_rank must be at least 1")
        self.k = k
        self.sentinel_rank = sentinel_rank

    def combine(self, lexical_score: float, vector_score: float,
                lexical_rank: Optional[int], vector_rank: Optional[int]) -> float:
        lexical_rank = lexical_rank if lexical_rank is not None else self.sentinel_rank
        vector_rank = vector_rank if vector_rank is not None else self.sentinel_rank
        return 1.0 / (self.k + lexical_rank) + 1.0 / (self.k + vector_rank)

    def describe(self) -> Dict[str, Any]:
        return {
            "strategy": self.strategy_type.value,
            "k": self.k,
            "sentinel_rank": self.sentinel_rank
        }


def create_fusion_strategy(strategy: Any = FusionStrategyType.WEIGHTED,
                           lexical_weight: float = 0.3, vector_weight: float = 0.7,
                           rrf_k: int = 60, pool_depth: int = 100) -> FusionStrategy:
    """Build the strategy named by ``strategy`` (enum member or string)."""
    strategy_type = FusionStrategyType.parse(strategy)
    if strategy_type is FusionStrategyType.RRF:
        return ReciprocalRankFusion(k=rrf_k, sentinel_rank=pool_depth + 1)
    return WeightedLinearFusion(lexical_weight, vector_weight)


class FusionEngine:
    """Merges the lexical and vector candidate lists into one ordered union."""

    def __init__(self, strategy: Optional[FusionStrategy] = None,
                 normalizer: Optional[ScoreNormalizer] = None):
        self.strategy = strategy or WeightedLinearFusion()
        self.normalizer = normalizer or ScoreNormalizer()

    @classmethod
    def from_config(cls, fusion_config: Dict[str, Any], pool_depth: int = 100) -> "FusionEngine":
        """Build an engine from the ``fusion`` configuration section."""
        strategy = create_fusion_strategy(
            fusion_config.get("strategy", "weighted"),
            lexical_weight=float(fusion_config.get("lexical_weight", 0.3)),
            vector_weight=float(fusion_config.get("vector_weight", 0.7)),
            rrf_k=int(fusion_config.get("rrf_k", 60)),
            pool_depth=pool_depth
        )
        normalizer = ScoreNormalizer(
            lexical_method=fusion_config.get("lexical_normalization", "divisor"),
            lexical_divisor=float(fusion_config.get("lexical_score_divisor", 1.0))
        )
        return cls(strategy, normalizer)

    def fuse(self, lexical: Optional[CandidateList], vector: Optional[CandidateList],
             mode: SearchMode = SearchMode.HYBRID) -> List[FusedResult]:
        """Fuse both candidate lists.

        Every id present in either list appears exactly once. Results are
        ordered by combined score descending, then id ascending.

        Args:
            lexical: Lexical candidates, or None if the source was not consulted
            vector: Vector candidates, or None if the source was not consulted
            mode: LEXICAL and VECTOR modes use that side's normalized score as
                the combined score; HYBRID applies the strategy

        Returns:
            Ordered list of FusedResult
        """
        lexical_scores = self.normalizer.normalize_lexical(lexical)
        vector_scores = self.normalizer.normalize_vector(vector)
        lexical_ranks = self._ranks(lexical)
        vector_ranks = self._ranks(vector)

        union: List[RecordId] = list(lexical_scores)
        union.extend(rid for rid in vector_scores if rid not in lexical_scores)

        fused = []
        for record_id in union:
            lexical_score = lexical_scores.get(record_id, 0.0)
            vector_score = vector_scores.get(record_id, 0.0)
            lexical_rank = lexical_ranks.get(record_id)
            vector_rank = vector_ranks.get(record_id)

            if mode is SearchMode.LEXICAL:
                combined = lexical_score
            elif mode is SearchMode.VECTOR:
                combined = vector_score
            else:
                combined = self.strategy.combine(lexical_score, vector_score, lexical_rank, vector_rank)

            fused.append(FusedResult(
                id=record_id,
                lexical_score=lexical_score,
                vector_score=vector_score,
                combined_score=combined,
                lexical_rank=lexical_rank,
                vector_rank=vector_rank
            ))

        fused.sort(key=lambda result: (-result.combined_score, id_sort_key(result.id)))

        logger.debug(
            f"Fused {len(lexical_scores)} lexical and {len(vector_scores)} vector candidates "
            f"into {len(fused)} results ({self.strategy.strategy_type.value}, mode={mode.value})"
        )
        return fused

    @staticmethod
    def _ranks(candidates: Optional[CandidateList]) -> Dict[RecordId, int]:
        if not candidates:
            return {}
        ranks = {}
        for position, result in enumerate(candidates.results, start=1):
            ranks.setdefault(result.id, position)
        return ranks
