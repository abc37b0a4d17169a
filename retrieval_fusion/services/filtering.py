"""Structured filter evaluation over fused candidates."""

import logging
from typing import Dict, List, Mapping

from ..models.core import Filters, FusedResult, Record, RecordId, ScoredRecord


logger = logging.getLogger(__name__)


class FilterEvaluator:
    """Admits or rejects fused candidates by their records. Never re-scores.

    Dimensions combine with AND, the category set with OR, numeric bounds are
    inclusive. Ids without a record are dropped silently.
    """

    def matches(self, record: Record, filters: Filters) -> bool:
        if filters.categories and record.category not in filters.categories:
            return False
        if filters.price_min is not None and record.price < filters.price_min:
            return False
        if filters.price_max is not None and record.price > filters.price_max:
            return False
        if filters.min_rating is not None and record.rating < filters.min_rating:
            return False
        if filters.in_stock_only and not record.in_stock:
            return False
        return True

    def apply(self, fused: List[FusedResult], records: Mapping[RecordId, Record],
              filters: Filters) -> List[ScoredRecord]:
        """Keep the fused candidates whose records pass ``filters``, in fused order.

        Args:
            fused: Fused candidates
            records: Records resolved for the fused ids
            filters: Request filters

        Returns:
            Admissible candidates joined with their records
        """
        if filters.is_contradictory:
            logger.debug(
                f"Contradictory price bounds {filters.price_min} > {filters.price_max}, "
                f"nothing is admissible"
            )
            return []

        admissible = []
        stale = 0
        for result in fused:
            record = records.get(result.id)
            if record is None:
                stale += 1
                continue
            if not self.matches(record, filters):
                continue
            admissible.append(ScoredRecord(
                record=record,
                lexical_score=result.lexical_score,
                vector_score=result.vector_score,
                combined_score=result.combined_score
            ))

        if stale:
            logger.debug(f"Dropped {stale} fused ids with no stored record")
        logger.debug(f"Filters admitted {len(admissible)}/{len(fused)} candidates")
        return admissible

    def describe(self, filters: Filters) -> Dict[str, object]:
        """Active constraints of ``filters``, for logging."""
        active = {}
        if filters.categories:
            active["categories"] = sorted(filters.categories)
        for name in ("price_min", "price_max", "min_rating"):
            value = getattr(filters, name)
            if value is not None:
                active[name] = value
        if filters.in_stock_only:
            active["in_stock_only"] = True
        return active
