"""Deterministic ordering and page slicing of the admissible set."""

import logging
from typing import Any, Callable, Dict, List, Tuple

from ..models.core import ScoredRecord, SortOption, id_sort_key


logger = logging.getLogger(__name__)


def _newest_key(item: ScoredRecord) -> Tuple[Any, ...]:
    created_at = item.record.created_at
    # Records without a timestamp go last
    if created_at is None:
        return (1, 0.0, id_sort_key(item.record.id))
    return (0, -created_at.timestamp(), id_sort_key(item.record.id))


SORT_KEYS: Dict[SortOption, Callable[[ScoredRecord], Tuple[Any, ...]]] = {
    SortOption.RELEVANCE: lambda item: (-item.combined_score, id_sort_key(item.record.id)),
    SortOption.PRICE_ASC: lambda item: (item.record.price, id_sort_key(item.record.id)),
    SortOption.PRICE_DESC: lambda item: (-item.record.price, id_sort_key(item.record.id)),
    SortOption.RATING_DESC: lambda item: (-item.record.rating, id_sort_key(item.record.id)),
    SortOption.NEWEST: _newest_key,
}


class SortPaginationController:
    """Sorts the whole admissible set, then slices one page.

    Every sort key ends with the record id, so the full ordering is total and
    consecutive pages never overlap or leave gaps.
    """

    def sort(self, items: List[ScoredRecord], sort: SortOption = SortOption.RELEVANCE) -> List[ScoredRecord]:
        return sorted(items, key=SORT_KEYS[sort])

    def paginate(self, items: List[ScoredRecord], sort: SortOption,
                 page: int, page_size: int) -> Tuple[List[ScoredRecord], int]:
        """Return the requested page and the total admissible count.

        Args:
            items: Admissible candidates in any order
            sort: Sort option
            page: Zero-based page number
            page_size: Page size, at least 1

        Returns:
            Tuple of (page items, total count). A page past the end is empty.
        """
        ordered = self.sort(items, sort)
        start = page * page_size
        page_items = ordered[start:start + page_size]

        logger.debug(
            f"Page {page} (size {page_size}, sort {sort.value}): "
            f"{len(page_items)} of {len(ordered)} items"
        )
        return page_items, len(ordered)
