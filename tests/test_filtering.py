"""Tests for the filter predicate evaluator."""

import pytest

from retrieval_fusion.models.core import Filters, FusedResult
from retrieval_fusion.services.filtering import FilterEvaluator


def fused_for(ids):
    return [
        FusedResult(id=record_id, lexical_score=0.5, vector_score=0.5, combined_score=1.0 - i / 100)
        for i, record_id in enumerate(ids)
    ]


class TestFilterEvaluator:
    """Test cases for FilterEvaluator."""

    def setup_method(self):
        self.evaluator = FilterEvaluator()

    def test_no_constraints_admits_everything(self, catalog_by_id):
        fused = fused_for(sorted(catalog_by_id))

        admitted = self.evaluator.apply(fused, catalog_by_id, Filters())

        assert [item.record.id for item in admitted] == sorted(catalog_by_id)

    def test_category_or_within_set(self, catalog_by_id):
        filters = Filters(categories={"books", "home"})

        admitted = self.evaluator.apply(fused_for(sorted(catalog_by_id)), catalog_by_id, filters)

        assert {item.record.category for item in admitted} == {"books", "home"}
        assert len(admitted) == 6

    def test_dimensions_combine_with_and(self, catalog_by_id):
        filters = Filters(categories={"electronics"}, price_max=150.0, min_rating=4.0, in_stock_only=True)

        admitted = self.evaluator.apply(fused_for(sorted(catalog_by_id)), catalog_by_id, filters)

        # 3 is out of stock, 10 is rated 3.7, 1 costs 199.99
        assert [item.record.id for item in admitted] == [2, 4, 11]

    def test_price_bounds_are_inclusive(self, catalog_by_id):
        filters = Filters(price_min=49.50, price_max=120.00)

        admitted = self.evaluator.apply(fused_for(sorted(catalog_by_id)), catalog_by_id, filters)

        assert [item.record.id for item in admitted] == [2, 3, 4, 6]

    def test_min_rating_is_inclusive(self, catalog_by_id):
        admitted = self.evaluator.apply(
            fused_for(sorted(catalog_by_id)), catalog_by_id, Filters(min_rating=4.8)
        )

        assert [item.record.id for item in admitted] == [5, 7]

    def test_contradictory_price_bounds_admit_nothing(self, catalog_by_id):
        filters = Filters(price_min=100, price_max=50)

        assert filters.is_contradictory
        assert self.evaluator.apply(fused_for(sorted(catalog_by_id)), catalog_by_id, filters) == []

    def test_unresolvable_ids_are_dropped(self, catalog_by_id):
        fused = fused_for([1, 999, 2, "ghost"])

        admitted = self.evaluator.apply(fused, catalog_by_id, Filters())

        assert [item.record.id for item in admitted] == [1, 2]

    def test_scores_carried_through_unchanged(self, catalog_by_id):
        fused = [FusedResult(id=5, lexical_score=0.2, vector_score=0.9, combined_score=0.69)]

        admitted = self.evaluator.apply(fused, catalog_by_id, Filters())

        assert admitted[0].lexical_score == 0.2
        assert admitted[0].vector_score == 0.9
        assert admitted[0].combined_score == 0.69

    def test_preserves_fused_order(self, catalog_by_id):
        fused = fused_for([9, 3, 7, 1])

        admitted = self.evaluator.apply(fused, catalog_by_id, Filters())

        assert [item.record.id for item in admitted] == [9, 3, 7, 1]

    def test_describe_lists_active_constraints(self):
        filters = Filters(categories={"home", "books"}, price_min=10, in_stock_only=True)

        assert self.evaluator.describe(filters) == {
            "categories": ["books", "home"],
            "price_min": 10,
            "in_stock_only": True,
        }
        assert self.evaluator.describe(Filters()) == {}


class TestFiltersModel:
    """Test cases for the Filters value type."""

    def test_from_dict(self):
        filters = Filters.from_dict({"categories": ["books"], "price_max": 20, "in_stock_only": True})

        assert filters.categories == frozenset({"books"})
        assert filters.price_max == 20
        assert filters.in_stock_only is True
        assert not filters.is_empty

    @pytest.mark.parametrize("data", [None, {}])
    def test_empty(self, data):
        assert Filters.from_dict(data).is_empty
