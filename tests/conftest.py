"""Shared fixtures: a small, fixed product catalog."""

from datetime import datetime

import pytest

from retrieval_fusion.models.core import Record


CATALOG_ROWS = [
    # id, name, brand, category, price, rating, in_stock, created_at
    (1, "Wireless Noise Cancelling Headphones", "Sonic", "electronics", 199.99, 4.6, True, "2024-03-01T10:00:00"),
    (2, "Bluetooth Speaker Mini", "Sonic", "electronics", 49.50, 4.1, True, "2024-02-11T09:30:00"),
    (3, "Wired Studio Headphones", "Acoustix", "electronics", 89.00, 4.4, False, "2023-11-20T12:00:00"),
    (4, "Mechanical Keyboard", "Keyforge", "electronics", 120.00, 4.7, True, "2024-01-05T08:00:00"),
    (5, "Python Cookbook", "Paperleaf", "books", 39.99, 4.8, True, "2022-06-15T00:00:00"),
    (6, "Distributed Systems Primer", "Paperleaf", "books", 54.00, 4.2, True, None),
    (7, "Cast Iron Skillet", "Hearth", "home", 34.95, 4.9, True, "2023-09-09T09:09:00"),
    (8, "Ceramic Coffee Mug Set", "Hearth", "home", 24.00, 3.9, False, "2023-12-24T18:00:00"),
    (9, "Standing Desk Frame", "Ergonomix", "home", 310.00, 4.3, True, "2024-04-02T14:00:00"),
    (10, "Noise Cancelling Earbuds", "Sonic", "electronics", 149.00, 3.7, True, "2024-05-20T16:45:00"),
    (11, "Headphone Stand", "Ergonomix", "electronics", 19.99, 4.0, True, None),
    (12, "Science Fiction Anthology", "Paperleaf", "books", 15.00, 3.5, False, "2021-01-01T00:00:00"),
]


def make_catalog():
    records = []
    for record_id, name, brand, category, price, rating, in_stock, created_at in CATALOG_ROWS:
        records.append(Record(
            id=record_id,
            name=name,
            brand=brand,
            category=category,
            price=price,
            rating=rating,
            in_stock=in_stock,
            description=f"{name} by {brand}",
            tags=[category],
            created_at=datetime.fromisoformat(created_at) if created_at else None,
        ))
    return records


@pytest.fixture
def catalog():
    """Twelve records across three categories."""
    return make_catalog()


@pytest.fixture
def catalog_by_id(catalog):
    return {record.id: record for record in catalog}
