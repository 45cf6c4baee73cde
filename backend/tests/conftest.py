"""Shared fixtures."""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from storefront.main import create_app
from storefront.models.product import PriceTier, Product
from storefront.services.catalog import Catalog, CatalogRepository
from storefront.services.ledger import EstimateLedger
from storefront.services.store import MemoryBlobStore


@pytest.fixture
def store():
    return MemoryBlobStore()


@pytest.fixture
def ledger(store):
    return EstimateLedger(store, "test_cart:s1")


@pytest.fixture
def flower():
    return Product(
        id="A",
        name="Gorila Rainbow",
        category="Flores",
        prices={
            PriceTier.GRAM: Decimal("120"),
            PriceTier.OUNCE: Decimal("1700"),
            PriceTier.HALF_OUNCE: Decimal("950"),
        },
    )


@pytest.fixture
def offline_catalog():
    """Catalog with no hosted database configured: always serves built-in products."""
    return Catalog(repository=CatalogRepository(base_url="", api_key="", max_retries=1))


@pytest.fixture
def client(store, offline_catalog):
    app = create_app(store=store, catalog_service=offline_catalog)
    with TestClient(app) as c:
        yield c
