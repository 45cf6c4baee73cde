"""Tests for the Supabase catalog repository and its fallback."""

from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
import requests

from storefront.models.product import PriceTier, Product
from storefront.services.catalog import Catalog, CatalogRepository, CatalogUnavailable


ROWS = [
    {
        "id": 10,
        "nombre": "Lemon Haze",
        "categoria": "Flores",
        "precio_unidad": None,
        "precio_gramo": 130,
        "precio_media_onza": 1800,
        "precio_onza": 3300,
        "cantidad_disponible": 12,
        "disponible": True,
    },
    {
        "id": 11,
        "nombre": "Bong Mini",
        "categoria": "parafernalia",
        "precio_unidad": "450.00",
        "precio_gramo": None,
        "disponible": True,
    },
]


def _response(payload, status=200):
    resp = MagicMock()
    resp.json.return_value = payload
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status} error")
    return resp


@pytest.fixture
def repo():
    return CatalogRepository(base_url="https://example.supabase.co/", api_key="anon", max_retries=1)


def test_fetch_products_maps_columns(repo):
    with patch("storefront.services.catalog.requests.get", return_value=_response(ROWS)) as get:
        products = repo.fetch_products()

    assert [p.id for p in products] == ["10", "11"]
    lemon = products[0]
    assert lemon.prices == {
        PriceTier.GRAM: Decimal("130"),
        PriceTier.HALF_OUNCE: Decimal("1800"),
        PriceTier.OUNCE: Decimal("3300"),
    }
    assert lemon.stock == 12
    assert products[1].prices[PriceTier.UNIT] == Decimal("450.00")

    url = get.call_args.args[0]
    kwargs = get.call_args.kwargs
    assert url == "https://example.supabase.co/rest/v1/v_productos_publicos"
    assert kwargs["headers"]["apikey"] == "anon"
    assert kwargs["headers"]["Authorization"] == "Bearer anon"
    assert kwargs["params"]["order"] == "nombre.asc"
    assert "categoria" not in kwargs["params"]


def test_fetch_products_filters_by_category(repo):
    with patch("storefront.services.catalog.requests.get", return_value=_response([])) as get:
        repo.fetch_products(" Flores ")
    assert get.call_args.kwargs["params"]["categoria"] == "eq.Flores"


def test_fetch_categories(repo):
    rows = [
        {"categoria": "Flores", "productos_activos": 3, "stock_total": 40},
        {"categoria": "", "productos_activos": 1, "stock_total": 1},
    ]
    with patch("storefront.services.catalog.requests.get", return_value=_response(rows)):
        categories = repo.fetch_categories()
    assert [(c.name, c.active_products, c.total_stock) for c in categories] == [("Flores", 3, 40)]


def test_unconfigured_repository_raises():
    repo = CatalogRepository(base_url="", api_key="")
    with pytest.raises(CatalogUnavailable):
        repo.fetch_products()


def test_http_error_raises_after_retries():
    repo = CatalogRepository(base_url="https://x.supabase.co", api_key="k", max_retries=2)
    with patch("storefront.services.catalog.requests.get", return_value=_response({}, status=503)) as get, \
            patch("storefront.services.catalog.time.sleep") as sleep:
        with pytest.raises(CatalogUnavailable):
            repo.fetch_products()
    assert get.call_count == 2
    sleep.assert_called_once_with(0.5)


def test_retry_succeeds_on_second_attempt():
    repo = CatalogRepository(base_url="https://x.supabase.co", api_key="k", max_retries=3)
    responses = [requests.ConnectionError("boom"), _response(ROWS)]
    with patch("storefront.services.catalog.requests.get", side_effect=responses), \
            patch("storefront.services.catalog.time.sleep"):
        products = repo.fetch_products()
    assert len(products) == 2


def test_non_list_payload_is_unavailable(repo):
    with patch("storefront.services.catalog.requests.get", return_value=_response({"message": "nope"})):
        with pytest.raises(CatalogUnavailable):
            repo.fetch_products()


def test_catalog_falls_back_to_static_products(offline_catalog):
    products = offline_catalog.products()
    assert len(products) == 7
    assert [p.name for p in products] == sorted(p.name for p in products)

    flores = offline_catalog.products("flores")
    assert {p.category for p in flores} == {"flores"}


def test_catalog_falls_back_to_static_categories(offline_catalog):
    categories = {c.name: c for c in offline_catalog.categories()}
    assert set(categories) == {"flores", "pre-rolls", "parafernalia"}
    # OG Kush is sold out
    assert categories["flores"].active_products == 3


def test_catalog_uses_repository_when_available(repo):
    catalog = Catalog(repository=repo)
    with patch("storefront.services.catalog.requests.get", return_value=_response(ROWS)):
        assert catalog.get_product("11").name == "Bong Mini"


def test_get_product_unknown(offline_catalog):
    assert offline_catalog.get_product("999") is None


def test_search_by_term_and_sort(offline_catalog):
    assert [p.name for p in offline_catalog.search(term="HAZE")] == ["Purple Haze"]

    low = offline_catalog.search(category="parafernalia", sort="price-low")
    assert [p.name for p in low] == ["Papel Rizla Silver", "Grinder Glass Pro"]

    high = offline_catalog.search(category="flores", sort="price-high")
    assert high[0].name == "OG Kush"


def test_search_price_range_uses_headline_price(offline_catalog):
    cheap = offline_catalog.search(category="all", max_price=Decimal("100"))
    assert {p.name for p in cheap} == {"Pre-Roll Premium Mix", "Grinder Glass Pro", "Papel Rizla Silver"}

    pricey = offline_catalog.search(min_price=Decimal("3000"))
    assert {p.name for p in pricey} == {"Gorila Rainbow", "OG Kush", "White Widow"}


def test_suggested_keeps_first_products():
    many = [Product(id=str(i), name=f"P{i:02d}", category="x", prices={PriceTier.UNIT: Decimal(1)}) for i in range(12)]
    catalog = Catalog(repository=CatalogRepository(base_url="", api_key=""), fallback=lambda: many)
    assert len(catalog.search(category="sugeridos")) == 8
    assert len(catalog.search(category="all")) == 12


def test_fetch_product_queries_by_id(repo):
    with patch("storefront.services.catalog.requests.get", return_value=_response(ROWS[1:])) as get:
        product = repo.fetch_product("11")
    assert product.name == "Bong Mini"
    params = get.call_args.kwargs["params"]
    assert params["id"] == "eq.11"
    assert params["limit"] == "1"


def test_fetch_product_unknown_id(repo):
    with patch("storefront.services.catalog.requests.get", return_value=_response([])):
        assert repo.fetch_product("404") is None


def test_failed_catalog_is_skipped_until_retry_window_passes(repo):
    catalog = Catalog(repository=repo, retry_after=60)
    with patch("storefront.services.catalog.requests.get", side_effect=requests.ConnectionError("down")) as get:
        assert catalog.get_product("1").name == "Gorila Rainbow"
        assert catalog.get_product("2").name == "Purple Haze"
        assert len(catalog.products()) == 7
    assert get.call_count == 1


def test_catalog_retries_network_after_window(repo):
    catalog = Catalog(repository=repo, retry_after=0)
    with patch("storefront.services.catalog.requests.get", side_effect=requests.ConnectionError("down")):
        catalog.products()
    with patch("storefront.services.catalog.requests.get", return_value=_response(ROWS)):
        assert [p.id for p in catalog.products()] == ["10", "11"]
