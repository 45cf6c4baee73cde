"""Catalog reads from the hosted Supabase (PostgREST) views."""

from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional
import logging
import os
import time

import requests

from storefront.data.products import static_products
from storefront.models.product import Category, Product
from storefront.services.pricing import PricingCatalog

logger = logging.getLogger(__name__)

SUPABASE_URL = (os.getenv("SUPABASE_URL") or "").strip()
SUPABASE_ANON_KEY = (os.getenv("SUPABASE_ANON_KEY") or "").strip()
CATALOG_MAX_RETRIES = int(os.getenv("CATALOG_MAX_RETRIES", "2"))
CATALOG_RETRY_AFTER = float(os.getenv("CATALOG_RETRY_AFTER", "30"))

PRODUCTS_VIEW = "v_productos_publicos"
CATEGORIES_VIEW = "v_categorias"
PRODUCT_COLUMNS = "id,nombre,categoria,precio_unidad,precio_pieza,precio_gramo,precio_media_onza,precio_onza,cantidad_disponible,disponible"

ALL_CATEGORIES = "all"
SUGGESTED_CATEGORY = "sugeridos"
SUGGESTED_LIMIT = 8
SORT_OPTIONS = ("name", "price-low", "price-high")


class CatalogUnavailable(Exception):
    """The hosted catalog could not be read."""


class CatalogRepository:
    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        max_retries: int = CATALOG_MAX_RETRIES,
        timeout: float = 5.0,
    ):
        self.base_url = (base_url if base_url is not None else SUPABASE_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else SUPABASE_ANON_KEY
        self.max_retries = max(1, max_retries)
        self.timeout = timeout
        logger.debug("CatalogRepository initialized with url=%s max_retries=%s", self.base_url, self.max_retries)

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.api_key)

    def _get(self, view: str, params: Dict[str, str]) -> List[Dict[str, Any]]:
        if not self.configured:
            raise CatalogUnavailable("SUPABASE_URL / SUPABASE_ANON_KEY not configured")

        url = f"{self.base_url}/rest/v1/{view}"
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
        }
        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_retries + 1):
            try:
                logger.debug("Fetching catalog attempt=%s url=%s params=%s", attempt, url, params)
                resp = requests.get(url, params=params, headers=headers, timeout=self.timeout)
                resp.raise_for_status()
                data = resp.json()
                if not isinstance(data, list):
                    raise ValueError(f"expected a JSON list from {view}, got {type(data).__name__}")
                return data
            except (requests.RequestException, ValueError) as e:
                last_error = e
                logger.warning("Attempt %s url=%s: failed to read catalog: %s", attempt, url, e)
            if attempt < self.max_retries:
                time.sleep(0.5 * attempt)
        raise CatalogUnavailable(f"{view}: {last_error}")

    def fetch_categories(self) -> List[Category]:
        rows = self._get(CATEGORIES_VIEW, {
            "select": "categoria,productos_activos,stock_total",
            "order": "categoria",
        })
        return [Category.from_row(r) for r in rows if (r.get("categoria") or "").strip()]

    def fetch_products(self, category: Optional[str] = None) -> List[Product]:
        params = {"select": PRODUCT_COLUMNS, "order": "nombre.asc"}
        if category and category.strip():
            params["categoria"] = f"eq.{category.strip()}"
        rows = self._get(PRODUCTS_VIEW, params)
        products = []
        for row in rows:
            try:
                products.append(Product.from_row(row))
            except (KeyError, ValueError) as e:
                logger.warning("Skipping malformed product row id=%s: %s", row.get("id"), e)
        return products

    def fetch_product(self, product_id: str) -> Optional[Product]:
        rows = self._get(PRODUCTS_VIEW, {"select": PRODUCT_COLUMNS, "id": f"eq.{product_id}", "limit": "1"})
        for row in rows:
            if str(row.get("id")) != str(product_id):
                continue
            try:
                return Product.from_row(row)
            except (KeyError, ValueError) as e:
                logger.warning("Malformed product row id=%s: %s", product_id, e)
        return None


class Catalog:
    """Catalog queries that fall back to the built-in product list.

    After a failed read the hosted catalog is skipped for `retry_after`
    seconds so requests do not each pay the retry back-off.
    """

    def __init__(
        self,
        repository: Optional[CatalogRepository] = None,
        pricing: Optional[PricingCatalog] = None,
        fallback: Callable[[], List[Product]] = static_products,
        retry_after: float = CATALOG_RETRY_AFTER,
    ):
        self.repository = repository or CatalogRepository()
        self.pricing = pricing or PricingCatalog()
        self._fallback = fallback
        self.retry_after = retry_after
        self._offline_until = 0.0

    def _remote(self, fetch: Callable[[], Any]) -> Any:
        if time.monotonic() < self._offline_until:
            raise CatalogUnavailable("hosted catalog recently failed")
        try:
            return fetch()
        except CatalogUnavailable:
            self._offline_until = time.monotonic() + self.retry_after
            raise

    def _static(self, category: Optional[str] = None) -> List[Product]:
        products = sorted(self._fallback(), key=lambda p: p.name)
        if category and category.strip():
            products = [p for p in products if p.category == category.strip()]
        return products

    def products(self, category: Optional[str] = None) -> List[Product]:
        try:
            return self._remote(lambda: self.repository.fetch_products(category))
        except CatalogUnavailable as e:
            logger.warning("Catalog unavailable, serving built-in products: %s", e)
            return self._static(category)

    def categories(self) -> List[Category]:
        try:
            return self._remote(self.repository.fetch_categories)
        except CatalogUnavailable as e:
            logger.warning("Catalog unavailable, serving built-in categories: %s", e)

        counts: Dict[str, Category] = {}
        for p in self._static():
            cat = counts.setdefault(p.category, Category(name=p.category))
            if p.available:
                cat.active_products += 1
            cat.total_stock += p.stock or 0
        return [counts[name] for name in sorted(counts)]

    def get_product(self, product_id: str) -> Optional[Product]:
        try:
            return self._remote(lambda: self.repository.fetch_product(product_id))
        except CatalogUnavailable as e:
            logger.warning("Catalog unavailable, looking up built-in product: %s", e)
        for p in self._static():
            if p.id == str(product_id):
                return p
        return None

    def search(
        self,
        category: Optional[str] = None,
        term: Optional[str] = None,
        sort: str = "name",
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
    ) -> List[Product]:
        """Products for a catalog page.

        `all` and `sugeridos` are pseudo-categories: the latter keeps the first
        products of the unfiltered list. Price filters use the headline price,
        unpriced products count as 0.
        """
        category = (category or "").strip()
        if category in ("", ALL_CATEGORIES, SUGGESTED_CATEGORY):
            products = self.products()
        else:
            products = self.products(category)

        if term and term.strip():
            needle = term.strip().lower()
            products = [p for p in products if needle in p.name.lower()]

        if category == SUGGESTED_CATEGORY:
            products = products[:SUGGESTED_LIMIT]

        def price_of(p: Product) -> Decimal:
            price = self.pricing.headline_price(p)
            return price if price is not None else Decimal(0)

        if min_price is not None:
            products = [p for p in products if price_of(p) >= min_price]
        if max_price is not None:
            products = [p for p in products if price_of(p) <= max_price]

        if sort == "price-low":
            products = sorted(products, key=price_of)
        elif sort == "price-high":
            products = sorted(products, key=price_of, reverse=True)
        else:
            products = sorted(products, key=lambda p: p.name.lower())
        return products
