from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from storefront.api.deps import get_catalog
from storefront.models.product import Category, PriceTier, Product
from storefront.services.catalog import SORT_OPTIONS, Catalog
from storefront.services.pricing import PriceOption

router = APIRouter()


class ProductDetail(BaseModel):
    product: Product
    options: List[PriceOption]
    default_tier: Optional[PriceTier] = None
    headline_price: Optional[Decimal] = None


@router.get("/categories", response_model=List[Category])
def list_categories(catalog: Catalog = Depends(get_catalog)):
    return catalog.categories()


@router.get("/products", response_model=List[Product])
def list_products(
    category: Optional[str] = None,
    search: Optional[str] = None,
    sort: str = Query("name"),
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    catalog: Catalog = Depends(get_catalog),
):
    if sort not in SORT_OPTIONS:
        raise HTTPException(status_code=400, detail=f"sort must be one of {', '.join(SORT_OPTIONS)}")
    return catalog.search(category=category, term=search, sort=sort, min_price=min_price, max_price=max_price)


@router.get("/products/{product_id}", response_model=ProductDetail)
def get_product(product_id: str, catalog: Catalog = Depends(get_catalog)):
    product = catalog.get_product(product_id)
    if product is None:
        raise HTTPException(status_code=404, detail="product not found")
    pricing = catalog.pricing
    return ProductDetail(
        product=product,
        options=pricing.options(product),
        default_tier=pricing.default_tier(product),
        headline_price=pricing.headline_price(product),
    )
