from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class PriceTier(str, Enum):
    UNIT = "unit"
    PIECE = "piece"
    GRAM = "gram"
    HALF_OUNCE = "half-ounce"
    OUNCE = "ounce"


# Column names of the public products view
PRICE_COLUMNS = {
    "precio_unidad": PriceTier.UNIT,
    "precio_pieza": PriceTier.PIECE,
    "precio_gramo": PriceTier.GRAM,
    "precio_media_onza": PriceTier.HALF_OUNCE,
    "precio_onza": PriceTier.OUNCE,
}


def _to_price(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not price.is_finite():
        return None
    return price


class Product(BaseModel):
    id: str
    name: str
    category: str = ""
    prices: Dict[PriceTier, Decimal] = Field(default_factory=dict)
    available: bool = True
    stock: Optional[int] = None
    photo_url: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Product":
        """Build a product from a row of `v_productos_publicos`.

        Prices that are null or not numeric are left out of `prices`.
        """
        prices: Dict[PriceTier, Decimal] = {}
        for column, tier in PRICE_COLUMNS.items():
            price = _to_price(row.get(column))
            if price is not None:
                prices[tier] = price

        stock = row.get("cantidad_disponible")
        try:
            stock = int(stock) if stock is not None else None
        except (TypeError, ValueError):
            stock = None

        available = row.get("disponible")
        return cls(
            id=str(row["id"]),
            name=row.get("nombre") or "",
            category=(row.get("categoria") or "").strip(),
            prices=prices,
            available=True if available is None else bool(available),
            stock=stock,
            photo_url=row.get("foto_url"),
        )


class Category(BaseModel):
    name: str
    active_products: int = 0
    total_stock: int = 0

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Category":
        return cls(
            name=(row.get("categoria") or "").strip(),
            active_products=int(row.get("productos_activos") or 0),
            total_stock=int(row.get("stock_total") or 0),
        )
