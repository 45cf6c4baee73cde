from decimal import Decimal
from typing import Iterable, List, Optional

from pydantic import BaseModel

from storefront.models.product import PriceTier, Product


class PriceOption(BaseModel):
    tier: PriceTier
    label: str
    price: Decimal


class PricingCatalog:
    """Resolves the purchase options of a product.

    Rules:
    - flower-like categories are matched case-insensitively after trimming
    - weight tiers (gram, ounce, half-ounce) are exposed only for flower-like
      products that have no positive unit or piece price
    - every other product exposes unit and piece
    - tiers with a missing, zero or negative price are never offered
    """

    FLOWER_CATEGORIES = frozenset({"flores", "flor"})

    WEIGHT_TIERS = (PriceTier.GRAM, PriceTier.OUNCE, PriceTier.HALF_OUNCE)
    COUNT_TIERS = (PriceTier.UNIT, PriceTier.PIECE)

    # card price preference, differs from the option order
    WEIGHT_HEADLINE = (PriceTier.OUNCE, PriceTier.HALF_OUNCE, PriceTier.GRAM)

    LABELS = {
        PriceTier.GRAM: "Gramo",
        PriceTier.OUNCE: "Onza",
        PriceTier.HALF_OUNCE: "Media Onza",
        PriceTier.UNIT: "Unidad",
        PriceTier.PIECE: "Pieza",
    }

    def __init__(self, flower_categories: Optional[Iterable[str]] = None):
        if flower_categories is not None:
            self.flower_categories = frozenset(c.strip().lower() for c in flower_categories)
        else:
            self.flower_categories = self.FLOWER_CATEGORIES

    def is_flower(self, category: Optional[str]) -> bool:
        return (category or "").strip().lower() in self.flower_categories

    def unit_price(self, product: Product, tier: PriceTier) -> Decimal:
        price = product.prices.get(PriceTier(tier))
        return price if price is not None else Decimal(0)

    def _has_price(self, product: Product, tier: PriceTier) -> bool:
        return self.unit_price(product, tier) > 0

    def shows_weight_tiers(self, product: Product) -> bool:
        if not self.is_flower(product.category):
            return False
        return not any(self._has_price(product, t) for t in self.COUNT_TIERS)

    def _tiers(self, product: Product):
        return self.WEIGHT_TIERS if self.shows_weight_tiers(product) else self.COUNT_TIERS

    def options(self, product: Product) -> List[PriceOption]:
        return [
            PriceOption(tier=t, label=self.LABELS[t], price=self.unit_price(product, t))
            for t in self._tiers(product)
            if self._has_price(product, t)
        ]

    def is_offered(self, product: Product, tier: PriceTier) -> bool:
        return PriceTier(tier) in self._tiers(product) and self._has_price(product, tier)

    def default_tier(self, product: Product) -> Optional[PriceTier]:
        options = self.options(product)
        return options[0].tier if options else None

    def headline_price(self, product: Product) -> Optional[Decimal]:
        preference = self.WEIGHT_HEADLINE if self.shows_weight_tiers(product) else self.COUNT_TIERS
        for tier in preference:
            if self._has_price(product, tier):
                return self.unit_price(product, tier)
        return None

    @staticmethod
    def quantity_to_add(tier: PriceTier, requested: int) -> int:
        # only grams are bought in arbitrary amounts; other tiers add one unit per action
        return requested if PriceTier(tier) == PriceTier.GRAM else 1
