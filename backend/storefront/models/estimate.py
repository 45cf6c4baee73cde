from datetime import datetime, timezone
from decimal import Decimal
from typing import List

from pydantic import BaseModel, ConfigDict, Field, computed_field
from sqlmodel import SQLModel, Field as SQLField

from storefront.models.product import PriceTier


def line_key(product_id: str, tier: PriceTier) -> str:
    return f"{product_id}:{PriceTier(tier).value}"


class LineItem(BaseModel):
    """One (product, tier) line of an estimate. `total` is always derived."""

    model_config = ConfigDict(validate_assignment=True)

    product_id: str
    tier: PriceTier
    name: str
    category: str = ""
    unit_price: Decimal = Field(ge=0)
    quantity: int = Field(gt=0)

    @computed_field
    @property
    def key(self) -> str:
        return line_key(self.product_id, self.tier)

    @computed_field
    @property
    def total(self) -> Decimal:
        return self.unit_price * self.quantity


class EstimateView(BaseModel):
    session_id: str
    items: List[LineItem]
    item_count: int
    total: Decimal


class StoredEstimate(SQLModel, table=True):
    __tablename__ = "stored_estimate"

    key: str = SQLField(primary_key=True, max_length=200)
    payload: str
    updated_at: datetime = SQLField(default_factory=lambda: datetime.now(timezone.utc))
