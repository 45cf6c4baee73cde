from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel

from storefront.api.deps import get_registry
from storefront.services.contact import build_handoff
from storefront.services.ledger import LedgerRegistry

router = APIRouter()


class ContactHandoff(BaseModel):
    summary: str
    item_count: int
    total: Decimal
    telegram_url: str
    phone_url: str
    web_url: str


@router.get("/{session_id}", response_model=ContactHandoff)
def contact_handoff(
    session_id: Annotated[str, Path(min_length=1, max_length=64, pattern=r"^[A-Za-z0-9_-]+$")],
    registry: LedgerRegistry = Depends(get_registry),
):
    """Estimate summary and the Telegram links that carry it to the store."""
    return build_handoff(registry.get(session_id))
