from html import escape
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Path, Request, Response
from pydantic import BaseModel, Field
from starlette.responses import HTMLResponse
import logging

from storefront.api.deps import get_catalog, get_registry
from storefront.models.estimate import EstimateView
from storefront.models.product import PriceTier
from storefront.services.catalog import Catalog
from storefront.services.contact import DISCLAIMER, category_display, format_price, tier_display
from storefront.services.ledger import EstimateLedger, LedgerRegistry

logger = logging.getLogger(__name__)
router = APIRouter()

SessionId = Annotated[str, Path(min_length=1, max_length=64, pattern=r"^[A-Za-z0-9_-]+$")]


class AddItemRequest(BaseModel):
    product_id: str
    tier: PriceTier
    quantity: int = Field(1, gt=0)


class QuantityUpdate(BaseModel):
    quantity: int


def _view(session_id: str, ledger: EstimateLedger) -> EstimateView:
    return EstimateView(
        session_id=session_id,
        items=ledger.items(),
        item_count=ledger.item_count(),
        total=ledger.total(),
    )


def _render_estimate_html(view: EstimateView) -> str:
    rows = "".join(
        f"<tr><td>{escape(i.name)}</td><td>{escape(category_display(i.category))}</td>"
        f"<td>{escape(tier_display(i.tier))}</td><td>{i.quantity}</td>"
        f"<td>{format_price(i.unit_price)}</td><td>{format_price(i.total)}</td></tr>"
        for i in view.items
    )
    if not rows:
        rows = "<tr><td colspan='6'>No hay productos seleccionados</td></tr>"
    return f"""
<!doctype html>
<html><head><meta charset='utf-8' /><title>Precio Estimado</title>
<style>body{{font-family:Inter,system-ui, -apple-system, 'Segoe UI', Roboto; background:#f3f4f6; padding:24px}} table{{width:100%; border-collapse:collapse; background:white}}th,td{{padding:12px;border-bottom:1px solid #eef2f7}}thead{{background:#f9fafb}} .total{{font-size:24px;font-weight:700;margin-top:16px}}</style>
</head><body><div class='container'><h1>Precio Estimado</h1>
<table><thead><tr><th>Producto</th><th>Categoría</th><th>Tipo</th><th>Cantidad</th><th>Precio</th><th>Total</th></tr></thead><tbody>{rows}</tbody></table>
<div class='total'>Total Estimado: {format_price(view.total)} ({view.item_count} artículos)</div>
<p>{escape(DISCLAIMER)}</p></div></body></html>
"""


@router.get("/{session_id}")
def get_estimate(request: Request, session_id: SessionId, registry: LedgerRegistry = Depends(get_registry)) -> Any:
    view = _view(session_id, registry.get(session_id))
    accept = request.headers.get('accept', '')
    if 'text/html' in accept:
        return HTMLResponse(content=_render_estimate_html(view))
    return view


@router.post("/{session_id}/items", response_model=EstimateView, status_code=201)
def add_item(
    req: AddItemRequest,
    session_id: SessionId,
    registry: LedgerRegistry = Depends(get_registry),
    catalog: Catalog = Depends(get_catalog),
):
    product = catalog.get_product(req.product_id)
    if product is None:
        logger.warning("Estimate add for missing product_id=%s", req.product_id)
        raise HTTPException(status_code=404, detail="product not found")
    if not product.available:
        raise HTTPException(status_code=409, detail="product not available")

    pricing = catalog.pricing
    if not pricing.is_offered(product, req.tier):
        raise HTTPException(status_code=400, detail=f"tier '{req.tier.value}' is not offered for this product")

    ledger = registry.get(session_id)
    line = ledger.add(
        product_id=product.id,
        tier=req.tier,
        name=product.name,
        category=product.category,
        unit_price=pricing.unit_price(product, req.tier),
        quantity_delta=pricing.quantity_to_add(req.tier, req.quantity),
    )
    logger.info("Estimate session=%s key=%s quantity=%s", session_id, line.key, line.quantity)
    return _view(session_id, ledger)


@router.put("/{session_id}/items/{key}", response_model=EstimateView)
def update_item(
    upd: QuantityUpdate,
    key: str,
    session_id: SessionId,
    registry: LedgerRegistry = Depends(get_registry),
):
    ledger = registry.get(session_id)
    if ledger.update_quantity(key, upd.quantity) is None and upd.quantity > 0:
        raise HTTPException(status_code=404, detail="line not found")
    return _view(session_id, ledger)


@router.delete("/{session_id}/items/{key}", status_code=204)
def remove_item(key: str, session_id: SessionId, registry: LedgerRegistry = Depends(get_registry)):
    registry.get(session_id).remove(key)
    return Response(status_code=204)


@router.delete("/{session_id}", status_code=204)
def clear_estimate(session_id: SessionId, registry: LedgerRegistry = Depends(get_registry)):
    registry.get(session_id).clear()
    logger.info("Estimate cleared session=%s", session_id)
    return Response(status_code=204)
