from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional
from urllib.parse import quote
import os

from storefront.models.product import PriceTier
from storefront.services.ledger import EstimateLedger

TELEGRAM_PHONE_E164 = os.getenv("TELEGRAM_PHONE_E164", "+15551234567")
TELEGRAM_USERNAME = os.getenv("TELEGRAM_USERNAME", "magiabuena")

TIER_DISPLAY = {
    PriceTier.GRAM: "por gramo",
    PriceTier.OUNCE: "1 onza",
    PriceTier.HALF_OUNCE: "1/2 onza",
    PriceTier.UNIT: "unidad",
    PriceTier.PIECE: "pieza",
}

CATEGORY_DISPLAY = {
    "flores": "Flores",
    "pre-rolls": "Pre-rolls",
    "parafernalia": "Parafernalia",
    "vapes": "Vapes",
}

DISCLAIMER = "Este es un precio estimado. Los precios finales pueden variar."


def format_price(amount: Decimal) -> str:
    """Format like the storefront does for MXN: `$1,700`, or `$12.50` with cents."""
    amount = Decimal(amount)
    if amount == amount.to_integral_value():
        return f"${amount:,.0f}"
    return f"${amount.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP):,.2f}"


def tier_display(tier: PriceTier) -> str:
    return TIER_DISPLAY.get(PriceTier(tier), str(tier))


def category_display(category: str) -> str:
    if category in CATEGORY_DISPLAY:
        return CATEGORY_DISPLAY[category]
    return category[:1].upper() + category[1:]


def summarize(ledger: EstimateLedger) -> str:
    lines = ledger.items()
    if not lines:
        return "Hola, quiero información sobre sus productos."

    out = ["Hola, me interesa este pedido:", ""]
    for line in lines:
        out.append(
            f"- {line.name} ({category_display(line.category)}, {tier_display(line.tier)}) "
            f"x{line.quantity}: {format_price(line.total)}"
        )
    out.append("")
    out.append(f"Total estimado: {format_price(ledger.total())}")
    out.append(DISCLAIMER)
    return "\n".join(out)


def build_handoff(
    ledger: EstimateLedger,
    phone: Optional[str] = None,
    username: Optional[str] = None,
) -> Dict[str, Any]:
    """Summary text plus the links that open the Telegram chat with it."""
    phone = phone or TELEGRAM_PHONE_E164
    username = username or TELEGRAM_USERNAME
    summary = summarize(ledger)
    return {
        "summary": summary,
        "item_count": ledger.item_count(),
        "total": ledger.total(),
        "telegram_url": f"tg://resolve?phone={quote(phone.lstrip('+'))}&text={quote(summary)}",
        "phone_url": f"tel:{phone}",
        "web_url": f"https://t.me/{username}",
    }
