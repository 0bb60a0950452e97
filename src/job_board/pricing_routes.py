"""
Pricing API routes - public price list and quotes
"""
from fastapi import APIRouter

from .config import config
from .schemas import QuoteRequest, QuoteResponse
from .services import pricing

router = APIRouter(prefix="/v1/pricing", tags=["pricing"])


@router.get("")
async def get_pricing():
    """Plans and add-ons with prices in minor units"""
    return pricing.catalog(config.CURRENCY)


@router.post("/quote", response_model=QuoteResponse)
async def get_quote(request: QuoteRequest):
    """
    Price a plan and add-on selection

    Unknown identifiers are rejected with INVALID_CATALOG_ITEM.
    """
    quote = pricing.quote(request.plan, request.addons, config.CURRENCY)
    return QuoteResponse(
        plan=quote.plan.value,
        addons=quote.addon_values,
        plan_price_cents=quote.plan_price_cents,
        addon_prices=quote.addon_prices,
        total_cents=quote.total_cents,
        currency=quote.currency,
        display_total=pricing.format_amount(quote.total_cents, quote.currency),
    )
