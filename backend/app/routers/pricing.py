"""API routes for dynamic pricing."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from app.core.auth import SessionContext, get_session_context
from app.core.logging import logger
from app.models.intelligence import PriceQuote, PriceRequest, PriceResult, QuoteRequest
from app.services.pricing import calculate_dynamic_price, quote_price

router = APIRouter(prefix="/pricing", tags=["pricing"])


@router.post("/calculate", response_model=PriceResult)
def calculate(
    request: PriceRequest,
    context: SessionContext = Depends(get_session_context),
):
    try:
        return calculate_dynamic_price(
            request.distance,
            request.weight,
            request.urgency,
            request.demand,
            request.hour,
            request.weather,
        )
    except Exception as exc:
        logger.error("Failed to calculate price", error=str(exc))
        raise HTTPException(status_code=400, detail=str(exc))


@router.post("/quote", response_model=PriceQuote)
async def quote(
    request: QuoteRequest,
    context: SessionContext = Depends(get_session_context),
):
    try:
        return await quote_price(request)
    except Exception as exc:
        logger.error("Failed to quote price", error=str(exc))
        raise HTTPException(status_code=400, detail=str(exc))
