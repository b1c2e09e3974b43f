"""Mock dynamic pricing.

The multipliers are fixed tables; only the market conditions fed into them are
random. With every multiplier >= 1 the final price can never drop below the
distance-only base price.
"""
from __future__ import annotations

import asyncio
import math
import random
from datetime import datetime, timedelta, timezone
from typing import Optional

from app.core.config import get_settings
from app.core.logging import logger
from app.models.intelligence import (
    MarketConditions,
    PriceBreakdown,
    PriceFactors,
    PriceHistoryPoint,
    PriceQuote,
    PriceResult,
    QuoteRequest,
    WeatherConditions,
)
from app.models.logistics import Urgency


PEAK_HOURS = range(17, 21)
URGENCY_MULTIPLIERS = {
    Urgency.EXPRESS: 2.5,
    Urgency.URGENT: 1.8,
    Urgency.STANDARD: 1.0,
}


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def weight_multiplier(weight: float) -> float:
    if weight > 50:
        return 1.5
    if weight > 20:
        return 1.2
    return 1.0


def demand_multiplier(demand: float) -> float:
    if demand > 80:
        return 1.3
    if demand > 60:
        return 1.1
    return 1.0


def weather_multiplier(weather: Optional[WeatherConditions]) -> float:
    if weather is None:
        return 1.0
    if weather.rain:
        return 1.15
    if weather.fog:
        return 1.1
    return 1.0


def calculate_dynamic_price(
    distance: float,
    weight: float,
    urgency: Urgency,
    demand: float,
    hour: int,
    weather: Optional[WeatherConditions] = None,
    base_rate: Optional[float] = None,
) -> PriceResult:
    if distance <= 0:
        raise ValueError("Distance must be greater than 0")
    rate = get_settings().pricing_base_rate if base_rate is None else base_rate

    factors = PriceFactors(
        weight=weight_multiplier(weight),
        urgency=URGENCY_MULTIPLIERS[Urgency(urgency)],
        demand=demand_multiplier(demand),
        time=1.2 if hour in PEAK_HOURS else 1.0,
        weather=weather_multiplier(weather),
    )
    base = distance * rate
    final_price = _round_half_up(
        base * factors.weight * factors.urgency * factors.demand * factors.time * factors.weather
    )
    return PriceResult(
        base_price=_round_half_up(base),
        final_price=final_price,
        factors=factors,
        breakdown=PriceBreakdown(
            base=_round_half_up(base),
            weight_adjustment=_round_half_up(base * (factors.weight - 1)),
            urgency_adjustment=_round_half_up(base * factors.weight * (factors.urgency - 1)),
            dynamic_adjustment=final_price - _round_half_up(base * factors.weight * factors.urgency),
        ),
    )


def market_conditions(rng: Optional[random.Random] = None, now: Optional[datetime] = None) -> MarketConditions:
    """Random demand (60-99), rain/fog draws, and a fuel price around 100/L."""
    rng = rng or random.Random()
    current = now or datetime.now()
    return MarketConditions(
        demand=rng.randint(60, 99),
        time_of_day=current.hour,
        weather=WeatherConditions(rain=rng.random() > 0.8, fog=rng.random() > 0.9),
        fuel_price=round(95 + rng.random() * 10, 2),
    )


async def quote_price(request: QuoteRequest, rng: Optional[random.Random] = None) -> PriceQuote:
    settings = get_settings()
    rng = rng or random.Random()
    try:
        if settings.mock_latency_seconds > 0:
            await asyncio.sleep(settings.mock_latency_seconds)
        market = market_conditions(rng)
        pricing = calculate_dynamic_price(
            request.distance,
            request.weight,
            request.urgency,
            market.demand,
            market.time_of_day,
            market.weather,
        )
    except ValueError:
        raise
    except Exception as exc:
        logger.error("Dynamic pricing calculation failed", error=str(exc))
        raise RuntimeError("Failed to calculate dynamic price") from exc

    today = datetime.now(timezone.utc).date()
    history = [
        PriceHistoryPoint(
            date=(today - timedelta(days=6 - offset)).isoformat(),
            price=round(pricing.final_price * (0.8 + rng.random() * 0.4), 2),
            demand=rng.randint(60, 99),
        )
        for offset in range(7)
    ]
    quote = PriceQuote(
        pricing=pricing,
        market=market,
        competitor_price=round(pricing.final_price * (0.9 + rng.random() * 0.2), 2),
        history=history,
    )
    logger.info(
        "Price quoted",
        distance=request.distance,
        urgency=request.urgency.value,
        demand=market.demand,
        final_price=pricing.final_price,
    )
    return quote
