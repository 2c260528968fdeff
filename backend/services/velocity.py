"""
Vélocité & prévisions

Vélocité = deals clôturés par tranche de 30 jours:
    velocity = closed_in_window / max(jours_fenêtre, 1) * 30

Deal clôturé = status PROJECT_COMPLETE ou PAYMENT_RECEIVED, date de clôture =
updated_at (pas de closed_at en base: toute mise à jour ultérieure d'un
pipeline clôturé déplace sa date de clôture).
"""

import asyncio
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, List

from models.pipeline import CLOSED_STATUSES, LOST_STATUSES, OPEN_STATUSES, PipelineStatus as S
from models.report import ReportWindow
from services.money import ZERO, quantize_money, safe_average, to_decimal
from services.periods import in_window, next_window, parse_datetime, window_length_days
from services.permissions import Requester

logger = logging.getLogger("reports")

VELOCITY_UNIT_DAYS = 30

# Probabilité de clôture par statut (pipeline ouvert)
STATUS_PROBABILITY = {
    S.ORDER_RECEIVED.value: Decimal("0.4"),
    S.ORDER_PROCESSING.value: Decimal("0.4"),
    S.CONTRACT_SIGNING.value: Decimal("0.6"),
    S.PRODUCTION_STARTED.value: Decimal("0.6"),
    S.QUALITY_CHECK.value: Decimal("0.6"),
    S.PACKING_SHIPPING.value: Decimal("0.8"),
    S.SHIPPED.value: Decimal("0.8"),
    S.DELIVERED.value: Decimal("1"),
    S.INSTALLATION_STARTED.value: Decimal("1"),
    S.INSTALLATION_COMPLETE.value: Decimal("1"),
}
DEFAULT_PROBABILITY = Decimal("0.1")
OPTIMISTIC_FACTOR = Decimal("1.3")
PESSIMISTIC_FACTOR = Decimal("0.7")

# Taux de conversion par défaut sans historique won/lost
DEFAULT_CONVERSION_RATE = 0.3

STALE_DEAL_DAYS = 30
HIGH_VALUE_THRESHOLD = Decimal("1000000")


def is_closed(pipeline: dict) -> bool:
    return pipeline.get("status") in CLOSED_STATUSES


def compute_velocity(closed_deals: Iterable[dict], period_start: datetime, period_end: datetime) -> float:
    """Deals clôturés (updated_at dans [start, end]) par 30 jours"""
    days = window_length_days(period_start, period_end)
    count = sum(1 for deal in closed_deals if in_window(deal.get("updated_at"), period_start, period_end))
    return count / days * VELOCITY_UNIT_DAYS


def average_deal_value(deals: List[dict]) -> Decimal:
    """Somme order_value / nombre, 0 si aucun deal"""
    total = sum((to_decimal(d.get("order_value")) for d in deals), ZERO)
    return safe_average(total, len(deals))


def deal_probability(status: str) -> Decimal:
    if status in LOST_STATUSES:
        return ZERO
    if status in CLOSED_STATUSES:
        return Decimal("1")
    return STATUS_PROBABILITY.get(status, DEFAULT_PROBABILITY)


def weighted_forecast(open_deals: List[dict]) -> dict:
    """
    Valeur du pipeline ouvert pondérée par la probabilité de chaque statut.
    optimiste = probabilité * 1.3 (max 1), pessimiste = probabilité * 0.7
    """
    current = weighted = optimistic = pessimistic = ZERO
    for deal in open_deals:
        value = to_decimal(deal.get("order_value"))
        probability = deal_probability(deal.get("status"))
        current += value
        weighted += value * probability
        optimistic += value * min(probability * OPTIMISTIC_FACTOR, Decimal("1"))
        pessimistic += value * probability * PESSIMISTIC_FACTOR
    return {
        "currentPipeline": current,
        "weightedForecast": quantize_money(weighted),
        "optimisticForecast": quantize_money(optimistic),
        "pessimisticForecast": quantize_money(pessimistic),
    }


def identify_risk_factors(open_deals: List[dict], reference: datetime) -> List[str]:
    """Risques calculés par rapport à la fin de la fenêtre, pas à l'horloge murale"""
    stale_after = timedelta(days=STALE_DEAL_DAYS)
    stale = 0
    for deal in open_deals:
        updated = parse_datetime(deal.get("updated_at"))
        if updated is not None and reference - updated > stale_after:
            stale += 1
    high_value = sum(1 for d in open_deals if to_decimal(d.get("order_value")) > HIGH_VALUE_THRESHOLD)

    risks = []
    if stale:
        risks.append(f"{stale} deals haven't been updated in {STALE_DEAL_DAYS}+ days")
    if high_value:
        risks.append(f"{high_value} high-value deals require special attention")
    return risks


async def generate_forecast_report(store, requester: Requester, window: ReportWindow) -> dict:
    """
    Projection sur la période suivante de même durée:
        projectedDeals = velocity * jours_suivants / 30
        projectedValue = projectedDeals * averageDealValue
    + pipeline ouvert pondéré (weighted / optimistic / pessimistic)
    """
    scope = requester.owner_scope
    closed, others = await asyncio.gather(
        store.find_pipelines(
            window.start, window.end, owner_id=scope, date_field="updated_at", statuses=CLOSED_STATUSES
        ),
        store.find_pipelines(
            window.start, window.end, owner_id=scope, date_field="updated_at",
            statuses=OPEN_STATUSES + LOST_STATUSES,
        ),
    )
    closed = [p for p in closed if is_closed(p)]
    open_deals = [p for p in others if p.get("status") not in LOST_STATUSES]
    lost = len(others) - len(open_deals)

    days = window_length_days(window.start, window.end)
    velocity = compute_velocity(closed, window.start, window.end)
    average = average_deal_value(closed)
    closed_value = sum((to_decimal(p.get("order_value")) for p in closed), ZERO)

    next_start, next_end = next_window(window)
    next_days = window_length_days(next_start, next_end)

    projected_deals = round(velocity * next_days / VELOCITY_UNIT_DAYS, 2)
    projected_value = quantize_money(Decimal(str(projected_deals)) * average)

    decided = len(closed) + lost
    conversion = round(len(closed) / decided, 4) if decided else DEFAULT_CONVERSION_RATE

    logger.info(
        f"[FORECAST] user={requester.id} closed={len(closed)} open={len(open_deals)} "
        f"velocity={velocity:.2f} projected_deals={projected_deals}"
    )

    return {
        "historicalWindow": {**window.as_dict(), "days": round(days, 2)},
        "closedDeals": len(closed),
        "closedValue": closed_value,
        "dealsPerMonth": round(velocity, 4),
        "averageDealValue": average,
        "nextPeriod": {
            "start": next_start.isoformat(),
            "end": next_end.isoformat(),
            "days": round(next_days, 2),
        },
        "projectedDeals": projected_deals,
        "projectedValue": projected_value,
        "openDeals": len(open_deals),
        **weighted_forecast(open_deals),
        "historicalConversionRate": conversion,
        "riskFactors": identify_risk_factors(open_deals, window.end),
    }
