"""
Rapport pipeline (vue funnel)

Ordre fixe des étapes: lead -> qualification -> production -> shipped -> closed
Chaque étape est TOUJOURS émise (count = 0 si vide).
"""

import asyncio
from decimal import Decimal
from typing import Dict, List

from models.pipeline import CLOSED_STATUSES, PipelineStatus as S
from models.report import ReportWindow
from services.money import ZERO, quantize_money, to_decimal
from services.permissions import Requester
from services.velocity import average_deal_value, compute_velocity


# (stage, label, couleur, statuts pipeline)
FUNNEL_STAGES = [
    ("lead", "Lead", "#94A3B8", [S.ORDER_RECEIVED]),
    ("qualification", "Qualification", "#3B82F6", [S.ORDER_PROCESSING, S.CONTRACT_SIGNING]),
    ("production", "Production", "#F59E0B", [S.PRODUCTION_STARTED, S.QUALITY_CHECK]),
    ("shipped", "Shipped", "#8B5CF6", [
        S.PACKING_SHIPPING, S.SHIPPED, S.DELIVERED, S.INSTALLATION_STARTED, S.INSTALLATION_COMPLETE,
    ]),
    ("closed", "Closed", "#10B981", [S.PAYMENT_RECEIVED, S.PROJECT_COMPLETE]),
]

OFF_FUNNEL_STATUSES = [
    S.ON_HOLD.value, S.DELAYED.value, S.CANCELLED.value, S.DISPUTED.value, S.LOST_TO_COMPETITOR.value,
]

STATUS_TO_STAGE: Dict[str, str] = {
    status.value: stage for stage, _label, _color, statuses in FUNNEL_STAGES for status in statuses
}

DEFAULT_STAGE = FUNNEL_STAGES[0][0]

LOW_PROBABILITY = 0.3
STALLED_DEALS_LIMIT = 5


def stage_for_status(status: str) -> str:
    """Étape funnel d'un statut; None si hors funnel, 1re étape si inconnu"""
    if status in OFF_FUNNEL_STATUSES:
        return None
    return STATUS_TO_STAGE.get(status, DEFAULT_STAGE)


def build_funnel(pipelines: List[dict]) -> dict:
    counts = {stage: 0 for stage, *_ in FUNNEL_STAGES}
    values = {stage: ZERO for stage, *_ in FUNNEL_STAGES}
    off_funnel = {}

    for pipeline in pipelines:
        status = pipeline.get("status")
        stage = stage_for_status(status)
        if stage is None:
            off_funnel[status] = off_funnel.get(status, 0) + 1
            continue
        counts[stage] += 1
        values[stage] += to_decimal(pipeline.get("order_value"))

    stages = [
        {"stage": stage, "label": label, "count": counts[stage], "value": values[stage], "color": color}
        for stage, label, color, _statuses in FUNNEL_STAGES
    ]
    return {"stages": stages, "offFunnel": off_funnel}


def progress_metrics(pipelines: List[dict]) -> dict:
    """progress_percentage (0-100) = probabilité de clôture saisie sur le pipeline"""
    weighted = ZERO
    total_progress = ZERO
    for pipeline in pipelines:
        progress = to_decimal(pipeline.get("progress_percentage"))
        weighted += to_decimal(pipeline.get("order_value")) * progress / 100
        total_progress += progress
    average = float(total_progress / len(pipelines) / 100) if pipelines else 0
    return {"weightedValue": quantize_money(weighted), "averageProbability": round(average, 4)}


def pipeline_recommendations(funnel: dict, average_probability: float, velocity: float,
                             revenue_velocity, average_deal) -> List[str]:
    recommendations = []
    if average_probability < LOW_PROBABILITY:
        recommendations.append("Focus on qualifying leads better to improve overall pipeline probability")
    if velocity < 1:
        recommendations.append("Pipeline velocity is critically low - focus on moving qualified deals through to close")
    elif velocity < 3:
        recommendations.append("Increase deal momentum to convert more opportunities each month")
    if revenue_velocity < average_deal:
        recommendations.append(
            "Monthly revenue velocity trails the average deal size - shorten the sales cycle to improve throughput"
        )
    off_funnel = funnel["offFunnel"]
    stalled = off_funnel.get(S.ON_HOLD.value, 0) + off_funnel.get(S.DELAYED.value, 0)
    if stalled > STALLED_DEALS_LIMIT:
        recommendations.append("Review and re-engage deals on hold to prevent pipeline stagnation")
    counts = {s["stage"]: s["count"] for s in funnel["stages"]}
    if counts[FUNNEL_STAGES[0][0]] > counts[FUNNEL_STAGES[-1][0]]:
        recommendations.append("Improve conversion funnel - too many deals stuck in early stages")
    return recommendations


async def generate_pipeline_report(store, requester: Requester, window: ReportWindow) -> dict:
    """
    Pipelines créés dans la fenêtre (created_at) répartis par étape.
    velocity = deals clôturés (updated_at) dans la fenêtre, par 30 jours.
    """
    scope = requester.owner_scope
    created, closed, leads, opportunities, immediate_sales = await asyncio.gather(
        store.find_pipelines(window.start, window.end, owner_id=scope, date_field="created_at"),
        store.find_pipelines(
            window.start, window.end, owner_id=scope, date_field="updated_at", statuses=CLOSED_STATUSES
        ),
        store.count_leads(window.start, window.end, owner_id=scope),
        store.count_opportunities(window.start, window.end, owner_id=scope),
        store.count_immediate_sales(window.start, window.end, owner_id=scope),
    )

    funnel = build_funnel(created)
    total_deals = len(created)
    closed_created = sum(1 for p in created if p.get("status") in CLOSED_STATUSES)
    progress = progress_metrics(created)

    velocity = compute_velocity(closed, window.start, window.end)
    average_deal = average_deal_value(closed)
    revenue_velocity = quantize_money(Decimal(str(velocity)) * average_deal)

    return {
        **funnel,
        "totalDeals": total_deals,
        "totalValue": sum((to_decimal(p.get("order_value")) for p in created), ZERO),
        "closedDeals": closed_created,
        "conversionRate": round(closed_created / max(total_deals, 1), 4),
        **progress,
        "velocity": round(velocity, 4),
        "revenueVelocity": revenue_velocity,
        "averageDealValue": average_deal,
        "recommendations": pipeline_recommendations(
            funnel, progress["averageProbability"], velocity, revenue_velocity, average_deal
        ),
        "intake": {
            "leads": leads,
            "opportunities": opportunities,
            "immediateSales": immediate_sales,
            "pipelines": total_deals,
        },
    }
