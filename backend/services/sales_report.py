"""
Rapports ventes & devis

- sales: pipelines mis à jour dans la fenêtre (updated_at); totaux, owners et
  tendances sur les deals gagnés (CLOSED_STATUSES), byStatus sur tous
- quotation: pending_quotations créées dans la fenêtre (created_at)
Même forme: totalValue, dealCount, byStatus, byOwner.
Le scope propriétaire est passé au store (filtre de requête).
"""

import asyncio
import math
from datetime import datetime, timedelta
from typing import Dict, List

from models.pipeline import CLOSED_STATUSES, QuotationStatus
from models.report import ReportWindow
from services.money import ZERO, safe_average, to_decimal
from services.periods import parse_datetime
from services.permissions import Requester


TOP_PERFORMERS_LIMIT = 5
TOP_CLIENTS_LIMIT = 10

# Granularité des tendances selon la durée de la fenêtre
DAILY_TREND_MAX_DAYS = 14
WEEKLY_TREND_MAX_DAYS = 62


def user_display_name(user: dict) -> str:
    return user.get("name") or user.get("email") or f"User {user.get('id')}"


def group_by(records: List[dict], key_field: str, value_field: str = "order_value") -> Dict:
    """{clé: {count, value}} avec sommes Decimal"""
    groups = {}
    for record in records:
        key = record.get(key_field)
        if key not in groups:
            groups[key] = {"count": 0, "value": ZERO}
        groups[key]["count"] += 1
        groups[key]["value"] += to_decimal(record.get(value_field))
    return groups


def summarize_deals(records: List[dict], users: List[dict], owner_field: str = "owner_id") -> dict:
    """Réduction commune sales / quotation"""
    total_value = sum((to_decimal(r.get("order_value")) for r in records), ZERO)
    deal_count = len(records)

    names = {u.get("id"): user_display_name(u) for u in users}

    by_status = group_by(records, "status")
    by_owner = group_by(records, owner_field)
    for owner_id, stats in by_owner.items():
        stats["name"] = names.get(owner_id, f"User {owner_id}")

    top_performers = sorted(
        (
            {"ownerId": owner_id, "name": stats["name"], "count": stats["count"], "value": stats["value"]}
            for owner_id, stats in by_owner.items()
        ),
        key=lambda x: (x["value"], x["count"]),
        reverse=True,
    )[:TOP_PERFORMERS_LIMIT]

    return {
        "totalValue": total_value,
        "dealCount": deal_count,
        "averageDealValue": safe_average(total_value, deal_count),
        "byStatus": by_status,
        "byOwner": by_owner,
        "topPerformers": top_performers,
    }


# ==================== TENDANCES ====================

def _month_index(dt: datetime) -> int:
    return dt.year * 12 + dt.month - 1


def build_trends(deals: List[dict], window: ReportWindow) -> dict:
    """
    Deals gagnés répartis par date de clôture (updated_at):
      - fenêtre <= 14 jours: un bucket par jour calendaire
      - <= 62 jours: tranches de 7 jours depuis window.start (W1, W2...)
      - au-delà: mois calendaires (YYYY-MM)
    Tous les buckets sont émis, même vides.
    """
    if window.is_empty:
        return {"granularity": "day", "buckets": []}

    days = (window.end - window.start).total_seconds() / 86400
    if days <= DAILY_TREND_MAX_DAYS:
        granularity = "day"
        first_day = window.start.date()
        starts = [first_day + timedelta(days=i) for i in range((window.end.date() - first_day).days + 1)]
        labels = [d.isoformat() for d in starts]

        def bucket_of(dt):
            return (dt.date() - first_day).days
    elif days <= WEEKLY_TREND_MAX_DAYS:
        granularity = "week"
        n = math.ceil(days / 7)
        starts = [(window.start + timedelta(days=7 * i)).date() for i in range(n)]
        labels = [f"W{i + 1}" for i in range(n)]

        def bucket_of(dt):
            return min(int((dt - window.start).total_seconds() // (7 * 86400)), n - 1)
    else:
        granularity = "month"
        first_month = _month_index(window.start)
        months = range(first_month, _month_index(window.end) + 1)
        starts = [datetime(m // 12, m % 12 + 1, 1).date() for m in months]
        labels = [f"{d.year:04d}-{d.month:02d}" for d in starts]

        def bucket_of(dt):
            return _month_index(dt) - first_month

    buckets = [
        {"label": label, "start": start.isoformat(), "deals": 0, "revenue": ZERO}
        for label, start in zip(labels, starts)
    ]
    for deal in deals:
        closed_at = parse_datetime(deal.get("updated_at"))
        if closed_at is None or not window.start <= closed_at <= window.end:
            continue
        bucket = buckets[bucket_of(closed_at)]
        bucket["deals"] += 1
        bucket["revenue"] += to_decimal(deal.get("order_value"))
    return {"granularity": granularity, "buckets": buckets}


async def generate_sales_report(store, requester: Requester, window: ReportWindow) -> dict:
    """
    Ventes: pipelines dont updated_at tombe dans la fenêtre.
    totalValue / dealCount / byOwner / trends = deals gagnés uniquement,
    byStatus = répartition complète, conversionRate = gagnés / tous.
    """
    scope = requester.owner_scope
    pipelines, users = await asyncio.gather(
        store.find_pipelines(window.start, window.end, owner_id=scope, date_field="updated_at"),
        store.find_users(user_id=scope),
    )
    won = [p for p in pipelines if p.get("status") in CLOSED_STATUSES]

    report = summarize_deals(won, users)
    report.update({
        "byStatus": group_by(pipelines, "status"),
        "pipelineCount": len(pipelines),
        "conversionRate": round(len(won) / len(pipelines), 4) if pipelines else 0,
        "trends": build_trends(won, window),
    })
    return report


# ==================== DEVIS ====================

def _response_days(quotation: dict) -> float:
    created = parse_datetime(quotation.get("created_at"))
    updated = parse_datetime(quotation.get("updated_at"))
    if not created or not updated:
        return -1
    return (updated - created).total_seconds() / 86400


def _is_overdue(quotation: dict, reference: datetime) -> bool:
    if quotation.get("status") not in (QuotationStatus.PENDING.value, QuotationStatus.SENT.value):
        return False
    deadline = parse_datetime(quotation.get("quotation_deadline"))
    return deadline is not None and deadline < reference


async def generate_quotation_report(store, requester: Requester, window: ReportWindow) -> dict:
    """
    Devis: même agrégation que sales sur pending_quotations (created_by_id).
    overdue = deadline dépassée à la fin de la fenêtre (pas l'horloge murale).
    """
    scope = requester.owner_scope
    quotations, users = await asyncio.gather(
        store.find_quotations(window.start, window.end, owner_id=scope),
        store.find_users(user_id=scope),
    )

    report = summarize_deals(quotations, users, owner_field="created_by_id")

    status_counts = {s.value: 0 for s in QuotationStatus}
    for q in quotations:
        status = q.get("status")
        status_counts[status] = status_counts.get(status, 0) + 1

    response_times = [
        _response_days(q)
        for q in quotations
        if q.get("status") not in (QuotationStatus.PENDING.value, QuotationStatus.SENT.value)
    ]
    response_times = [t for t in response_times if t >= 0]
    average_response = round(sum(response_times) / len(response_times), 1) if response_times else 0

    clients = group_by(quotations, "project_or_client_name")
    top_clients = sorted(
        ({"name": name or "N/A", "quotations": s["count"], "value": s["value"]} for name, s in clients.items()),
        key=lambda x: x["value"],
        reverse=True,
    )[:TOP_CLIENTS_LIMIT]

    report.update({
        "pendingCount": status_counts[QuotationStatus.PENDING.value],
        "sentCount": status_counts[QuotationStatus.SENT.value],
        "acceptedCount": status_counts[QuotationStatus.ACCEPTED.value],
        "rejectedCount": status_counts[QuotationStatus.REJECTED.value],
        "overdueCount": sum(1 for q in quotations if _is_overdue(q, window.end)),
        "averageResponseDays": average_response,
        "topClients": top_clients,
    })
    return report
