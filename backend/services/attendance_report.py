"""
Rapport de présence (attendance)

Pool attendu = users avec enable_notifications = true et rôle hors admin-tier.
Granularité = créneau (user, jour):
  - pour chaque jour de la fenêtre, soumis = user_id distincts ayant au moins
    un enregistrement ce jour-là (les doublons ne comptent qu'une fois)
  - missingUsers = users du pool ayant manqué au moins un jour
  - submittedCount = users du pool sans aucun jour manqué
Sur une fenêtre d'un jour: soumis aujourd'hui / manquants aujourd'hui, soit
exactement ce qu'utilise le rappel quotidien (services/attendance_reminder.py).
"""

import asyncio
import logging
from datetime import date
from typing import Dict, List, Set, Tuple

from models.report import ReportWindow
from services.periods import parse_datetime, window_days
from services.permissions import Requester

logger = logging.getLogger("attendance")

# Soumission hors délai, marquée automatiquement
LATE_STATUS = "AUTO_FLAGGED"


def _submissions_by_day(records: List[dict], pool_ids: Set, days: List[date]) -> Tuple[Dict[date, Set], Set]:
    """(jour -> user_ids soumis, créneaux (user, jour) en retard)"""
    by_day = {day: set() for day in days}
    late = set()
    for record in records:
        user_id = record.get("user_id")
        if user_id not in pool_ids:
            continue
        dt = parse_datetime(record.get("date"))
        if dt is None or dt.date() not in by_day:
            continue
        by_day[dt.date()].add(user_id)
        if record.get("status") == LATE_STATUS:
            late.add((user_id, dt.date()))
    return by_day, late


def summarize_attendance(users: List[dict], records: List[dict], days: List[date]) -> dict:
    """Réduction pure, partagée entre le rapport et le rappel"""
    pool = {u["id"]: u for u in users}
    by_day, late = _submissions_by_day(records, set(pool), days)

    daily = []
    days_submitted = {user_id: 0 for user_id in pool}
    for day in days:
        submitted = by_day[day]
        for user_id in submitted:
            days_submitted[user_id] += 1
        daily.append({
            "date": day.isoformat(),
            "submitted": len(submitted),
            "missing": len(pool) - len(submitted),
        })

    n_days = len(days)
    per_user = []
    missing_users = []
    for user_id, user in pool.items():
        submitted = days_submitted[user_id]
        missed = n_days - submitted
        per_user.append({
            "id": user_id,
            "name": user.get("name") or user.get("email") or f"User {user_id}",
            "daysSubmitted": submitted,
            "daysMissed": missed,
            "attendanceRate": round(submitted / n_days * 100, 1) if n_days else 0,
        })
        if missed > 0:
            missing_users.append({
                "id": user_id,
                "name": user.get("name"),
                "email": user.get("email"),
                "daysMissed": missed,
            })

    expected_submissions = len(pool) * n_days
    actual_submissions = sum(days_submitted.values())
    full_compliance = sum(1 for u in per_user if u["daysMissed"] == 0) if n_days else 0

    return {
        "expectedCount": len(pool),
        "submittedCount": full_compliance,
        "missingUsers": missing_users,
        "days": n_days,
        "expectedSubmissions": expected_submissions,
        "actualSubmissions": actual_submissions,
        "lateSubmissions": len(late),
        "submissionRate": round(actual_submissions / expected_submissions * 100, 1) if expected_submissions else 0,
        "daily": daily,
        "perUser": sorted(per_user, key=lambda u: (-u["attendanceRate"], u["id"])),
    }


async def generate_attendance_report(store, requester: Requester, window: ReportWindow) -> dict:
    """Users standard: pool et enregistrements limités à eux-mêmes (filtre de requête)"""
    scope = requester.owner_scope
    users, records = await asyncio.gather(
        store.find_users(user_id=scope, expected_submitters=True),
        store.find_attendances(window.start, window.end, user_id=scope),
    )
    report = summarize_attendance(users, records, window_days(window))
    logger.info(
        f"[ATTENDANCE_REPORT] user={requester.id} expected={report['expectedCount']} "
        f"days={report['days']} rate={report['submissionRate']}"
    )
    return report
