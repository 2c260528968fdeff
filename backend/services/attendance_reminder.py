"""
Rappel de présence quotidien

Même calcul que le rapport attendance, sur une fenêtre d'un jour (aujourd'hui,
UTC), sans scope propriétaire: tout le pool attendu.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from models.report import CUSTOM_PERIOD, ReportWindow
from services.attendance_report import summarize_attendance
from services.periods import day_bounds

logger = logging.getLogger("attendance")

DRY_RUN_SAMPLE_SIZE = 5


def today_window(now: datetime) -> ReportWindow:
    start, end = day_bounds(now.astimezone(timezone.utc).date())
    return ReportWindow(start=start, end=end, period=CUSTOM_PERIOD)


async def run_attendance_reminder(
    store,
    mailer,
    now: Optional[datetime] = None,
    dry_run: bool = False,
) -> dict:
    """
    dry_run=True -> aucun email, renvoie un échantillon des manquants.
    Sinon un email par user manquant ayant une adresse.
    """
    now = now or datetime.now(timezone.utc)
    window = today_window(now)

    users, records = await asyncio.gather(
        store.find_users(expected_submitters=True),
        store.find_attendances(window.start, window.end),
    )
    summary = summarize_attendance(users, records, [window.start.date()])
    missing = [u for u in summary["missingUsers"] if u.get("email")]

    result = {
        "date": window.start.date().isoformat(),
        "totalUsers": summary["expectedCount"],
        "submitted": summary["submittedCount"],
        "missingCount": len(missing),
    }

    if dry_run:
        result["dryRun"] = True
        result["sample"] = missing[:DRY_RUN_SAMPLE_SIZE]
        return result

    # Envois SendGrid bloquants: hors de la boucle asyncio
    sent = 0
    for user in missing:
        if await asyncio.to_thread(mailer.send_attendance_reminder, user["email"], user.get("name")):
            sent += 1

    logger.info(
        f"[ATTENDANCE_REMINDER] date={result['date']} missing={len(missing)} sent={sent}"
    )
    result["success"] = True
    result["sent"] = sent
    return result
