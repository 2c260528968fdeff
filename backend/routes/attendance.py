"""
Routes cron attendance (rappel quotidien)
Appelées par un cron externe: ?key=<CRON_SECRET> ou header X-Cron-Secret.
"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, Header, HTTPException, Query

from config import CRON_SECRET, IS_PRODUCTION
from email_service import email_service
from routes.reports import get_report_store
from services.attendance_reminder import run_attendance_reminder
from services.report_store import ReportStore

router = APIRouter(prefix="/cron/attendance", tags=["Cron"])

logger = logging.getLogger("attendance")


def get_mailer():
    return email_service


def authorize_cron(
    key: Optional[str] = None,
    x_cron_secret: Optional[str] = Header(None),
):
    """Sans CRON_SECRET configuré: autorisé hors production uniquement"""
    if not CRON_SECRET:
        if IS_PRODUCTION:
            raise HTTPException(status_code=401, detail="Unauthorized")
        return
    if key != CRON_SECRET and x_cron_secret != CRON_SECRET:
        logger.warning("[CRON] rejected attendance reminder call")
        raise HTTPException(status_code=401, detail="Unauthorized")


@router.get("/reminder", dependencies=[Depends(authorize_cron)])
async def attendance_reminder(
    dry_run: bool = Query(False, alias="dryRun"),
    store: ReportStore = Depends(get_report_store),
    mailer=Depends(get_mailer),
):
    return await run_attendance_reminder(store, mailer, dry_run=dry_run)
