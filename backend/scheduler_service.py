"""
Scheduler pour les tâches automatiques SalesDesk CRM
- Rappel de présence du lundi au vendredi (ATTENDANCE_REMINDER_HOUR)
"""

import asyncio
import logging
import pytz
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from config import ATTENDANCE_REMINDER_HOUR, REPORT_QUERY_LIMIT, SCHEDULER_TIMEZONE

logger = logging.getLogger("scheduler")


class TaskScheduler:
    """Gestionnaire de tâches planifiées"""

    def __init__(self, db=None, mailer=None, timezone: str = SCHEDULER_TIMEZONE):
        self.scheduler = AsyncIOScheduler(timezone=pytz.timezone(timezone))
        self.db = db
        self.mailer = mailer

    def _resolve(self):
        # Import ici pour éviter les imports circulaires
        if self.db is None:
            from config import db
            self.db = db
        if self.mailer is None:
            from email_service import email_service
            self.mailer = email_service

    def start(self):
        """Démarre le scheduler avec toutes les tâches"""
        self._resolve()

        self.scheduler.add_job(
            self.send_attendance_reminders,
            CronTrigger(day_of_week="mon-fri", hour=ATTENDANCE_REMINDER_HOUR, minute=0),
            id="attendance_reminder",
            name="Rappel présence",
            replace_existing=True
        )

        self.scheduler.start()
        logger.info("Scheduler démarré avec succès")

    def stop(self):
        """Arrête le scheduler"""
        if self.scheduler.running:
            self.scheduler.shutdown()
            logger.info("Scheduler arrêté")

    # ==================== TÂCHES PLANIFIÉES ====================

    async def send_attendance_reminders(self) -> dict:
        """Rappels aux users sans présence aujourd'hui"""
        from services.attendance_reminder import run_attendance_reminder
        from services.report_store import ReportStore

        self._resolve()
        try:
            result = await run_attendance_reminder(ReportStore(self.db, REPORT_QUERY_LIMIT), self.mailer)
            logger.info(f"Rappels présence envoyés: {result['sent']}/{result['missingCount']}")
            return result
        except Exception as e:
            logger.error(f"Erreur rappel présence: {str(e)}")
            await asyncio.to_thread(
                self.mailer.send_critical_alert,
                "SCHEDULER_ERROR",
                f"Échec du rappel de présence: {str(e)}",
            )
            return {"success": False, "error": str(e)}


# Instance globale
task_scheduler = TaskScheduler()
