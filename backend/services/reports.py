"""
SalesDesk CRM - Service Reports (façade)

Seul point d'entrée appelé par la couche HTTP:
    ReportService(store, requester).generate(report_type, period, start_date, end_date)

1. Résout la fenêtre une seule fois
2. Dispatch vers l'agrégateur du type demandé
3. Assemble {success, reportType, period, range, data, generatedAt}

Aucune écriture: une requête annulée entre deux lectures ne laisse rien derrière.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from models.report import ReportType, VALID_REPORT_TYPES
from services.attendance_report import generate_attendance_report
from services.periods import resolve_period
from services.permissions import Requester
from services.pipeline_report import generate_pipeline_report
from services.report_errors import InvalidRequest, ReportError
from services.sales_report import generate_quotation_report, generate_sales_report
from services.velocity import generate_forecast_report

logger = logging.getLogger("reports")

GENERATORS = {
    ReportType.SALES: generate_sales_report,
    ReportType.QUOTATION: generate_quotation_report,
    ReportType.ATTENDANCE: generate_attendance_report,
    ReportType.PIPELINE: generate_pipeline_report,
    ReportType.FORECAST: generate_forecast_report,
}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ReportService:
    """Orchestration période -> agrégateur -> payload"""

    def __init__(self, store, requester: Requester, clock: Optional[Callable[[], datetime]] = None):
        self.store = store
        self.requester = requester
        self.clock = clock or _utc_now

    def _parse_type(self, report_type: Optional[str]) -> ReportType:
        if not report_type:
            raise InvalidRequest("Missing report type")
        try:
            return ReportType(report_type.lower())
        except ValueError:
            raise InvalidRequest(
                "Invalid report type",
                f"{report_type!r} not in {VALID_REPORT_TYPES}",
            )

    async def generate(
        self,
        report_type: Optional[str],
        period: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> dict:
        try:
            kind = self._parse_type(report_type)
            window = resolve_period(period, start_date, end_date, now=self.clock())
            data = await GENERATORS[kind](self.store, self.requester, window)
        except ReportError as e:
            logger.warning(
                f"[REPORT_REJECTED] type={report_type} period={period} "
                f"user={self.requester.id} error={e.message}"
            )
            raise
        except Exception as e:
            logger.error(
                f"[REPORT_FAILED] type={report_type} period={period} "
                f"user={self.requester.id} error={str(e)}"
            )
            raise

        logger.info(
            f"[REPORT] type={kind.value} period={window.period} user={self.requester.id} "
            f"role={self.requester.role.value}"
        )

        return {
            "success": True,
            "reportType": kind.value,
            "period": window.period,
            "range": window.as_dict(),
            "data": data,
            "generatedAt": self.clock().isoformat(),
        }
