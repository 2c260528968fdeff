"""
SalesDesk CRM - Modèles Reports
Types de rapports, périodes, fenêtre de dates résolue.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ReportType(str, Enum):
    SALES = "sales"
    QUOTATION = "quotation"
    ATTENDANCE = "attendance"
    PIPELINE = "pipeline"
    FORECAST = "forecast"


VALID_REPORT_TYPES = [r.value for r in ReportType]


class ReportPeriod(str, Enum):
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


CUSTOM_PERIOD = "custom"


@dataclass(frozen=True)
class ReportWindow:
    """Fenêtre [start, end] résolue (UTC). Bornes inclusives en requête."""
    start: datetime
    end: datetime
    period: str

    @property
    def is_empty(self) -> bool:
        return self.end < self.start

    def as_dict(self) -> dict:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}

