"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  SalesDesk CRM - Models Package                                              ║
║                                                                              ║
║  from models import PipelineStatus, ReportType, ReportWindow, etc.           ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

# Auth
from .auth import UserLogin, UserResponse

# Pipeline & sources
from .pipeline import (
    PipelineStatus,
    QuotationStatus,
    CLOSED_STATUSES,
    PipelineDocument,
    OpportunityDocument,
    LeadDocument,
    QuotationDocument,
)

# Reports
from .report import (
    ReportType,
    VALID_REPORT_TYPES,
    ReportPeriod,
    CUSTOM_PERIOD,
    ReportWindow,
)

# Notifications
from .notification import NotificationDocument

__all__ = [
    "UserLogin",
    "UserResponse",
    "PipelineStatus",
    "QuotationStatus",
    "CLOSED_STATUSES",
    "PipelineDocument",
    "OpportunityDocument",
    "LeadDocument",
    "QuotationDocument",
    "ReportType",
    "VALID_REPORT_TYPES",
    "ReportPeriod",
    "CUSTOM_PERIOD",
    "ReportWindow",
    "NotificationDocument",
]
