"""
Routes pour les rapports (sales, quotation, attendance, pipeline, forecast)
"""

import logging
from fastapi import APIRouter, Depends, Query
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from config import db, IS_PRODUCTION, REPORT_QUERY_LIMIT
from routes.auth import get_requester
from services.permissions import Requester
from services.report_errors import ReportError
from services.report_store import ReportStore
from services.reports import ReportService

router = APIRouter(prefix="/reports", tags=["Reports"])

logger = logging.getLogger("reports")


def get_report_store() -> ReportStore:
    return ReportStore(db, REPORT_QUERY_LIMIT)


def error_body(message: str, details: str = None) -> dict:
    """{error, details?}: details uniquement hors production"""
    body = {"error": message}
    if details and not IS_PRODUCTION:
        body["details"] = details
    return body


@router.get("")
async def get_report(
    report_type: str = Query(None, alias="type"),
    period: str = None,  # "week", "month", "quarter", "year"
    start_date: str = Query(None, alias="startDate"),
    end_date: str = Query(None, alias="endDate"),
    requester: Requester = Depends(get_requester),
    store: ReportStore = Depends(get_report_store),
):
    """
    Génère un rapport. startDate + endDate prioritaires sur period.
    """
    service = ReportService(store, requester)
    try:
        payload = await service.generate(report_type, period, start_date, end_date)
    except ReportError:
        raise
    except Exception as e:
        logger.exception(f"[REPORT_FAILED] type={report_type} user={requester.id}")
        return JSONResponse(status_code=500, content=error_body("Failed to generate report", str(e)))

    return JSONResponse(content=jsonable_encoder(payload))
