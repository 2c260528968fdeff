"""
SalesDesk CRM - Accès données des rapports (lecture seule)

Le store reçoit le handle motor en paramètre (pas de db global).

RÈGLE: le scope propriétaire est TOUJOURS dans le filtre de requête,
jamais appliqué après coup sur les résultats.
"""

import logging
from datetime import datetime
from typing import List, Optional

from pymongo.errors import PyMongoError

from services.permissions import build_owner_filter, non_privileged_role_filter
from services.report_errors import DataAccessFailure

logger = logging.getLogger("report_store")

DEFAULT_LIMIT = 10000


def _range_filter(field: str, start: datetime, end: datetime) -> dict:
    return {field: {"$gte": start.isoformat(), "$lte": end.isoformat()}}


class ReportStore:
    """Requêtes paramétrées par entité: pipelines, quotations, attendances, users, leads, opportunities, immediate_sales"""

    def __init__(self, db, limit: int = DEFAULT_LIMIT):
        self.db = db
        self.limit = limit

    async def _find(self, collection: str, query: dict) -> List[dict]:
        try:
            return await self.db[collection].find(query, {"_id": 0}).to_list(self.limit)
        except PyMongoError as e:
            logger.error(f"[DATA_ACCESS] collection={collection} error={str(e)}")
            raise DataAccessFailure("Data store query failed", str(e))

    async def _count(self, collection: str, query: dict) -> int:
        try:
            return await self.db[collection].count_documents(query)
        except PyMongoError as e:
            logger.error(f"[DATA_ACCESS] collection={collection} error={str(e)}")
            raise DataAccessFailure("Data store query failed", str(e))

    # ==================== PIPELINES ====================

    async def find_pipelines(
        self,
        start: datetime,
        end: datetime,
        owner_id: Optional[int] = None,
        date_field: str = "updated_at",
        statuses: Optional[List[str]] = None,
    ) -> List[dict]:
        query = {**_range_filter(date_field, start, end), **build_owner_filter(owner_id)}
        if statuses:
            query["status"] = {"$in": list(statuses)}
        return await self._find("pipelines", query)

    # ==================== QUOTATIONS ====================

    async def find_quotations(
        self, start: datetime, end: datetime, owner_id: Optional[int] = None
    ) -> List[dict]:
        query = {
            **_range_filter("created_at", start, end),
            **build_owner_filter(owner_id, field="created_by_id"),
        }
        return await self._find("pending_quotations", query)

    # ==================== ATTENDANCE ====================

    async def find_attendances(
        self, start: datetime, end: datetime, user_id: Optional[int] = None
    ) -> List[dict]:
        query = {**_range_filter("date", start, end), **build_owner_filter(user_id, field="user_id")}
        return await self._find("attendances", query)

    # ==================== USERS ====================

    async def find_users(
        self, user_id: Optional[int] = None, expected_submitters: bool = False
    ) -> List[dict]:
        """
        expected_submitters=True -> pool attendance:
        enable_notifications = true ET role hors admin-tier
        """
        query = build_owner_filter(user_id, field="id")
        if expected_submitters:
            query["enable_notifications"] = True
            query.update(non_privileged_role_filter())
        users = await self._find("users", query)
        for user in users:
            user.pop("password", None)
        return users

    # ==================== SOURCES (intake) ====================

    async def count_leads(self, start: datetime, end: datetime, owner_id: Optional[int] = None) -> int:
        query = {**_range_filter("created_date", start, end), **build_owner_filter(owner_id)}
        return await self._count("leads", query)

    async def count_opportunities(
        self, start: datetime, end: datetime, owner_id: Optional[int] = None
    ) -> int:
        query = {**_range_filter("created_date", start, end), **build_owner_filter(owner_id)}
        return await self._count("opportunities", query)

    async def count_immediate_sales(
        self, start: datetime, end: datetime, owner_id: Optional[int] = None
    ) -> int:
        query = {**_range_filter("created_at", start, end), **build_owner_filter(owner_id)}
        return await self._count("immediate_sales", query)
