"""
SalesDesk CRM - Service Notifications

Lectures via NotificationCache, chaque écriture invalide:
  - les clés du destinataire
  - les clés admin
  - la clé par id
Users standard: écritures limitées à leurs propres notifications (dans le
filtre de la requête). Admins: toutes. Last-write-wins, pas de verrou.
"""

import logging
from typing import Optional

from pymongo.errors import PyMongoError

from config import now_iso
from services.notification_cache import (
    NotificationCache,
    admin_notifications_key,
    admin_unread_count_key,
    notification_by_id_key,
    user_notifications_key,
    user_unread_count_key,
)
from services.permissions import Requester, build_owner_filter
from services.report_errors import DataAccessFailure, Forbidden

logger = logging.getLogger("notifications")

MAX_PAGE_SIZE = 100


class NotificationService:

    def __init__(self, db, cache: NotificationCache):
        self.db = db
        self.cache = cache

    def _scope(self, requester: Requester) -> dict:
        return build_owner_filter(requester.owner_scope, field="user_id")

    async def _cached(self, key: str, loader):
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        version = self.cache.version
        try:
            value = await loader()
        except PyMongoError as e:
            logger.error(f"[NOTIFICATIONS] key={key} error={str(e)}")
            raise DataAccessFailure("Notification store query failed", str(e))
        if not self.cache.set_if_unchanged(key, value, version):
            logger.debug(f"[CACHE] skip stale key={key}")
        return value

    async def _page(self, query: dict, limit: int, offset: int) -> dict:
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        offset = max(0, offset)
        items = await self.db.notifications.find(query, {"_id": 0}) \
            .sort("created_at", -1) \
            .skip(offset) \
            .limit(limit) \
            .to_list(limit)
        total = await self.db.notifications.count_documents(query)
        return {"notifications": items, "total": total, "limit": limit, "offset": offset}

    # ==================== LECTURES ====================

    async def list_for_user(self, user_id: int, limit: int = 20, offset: int = 0) -> dict:
        key = user_notifications_key(user_id, limit, offset)
        return await self._cached(key, lambda: self._page({"user_id": user_id}, limit, offset))

    async def unread_count(self, user_id: int) -> int:
        key = user_unread_count_key(user_id)
        return await self._cached(
            key, lambda: self.db.notifications.count_documents({"user_id": user_id, "is_read": False})
        )

    async def list_all(self, requester: Requester, limit: int = 50, offset: int = 0) -> dict:
        """Vue admin: toutes les notifications"""
        if not requester.is_privileged:
            raise Forbidden("Admin access required")
        key = admin_notifications_key(limit, offset)
        page = await self._cached(key, lambda: self._page({}, limit, offset))
        unread = await self._cached(
            admin_unread_count_key(), lambda: self.db.notifications.count_documents({"is_read": False})
        )
        return {**page, "unreadCount": unread}

    async def get(self, notification_id: int, requester: Requester) -> Optional[dict]:
        doc = await self._cached(
            notification_by_id_key(notification_id),
            lambda: self.db.notifications.find_one({"id": notification_id}, {"_id": 0}),
        )
        if doc is None:
            return None
        if requester.owner_scope is not None and doc.get("user_id") != requester.owner_scope:
            return None
        return doc

    # ==================== ÉCRITURES ====================

    def _invalidate(self, user_id: int, notification_id: Optional[int] = None) -> None:
        self.cache.invalidate_user(user_id)
        self.cache.invalidate_admin()
        self.cache.invalidate_notification(notification_id)

    async def _write(self, action: str, operation, user_id: int, notification_id: Optional[int] = None):
        try:
            result = await operation
        except PyMongoError as e:
            logger.error(f"[NOTIFICATIONS] action={action} error={str(e)}")
            raise DataAccessFailure("Notification store write failed", str(e))
        self._invalidate(user_id, notification_id)
        return result

    async def _owner_of(self, notification_id: int, requester: Requester) -> Optional[int]:
        try:
            doc = await self.db.notifications.find_one(
                {"id": notification_id, **self._scope(requester)}, {"_id": 0, "user_id": 1}
            )
        except PyMongoError as e:
            logger.error(f"[NOTIFICATIONS] lookup id={notification_id} error={str(e)}")
            raise DataAccessFailure("Notification store query failed", str(e))
        return doc.get("user_id") if doc else None

    async def mark_read(self, notification_id: int, requester: Requester) -> bool:
        owner = await self._owner_of(notification_id, requester)
        if owner is None:
            return False
        result = await self._write(
            "mark_read",
            self.db.notifications.update_one(
                {"id": notification_id, **self._scope(requester)},
                {"$set": {"is_read": True, "read_at": now_iso()}},
            ),
            owner,
            notification_id,
        )
        return result.matched_count > 0

    async def mark_all_read(self, requester: Requester) -> int:
        result = await self._write(
            "mark_all_read",
            self.db.notifications.update_many(
                {"user_id": requester.id, "is_read": False},
                {"$set": {"is_read": True, "read_at": now_iso()}},
            ),
            requester.id,
        )
        return result.modified_count

    async def delete(self, notification_id: int, requester: Requester) -> bool:
        owner = await self._owner_of(notification_id, requester)
        if owner is None:
            return False
        result = await self._write(
            "delete",
            self.db.notifications.delete_one({"id": notification_id, **self._scope(requester)}),
            owner,
            notification_id,
        )
        return result.deleted_count > 0

    async def delete_all(self, requester: Requester) -> int:
        result = await self._write(
            "delete_all",
            self.db.notifications.delete_many({"user_id": requester.id}),
            requester.id,
        )
        logger.info(f"[NOTIFICATIONS] delete_all user={requester.id} deleted={result.deleted_count}")
        return result.deleted_count
