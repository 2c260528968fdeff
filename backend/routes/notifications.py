"""
Routes notifications (utilisateur + vue admin)
"""

from fastapi import APIRouter, Depends, HTTPException

from config import db, NOTIFICATION_CACHE_TTL
from routes.auth import get_requester
from services.notification_cache import NotificationCache
from services.notifications import NotificationService
from services.permissions import Requester

router = APIRouter(tags=["Notifications"])

# Un cache par process
notification_cache = NotificationCache(ttl=NOTIFICATION_CACHE_TTL)


def get_notification_service() -> NotificationService:
    return NotificationService(db, notification_cache)


@router.get("/notifications")
async def list_notifications(
    limit: int = 20,
    offset: int = 0,
    requester: Requester = Depends(get_requester),
    service: NotificationService = Depends(get_notification_service),
):
    page = await service.list_for_user(requester.id, limit, offset)
    unread = await service.unread_count(requester.id)
    return {**page, "unreadCount": unread}


@router.get("/notifications/unread-count")
async def unread_count(
    requester: Requester = Depends(get_requester),
    service: NotificationService = Depends(get_notification_service),
):
    return {"unreadCount": await service.unread_count(requester.id)}


@router.get("/notifications/{notification_id}")
async def get_notification(
    notification_id: int,
    requester: Requester = Depends(get_requester),
    service: NotificationService = Depends(get_notification_service),
):
    doc = await service.get(notification_id, requester)
    if not doc:
        raise HTTPException(status_code=404, detail="Notification not found")
    return doc


@router.post("/notifications/read-all")
async def mark_all_read(
    requester: Requester = Depends(get_requester),
    service: NotificationService = Depends(get_notification_service),
):
    updated = await service.mark_all_read(requester)
    return {"success": True, "updated": updated}


@router.post("/notifications/{notification_id}/read")
async def mark_read(
    notification_id: int,
    requester: Requester = Depends(get_requester),
    service: NotificationService = Depends(get_notification_service),
):
    if not await service.mark_read(notification_id, requester):
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"success": True}


@router.delete("/notifications/{notification_id}")
async def delete_notification(
    notification_id: int,
    requester: Requester = Depends(get_requester),
    service: NotificationService = Depends(get_notification_service),
):
    if not await service.delete(notification_id, requester):
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"success": True}


@router.delete("/notifications")
async def delete_all_notifications(
    requester: Requester = Depends(get_requester),
    service: NotificationService = Depends(get_notification_service),
):
    deleted = await service.delete_all(requester)
    return {"success": True, "deleted": deleted}


# ==================== ADMIN ====================

@router.get("/admin/notifications")
async def list_all_notifications(
    limit: int = 50,
    offset: int = 0,
    requester: Requester = Depends(get_requester),
    service: NotificationService = Depends(get_notification_service),
):
    """Forbidden (403) si le rôle n'est pas admin-tier"""
    return await service.list_all(requester, limit, offset)
