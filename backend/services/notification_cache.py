"""
Cache des notifications (en mémoire, par process)

Politique unique: TTL + suppression à chaque écriture. Pas d'éviction LRU.
Les entrées expirées sont purgées à chaque set (au plus une fois par seconde).
`version` augmente à chaque suppression: un lecteur qui a chargé avant une
écriture ne réinsère pas sa valeur (voir set_if_unchanged).
Clés:
    notifications:user:{id}:limit:{l}:offset:{o}
    notifications:user:{id}:unread_count
    notifications:admin:limit:{l}:offset:{o}
    notifications:admin:unread_count
    notification:id:{id}
"""

import fnmatch
import logging
import time
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger("notifications")

DEFAULT_TTL = 300
PURGE_INTERVAL = 1.0


# ==================== CLÉS ====================

def user_notifications_key(user_id: int, limit: int, offset: int) -> str:
    return f"notifications:user:{user_id}:limit:{limit}:offset:{offset}"


def user_unread_count_key(user_id: int) -> str:
    return f"notifications:user:{user_id}:unread_count"


def admin_notifications_key(limit: int, offset: int) -> str:
    return f"notifications:admin:limit:{limit}:offset:{offset}"


def admin_unread_count_key() -> str:
    return "notifications:admin:unread_count"


def notification_by_id_key(notification_id: int) -> str:
    return f"notification:id:{notification_id}"


class NotificationCache:

    def __init__(self, ttl: int = DEFAULT_TTL, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.clock = clock
        self._entries: Dict[str, Tuple[float, Any]] = {}
        self.version = 0
        self._next_purge = 0.0

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self.clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        now = self.clock()
        if now >= self._next_purge:
            self.purge_expired(now)
            self._next_purge = now + PURGE_INTERVAL
        self._entries[key] = (now + (ttl if ttl is not None else self.ttl), value)

    def set_if_unchanged(self, key: str, value: Any, version: int) -> bool:
        """set seulement si aucune suppression n'a eu lieu depuis `version`"""
        if version != self.version:
            return False
        self.set(key, value)
        return True

    def purge_expired(self, now: Optional[float] = None) -> int:
        now = self.clock() if now is None else now
        expired = [k for k, (expires_at, _value) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)

    def delete(self, key: str) -> None:
        self.version += 1
        self._entries.pop(key, None)

    def delete_pattern(self, pattern: str) -> int:
        self.version += 1
        keys = [k for k in self._entries if fnmatch.fnmatchcase(k, pattern)]
        for key in keys:
            del self._entries[key]
        return len(keys)

    def clear(self) -> None:
        self.version += 1
        self._entries.clear()

    # ==================== INVALIDATION ====================

    def invalidate_user(self, user_id: int) -> None:
        removed = self.delete_pattern(f"notifications:user:{user_id}:*")
        logger.debug(f"[CACHE] invalidate user={user_id} keys={removed}")

    def invalidate_admin(self) -> None:
        self.delete_pattern("notifications:admin:*")

    def invalidate_notification(self, notification_id: Optional[int] = None) -> None:
        if notification_id is None:
            self.delete_pattern("notification:id:*")
        else:
            self.delete(notification_by_id_key(notification_id))
