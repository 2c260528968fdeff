"""
SalesDesk CRM - Modèle Notification
user_id = destinataire. Les admins voient toutes les notifications.
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict


class NotificationDocument(BaseModel):
    model_config = ConfigDict(extra="ignore")  # Ignore MongoDB's _id field

    id: int
    user_id: int
    title: str
    message: str = ""
    category: Optional[str] = None
    is_read: bool = False
    created_at: str
    read_at: Optional[str] = None
