"""
SalesDesk CRM - Modeles Auth & Utilisateurs
Le role decide du scope des rapports (admin-tier = toutes les donnees).
"""

from pydantic import BaseModel
from typing import Optional


class UserLogin(BaseModel):
    email: str
    password: str


class UserResponse(BaseModel):
    id: int
    email: str
    name: str = ""
    role: str = "standard"
    enable_notifications: bool = True
    avatar_url: Optional[str] = None
