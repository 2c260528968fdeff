"""
SalesDesk CRM - Routes Auth
Login / Logout / Session. Le token de session résout l'identité du requester
(id + rôle) consommée par les rapports et les notifications.
"""

import logging
from fastapi import APIRouter, HTTPException, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from datetime import datetime, timezone, timedelta
from typing import Optional

from models.auth import UserLogin, UserResponse
from config import db, hash_password, generate_token, now_iso
from services.permissions import Requester, Role

router = APIRouter(prefix="/auth", tags=["Auth"])
security = HTTPBearer(auto_error=False)

logger = logging.getLogger("auth")

SESSION_DAYS = 7


# ==================== HELPERS ====================

async def _user_from_token(token: str) -> Optional[dict]:
    session = await db.sessions.find_one({
        "token": token,
        "expires_at": {"$gt": now_iso()}
    })
    if not session:
        return None
    return await db.users.find_one(
        {"id": session["user_id"]},
        {"_id": 0, "password": 0}
    )


async def resolve_requester(token: Optional[str]) -> Optional[Requester]:
    """Identité {id, role} depuis un token de session, None si invalide."""
    if not token:
        return None
    user = await _user_from_token(token)
    if not user:
        return None
    return Requester.from_user(user)


async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)):
    """Récupère l'utilisateur connecté depuis le token."""
    if not credentials:
        raise HTTPException(status_code=401, detail="Unauthorized")

    user = await _user_from_token(credentials.credentials)
    if not user:
        raise HTTPException(status_code=401, detail="Session expired")

    return user


async def get_requester(credentials: HTTPAuthorizationCredentials = Depends(security)) -> Requester:
    """Dépendance des routes rapports / notifications: {id, role} ou 401."""
    if not credentials:
        raise HTTPException(status_code=401, detail="Unauthorized")

    requester = await resolve_requester(credentials.credentials)
    if requester is None:
        raise HTTPException(status_code=401, detail="Session expired")

    return requester


# ==================== LOGIN / LOGOUT ====================

@router.post("/login")
async def login(data: UserLogin):
    """Connexion utilisateur."""
    user = await db.users.find_one(
        {"email": data.email.lower().strip()},
        {"_id": 0}
    )

    if not user or user.get("password") != hash_password(data.password):
        logger.warning(f"[LOGIN_FAILED] email={data.email.lower().strip()}")
        raise HTTPException(status_code=401, detail="Invalid email or password")

    token = generate_token()
    expires_at = (datetime.now(timezone.utc) + timedelta(days=SESSION_DAYS)).isoformat()

    await db.sessions.insert_one({
        "token": token,
        "user_id": user["id"],
        "created_at": now_iso(),
        "expires_at": expires_at
    })

    return {
        "token": token,
        "user": UserResponse(**user).model_dump()
    }


@router.post("/logout")
async def logout(
    user: dict = Depends(get_current_user),
    credentials: HTTPAuthorizationCredentials = Depends(security)
):
    if credentials:
        await db.sessions.delete_one({"token": credentials.credentials})
    return {"success": True}


@router.get("/me")
async def get_me(user: dict = Depends(get_current_user)):
    """Retourne le user connecté + rôle normalisé."""
    user["role_tier"] = Role.from_value(user.get("role")).value
    return user
