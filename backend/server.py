"""
SalesDesk CRM - API Backend
Rapports, notifications, rappels de présence

Démarre avec:
    uvicorn server:app --host 0.0.0.0 --port 8001 --reload
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from config import CORS_ORIGINS, DISABLE_SCHEDULER
from services.report_errors import ReportError

# Configuration logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("salesdesk")

# Créer l'app
app = FastAPI(
    title="SalesDesk CRM",
    description="CRM ventes: rapports, pipelines, présence, notifications",
    version="1.0.0"
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ==================== IMPORT DES ROUTES ====================

from routes import auth, reports, notifications, attendance

# Routes avec préfixe /api
app.include_router(auth.router, prefix="/api")
app.include_router(reports.router, prefix="/api")
app.include_router(notifications.router, prefix="/api")
app.include_router(attendance.router, prefix="/api")


# ==================== ERREURS ====================

@app.exception_handler(ReportError)
async def report_error_handler(request: Request, exc: ReportError):
    """InvalidRequest 400, Forbidden 403, DataAccessFailure 500 -> {error, details?}"""
    return JSONResponse(status_code=exc.status_code, content=reports.error_body(exc.message, exc.details))


# ==================== ROUTE RACINE ====================

@app.get("/")
async def root():
    return {
        "name": "SalesDesk CRM API",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs"
    }


# ==================== STARTUP ====================

@app.on_event("startup")
async def startup():
    logger.info("🚀 SalesDesk CRM démarré")

    # Créer les index MongoDB
    from config import db

    await db.users.create_index("id", unique=True)
    await db.users.create_index("email", unique=True)
    await db.sessions.create_index("token")
    await db.sessions.create_index("expires_at")
    await db.pipelines.create_index([("owner_id", 1), ("updated_at", -1)])
    await db.pipelines.create_index([("owner_id", 1), ("created_at", -1)])
    await db.pipelines.create_index("status")
    await db.pending_quotations.create_index([("created_by_id", 1), ("created_at", -1)])
    await db.attendances.create_index([("user_id", 1), ("date", -1)])
    await db.leads.create_index([("owner_id", 1), ("created_date", -1)])
    await db.opportunities.create_index([("owner_id", 1), ("created_date", -1)])
    await db.immediate_sales.create_index([("owner_id", 1), ("created_at", -1)])
    await db.notifications.create_index([("user_id", 1), ("created_at", -1)])
    await db.notifications.create_index("id", unique=True)

    if not DISABLE_SCHEDULER:
        from scheduler_service import task_scheduler
        task_scheduler.start()


@app.on_event("shutdown")
async def shutdown():
    from config import client
    from scheduler_service import task_scheduler

    task_scheduler.stop()
    client.close()
    logger.info("SalesDesk CRM arrêté")
