"""
Configuration et utilitaires partagés
"""

import os
import hashlib
import secrets
from datetime import datetime, timezone
from motor.motor_asyncio import AsyncIOMotorClient
from dotenv import load_dotenv
from pathlib import Path

# Charger .env
ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

# MongoDB
MONGO_URL = os.environ.get('MONGO_URL', 'mongodb://localhost:27017')
DB_NAME = os.environ.get('DB_NAME', 'salesdesk_crm')

client = AsyncIOMotorClient(MONGO_URL)
db = client[DB_NAME]

# Environment
APP_ENV = os.environ.get('APP_ENV', 'development').lower()
IS_PRODUCTION = APP_ENV == 'production'
CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')

# Cron endpoints (query ?key= or X-Cron-Secret header)
CRON_SECRET = os.environ.get('CRON_SECRET', '')

# Reports
REPORT_QUERY_LIMIT = int(os.environ.get('REPORT_QUERY_LIMIT', '10000'))

# Notifications
NOTIFICATION_CACHE_TTL = int(os.environ.get('NOTIFICATION_CACHE_TTL', '300'))

# Scheduler
ATTENDANCE_REMINDER_HOUR = int(os.environ.get('ATTENDANCE_REMINDER_HOUR', '17'))
SCHEDULER_TIMEZONE = os.environ.get('SCHEDULER_TIMEZONE', 'UTC')
DISABLE_SCHEDULER = os.environ.get('DISABLE_SCHEDULER', '').lower() in ('1', 'true', 'yes')


# ==================== HELPERS ====================

def hash_password(password: str) -> str:
    """Hash un mot de passe avec SHA256"""
    return hashlib.sha256(password.encode()).hexdigest()

def generate_token() -> str:
    """Génère un token de session sécurisé"""
    return secrets.token_urlsafe(32)

def now_iso() -> str:
    """Retourne la date/heure actuelle en ISO"""
    return datetime.now(timezone.utc).isoformat()
