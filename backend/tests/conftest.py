"""
Fixtures partagées: base en mémoire, requesters, horloge figée, builders de documents.
"""

import os
from datetime import datetime, timedelta, timezone

import pytest

os.environ.setdefault("DISABLE_SCHEDULER", "1")
os.environ.setdefault("APP_ENV", "test")

from models.notification import NotificationDocument
from models.pipeline import (
    LeadDocument,
    OpportunityDocument,
    PipelineDocument,
    PipelineStatus,
    QuotationDocument,
    QuotationStatus,
)
from services.permissions import Requester, Role
from services.report_store import ReportStore
from tests.fake_db import FakeDatabase

NOW = datetime(2026, 10, 15, 12, 0, tzinfo=timezone.utc)


def ago(days: float = 0, hours: float = 0) -> str:
    """Date ISO relative à NOW (format stocké en base)"""
    return (NOW - timedelta(days=days, hours=hours)).isoformat()


# ==================== BUILDERS ====================

def make_pipeline(id, owner_id, status=PipelineStatus.ORDER_RECEIVED, order_value=0, created=None, updated=None,
                  progress=0):
    created = created or ago(1)
    return PipelineDocument(
        id=id,
        name=f"Pipeline {id}",
        status=status.value if isinstance(status, PipelineStatus) else status,
        owner_id=owner_id,
        order_value=order_value,
        progress_percentage=progress,
        created_at=created,
        updated_at=updated or created,
    ).model_dump()


def make_quotation(id, owner_id, status=QuotationStatus.PENDING, order_value=0,
                   client="Acme", created=None, updated=None, deadline=None):
    created = created or ago(1)
    return QuotationDocument(
        id=id,
        project_or_client_name=client,
        order_value=order_value,
        status=status,
        quotation_deadline=deadline,
        created_by_id=owner_id,
        created_at=created,
        updated_at=updated or created,
    ).model_dump(mode="json")


def make_lead(id, owner_id, created=None):
    return LeadDocument(id=id, status="new", owner_id=owner_id, created_date=created or ago(1)).model_dump()


def make_opportunity(id, owner_id, created=None):
    return OpportunityDocument(
        id=id, name=f"Opportunity {id}", owner_id=owner_id, created_date=created or ago(1)
    ).model_dump()


def make_notification(id, user_id, is_read=False, created=None):
    return NotificationDocument(
        id=id,
        user_id=user_id,
        title=f"Notification {id}",
        is_read=is_read,
        created_at=created or ago(hours=id),
    ).model_dump()


def make_user(id, role="sales", notifications=True, name=None, email=None):
    return {
        "id": id,
        "name": name if name is not None else f"User {id}",
        "email": email if email is not None else f"user{id}@salesdesk.test",
        "role": role,
        "enable_notifications": notifications,
        "password": "hashed",
    }


# ==================== FIXTURES ====================

@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def store(fake_db):
    return ReportStore(fake_db, limit=10000)


@pytest.fixture
def admin():
    return Requester(id=99, role=Role.ADMIN)


@pytest.fixture
def alice():
    return Requester(id=1, role=Role.STANDARD)


@pytest.fixture
def bob():
    return Requester(id=2, role=Role.STANDARD)


@pytest.fixture
def clock():
    return lambda: NOW


class FakeMailer:
    """Remplace EmailService: enregistre les envois"""

    def __init__(self, fail_for=()):
        self.sent = []
        self.alerts = []
        self.fail_for = set(fail_for)

    def send_attendance_reminder(self, to_email, name=None):
        if to_email in self.fail_for:
            return False
        self.sent.append((to_email, name))
        return True

    def send_critical_alert(self, alert_type, message, details=None):
        self.alerts.append((alert_type, message))
        return True


@pytest.fixture
def mailer():
    return FakeMailer()
