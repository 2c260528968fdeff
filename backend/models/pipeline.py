"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  SalesDesk CRM - Modèles Pipeline / Opportunity / Lead / Quotation           ║
║                                                                              ║
║  Un pipeline = une commande gagnée, suivie jusqu'au paiement                 ║
║  - 1 opportunity -> 1 pipeline (l'opportunity n'a pas toujours de lead)      ║
║  - status avance par étapes (production -> expédition -> clôture)            ║
║                                                                              ║
║  RÈGLE: un pipeline est "closed" si PROJECT_COMPLETE ou PAYMENT_RECEIVED,    ║
║         date de clôture = updated_at (pas de champ closed_at en base)        ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

from typing import Optional
from pydantic import BaseModel
from enum import Enum


class PipelineStatus(str, Enum):
    """Étapes d'un pipeline, dans l'ordre du cycle de vie"""
    ORDER_RECEIVED = "ORDER_RECEIVED"
    ORDER_PROCESSING = "ORDER_PROCESSING"
    CONTRACT_SIGNING = "CONTRACT_SIGNING"
    PRODUCTION_STARTED = "PRODUCTION_STARTED"
    QUALITY_CHECK = "QUALITY_CHECK"
    PACKING_SHIPPING = "PACKING_SHIPPING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    INSTALLATION_STARTED = "INSTALLATION_STARTED"
    INSTALLATION_COMPLETE = "INSTALLATION_COMPLETE"
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    PROJECT_COMPLETE = "PROJECT_COMPLETE"
    # Hors funnel
    ON_HOLD = "ON_HOLD"
    DELAYED = "DELAYED"
    CANCELLED = "CANCELLED"
    DISPUTED = "DISPUTED"
    LOST_TO_COMPETITOR = "LOST_TO_COMPETITOR"


CLOSED_STATUSES = [
    PipelineStatus.PROJECT_COMPLETE.value,
    PipelineStatus.PAYMENT_RECEIVED.value,
]

# Deals perdus: exclus du pipeline ouvert, comptent contre la conversion
LOST_STATUSES = [
    PipelineStatus.CANCELLED.value,
    PipelineStatus.LOST_TO_COMPETITOR.value,
]

OPEN_STATUSES = [
    s.value for s in PipelineStatus if s.value not in CLOSED_STATUSES and s.value not in LOST_STATUSES
]


class QuotationStatus(str, Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class PipelineDocument(BaseModel):
    """
    Structure d'un pipeline en base (collection pipelines)
    Dates stockées en ISO 8601.
    """
    id: int
    name: str = ""
    opportunity_id: Optional[int] = None
    status: str = PipelineStatus.ORDER_RECEIVED.value
    owner_id: int
    order_value: float = 0.0
    progress_percentage: float = 0.0  # 0-100, probabilité de clôture saisie par le commercial
    created_at: str
    updated_at: str


class OpportunityDocument(BaseModel):
    id: int
    name: str
    owner_id: int
    lead_id: Optional[int] = None  # Pas toujours issue d'un lead
    created_date: str = ""


class LeadDocument(BaseModel):
    id: int
    status: str = ""
    qualification_stage: str = ""
    owner_id: int
    created_date: str


class QuotationDocument(BaseModel):
    """Collection pending_quotations"""
    id: int
    project_or_client_name: str = ""
    order_value: float = 0.0
    status: QuotationStatus = QuotationStatus.PENDING
    quotation_deadline: Optional[str] = None
    created_by_id: int
    created_at: str
    updated_at: str
