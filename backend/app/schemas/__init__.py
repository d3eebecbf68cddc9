"""
Schemas Pydantic per il progetto Gestionale Impianti TVCC

Questo modulo contiene tutti gli schemi Pydantic utilizzati per la validazione
e serializzazione delle richieste e risposte API.
"""

from app.schemas.base import ApiModel
from app.schemas.customer import AgingBreakdown, CustomerReceivableSummary
from app.schemas.job import (
    ExpenseType,
    JobCostSummary,
    JobCreate,
    JobExpenseCreate,
    JobExpenseRead,
    JobExpenseUpdate,
    JobMaterialCreate,
    JobMaterialRead,
    JobMaterialUpdate,
    JobPaymentCreate,
    JobPaymentRead,
    JobPaymentUpdate,
    JobRead,
    JobStatistics,
    JobStatus,
    JobStatusHistoryRead,
    JobStatusUpdate,
    JobUpdate,
    PaymentType,
    StockMovementType,
)

__all__ = [
    "ApiModel",
    "AgingBreakdown",
    "CustomerReceivableSummary",
    "ExpenseType",
    "JobCostSummary",
    "JobCreate",
    "JobExpenseCreate",
    "JobExpenseRead",
    "JobExpenseUpdate",
    "JobMaterialCreate",
    "JobMaterialRead",
    "JobMaterialUpdate",
    "JobPaymentCreate",
    "JobPaymentRead",
    "JobPaymentUpdate",
    "JobRead",
    "JobStatistics",
    "JobStatus",
    "JobStatusHistoryRead",
    "JobStatusUpdate",
    "JobUpdate",
    "PaymentType",
    "StockMovementType",
]
