"""
Router FastAPI per i crediti clienti
Progetto: Gestionale Impianti TVCC

Riepilogo crediti e scadenzario, per singolo cliente o per tutti.
"""

import logging
import uuid

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.schemas.customer import CustomerReceivableSummary
from app.services.receivable_service import receivable_service

# Logger per questo modulo
logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/customer",
    tags=["Clienti - Crediti"],
)


@router.get(
    "/receivable-summaries",
    name="crediti_clienti",
    summary="Riepilogo crediti di tutti i clienti",
    description="Un riepilogo per cliente; activeOnly esclude i clienti disattivati.",
    response_model=list[CustomerReceivableSummary],
)
async def get_receivable_summaries(
    active_only: bool = Query(False, alias="activeOnly", description="Solo clienti attivi"),
    db: AsyncSession = Depends(get_db),
) -> list[CustomerReceivableSummary]:
    return await receivable_service.get_all_summaries(db, active_only=active_only)


@router.get(
    "/{customer_id}/receivable-summary",
    name="crediti_cliente",
    summary="Riepilogo crediti di un cliente",
    description="Fatturato, incassato, saldo aperto e scadenzario 0-30/30-60/60-90/90+ giorni.",
    response_model=CustomerReceivableSummary,
)
async def get_receivable_summary(
    customer_id: uuid.UUID = Path(..., description="UUID del cliente"),
    db: AsyncSession = Depends(get_db),
) -> CustomerReceivableSummary:
    """
    Riepilogo crediti di un cliente.

    Raises:
        NotFoundError: Se il cliente non esiste
    """
    return await receivable_service.get_summary(db, customer_id)
