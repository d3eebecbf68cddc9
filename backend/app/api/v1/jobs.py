"""
Router FastAPI per i Lavori
Progetto: Gestionale Impianti TVCC

Definisce gli endpoint API per la gestione dei lavori:
CRUD, cambio di stato, storico, riepilogo costi e statistiche.
"""

import datetime
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.schemas.job import (
    JobCostSummary,
    JobCreate,
    JobRead,
    JobStatistics,
    JobStatus,
    JobStatusHistoryRead,
    JobStatusUpdate,
    JobUpdate,
)
from app.services.job_service import job_service

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Router con prefix e tag
router = APIRouter(
    prefix="/jobs",
    tags=["Lavori"],
)


# -------------------------------------------------------------------
# Endpoints di consultazione (prima di /{job_id})
# -------------------------------------------------------------------

@router.get(
    "/statistics",
    name="lavori_statistiche",
    summary="Statistiche lavori",
    description="Fatturato, spese, utile e conteggi dei lavori pianificati nel periodo.",
    response_model=JobStatistics,
)
async def get_job_statistics(
    start_date: Optional[datetime.date] = Query(None, alias="startDate", description="Data iniziale"),
    end_date: Optional[datetime.date] = Query(None, alias="endDate", description="Data finale"),
    db: AsyncSession = Depends(get_db),
) -> JobStatistics:
    """Statistiche aggregate dei lavori nel periodo indicato."""
    return await job_service.get_statistics(db, start_date=start_date, end_date=end_date)


@router.get(
    "/active",
    name="lavori_attivi",
    summary="Lavori attivi",
    description="Lavori non completati né annullati, ordinati per data pianificata.",
    response_model=list[JobRead],
)
async def get_active_jobs(db: AsyncSession = Depends(get_db)) -> list[JobRead]:
    jobs = await job_service.get_active(db)
    return [JobRead.model_validate(job) for job in jobs]


@router.get(
    "/customer/{customer_id}",
    name="lavori_cliente",
    summary="Lavori di un cliente",
    response_model=list[JobRead],
)
async def get_customer_jobs(
    customer_id: uuid.UUID = Path(..., description="UUID del cliente"),
    db: AsyncSession = Depends(get_db),
) -> list[JobRead]:
    """
    Recupera i lavori di un cliente.

    Raises:
        NotFoundError: Se il cliente non esiste
    """
    jobs = await job_service.get_by_customer(db, customer_id)
    return [JobRead.model_validate(job) for job in jobs]


@router.get(
    "/",
    name="lavori_lista",
    summary="Lista lavori",
    description="Recupera i lavori con eventuali filtri.",
    response_model=list[JobRead],
)
async def get_jobs(
    customer_id: Optional[uuid.UUID] = Query(None, alias="customerId", description="Filtro per cliente"),
    status_filter: Optional[JobStatus] = Query(None, alias="status", description="Filtro per stato"),
    start_date: Optional[datetime.date] = Query(None, alias="startDate", description="Data pianificata minima"),
    end_date: Optional[datetime.date] = Query(None, alias="endDate", description="Data pianificata massima"),
    search_term: Optional[str] = Query(None, alias="searchTerm", max_length=100),
    is_paid: Optional[bool] = Query(None, alias="isPaid", description="Solo lavori saldati / non saldati"),
    db: AsyncSession = Depends(get_db),
) -> list[JobRead]:
    """
    Recupera la lista dei lavori.

    Args:
        customer_id: Filtro opzionale per cliente
        status_filter: Filtro opzionale per stato (codice intero)
        start_date: Data pianificata minima
        end_date: Data pianificata massima
        search_term: Ricerca su numero, titolo e indirizzo
        is_paid: Filtro per lavori saldati
        db: Sessione database

    Returns:
        Lista dei lavori
    """
    jobs = await job_service.get_all(
        db,
        customer_id=customer_id,
        status=status_filter,
        start_date=start_date,
        end_date=end_date,
        search_term=search_term,
        is_paid=is_paid,
    )
    return [JobRead.model_validate(job) for job in jobs]


# -------------------------------------------------------------------
# Endpoints per singolo Lavoro
# -------------------------------------------------------------------

@router.get(
    "/{job_id}",
    name="lavoro_dettaglio",
    summary="Dettaglio lavoro",
    response_model=JobRead,
)
async def get_job(
    job_id: uuid.UUID = Path(..., description="UUID del lavoro"),
    db: AsyncSession = Depends(get_db),
) -> JobRead:
    """
    Recupera i dettagli di un lavoro.

    Raises:
        NotFoundError: Se il lavoro non esiste
    """
    job = await job_service.get_by_id(db, job_id)
    return JobRead.model_validate(job)


@router.post(
    "/",
    name="lavoro_crea",
    summary="Crea lavoro",
    description="Crea un nuovo lavoro. Numero lavoro e importo finale sono assegnati dal server.",
    response_model=JobRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_job(
    data: JobCreate,
    db: AsyncSession = Depends(get_db),
) -> JobRead:
    """
    Crea un nuovo lavoro.

    Raises:
        NotFoundError: Se il cliente non esiste
    """
    job = await job_service.create(db, data)
    await db.commit()
    return JobRead.model_validate(job)


@router.put(
    "/{job_id}",
    name="lavoro_aggiorna",
    summary="Aggiorna lavoro",
    description="Aggiorna i dati di un lavoro. "
               "NOTA: per cambiare lo stato usare l'endpoint PATCH /status.",
    response_model=JobRead,
)
async def update_job(
    job_id: uuid.UUID = Path(..., description="UUID del lavoro"),
    data: JobUpdate = ...,
    db: AsyncSession = Depends(get_db),
) -> JobRead:
    job = await job_service.update(db, job_id, data)
    await db.commit()
    return JobRead.model_validate(job)


@router.delete(
    "/{job_id}",
    name="lavoro_elimina",
    summary="Elimina lavoro",
    description="Eliminazione logica: il lavoro resta nel fatturato del cliente.",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_job(
    job_id: uuid.UUID = Path(..., description="UUID del lavoro"),
    db: AsyncSession = Depends(get_db),
) -> None:
    await job_service.delete(db, job_id)
    await db.commit()


@router.patch(
    "/{job_id}/status",
    name="lavoro_cambia_stato",
    summary="Cambia stato lavoro",
    description="Cambia lo stato di un lavoro. Da Completato o Annullato "
               "si esce solo con reopen=true.",
    response_model=JobRead,
)
async def change_job_status(
    job_id: uuid.UUID = Path(..., description="UUID del lavoro"),
    data: JobStatusUpdate = ...,
    db: AsyncSession = Depends(get_db),
) -> JobRead:
    """
    Cambia lo stato di un lavoro.

    Raises:
        NotFoundError: Se il lavoro non esiste
        InvalidTransitionError: Se la transizione non è consentita (409)
    """
    job = await job_service.change_status(db, job_id, data)
    await db.commit()
    return JobRead.model_validate(job)


@router.get(
    "/{job_id}/status-history",
    name="lavoro_storico_stati",
    summary="Storico stati lavoro",
    response_model=list[JobStatusHistoryRead],
)
async def get_job_status_history(
    job_id: uuid.UUID = Path(..., description="UUID del lavoro"),
    db: AsyncSession = Depends(get_db),
) -> list[JobStatusHistoryRead]:
    history = await job_service.get_status_history(db, job_id)
    return [JobStatusHistoryRead.model_validate(record) for record in history]


@router.get(
    "/{job_id}/costs",
    name="lavoro_costi",
    summary="Riepilogo costi lavoro",
    description="Costo materiali, pagamenti, spese, residuo e utile netto, ricalcolati a ogni richiesta.",
    response_model=JobCostSummary,
)
async def get_job_costs(
    job_id: uuid.UUID = Path(..., description="UUID del lavoro"),
    db: AsyncSession = Depends(get_db),
) -> JobCostSummary:
    return await job_service.get_costs(db, job_id)
