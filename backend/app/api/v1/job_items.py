"""
Router FastAPI per materiali, pagamenti e spese dei Lavori
Progetto: Gestionale Impianti TVCC

Endpoint annidati sotto /jobs/{job_id}.
"""

import datetime
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.schemas.job import (
    JobExpenseCreate,
    JobExpenseRead,
    JobExpenseUpdate,
    JobMaterialCreate,
    JobMaterialRead,
    JobMaterialUpdate,
    JobPaymentCreate,
    JobPaymentRead,
    JobPaymentUpdate,
)
from app.services.job_item_service import job_item_service

# Logger per questo modulo
logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/jobs/{job_id}",
    tags=["Lavori - Voci"],
)


# -------------------------------------------------------------------
# Materiali
# -------------------------------------------------------------------

@router.get(
    "/materials",
    name="materiali_lista",
    summary="Materiali del lavoro",
    response_model=list[JobMaterialRead],
)
async def get_job_materials(
    job_id: uuid.UUID = Path(..., description="UUID del lavoro"),
    db: AsyncSession = Depends(get_db),
) -> list[JobMaterialRead]:
    materials = await job_item_service.get_materials(db, job_id)
    return [JobMaterialRead.model_validate(m) for m in materials]


@router.post(
    "/materials",
    name="materiale_aggiungi",
    summary="Aggiungi materiale",
    description="Aggiunge un materiale al lavoro. La quantità utilizzata è ammessa "
               "solo a montaggio completato e scarica il magazzino.",
    response_model=JobMaterialRead,
    status_code=status.HTTP_201_CREATED,
)
async def add_job_material(
    job_id: uuid.UUID = Path(..., description="UUID del lavoro"),
    data: JobMaterialCreate = ...,
    db: AsyncSession = Depends(get_db),
) -> JobMaterialRead:
    """
    Aggiunge un materiale al lavoro.

    Raises:
        NotFoundError: Se lavoro o prodotto non esistono
        ValidationError: Quantità utilizzata non ammessa o giacenza insufficiente
    """
    material = await job_item_service.add_material(db, job_id, data)
    await db.commit()
    return JobMaterialRead.model_validate(material)


@router.put(
    "/materials/{material_id}",
    name="materiale_aggiorna",
    summary="Aggiorna materiale",
    response_model=JobMaterialRead,
)
async def update_job_material(
    job_id: uuid.UUID = Path(..., description="UUID del lavoro"),
    material_id: uuid.UUID = Path(..., description="UUID del materiale"),
    data: JobMaterialUpdate = ...,
    db: AsyncSession = Depends(get_db),
) -> JobMaterialRead:
    """
    Aggiorna un materiale.

    Raises:
        NotFoundError: Se il materiale non esiste nel lavoro
        ValidationError: Quantità utilizzata non ammessa o giacenza insufficiente
    """
    material = await job_item_service.update_material(db, job_id, material_id, data)
    await db.commit()
    return JobMaterialRead.model_validate(material)


@router.delete(
    "/materials/{material_id}",
    name="materiale_elimina",
    summary="Elimina materiale",
    description="Rimuove un materiale; la quantità utilizzata torna a magazzino.",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_job_material(
    job_id: uuid.UUID = Path(..., description="UUID del lavoro"),
    material_id: uuid.UUID = Path(..., description="UUID del materiale"),
    db: AsyncSession = Depends(get_db),
) -> None:
    await job_item_service.remove_material(db, job_id, material_id)
    await db.commit()


# -------------------------------------------------------------------
# Pagamenti
# -------------------------------------------------------------------

@router.get(
    "/payments",
    name="pagamenti_lista",
    summary="Pagamenti del lavoro",
    response_model=list[JobPaymentRead],
)
async def get_job_payments(
    job_id: uuid.UUID = Path(..., description="UUID del lavoro"),
    db: AsyncSession = Depends(get_db),
) -> list[JobPaymentRead]:
    payments = await job_item_service.get_payments(db, job_id)
    return [JobPaymentRead.model_validate(p) for p in payments]


@router.post(
    "/payments",
    name="pagamento_aggiungi",
    summary="Aggiungi pagamento",
    response_model=JobPaymentRead,
    status_code=status.HTTP_201_CREATED,
)
async def add_job_payment(
    job_id: uuid.UUID = Path(..., description="UUID del lavoro"),
    data: JobPaymentCreate = ...,
    db: AsyncSession = Depends(get_db),
) -> JobPaymentRead:
    payment = await job_item_service.add_payment(db, job_id, data)
    await db.commit()
    return JobPaymentRead.model_validate(payment)


@router.put(
    "/payments/{payment_id}",
    name="pagamento_aggiorna",
    summary="Aggiorna pagamento",
    response_model=JobPaymentRead,
)
async def update_job_payment(
    job_id: uuid.UUID = Path(..., description="UUID del lavoro"),
    payment_id: uuid.UUID = Path(..., description="UUID del pagamento"),
    data: JobPaymentUpdate = ...,
    db: AsyncSession = Depends(get_db),
) -> JobPaymentRead:
    payment = await job_item_service.update_payment(db, job_id, payment_id, data)
    await db.commit()
    return JobPaymentRead.model_validate(payment)


@router.patch(
    "/payments/{payment_id}/paid",
    name="pagamento_incassato",
    summary="Segna pagamento come incassato",
    response_model=JobPaymentRead,
)
async def mark_job_payment_paid(
    job_id: uuid.UUID = Path(..., description="UUID del lavoro"),
    payment_id: uuid.UUID = Path(..., description="UUID del pagamento"),
    paid_date: Optional[datetime.date] = Query(None, alias="paidDate", description="Data incasso (default oggi)"),
    db: AsyncSession = Depends(get_db),
) -> JobPaymentRead:
    payment = await job_item_service.mark_payment_paid(db, job_id, payment_id, paid_date)
    await db.commit()
    return JobPaymentRead.model_validate(payment)


@router.delete(
    "/payments/{payment_id}",
    name="pagamento_elimina",
    summary="Elimina pagamento",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_job_payment(
    job_id: uuid.UUID = Path(..., description="UUID del lavoro"),
    payment_id: uuid.UUID = Path(..., description="UUID del pagamento"),
    db: AsyncSession = Depends(get_db),
) -> None:
    await job_item_service.remove_payment(db, job_id, payment_id)
    await db.commit()


# -------------------------------------------------------------------
# Spese
# -------------------------------------------------------------------

@router.get(
    "/expenses",
    name="spese_lista",
    summary="Spese del lavoro",
    response_model=list[JobExpenseRead],
)
async def get_job_expenses(
    job_id: uuid.UUID = Path(..., description="UUID del lavoro"),
    db: AsyncSession = Depends(get_db),
) -> list[JobExpenseRead]:
    expenses = await job_item_service.get_expenses(db, job_id)
    return [JobExpenseRead.model_validate(e) for e in expenses]


@router.post(
    "/expenses",
    name="spesa_aggiungi",
    summary="Aggiungi spesa",
    response_model=JobExpenseRead,
    status_code=status.HTTP_201_CREATED,
)
async def add_job_expense(
    job_id: uuid.UUID = Path(..., description="UUID del lavoro"),
    data: JobExpenseCreate = ...,
    db: AsyncSession = Depends(get_db),
) -> JobExpenseRead:
    expense = await job_item_service.add_expense(db, job_id, data)
    await db.commit()
    return JobExpenseRead.model_validate(expense)


@router.put(
    "/expenses/{expense_id}",
    name="spesa_aggiorna",
    summary="Aggiorna spesa",
    response_model=JobExpenseRead,
)
async def update_job_expense(
    job_id: uuid.UUID = Path(..., description="UUID del lavoro"),
    expense_id: uuid.UUID = Path(..., description="UUID della spesa"),
    data: JobExpenseUpdate = ...,
    db: AsyncSession = Depends(get_db),
) -> JobExpenseRead:
    expense = await job_item_service.update_expense(db, job_id, expense_id, data)
    await db.commit()
    return JobExpenseRead.model_validate(expense)


@router.delete(
    "/expenses/{expense_id}",
    name="spesa_elimina",
    summary="Elimina spesa",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_job_expense(
    job_id: uuid.UUID = Path(..., description="UUID del lavoro"),
    expense_id: uuid.UUID = Path(..., description="UUID della spesa"),
    db: AsyncSession = Depends(get_db),
) -> None:
    await job_item_service.remove_expense(db, job_id, expense_id)
    await db.commit()
