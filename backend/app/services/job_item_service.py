"""
Service Layer per materiali, pagamenti e spese dei Lavori
Progetto: Gestionale Impianti TVCC

Gestisce le collezioni figlie di un lavoro. La quantità utilizzata dei
materiali è soggetta alla regola di impatto sul magazzino: ogni sua
variazione genera lo scarico (o il reso) del prodotto.
"""

import datetime
import logging
import uuid
from decimal import Decimal
from typing import Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.events import Mutation, invalidation_bus
from app.core.exceptions import NotFoundError
from app.models import Job, JobExpense, JobMaterial, JobPayment
from app.schemas.job import (
    JobExpenseCreate,
    JobExpenseUpdate,
    JobMaterialCreate,
    JobMaterialUpdate,
    JobPaymentCreate,
    JobPaymentUpdate,
)
from app.services.job_service import job_service
from app.services.job_cost import positive_price
from app.services.job_status import installation_reached, material_total_price
from app.services.stock_rule import stock_delta_for_used_quantity, validate_used_quantity_change
from app.services.stock_service import stock_service

# Logger per questo modulo
logger = logging.getLogger(__name__)

ItemT = TypeVar("ItemT", JobMaterial, JobPayment, JobExpense)

_ITEM_LABELS = {
    JobMaterial: "Materiale",
    JobPayment: "Pagamento",
    JobExpense: "Spesa",
}

# Campi del pagamento che non possono essere azzerati
_PAYMENT_REQUIRED = {"amount", "payment_type", "payment_date", "is_paid"}


class JobItemService:
    """
    Service per materiali, pagamenti e spese di un lavoro.

    Ogni voce è verificata come appartenente al lavoro indicato
    nell'URL; le mutazioni sono notificate sul bus di invalidazione.
    """

    async def _get_item(
        self,
        db: AsyncSession,
        model: Type[ItemT],
        job_id: uuid.UUID,
        item_id: uuid.UUID,
    ) -> ItemT:
        """
        Recupera una voce verificandone l'appartenenza al lavoro.

        Raises:
            NotFoundError: Se la voce non esiste o appartiene a un altro lavoro
        """
        result = await db.execute(select(model).where(model.id == item_id))
        item = result.scalar_one_or_none()
        label = _ITEM_LABELS[model]

        if not item:
            raise NotFoundError(f"{label} con ID {item_id} non trovato")
        if item.job_id != job_id:
            raise NotFoundError(f"{label} {item_id} non trovato nel lavoro {job_id}")
        return item

    async def _list_items(self, db: AsyncSession, model: Type[ItemT], job_id: uuid.UUID) -> list[ItemT]:
        await job_service.get_by_id(db, job_id)
        result = await db.execute(
            select(model).where(model.job_id == job_id).order_by(model.created_at)
        )
        return list(result.scalars().all())

    def _publish(self, mutation: Mutation, job: Job, **context) -> None:
        invalidation_bus.publish(mutation, job_id=job.id, customer_id=job.customer_id, **context)

    # -------------------------------------------------------------------
    # Materiali
    # -------------------------------------------------------------------

    async def _move_stock(
        self,
        db: AsyncSession,
        job: Job,
        product_id: uuid.UUID,
        old_used: Decimal,
        new_used: Decimal,
        notes: str,
    ) -> None:
        """Applica a magazzino la variazione della quantità utilizzata."""
        delta = stock_delta_for_used_quantity(old_used, new_used)
        if delta is None:
            return
        product = await stock_service.get_product(db, product_id)
        await stock_service.apply_movement(
            db,
            product,
            delta.movement_type,
            delta.quantity,
            reference_number=job.job_number,
            notes=notes,
        )

    async def get_materials(self, db: AsyncSession, job_id: uuid.UUID) -> list[JobMaterial]:
        """Materiali del lavoro, in ordine di inserimento."""
        return await self._list_items(db, JobMaterial, job_id)

    async def add_material(
        self,
        db: AsyncSession,
        job_id: uuid.UUID,
        data: JobMaterialCreate,
    ) -> JobMaterial:
        """
        Aggiunge un materiale al lavoro.

        Il prezzo unitario è il prezzo di acquisto attuale del prodotto.
        Un materiale aggiunto a montaggio già completato è marcato extra.

        Raises:
            NotFoundError: Se lavoro o prodotto non esistono
            BusinessValidationError: Quantità utilizzata non ammessa o giacenza insufficiente
        """
        job = await job_service.get_by_id(db, job_id)
        product = await stock_service.get_product(db, data.product_id)

        used_quantity = validate_used_quantity_change(job.status, 0, data.used_quantity)
        unit_price = positive_price(product.purchase_price)
        is_extra = data.is_extra if data.is_extra is not None else installation_reached(job.status)

        material = JobMaterial(
            job_id=job.id,
            product_id=product.id,
            planned_quantity=data.planned_quantity,
            used_quantity=used_quantity,
            unit_price=unit_price,
            total_price=material_total_price(job.status, data.planned_quantity, used_quantity, unit_price),
            is_extra=is_extra,
            notes=data.notes,
        )
        db.add(material)

        await self._move_stock(
            db, job, product.id, Decimal("0"), used_quantity, "Scarico materiale utilizzato"
        )

        await db.flush()
        await db.refresh(material)

        logger.info("Aggiunto materiale %s al lavoro %s", product.code, job.job_number)
        self._publish(Mutation.MATERIAL_ADDED, job, product_id=product.id)
        return material

    async def update_material(
        self,
        db: AsyncSession,
        job_id: uuid.UUID,
        material_id: uuid.UUID,
        data: JobMaterialUpdate,
    ) -> JobMaterial:
        """
        Aggiorna un materiale.

        La prima registrazione della quantità utilizzata è ammessa solo
        a montaggio completato; le correzioni successive generano lo
        scarico o il reso della differenza.

        Raises:
            NotFoundError: Se lavoro o materiale non esistono
            BusinessValidationError: Quantità utilizzata non ammessa o giacenza insufficiente
        """
        job = await job_service.get_by_id(db, job_id)
        material = await self._get_item(db, JobMaterial, job_id, material_id)
        update_data = data.model_dump(exclude_unset=True)

        if "used_quantity" in update_data and update_data["used_quantity"] is not None:
            old_used = material.used_quantity or Decimal("0")
            new_used = validate_used_quantity_change(job.status, old_used, update_data["used_quantity"])
            await self._move_stock(
                db, job, material.product_id, old_used, new_used, "Rettifica materiale utilizzato"
            )
            update_data["used_quantity"] = new_used

        for field, value in update_data.items():
            if value is not None:
                setattr(material, field, value)

        material.total_price = material_total_price(
            job.status, material.planned_quantity, material.used_quantity, material.unit_price
        )

        await db.flush()
        await db.refresh(material)

        logger.info("Aggiornato materiale %s del lavoro %s", material_id, job.job_number)
        self._publish(Mutation.MATERIAL_UPDATED, job, product_id=material.product_id)
        return material

    async def remove_material(
        self,
        db: AsyncSession,
        job_id: uuid.UUID,
        material_id: uuid.UUID,
    ) -> None:
        """
        Rimuove un materiale; la quantità utilizzata torna a magazzino.

        Raises:
            NotFoundError: Se lavoro o materiale non esistono
        """
        job = await job_service.get_by_id(db, job_id)
        material = await self._get_item(db, JobMaterial, job_id, material_id)

        await self._move_stock(
            db,
            job,
            material.product_id,
            material.used_quantity or Decimal("0"),
            Decimal("0"),
            "Reso per rimozione materiale",
        )

        product_id = material.product_id
        await db.delete(material)
        await db.flush()

        logger.info("Rimosso materiale %s dal lavoro %s", material_id, job.job_number)
        self._publish(Mutation.MATERIAL_REMOVED, job, product_id=product_id)

    # -------------------------------------------------------------------
    # Pagamenti
    # -------------------------------------------------------------------

    async def get_payments(self, db: AsyncSession, job_id: uuid.UUID) -> list[JobPayment]:
        """Pagamenti del lavoro, in ordine di inserimento."""
        return await self._list_items(db, JobPayment, job_id)

    async def add_payment(
        self,
        db: AsyncSession,
        job_id: uuid.UUID,
        data: JobPaymentCreate,
    ) -> JobPayment:
        """
        Aggiunge un pagamento (previsto o già incassato).

        Un pagamento incassato senza data di incasso prende la data del pagamento.
        """
        job = await job_service.get_by_id(db, job_id)

        payment = JobPayment(job_id=job.id, **data.model_dump())
        if payment.is_paid and payment.paid_date is None:
            payment.paid_date = data.payment_date
        if not payment.is_paid:
            payment.paid_date = None

        db.add(payment)
        await db.flush()
        await db.refresh(payment)

        logger.info(
            "Aggiunto pagamento di %s al lavoro %s (incassato=%s)",
            payment.amount,
            job.job_number,
            payment.is_paid,
        )
        self._publish(Mutation.PAYMENT_ADDED, job, payment_id=payment.id)
        return payment

    async def update_payment(
        self,
        db: AsyncSession,
        job_id: uuid.UUID,
        payment_id: uuid.UUID,
        data: JobPaymentUpdate,
    ) -> JobPayment:
        """Aggiorna un pagamento; togliere l'incasso azzera la data di incasso."""
        job = await job_service.get_by_id(db, job_id)
        payment = await self._get_item(db, JobPayment, job_id, payment_id)

        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None and field in _PAYMENT_REQUIRED:
                continue
            setattr(payment, field, value)

        if not payment.is_paid:
            payment.paid_date = None
        elif payment.paid_date is None:
            payment.paid_date = payment.payment_date

        await db.flush()
        await db.refresh(payment)

        logger.info("Aggiornato pagamento %s del lavoro %s", payment_id, job.job_number)
        self._publish(Mutation.PAYMENT_UPDATED, job, payment_id=payment.id)
        return payment

    async def mark_payment_paid(
        self,
        db: AsyncSession,
        job_id: uuid.UUID,
        payment_id: uuid.UUID,
        paid_date: Optional[datetime.date] = None,
    ) -> JobPayment:
        """
        Segna un pagamento come incassato.

        L'operazione è idempotente: un pagamento già incassato resta invariato.
        """
        job = await job_service.get_by_id(db, job_id)
        payment = await self._get_item(db, JobPayment, job_id, payment_id)

        if payment.is_paid:
            logger.debug("Pagamento %s già incassato", payment_id)
            return payment

        payment.is_paid = True
        payment.paid_date = paid_date or datetime.date.today()

        await db.flush()
        await db.refresh(payment)

        logger.info("Incassato pagamento %s del lavoro %s", payment_id, job.job_number)
        self._publish(Mutation.PAYMENT_MARKED_PAID, job, payment_id=payment.id)
        return payment

    async def remove_payment(
        self,
        db: AsyncSession,
        job_id: uuid.UUID,
        payment_id: uuid.UUID,
    ) -> None:
        """Rimuove un pagamento."""
        job = await job_service.get_by_id(db, job_id)
        payment = await self._get_item(db, JobPayment, job_id, payment_id)

        await db.delete(payment)
        await db.flush()

        logger.info("Rimosso pagamento %s dal lavoro %s", payment_id, job.job_number)
        self._publish(Mutation.PAYMENT_REMOVED, job, payment_id=payment_id)

    # -------------------------------------------------------------------
    # Spese
    # -------------------------------------------------------------------

    async def get_expenses(self, db: AsyncSession, job_id: uuid.UUID) -> list[JobExpense]:
        """Spese del lavoro, in ordine di inserimento."""
        return await self._list_items(db, JobExpense, job_id)

    async def add_expense(
        self,
        db: AsyncSession,
        job_id: uuid.UUID,
        data: JobExpenseCreate,
    ) -> JobExpense:
        """Aggiunge una spesa al lavoro."""
        job = await job_service.get_by_id(db, job_id)

        expense = JobExpense(job_id=job.id, **data.model_dump())
        db.add(expense)
        await db.flush()
        await db.refresh(expense)

        logger.info("Aggiunta spesa di %s al lavoro %s", expense.amount, job.job_number)
        self._publish(Mutation.EXPENSE_ADDED, job, expense_id=expense.id)
        return expense

    async def update_expense(
        self,
        db: AsyncSession,
        job_id: uuid.UUID,
        expense_id: uuid.UUID,
        data: JobExpenseUpdate,
    ) -> JobExpense:
        """Aggiorna una spesa."""
        job = await job_service.get_by_id(db, job_id)
        expense = await self._get_item(db, JobExpense, job_id, expense_id)

        for field, value in data.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(expense, field, value)

        await db.flush()
        await db.refresh(expense)

        logger.info("Aggiornata spesa %s del lavoro %s", expense_id, job.job_number)
        self._publish(Mutation.EXPENSE_UPDATED, job, expense_id=expense.id)
        return expense

    async def remove_expense(
        self,
        db: AsyncSession,
        job_id: uuid.UUID,
        expense_id: uuid.UUID,
    ) -> None:
        """Rimuove una spesa."""
        job = await job_service.get_by_id(db, job_id)
        expense = await self._get_item(db, JobExpense, job_id, expense_id)

        await db.delete(expense)
        await db.flush()

        logger.info("Rimossa spesa %s dal lavoro %s", expense_id, job.job_number)
        self._publish(Mutation.EXPENSE_REMOVED, job, expense_id=expense_id)


# Istanza singleton del service
job_item_service = JobItemService()
