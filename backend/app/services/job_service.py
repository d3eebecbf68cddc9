"""
Service Layer per i Lavori
Progetto: Gestionale Impianti TVCC

Definisce la logica di business per la gestione dei lavori:
CRUD, numerazione, cambi di stato con storico, riepilogo costi
e statistiche di periodo.
"""

import datetime
import logging
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import and_, func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.config import settings
from app.core.events import Mutation, invalidation_bus
from app.core.exceptions import BusinessValidationError, ConflictError, NotFoundError
from app.models import Customer, Job, JobExpense, JobPayment, JobStatusHistory
from app.schemas.job import (
    JobCostSummary,
    JobCreate,
    JobStatistics,
    JobStatus,
    JobStatusUpdate,
    JobUpdate,
    StockMovementType,
)
from app.services.job_cost import aggregate_job_costs, compute_job_statistics
from app.services.job_status import (
    TERMINAL_STATUSES,
    compute_final_amount,
    material_total_price,
    transition,
)
from app.services.stock_service import stock_service

# Logger per questo modulo
logger = logging.getLogger(__name__)

MAX_JOBS_PER_YEAR = 9999

# Campi del lavoro che non possono essere azzerati
_JOB_REQUIRED = {
    "customer_id",
    "title",
    "address",
    "scheduled_date",
    "total_amount",
    "discount_amount",
    "is_active",
}


class JobService:
    """
    Service per la gestione dei lavori.

    Fornisce metodi asincroni per interagire con il database
    in modo centralizzato, senza dipendenze da FastAPI.
    Ogni mutazione è notificata sul bus di invalidazione.
    """

    async def _get_customer(self, db: AsyncSession, customer_id: uuid.UUID) -> Customer:
        result = await db.execute(select(Customer).where(Customer.id == customer_id))
        customer = result.scalar_one_or_none()
        if not customer:
            logger.warning("Cliente non trovato: %s", customer_id)
            raise NotFoundError(f"Cliente con ID {customer_id} non trovato")
        return customer

    async def _generate_job_number(
        self,
        db: AsyncSession,
        reference_date: datetime.date,
    ) -> str:
        """
        Genera il numero lavoro progressivo annuale.

        Formato: PREFISSO-YYYY-NNNN (es. JOB-2025-0001)

        Raises:
            ConflictError: Se si raggiunge il limite di 9999 lavori annui
        """
        year = reference_date.year
        year_prefix = f"{settings.job_number_prefix}-{year}-"

        # Serializza la numerazione dell'anno fino al commit
        await db.execute(text("SELECT pg_advisory_xact_lock(:lock_key)"), {"lock_key": year})

        stmt = (
            select(Job.job_number)
            .where(Job.job_number.like(f"{year_prefix}%"))
            .order_by(Job.job_number.desc())
            .limit(1)
        )
        result = await db.execute(stmt)
        last_number = result.scalar_one_or_none()

        next_number = int(last_number.rsplit("-", 1)[1]) + 1 if last_number else 1

        if next_number > MAX_JOBS_PER_YEAR:
            raise ConflictError(f"Limite numerazione lavori raggiunto per l'anno {year}")

        return f"{year_prefix}{next_number:04d}"

    async def get_all(
        self,
        db: AsyncSession,
        customer_id: Optional[uuid.UUID] = None,
        status: Optional[JobStatus] = None,
        start_date: Optional[datetime.date] = None,
        end_date: Optional[datetime.date] = None,
        search_term: Optional[str] = None,
        is_paid: Optional[bool] = None,
        include_inactive: bool = False,
    ) -> list[Job]:
        """
        Recupera la lista dei lavori filtrata.

        Args:
            db: Sessione database
            customer_id: Filtro per cliente
            status: Filtro per stato
            start_date: Data pianificata minima
            end_date: Data pianificata massima
            search_term: Ricerca su numero lavoro, titolo e indirizzo
            is_paid: True = solo lavori saldati, False = solo con residuo
            include_inactive: Include i lavori eliminati

        Returns:
            Lista lavori, i più recenti prima
        """
        conditions = []

        if not include_inactive:
            conditions.append(Job.is_active == True)  # noqa: E712
        if customer_id:
            conditions.append(Job.customer_id == customer_id)
        if status is not None:
            conditions.append(Job.status == int(status))
        if start_date:
            conditions.append(Job.scheduled_date >= start_date)
        if end_date:
            conditions.append(Job.scheduled_date <= end_date)
        if search_term:
            term = f"%{search_term.strip()}%"
            conditions.append(
                Job.job_number.ilike(term)
                | Job.title.ilike(term)
                | Job.address.ilike(term)
            )
        if is_paid is not None:
            paid_total = (
                select(func.coalesce(func.sum(JobPayment.amount), 0))
                .where(JobPayment.job_id == Job.id, JobPayment.is_paid == True)  # noqa: E712
                .correlate(Job)
                .scalar_subquery()
            )
            if is_paid:
                conditions.append(paid_total >= Job.final_amount)
            else:
                conditions.append(paid_total < Job.final_amount)

        query = select(Job)
        if conditions:
            query = query.where(and_(*conditions))
        query = query.order_by(Job.created_at.desc())

        result = await db.execute(query)
        jobs = list(result.scalars().all())

        logger.debug("Recuperati %d lavori", len(jobs))
        return jobs

    async def get_active(self, db: AsyncSession) -> list[Job]:
        """Lavori non completati né annullati, per data pianificata."""
        query = (
            select(Job)
            .where(
                Job.is_active == True,  # noqa: E712
                Job.status.not_in([int(s) for s in TERMINAL_STATUSES]),
            )
            .order_by(Job.scheduled_date)
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_by_customer(self, db: AsyncSession, customer_id: uuid.UUID) -> list[Job]:
        """Tutti i lavori attivi di un cliente."""
        await self._get_customer(db, customer_id)
        return await self.get_all(db, customer_id=customer_id)

    async def get_by_id(
        self,
        db: AsyncSession,
        job_id: uuid.UUID,
        with_items: bool = False,
    ) -> Job:
        """
        Recupera un lavoro tramite ID.

        Args:
            db: Sessione database
            job_id: UUID del lavoro
            with_items: Carica anche materiali, pagamenti e spese

        Returns:
            Job: Il lavoro trovato

        Raises:
            NotFoundError: Se il lavoro non esiste
        """
        query = select(Job).where(Job.id == job_id)
        if with_items:
            query = query.options(
                selectinload(Job.materials),
                selectinload(Job.payments),
                selectinload(Job.expenses),
            )

        result = await db.execute(query)
        job = result.scalar_one_or_none()

        if not job:
            logger.warning("Lavoro non trovato: %s", job_id)
            raise NotFoundError(f"Lavoro con ID {job_id} non trovato")

        logger.debug("Recuperato lavoro: %s", job_id)
        return job

    async def create(self, db: AsyncSession, data: JobCreate) -> Job:
        """
        Crea un nuovo lavoro.

        Il numero lavoro e l'importo finale sono calcolati dal server.

        Raises:
            NotFoundError: Se il cliente non esiste
        """
        await self._get_customer(db, data.customer_id)

        job_number = await self._generate_job_number(db, datetime.date.today())

        job = Job(
            **data.model_dump(exclude={"status"}),
            job_number=job_number,
            status=int(data.status),
            final_amount=compute_final_amount(data.total_amount, data.discount_amount),
        )
        db.add(job)
        await db.flush()
        await db.refresh(job)

        logger.info("Creato lavoro %s: %s", job.job_number, job.id)
        invalidation_bus.publish(Mutation.JOB_CREATED, job_id=job.id, customer_id=job.customer_id)
        return job

    async def update(
        self,
        db: AsyncSession,
        job_id: uuid.UUID,
        data: JobUpdate,
    ) -> Job:
        """
        Aggiorna un lavoro esistente.

        NOTA: lo stato si cambia solo con change_status(); il numero
        lavoro non è modificabile. L'importo finale è ricalcolato.

        Raises:
            NotFoundError: Se il lavoro o il nuovo cliente non esistono
            BusinessValidationError: Campo obbligatorio nullo o date incoerenti
        """
        job = await self.get_by_id(db, job_id)
        update_data = data.model_dump(exclude_unset=True)

        missing = sorted(f for f, v in update_data.items() if v is None and f in _JOB_REQUIRED)
        if missing:
            logger.warning("Aggiornamento lavoro %s rifiutato, campi obbligatori nulli: %s", job_id, missing)
            raise BusinessValidationError(
                "Campi obbligatori mancanti",
                extra={"errors": {field: ["Campo obbligatorio"] for field in missing}},
            )

        start_date = update_data.get("start_date", job.start_date)
        completion_date = update_data.get("completion_date", job.completion_date)
        if start_date and completion_date and completion_date < start_date:
            raise BusinessValidationError(
                "La data di completamento non può precedere la data di inizio",
                extra={"errors": {"completion_date": ["Precede la data di inizio"]}},
            )

        old_customer_id = job.customer_id
        if update_data.get("customer_id") and update_data["customer_id"] != job.customer_id:
            await self._get_customer(db, update_data["customer_id"])

        for field, value in update_data.items():
            setattr(job, field, value)

        job.final_amount = compute_final_amount(job.total_amount, job.discount_amount)

        await db.flush()
        await db.refresh(job)

        logger.info("Aggiornato lavoro: %s", job_id)
        invalidation_bus.publish(Mutation.JOB_UPDATED, job_id=job.id, customer_id=job.customer_id)
        if old_customer_id != job.customer_id:
            invalidation_bus.publish(Mutation.JOB_UPDATED, job_id=job.id, customer_id=old_customer_id)
        return job

    async def delete(self, db: AsyncSession, job_id: uuid.UUID) -> None:
        """
        Elimina logicamente un lavoro (is_active = False).

        Il lavoro resta nel fatturato del cliente.
        """
        job = await self.get_by_id(db, job_id)
        job.is_active = False
        await db.flush()

        logger.info("Eliminato lavoro: %s", job_id)
        invalidation_bus.publish(Mutation.JOB_DELETED, job_id=job.id, customer_id=job.customer_id)

    async def _record_history(
        self,
        db: AsyncSession,
        job: Job,
        old_status: int,
        new_status: int,
        changed_by: Optional[str],
        notes: Optional[str],
    ) -> None:
        """Scrive lo storico del cambio di stato; un errore non blocca il cambio."""
        try:
            async with db.begin_nested():
                db.add(
                    JobStatusHistory(
                        job_id=job.id,
                        old_status=old_status,
                        new_status=new_status,
                        changed_by=changed_by,
                        notes=notes,
                    )
                )
        except SQLAlchemyError:
            logger.warning(
                "Impossibile registrare lo storico stato per il lavoro %s (%s -> %s)",
                job.id,
                old_status,
                new_status,
                exc_info=True,
            )

    async def _restore_stock(self, db: AsyncSession, job: Job) -> None:
        """Restituisce a magazzino i materiali consumati da un lavoro annullato."""
        for material in job.materials or []:
            if not material.used_quantity or material.used_quantity <= 0:
                continue
            product = await stock_service.get_product(db, material.product_id)
            await stock_service.apply_movement(
                db,
                product,
                StockMovementType.RETURN,
                material.used_quantity,
                reference_number=job.job_number,
                notes="Reso per annullamento lavoro",
            )
            material.used_quantity = Decimal("0")
            logger.info(
                "Ripristinato magazzino per prodotto %s dal lavoro %s",
                product.code,
                job.job_number,
            )

    async def change_status(
        self,
        db: AsyncSession,
        job_id: uuid.UUID,
        data: JobStatusUpdate,
    ) -> Job:
        """
        Cambia lo stato di un lavoro.

        Effetti collaterali:
        - Lavori in corso: imposta la data di inizio se mancante
        - Completato: imposta la data di completamento
        - Riapertura da Completato: azzera la data di completamento
        - Annullato: restituisce a magazzino i materiali consumati
        In ogni caso ricalcola il totale riga dei materiali e registra lo storico.

        Raises:
            NotFoundError: Se il lavoro non esiste
            InvalidTransitionError: Se la transizione non è consentita
        """
        job = await self.get_by_id(db, job_id, with_items=True)

        new_status = transition(job.status, data.status, data.notes, data.reopen)
        old_status = job.status
        job.status = new_status.value

        today = datetime.date.today()
        if new_status == JobStatus.IN_PROGRESS and job.start_date is None:
            job.start_date = today
        if new_status == JobStatus.COMPLETED:
            job.completion_date = today
        elif old_status == JobStatus.COMPLETED:
            job.completion_date = None
            logger.info("Lavoro %s riaperto, azzerata data di completamento", job.job_number)

        if new_status == JobStatus.CANCELLED:
            await self._restore_stock(db, job)

        for material in job.materials or []:
            material.total_price = material_total_price(
                new_status, material.planned_quantity, material.used_quantity, material.unit_price
            )

        await db.flush()
        await self._record_history(db, job, old_status, new_status.value, data.changed_by, data.notes)

        logger.info(
            "Cambiato stato lavoro %s: %s -> %s",
            job.job_number,
            old_status,
            new_status.value,
        )
        invalidation_bus.publish(
            Mutation.JOB_STATUS_CHANGED,
            job_id=job.id,
            customer_id=job.customer_id,
            old_status=old_status,
            new_status=new_status.value,
        )
        return job

    async def get_status_history(self, db: AsyncSession, job_id: uuid.UUID) -> list[JobStatusHistory]:
        """Storico dei cambi di stato, dal più vecchio."""
        await self.get_by_id(db, job_id)
        result = await db.execute(
            select(JobStatusHistory)
            .where(JobStatusHistory.job_id == job_id)
            .order_by(JobStatusHistory.created_at)
        )
        return list(result.scalars().all())

    async def get_costs(self, db: AsyncSession, job_id: uuid.UUID) -> JobCostSummary:
        """
        Riepilogo economico di un lavoro.

        Con la politica di prezzo "live" i prezzi attuali dei prodotti
        sono caricati e passati al calcolo come mappa id -> prodotto.
        """
        job = await self.get_by_id(db, job_id, with_items=True)

        products = None
        if settings.material_cost_pricing == "live":
            products = await stock_service.get_products_map(
                db, (m.product_id for m in job.materials or [])
            )

        return aggregate_job_costs(
            job.materials,
            job.payments,
            job.expenses,
            job.final_amount,
            products=products,
            pricing=settings.material_cost_pricing,
        )

    async def get_statistics(
        self,
        db: AsyncSession,
        start_date: Optional[datetime.date] = None,
        end_date: Optional[datetime.date] = None,
    ) -> JobStatistics:
        """
        Statistiche dei lavori con data pianificata nel periodo.

        Sono esclusi i lavori eliminati.
        """
        jobs = await self.get_all(db, start_date=start_date, end_date=end_date)
        job_ids = [job.id for job in jobs]

        payments: list[JobPayment] = []
        expenses: list[JobExpense] = []
        if job_ids:
            payments_result = await db.execute(
                select(JobPayment).where(JobPayment.job_id.in_(job_ids))
            )
            payments = list(payments_result.scalars().all())
            expenses_result = await db.execute(
                select(JobExpense).where(JobExpense.job_id.in_(job_ids))
            )
            expenses = list(expenses_result.scalars().all())

        statistics = compute_job_statistics(jobs, payments, expenses)
        logger.debug(
            "Statistiche lavori %s - %s: %d lavori",
            start_date,
            end_date,
            statistics.total_jobs,
        )
        return statistics


# Istanza singleton del service
job_service = JobService()
