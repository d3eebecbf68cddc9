"""
Service Layer per i crediti clienti e lo scadenzario
Progetto: Gestionale Impianti TVCC

Calcola per ogni cliente fatturato, incassato, saldo aperto e la
ripartizione del saldo per anzianità (0-30, 30-60, 60-90, oltre 90 giorni).

Le funzioni di calcolo sono pure e operano su uno snapshot dei dati;
ReceivableService si limita a caricare lo snapshot dal database.
"""

import datetime
import logging
import uuid
from collections import defaultdict
from decimal import Decimal
from typing import Any, Iterable, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import NotFoundError
from app.core.money import ZERO, floor_zero, money_sum, round_money
from app.models import Customer, Job, JobPayment
from app.schemas.customer import AgingBreakdown, CustomerReceivableSummary
from app.services.job_status import TERMINAL_STATUSES

# Logger per questo modulo
logger = logging.getLogger(__name__)

DEFAULT_THRESHOLDS = (30, 60, 90)

# Nomi delle fasce dalla più recente alla più vecchia
BUCKETS = ("current", "days_30_to_60", "days_60_to_90", "over_90_days")


def aging_bucket(age_days: int, thresholds: Sequence[int] = DEFAULT_THRESHOLDS) -> str:
    """
    Fascia di anzianità per un'età in giorni.

    Gli intervalli sono semiaperti: [0,30) [30,60) [60,90) [90,∞).
    Un'età negativa (data futura) è trattata come 0.
    """
    age = max(int(age_days), 0)
    for name, limit in zip(BUCKETS, thresholds):
        if age < limit:
            return name
    return BUCKETS[-1]


def _as_date(value: Any, tz: Optional[datetime.tzinfo]) -> Optional[datetime.date]:
    """Riduce una data/ora alla data, nel fuso di riferimento se noto."""
    if value is None:
        return None
    if isinstance(value, datetime.datetime):
        if tz is not None and value.tzinfo is not None:
            value = value.astimezone(tz)
        return value.date()
    return value


def job_age_days(job: Any, now: datetime.datetime, reference_field: str = "created_at") -> int:
    """
    Giorni trascorsi dalla data di riferimento del lavoro a `now`.

    Senza data di riferimento, o con data futura, l'età è 0.
    """
    tz = now.tzinfo if isinstance(now, datetime.datetime) else None
    reference = _as_date(getattr(job, reference_field, None), tz)
    if reference is None:
        logger.debug("Lavoro %s senza %s: età considerata 0", getattr(job, "id", None), reference_field)
        return 0
    today = _as_date(now, tz)
    return max((today - reference).days, 0)


def _apply_credit(buckets: dict[str, Decimal], credit: Decimal) -> None:
    """Scala un credito (pagamenti in eccesso) dalle fasce più vecchie."""
    for name in reversed(BUCKETS):
        if credit <= 0:
            break
        taken = min(buckets[name], credit)
        buckets[name] -= taken
        credit -= taken


def build_receivable_summary(
    customer: Any,
    jobs: Iterable[Any],
    payments: Iterable[Any],
    now: Optional[datetime.datetime] = None,
    reference_field: str = "created_at",
    thresholds: Sequence[int] = DEFAULT_THRESHOLDS,
) -> CustomerReceivableSummary:
    """
    Calcola il riepilogo crediti di un cliente.

    Il saldo non pagato di ogni lavoro (importo finale - pagato del lavoro,
    mai negativo) finisce per intero in una sola fascia, secondo l'età del
    lavoro. Un pagamento in eccesso su un lavoro è scalato dalle fasce
    più vecchie, così la somma delle fasce coincide sempre con il saldo aperto.

    Args:
        customer: Cliente (id, name, company_name, is_active)
        jobs: Tutti i lavori del cliente, attivi e non
        payments: Pagamenti dei lavori (quelli di altri lavori sono ignorati)
        now: Istante di riferimento (default: adesso, UTC)
        reference_field: Campo data del lavoro da cui calcolare l'età
        thresholds: Limiti delle fasce in giorni

    Returns:
        CustomerReceivableSummary: Riepilogo calcolato
    """
    if now is None:
        now = datetime.datetime.now(datetime.timezone.utc)

    jobs = list(jobs)
    job_ids = {job.id for job in jobs}

    paid_by_job: dict[Any, list[Any]] = defaultdict(list)
    for payment in payments:
        if payment.job_id in job_ids and getattr(payment, "is_paid", False):
            paid_by_job[payment.job_id].append(payment.amount)

    buckets = {name: ZERO for name in BUCKETS}
    billed: list[Decimal] = []
    paid: list[Decimal] = []
    credit = ZERO

    for job in jobs:
        final_amount = round_money(job.final_amount)
        job_paid = money_sum(paid_by_job.get(job.id, ()))
        billed.append(final_amount)
        paid.append(job_paid)

        unpaid = floor_zero(final_amount - job_paid)
        credit += floor_zero(job_paid - final_amount)
        if unpaid > 0:
            age = job_age_days(job, now, reference_field)
            bucket = aging_bucket(age, thresholds)
            buckets[bucket] += unpaid

    if credit > 0:
        _apply_credit(buckets, credit)

    total_billed = money_sum(billed)
    total_paid = money_sum(paid)

    return CustomerReceivableSummary(
        customer_id=customer.id,
        customer_name=customer.name,
        company_name=getattr(customer, "company_name", None),
        is_active=getattr(customer, "is_active", True),
        total_billed=total_billed,
        total_paid=total_paid,
        outstanding_balance=floor_zero(total_billed - total_paid),
        total_jobs=len(jobs),
        active_jobs=sum(1 for job in jobs if job.status not in TERMINAL_STATUSES),
        aging=AgingBreakdown(**{name: round_money(value) for name, value in buckets.items()}),
    )


def build_receivable_summaries(
    customers: Iterable[Any],
    jobs: Iterable[Any],
    payments: Iterable[Any],
    now: Optional[datetime.datetime] = None,
    active_only: bool = False,
    reference_field: str = "created_at",
    thresholds: Sequence[int] = DEFAULT_THRESHOLDS,
) -> list[CustomerReceivableSummary]:
    """
    Un riepilogo crediti per ogni cliente.

    Con active_only=True sono esclusi i clienti disattivati.
    """
    if now is None:
        now = datetime.datetime.now(datetime.timezone.utc)

    jobs_by_customer: dict[Any, list[Any]] = defaultdict(list)
    customer_by_job: dict[Any, Any] = {}
    for job in jobs:
        jobs_by_customer[job.customer_id].append(job)
        customer_by_job[job.id] = job.customer_id

    payments_by_customer: dict[Any, list[Any]] = defaultdict(list)
    for payment in payments:
        if payment.job_id in customer_by_job:
            payments_by_customer[customer_by_job[payment.job_id]].append(payment)

    summaries = []
    for customer in customers:
        if active_only and not getattr(customer, "is_active", True):
            continue
        summaries.append(
            build_receivable_summary(
                customer,
                jobs_by_customer.get(customer.id, []),
                payments_by_customer.get(customer.id, []),
                now=now,
                reference_field=reference_field,
                thresholds=thresholds,
            )
        )
    return summaries


class ReceivableService:
    """
    Service per il riepilogo crediti dei clienti.

    Carica clienti, lavori e pagamenti e delega il calcolo alle
    funzioni pure del modulo. Fascia e data di riferimento arrivano
    dalla configurazione.
    """

    def __init__(
        self,
        reference_field: Optional[str] = None,
        thresholds: Optional[Sequence[int]] = None,
    ) -> None:
        self.reference_field = reference_field or settings.aging_reference_field
        self.thresholds = tuple(thresholds or settings.aging_bucket_days)

    async def get_summary(
        self,
        db: AsyncSession,
        customer_id: uuid.UUID,
        now: Optional[datetime.datetime] = None,
    ) -> CustomerReceivableSummary:
        """
        Riepilogo crediti di un singolo cliente.

        Raises:
            NotFoundError: Se il cliente non esiste
        """
        result = await db.execute(select(Customer).where(Customer.id == customer_id))
        customer = result.scalar_one_or_none()
        if not customer:
            logger.warning("Cliente non trovato: %s", customer_id)
            raise NotFoundError(f"Cliente con ID {customer_id} non trovato")

        jobs_result = await db.execute(select(Job).where(Job.customer_id == customer_id))
        jobs = list(jobs_result.scalars().unique().all())

        payments_result = await db.execute(
            select(JobPayment)
            .join(Job, JobPayment.job_id == Job.id)
            .where(Job.customer_id == customer_id)
        )
        payments = list(payments_result.scalars().all())

        summary = build_receivable_summary(
            customer,
            jobs,
            payments,
            now=now,
            reference_field=self.reference_field,
            thresholds=self.thresholds,
        )
        logger.debug(
            "Riepilogo crediti cliente %s: saldo %s su %d lavori",
            customer_id,
            summary.outstanding_balance,
            summary.total_jobs,
        )
        return summary

    async def get_all_summaries(
        self,
        db: AsyncSession,
        active_only: bool = False,
        now: Optional[datetime.datetime] = None,
    ) -> list[CustomerReceivableSummary]:
        """Riepilogo crediti di tutti i clienti, ordinati per nome."""
        query = select(Customer).order_by(Customer.name)
        if active_only:
            query = query.where(Customer.is_active == True)  # noqa: E712
        customers_result = await db.execute(query)
        customers = list(customers_result.scalars().all())

        jobs_result = await db.execute(select(Job))
        jobs = list(jobs_result.scalars().unique().all())

        payments_result = await db.execute(select(JobPayment).where(JobPayment.is_paid == True))  # noqa: E712
        payments = list(payments_result.scalars().all())

        summaries = build_receivable_summaries(
            customers,
            jobs,
            payments,
            now=now,
            active_only=active_only,
            reference_field=self.reference_field,
            thresholds=self.thresholds,
        )
        logger.debug("Calcolati %d riepiloghi crediti (solo attivi=%s)", len(summaries), active_only)
        return summaries


# Istanza singleton del service
receivable_service = ReceivableService()
