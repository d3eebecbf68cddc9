"""
Modelli SQLAlchemy per i Lavori di installazione
Progetto: Gestionale Impianti TVCC

Contiene:
- Job: Lavoro (commessa) di installazione per un cliente
- JobMaterial: Materiale pianificato/utilizzato nel lavoro
- JobPayment: Pagamento (previsto o incassato) del lavoro
- JobExpense: Spesa sostenuta per il lavoro
- JobStatusHistory: Storico dei cambi di stato
"""


from __future__ import annotations
import datetime
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models import Base
from app.models.mixins import SoftDeleteMixin, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.customer import Customer
    from app.models.product import Product


# Gli stati sono definiti in app.schemas.job.JobStatus (codici interi 1-10)
# I tipi di pagamento e spesa in app.schemas.job.PaymentType / ExpenseType


class Job(Base, UUIDMixin, TimestampMixin, SoftDeleteMixin):
    """
    Modello per i lavori di installazione.

    Attributes:
        customer_id: UUID del cliente
        job_number: Numero lavoro progressivo annuale, assegnato dal server e immutabile
        title: Titolo del lavoro
        address: Indirizzo di installazione
        scheduled_date: Data pianificata
        start_date: Data inizio lavori
        completion_date: Data completamento
        status: Stato corrente (codice intero, vedi JobStatus)
        total_amount: Importo totale concordato
        discount_amount: Sconto
        final_amount: total_amount - discount_amount, mai negativo

    Relationships:
        customer: Cliente
        materials / payments / expenses / status_history: caricati esplicitamente
    """

    __tablename__ = "jobs"

    customer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("customers.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        doc="UUID del cliente",
    )

    job_number: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        nullable=False,
        doc="Numero lavoro (es. JOB-2026-0001)",
    )

    title: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        doc="Titolo del lavoro",
    )

    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Descrizione del lavoro",
    )

    address: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        doc="Indirizzo di installazione",
    )

    scheduled_date: Mapped[datetime.date] = mapped_column(
        Date,
        nullable=False,
        doc="Data pianificata",
    )

    start_date: Mapped[Optional[datetime.date]] = mapped_column(
        Date,
        nullable=True,
        doc="Data inizio lavori",
    )

    completion_date: Mapped[Optional[datetime.date]] = mapped_column(
        Date,
        nullable=True,
        doc="Data completamento",
    )

    status: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        doc="Stato corrente del lavoro (1-10)",
    )

    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0"),
        doc="Importo totale",
    )

    discount_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0"),
        doc="Sconto",
    )

    final_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0"),
        doc="Importo finale (totale - sconto, minimo 0)",
    )

    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Note",
    )

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    customer: Mapped["Customer"] = relationship(
        "Customer",
        back_populates="jobs",
        lazy="joined",
        doc="Cliente del lavoro",
    )

    materials: Mapped[List["JobMaterial"]] = relationship(
        "JobMaterial",
        back_populates="job",
        cascade="all, delete-orphan",
        lazy="noload",
        doc="Materiali del lavoro",
    )

    payments: Mapped[List["JobPayment"]] = relationship(
        "JobPayment",
        back_populates="job",
        cascade="all, delete-orphan",
        lazy="noload",
        doc="Pagamenti del lavoro",
    )

    expenses: Mapped[List["JobExpense"]] = relationship(
        "JobExpense",
        back_populates="job",
        cascade="all, delete-orphan",
        lazy="noload",
        doc="Spese del lavoro",
    )

    status_history: Mapped[List["JobStatusHistory"]] = relationship(
        "JobStatusHistory",
        back_populates="job",
        cascade="all, delete-orphan",
        lazy="noload",
        order_by="JobStatusHistory.created_at",
        doc="Storico cambi di stato",
    )

    __table_args__ = (
        Index("ix_jobs_status", "status"),
        Index("ix_jobs_customer_status", "customer_id", "status"),
        Index("ix_jobs_scheduled_date", "scheduled_date"),
        CheckConstraint("status BETWEEN 1 AND 10", name="ck_jobs_status"),
        CheckConstraint("total_amount >= 0", name="ck_jobs_total_amount"),
        CheckConstraint("discount_amount >= 0", name="ck_jobs_discount_amount"),
        CheckConstraint("final_amount >= 0", name="ck_jobs_final_amount"),
    )

    def __repr__(self) -> str:
        return f"<Job(id={self.id}, number={self.job_number}, status={self.status})>"


class JobMaterial(Base, UUIDMixin, TimestampMixin):
    """
    Materiale di un lavoro.

    unit_price è il prezzo di acquisto del prodotto al momento
    dell'inserimento. used_quantity resta 0 finché il lavoro non
    arriva a "Montaggio completato".
    """

    __tablename__ = "job_materials"

    job_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("jobs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="UUID del lavoro",
    )

    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        doc="UUID del prodotto",
    )

    planned_quantity: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0"),
        doc="Quantità pianificata",
    )

    used_quantity: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0"),
        doc="Quantità effettivamente utilizzata",
    )

    unit_price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2),
        nullable=True,
        doc="Prezzo di acquisto all'inserimento (NULL se il prodotto non ha prezzo)",
    )

    total_price: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0"),
        doc="Totale riga",
    )

    is_extra: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        doc="Materiale aggiunto dopo il montaggio",
    )

    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Note",
    )

    job: Mapped["Job"] = relationship(
        "Job",
        back_populates="materials",
        doc="Lavoro",
    )

    product: Mapped[Optional["Product"]] = relationship(
        "Product",
        lazy="joined",
        doc="Prodotto",
    )

    __table_args__ = (
        CheckConstraint("planned_quantity >= 0", name="ck_job_materials_planned"),
        CheckConstraint("used_quantity >= 0", name="ck_job_materials_used"),
        CheckConstraint("unit_price >= 0", name="ck_job_materials_unit_price"),
    )

    def __repr__(self) -> str:
        return f"<JobMaterial(id={self.id}, product_id={self.product_id}, used={self.used_quantity})>"


class JobPayment(Base, UUIDMixin, TimestampMixin):
    """
    Pagamento di un lavoro.

    is_paid è indipendente dall'importo: un pagamento può essere
    solo previsto (rata, pagamento dilazionato) e non ancora incassato.
    """

    __tablename__ = "job_payments"

    job_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("jobs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="UUID del lavoro",
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        doc="Importo",
    )

    payment_type: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        doc="Tipo pagamento (1-5)",
    )

    payment_date: Mapped[datetime.date] = mapped_column(
        Date,
        nullable=False,
        doc="Data pagamento",
    )

    installment_count: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        doc="Numero rate",
    )

    due_date: Mapped[Optional[datetime.date]] = mapped_column(
        Date,
        nullable=True,
        doc="Data di scadenza",
    )

    is_paid: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        doc="True se incassato",
    )

    paid_date: Mapped[Optional[datetime.date]] = mapped_column(
        Date,
        nullable=True,
        doc="Data incasso",
    )

    receipt_number: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        doc="Numero ricevuta/fattura",
    )

    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Note",
    )

    job: Mapped["Job"] = relationship(
        "Job",
        back_populates="payments",
        doc="Lavoro",
    )

    __table_args__ = (
        Index("ix_job_payments_job_paid", "job_id", "is_paid"),
        CheckConstraint("amount > 0", name="ck_job_payments_amount"),
        CheckConstraint("payment_type BETWEEN 1 AND 5", name="ck_job_payments_type"),
    )

    def __repr__(self) -> str:
        return f"<JobPayment(id={self.id}, amount={self.amount}, paid={self.is_paid})>"


class JobExpense(Base, UUIDMixin, TimestampMixin):
    """Spesa sostenuta per un lavoro (carburante, vitto, alloggio...)."""

    __tablename__ = "job_expenses"

    job_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("jobs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="UUID del lavoro",
    )

    expense_type: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        doc="Tipo spesa (1-6)",
    )

    description: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="Descrizione",
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        doc="Importo",
    )

    expense_date: Mapped[datetime.date] = mapped_column(
        Date,
        nullable=False,
        doc="Data spesa",
    )

    receipt_number: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        doc="Numero ricevuta",
    )

    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Note",
    )

    job: Mapped["Job"] = relationship(
        "Job",
        back_populates="expenses",
        doc="Lavoro",
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_job_expenses_amount"),
        CheckConstraint("expense_type BETWEEN 1 AND 6", name="ck_job_expenses_type"),
    )

    def __repr__(self) -> str:
        return f"<JobExpense(id={self.id}, type={self.expense_type}, amount={self.amount})>"


class JobStatusHistory(Base, UUIDMixin, TimestampMixin):
    """Record di audit per ogni cambio di stato del lavoro."""

    __tablename__ = "job_status_history"

    job_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("jobs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="UUID del lavoro",
    )

    old_status: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        doc="Stato precedente",
    )

    new_status: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        doc="Nuovo stato",
    )

    changed_by: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        doc="Operatore che ha effettuato il cambio",
    )

    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Note del cambio di stato",
    )

    job: Mapped["Job"] = relationship(
        "Job",
        back_populates="status_history",
        doc="Lavoro",
    )

    def __repr__(self) -> str:
        return f"<JobStatusHistory(job_id={self.job_id}, {self.old_status} -> {self.new_status})>"
