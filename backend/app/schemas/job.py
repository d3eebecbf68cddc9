"""
Schemas Pydantic per i Lavori
Progetto: Gestionale Impianti TVCC

Definisce enum di dominio (stati, tipi pagamento, tipi spesa) e gli
schemi di validazione e serializzazione per l'API dei lavori.
Stati e tipi viaggiano come codici interi: un codice sconosciuto
è un errore di validazione (422), mai un default silenzioso.
"""

import datetime
import uuid
from decimal import Decimal
from enum import IntEnum
from typing import Optional

from pydantic import Field, computed_field, field_validator, model_validator

from app.core.money import ZERO
from app.schemas.base import ApiModel


# -------------------------------------------------------------------
# Enum di dominio
# -------------------------------------------------------------------

class JobStatus(IntEnum):
    """Stati del lavoro, nell'ordine del ciclo di vita."""
    QUOTE_SENT = 1
    QUOTE_APPROVED = 2
    PAYMENT_PENDING = 3
    PAYMENT_RECEIVED = 4
    MATERIAL_PREPARING = 5
    INSTALLATION_SCHEDULED = 6
    IN_PROGRESS = 7
    INSTALLATION_COMPLETED = 8
    COMPLETED = 9
    CANCELLED = 10


JOB_STATUS_LABELS: dict[JobStatus, str] = {
    JobStatus.QUOTE_SENT: "Preventivo inviato",
    JobStatus.QUOTE_APPROVED: "Preventivo approvato",
    JobStatus.PAYMENT_PENDING: "In attesa di pagamento",
    JobStatus.PAYMENT_RECEIVED: "Pagamento ricevuto",
    JobStatus.MATERIAL_PREPARING: "Preparazione materiale",
    JobStatus.INSTALLATION_SCHEDULED: "Montaggio pianificato",
    JobStatus.IN_PROGRESS: "Lavori in corso",
    JobStatus.INSTALLATION_COMPLETED: "Montaggio completato",
    JobStatus.COMPLETED: "Lavoro completato",
    JobStatus.CANCELLED: "Annullato",
}


class PaymentType(IntEnum):
    """Tipi di pagamento."""
    CASH = 1
    INSTALLMENT = 2
    BANK_TRANSFER = 3
    CREDIT_CARD = 4
    DEFERRED = 5


class ExpenseType(IntEnum):
    """Tipi di spesa."""
    FUEL = 1
    MEAL = 2
    ACCOMMODATION = 3
    TRANSPORTATION = 4
    PERSONNEL = 5
    OTHER = 6


class StockMovementType(IntEnum):
    """Tipi di movimento di magazzino."""
    STOCK_IN = 1
    STOCK_OUT = 2
    ADJUSTMENT = 3
    RETURN = 4
    TRANSFER = 5


# -------------------------------------------------------------------
# Schemas per Job
# -------------------------------------------------------------------

class JobBase(ApiModel):
    """
    Schema base per i lavori.

    Attributes:
        customer_id: UUID del cliente
        title: Titolo del lavoro
        description: Descrizione
        address: Indirizzo di installazione
        scheduled_date: Data pianificata
        start_date: Data inizio lavori
        completion_date: Data completamento
        total_amount: Importo totale
        discount_amount: Sconto (default 0)
        notes: Note
    """
    customer_id: uuid.UUID
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    address: str = Field(..., min_length=1, max_length=1000)
    scheduled_date: datetime.date
    start_date: Optional[datetime.date] = None
    completion_date: Optional[datetime.date] = None
    total_amount: Decimal = Field(..., ge=Decimal("0"), decimal_places=2)
    discount_amount: Decimal = Field(default=Decimal("0"), ge=Decimal("0"), decimal_places=2)
    notes: Optional[str] = Field(None, max_length=5000)

    @field_validator("title", "address")
    @classmethod
    def strip_required_text(cls, v: str) -> str:
        """Normalizza i campi testuali obbligatori."""
        v = v.strip()
        if not v:
            raise ValueError("Campo obbligatorio")
        return v

    @model_validator(mode="after")
    def validate_dates(self) -> "JobBase":
        """La data di completamento non può precedere l'inizio lavori."""
        if self.start_date and self.completion_date and self.completion_date < self.start_date:
            raise ValueError("La data di completamento non può precedere la data di inizio")
        return self


class JobCreate(JobBase):
    """
    Schema per la creazione di un lavoro.

    Il numero lavoro e l'importo finale sono calcolati dal server.
    """
    status: JobStatus = Field(default=JobStatus.QUOTE_SENT, description="Stato iniziale")
    is_active: bool = True


class JobUpdate(ApiModel):
    """
    Schema per l'aggiornamento di un lavoro.

    Tutti i campi sono opzionali. Lo status NON può essere cambiato
    tramite questo endpoint (usare PATCH /status); job_number è immutabile.
    """
    customer_id: Optional[uuid.UUID] = None
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    address: Optional[str] = Field(None, min_length=1, max_length=1000)
    scheduled_date: Optional[datetime.date] = None
    start_date: Optional[datetime.date] = None
    completion_date: Optional[datetime.date] = None
    total_amount: Optional[Decimal] = Field(None, ge=Decimal("0"), decimal_places=2)
    discount_amount: Optional[Decimal] = Field(None, ge=Decimal("0"), decimal_places=2)
    notes: Optional[str] = Field(None, max_length=5000)
    is_active: Optional[bool] = None


class JobStatusUpdate(ApiModel):
    """
    Schema per il cambio di stato di un lavoro.

    reopen=True è necessario per uscire da Completato/Annullato.
    """
    status: JobStatus = Field(..., description="Nuovo stato del lavoro")
    notes: Optional[str] = Field(None, max_length=2000)
    changed_by: Optional[str] = Field(None, max_length=100)
    reopen: bool = False


class CustomerBrief(ApiModel):
    """Dati essenziali del cliente incorporati nel lavoro."""
    id: uuid.UUID
    name: str
    company_name: Optional[str] = None


class JobRead(JobBase):
    """
    Schema per la lettura di un lavoro.
    """
    id: uuid.UUID
    job_number: str
    status: JobStatus
    final_amount: Decimal
    is_active: bool
    created_at: datetime.datetime
    updated_at: datetime.datetime
    customer: Optional[CustomerBrief] = None

    @computed_field(alias="statusLabel")
    @property
    def status_label(self) -> str:
        """Etichetta leggibile dello stato."""
        return JOB_STATUS_LABELS[self.status]

    @computed_field(alias="usedQuantityEditable")
    @property
    def used_quantity_editable(self) -> bool:
        """True se le quantità utilizzate dei materiali sono modificabili."""
        return self.status == JobStatus.INSTALLATION_COMPLETED


# -------------------------------------------------------------------
# Schemas per JobMaterial
# -------------------------------------------------------------------

class JobMaterialCreate(ApiModel):
    """
    Schema per l'aggiunta di un materiale.

    Il prezzo unitario è il prezzo di acquisto del prodotto,
    registrato dal server al momento dell'inserimento.
    """
    product_id: Optional[uuid.UUID] = None
    planned_quantity: Decimal = Field(..., ge=Decimal("0"), decimal_places=2)
    used_quantity: Decimal = Field(default=Decimal("0"), ge=Decimal("0"), decimal_places=2)
    is_extra: Optional[bool] = None
    notes: Optional[str] = Field(None, max_length=2000)

    @model_validator(mode="after")
    def validate_required(self) -> "JobMaterialCreate":
        """Prodotto obbligatorio e almeno una quantità positiva."""
        if self.product_id is None:
            raise ValueError("Selezionare un prodotto")
        if self.planned_quantity <= 0 and self.used_quantity <= 0:
            raise ValueError("La quantità deve essere maggiore di zero")
        return self


class JobMaterialUpdate(ApiModel):
    """Aggiornamento parziale di un materiale."""
    planned_quantity: Optional[Decimal] = Field(None, ge=Decimal("0"), decimal_places=2)
    used_quantity: Optional[Decimal] = Field(None, ge=Decimal("0"), decimal_places=2)
    is_extra: Optional[bool] = None
    notes: Optional[str] = Field(None, max_length=2000)


class ProductBrief(ApiModel):
    """Dati essenziali del prodotto incorporati nel materiale."""
    id: uuid.UUID
    code: str
    name: str
    purchase_price: Decimal
    unit: str


class JobMaterialRead(ApiModel):
    """Schema per la lettura di un materiale."""
    id: uuid.UUID
    job_id: uuid.UUID
    product_id: uuid.UUID
    product: Optional[ProductBrief] = None
    planned_quantity: Decimal
    used_quantity: Decimal
    unit_price: Optional[Decimal] = None
    total_price: Decimal
    is_extra: bool
    notes: Optional[str] = None
    created_at: datetime.datetime


# -------------------------------------------------------------------
# Schemas per JobPayment
# -------------------------------------------------------------------

class JobPaymentCreate(ApiModel):
    """Schema per l'aggiunta di un pagamento (previsto o incassato)."""
    amount: Decimal = Field(..., gt=Decimal("0"), decimal_places=2)
    payment_type: PaymentType
    payment_date: datetime.date
    installment_count: Optional[int] = Field(None, ge=1, le=120)
    due_date: Optional[datetime.date] = None
    is_paid: bool = False
    paid_date: Optional[datetime.date] = None
    receipt_number: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = Field(None, max_length=2000)

    @model_validator(mode="after")
    def validate_installments(self) -> "JobPaymentCreate":
        """Il numero di rate ha senso solo per i pagamenti rateali."""
        if self.installment_count is not None and self.payment_type != PaymentType.INSTALLMENT:
            raise ValueError("Il numero di rate è ammesso solo per pagamenti rateali")
        return self


class JobPaymentUpdate(ApiModel):
    """Aggiornamento parziale di un pagamento."""
    amount: Optional[Decimal] = Field(None, gt=Decimal("0"), decimal_places=2)
    payment_type: Optional[PaymentType] = None
    payment_date: Optional[datetime.date] = None
    installment_count: Optional[int] = Field(None, ge=1, le=120)
    due_date: Optional[datetime.date] = None
    is_paid: Optional[bool] = None
    paid_date: Optional[datetime.date] = None
    receipt_number: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = Field(None, max_length=2000)


class JobPaymentRead(ApiModel):
    """Schema per la lettura di un pagamento."""
    id: uuid.UUID
    job_id: uuid.UUID
    amount: Decimal
    payment_type: PaymentType
    payment_date: datetime.date
    installment_count: Optional[int] = None
    due_date: Optional[datetime.date] = None
    is_paid: bool
    paid_date: Optional[datetime.date] = None
    receipt_number: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime.datetime


# -------------------------------------------------------------------
# Schemas per JobExpense
# -------------------------------------------------------------------

class JobExpenseCreate(ApiModel):
    """Schema per l'aggiunta di una spesa."""
    expense_type: ExpenseType
    description: str = Field(..., min_length=1, max_length=255)
    amount: Decimal = Field(..., gt=Decimal("0"), decimal_places=2)
    expense_date: datetime.date
    receipt_number: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = Field(None, max_length=2000)


class JobExpenseUpdate(ApiModel):
    """Aggiornamento parziale di una spesa."""
    expense_type: Optional[ExpenseType] = None
    description: Optional[str] = Field(None, min_length=1, max_length=255)
    amount: Optional[Decimal] = Field(None, gt=Decimal("0"), decimal_places=2)
    expense_date: Optional[datetime.date] = None
    receipt_number: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = Field(None, max_length=2000)


class JobExpenseRead(ApiModel):
    """Schema per la lettura di una spesa."""
    id: uuid.UUID
    job_id: uuid.UUID
    expense_type: ExpenseType
    description: str
    amount: Decimal
    expense_date: datetime.date
    receipt_number: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime.datetime


class JobStatusHistoryRead(ApiModel):
    """Record dello storico stati."""
    id: uuid.UUID
    job_id: uuid.UUID
    old_status: JobStatus
    new_status: JobStatus
    changed_by: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime.datetime


# -------------------------------------------------------------------
# Schemas per i valori derivati
# -------------------------------------------------------------------

class JobCostSummary(ApiModel):
    """
    Riepilogo economico di un lavoro.

    Attributes:
        planned_material_cost: Σ quantità pianificata × prezzo di acquisto
        used_material_cost: Σ quantità utilizzata × prezzo di acquisto
        total_payments: Σ pagamenti (previsti + incassati)
        total_paid_amount: Σ pagamenti incassati
        total_expenses: Σ spese
        remaining_payment: Residuo da incassare (mai negativo)
        net_profit: Importo finale - costo materiali utilizzati - spese (può essere negativo)
        unpriced_materials: Materiali senza prezzo disponibile (contributo 0)
    """
    final_amount: Decimal = ZERO
    planned_material_cost: Decimal = ZERO
    used_material_cost: Decimal = ZERO
    total_payments: Decimal = ZERO
    total_paid_amount: Decimal = ZERO
    total_expenses: Decimal = ZERO
    remaining_payment: Decimal = ZERO
    net_profit: Decimal = ZERO
    unpriced_materials: int = 0
    expenses_by_type: dict[ExpenseType, Decimal] = Field(default_factory=dict)
    payments_by_type: dict[PaymentType, Decimal] = Field(default_factory=dict)


class JobStatistics(ApiModel):
    """Statistiche aggregate dei lavori in un periodo."""
    total_jobs: int = 0
    active_jobs: int = 0
    completed_jobs: int = 0
    cancelled_jobs: int = 0
    pending_payment_jobs: int = 0
    total_revenue: Decimal = ZERO
    total_expenses: Decimal = ZERO
    net_profit: Decimal = ZERO
    average_job_value: Decimal = ZERO
