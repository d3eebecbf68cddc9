"""
Schemas Pydantic per i crediti clienti
Progetto: Gestionale Impianti TVCC

Riepilogo crediti (fatturato, incassato, saldo aperto) e
anzianità del credito per cliente. Sono valori derivati, mai salvati.
"""

import uuid
from decimal import Decimal
from typing import Optional

from pydantic import Field, computed_field

from app.core.money import ZERO, money_sum
from app.schemas.base import ApiModel


class AgingBreakdown(ApiModel):
    """
    Scadenzario del saldo aperto per fasce di anzianità (giorni).

    Attributes:
        current: Meno di 30 giorni
        days_30_to_60: Da 30 a meno di 60 giorni
        days_60_to_90: Da 60 a meno di 90 giorni
        over_90_days: 90 giorni e oltre
    """
    current: Decimal = ZERO
    days_30_to_60: Decimal = Field(default=ZERO, alias="days30To60")
    days_60_to_90: Decimal = Field(default=ZERO, alias="days60To90")
    over_90_days: Decimal = Field(default=ZERO, alias="over90Days")

    @property
    def total(self) -> Decimal:
        """Somma delle fasce (coincide con il saldo aperto)."""
        return money_sum((self.current, self.days_30_to_60, self.days_60_to_90, self.over_90_days))


class CustomerReceivableSummary(ApiModel):
    """
    Riepilogo crediti di un cliente.

    Attributes:
        customer_id: UUID del cliente
        customer_name: Nome del cliente
        company_name: Ragione sociale
        total_billed: Σ importi finali di tutti i lavori
        total_paid: Σ pagamenti incassati
        outstanding_balance: Saldo aperto (mai negativo)
        total_jobs: Numero lavori
        active_jobs: Lavori non completati né annullati
        aging: Scadenzario del saldo aperto
    """
    customer_id: uuid.UUID
    customer_name: str
    company_name: Optional[str] = None
    is_active: bool = True
    total_billed: Decimal = ZERO
    total_paid: Decimal = ZERO
    outstanding_balance: Decimal = ZERO
    total_jobs: int = 0
    active_jobs: int = 0
    aging: AgingBreakdown = Field(default_factory=AgingBreakdown)

    @computed_field(alias="hasOverdue")
    @property
    def has_overdue(self) -> bool:
        """True se esiste credito aperto da almeno 30 giorni."""
        return self.aging.total > self.aging.current
