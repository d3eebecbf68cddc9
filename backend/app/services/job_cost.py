"""
Calcolo costi dei Lavori
Progetto: Gestionale Impianti TVCC

Funzioni pure che ricavano i valori economici di un lavoro
(costo materiali pianificato e utilizzato, pagamenti, spese,
residuo da incassare, utile netto) e le statistiche di periodo.

I valori sono ricalcolati da zero a ogni richiesta a partire dalle
collezioni caricate; nessuna funzione solleva eccezioni per relazioni
mancanti: i prezzi non disponibili valgono UNKNOWN e contribuiscono 0.
"""

import logging
import uuid
from collections import defaultdict
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional, Union

from app.core.money import ZERO, floor_zero, money_sum, round_money, to_decimal
from app.schemas.job import (
    ExpenseType,
    JobCostSummary,
    JobStatistics,
    JobStatus,
    PaymentType,
)
from app.services.job_status import TERMINAL_STATUSES

# Logger per questo modulo
logger = logging.getLogger(__name__)

PRICING_SNAPSHOT = "snapshot"
PRICING_LIVE = "live"


class _UnknownPrice:
    """Sentinella per un prezzo di acquisto non disponibile."""

    _instance: Optional["_UnknownPrice"] = None

    def __new__(cls) -> "_UnknownPrice":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNKNOWN"


UNKNOWN = _UnknownPrice()

Price = Union[Decimal, _UnknownPrice]


def positive_price(value: Any) -> Optional[Decimal]:
    """Restituisce il prezzo se presente e > 0, altrimenti None."""
    if value is None:
        return None
    price = to_decimal(value)
    return price if price > 0 else None


def effective_purchase_price(
    material: Any,
    products: Optional[Mapping[uuid.UUID, Any]] = None,
    pricing: str = PRICING_SNAPSHOT,
) -> Price:
    """
    Prezzo di acquisto con cui valorizzare un materiale.

    Con pricing="snapshot" si usa il prezzo registrato sul materiale
    all'inserimento. Con pricing="live" si preferisce il prezzo attuale
    del prodotto (dalla mappa id -> prodotto) e, se il prodotto manca
    o non ha prezzo, si ricade sul prezzo registrato.

    Args:
        material: Materiale del lavoro (unit_price, product_id)
        products: Mappa id prodotto -> prodotto (opzionale)
        pricing: "snapshot" o "live"

    Returns:
        Il prezzo, oppure UNKNOWN se nessun prezzo è disponibile
    """
    snapshot = getattr(material, "unit_price", None)

    if pricing == PRICING_LIVE and products:
        product = products.get(getattr(material, "product_id", None))
        live_price = positive_price(getattr(product, "purchase_price", None))
        if live_price is not None:
            return live_price

    if snapshot is None:
        return UNKNOWN
    return to_decimal(snapshot)


def _breakdown(items: Iterable[Any], type_attr: str, enum_cls: type) -> dict:
    """Somma gli importi raggruppati per tipo (solo i tipi presenti)."""
    grouped: dict = defaultdict(list)
    for item in items:
        try:
            key = enum_cls(int(getattr(item, type_attr)))
        except (TypeError, ValueError):
            continue
        grouped[key].append(getattr(item, "amount", None))
    return {key: money_sum(values) for key, values in sorted(grouped.items())}


def aggregate_job_costs(
    materials: Optional[Iterable[Any]],
    payments: Optional[Iterable[Any]],
    expenses: Optional[Iterable[Any]],
    final_amount: Any,
    products: Optional[Mapping[uuid.UUID, Any]] = None,
    pricing: str = PRICING_SNAPSHOT,
) -> JobCostSummary:
    """
    Calcola il riepilogo economico di un lavoro.

    Formule:
        planned_material_cost = Σ quantità pianificata × prezzo
        used_material_cost    = Σ quantità utilizzata × prezzo
        remaining_payment     = max(final_amount - Σ pagato, 0)
        net_profit            = final_amount - costo utilizzato - spese

    Collezioni vuote (o None) producono valori a zero.

    Args:
        materials: Materiali del lavoro
        payments: Pagamenti del lavoro
        expenses: Spese del lavoro
        final_amount: Importo finale del lavoro
        products: Mappa id -> prodotto per il prezzo live
        pricing: Politica di prezzo ("snapshot" o "live")

    Returns:
        JobCostSummary: Riepilogo calcolato
    """
    materials = list(materials or [])
    payments = list(payments or [])
    expenses = list(expenses or [])

    planned_lines: list[Decimal] = []
    used_lines: list[Decimal] = []
    unpriced = 0

    for material in materials:
        price = effective_purchase_price(material, products, pricing)
        if price is UNKNOWN:
            unpriced += 1
            continue
        planned_lines.append(to_decimal(getattr(material, "planned_quantity", None)) * price)
        used_lines.append(to_decimal(getattr(material, "used_quantity", None)) * price)

    if unpriced:
        logger.debug("%d materiali senza prezzo di acquisto: contributo 0", unpriced)

    final = round_money(final_amount)
    planned_cost = money_sum(planned_lines)
    used_cost = money_sum(used_lines)
    total_payments = money_sum(p.amount for p in payments)
    total_paid = money_sum(p.amount for p in payments if getattr(p, "is_paid", False))
    total_expenses = money_sum(e.amount for e in expenses)

    return JobCostSummary(
        final_amount=final,
        planned_material_cost=planned_cost,
        used_material_cost=used_cost,
        total_payments=total_payments,
        total_paid_amount=total_paid,
        total_expenses=total_expenses,
        remaining_payment=floor_zero(final - total_paid),
        net_profit=round_money(final - used_cost - total_expenses),
        unpriced_materials=unpriced,
        expenses_by_type=_breakdown(expenses, "expense_type", ExpenseType),
        payments_by_type=_breakdown(payments, "payment_type", PaymentType),
    )


def compute_job_statistics(
    jobs: Iterable[Any],
    payments: Iterable[Any],
    expenses: Iterable[Any],
) -> JobStatistics:
    """
    Statistiche aggregate su un insieme di lavori.

    Il fatturato è la somma dei pagamenti incassati; il valore medio
    è la media degli importi finali (0 senza lavori).
    """
    jobs = list(jobs)
    statuses = [getattr(job, "status", None) for job in jobs]

    total_revenue = money_sum(p.amount for p in payments if getattr(p, "is_paid", False))
    total_expenses = money_sum(e.amount for e in expenses)

    if jobs:
        average = round_money(
            money_sum(job.final_amount for job in jobs) / Decimal(len(jobs))
        )
    else:
        average = ZERO

    return JobStatistics(
        total_jobs=len(jobs),
        active_jobs=sum(1 for s in statuses if s not in TERMINAL_STATUSES),
        completed_jobs=sum(1 for s in statuses if s == JobStatus.COMPLETED),
        cancelled_jobs=sum(1 for s in statuses if s == JobStatus.CANCELLED),
        pending_payment_jobs=sum(1 for s in statuses if s == JobStatus.PAYMENT_PENDING),
        total_revenue=total_revenue,
        total_expenses=total_expenses,
        net_profit=round_money(total_revenue - total_expenses),
        average_job_value=average,
    )
