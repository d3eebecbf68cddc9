"""
Macchina a stati dei Lavori
Progetto: Gestionale Impianti TVCC

Regole pure (senza database) sul ciclo di vita di un lavoro:
legalità delle transizioni, abilitazione della quantità utilizzata,
importo finale e totale riga dei materiali.
"""

import logging
from decimal import Decimal
from typing import Any, Optional

from app.core.exceptions import BusinessValidationError, InvalidTransitionError
from app.core.money import floor_zero, line_total, round_money
from app.schemas.job import JobStatus

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Stati finali: si esce solo con una riapertura esplicita
TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.CANCELLED})

# Stati in cui il montaggio è già avvenuto
INSTALLED_STATUSES = frozenset({JobStatus.INSTALLATION_COMPLETED, JobStatus.COMPLETED})


def _parse_status(value: Any) -> Optional[JobStatus]:
    """
    Interpreta un codice stato: intero (non bool) o stringa di sole cifre.

    Float, bool e codici fuori intervallo restituiscono None.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int):
        return None
    try:
        return JobStatus(value)
    except ValueError:
        return None


def coerce_status(value: Any) -> JobStatus:
    """
    Converte un codice intero in JobStatus.

    Raises:
        BusinessValidationError: Se il codice non corrisponde a nessuno stato
    """
    status = _parse_status(value)
    if status is None:
        raise BusinessValidationError(
            f"Stato lavoro non valido: {value!r}",
            extra={"errors": {"status": ["Codice stato sconosciuto"]}},
        )
    return status


def transition(
    current: Any,
    target: Any,
    notes: Optional[str] = None,
    reopen: bool = False,
) -> JobStatus:
    """
    Valida il passaggio di un lavoro da uno stato all'altro.

    Da uno stato non finale si può andare in qualsiasi altro stato,
    in avanti o all'indietro (l'annullamento è sempre possibile).
    Da Completato o Annullato si esce solo con reopen=True.

    Args:
        current: Stato attuale
        target: Stato richiesto
        notes: Note del cambio (solo per il log)
        reopen: Consente l'uscita da uno stato finale

    Returns:
        JobStatus: Il nuovo stato

    Raises:
        InvalidTransitionError: Se la transizione non è consentita
        BusinessValidationError: Se uno dei due codici è sconosciuto
    """
    current_status = coerce_status(current)
    target_status = coerce_status(target)

    if current_status == target_status:
        raise InvalidTransitionError(
            current_status,
            target_status,
            detail=f"Il lavoro è già nello stato {target_status.value}",
        )

    if current_status in TERMINAL_STATUSES and not reopen:
        logger.warning(
            "Transizione rifiutata da stato finale: %s -> %s",
            current_status.value,
            target_status.value,
        )
        raise InvalidTransitionError(
            current_status,
            target_status,
            detail="Il lavoro è chiuso: per modificarne lo stato occorre riaprirlo",
        )

    logger.debug(
        "Transizione consentita %s -> %s (note: %s)",
        current_status.value,
        target_status.value,
        notes,
    )
    return target_status


def is_used_quantity_editable(status: Any) -> bool:
    """True solo quando il lavoro è in stato Montaggio completato."""
    return _parse_status(status) == JobStatus.INSTALLATION_COMPLETED


def installation_reached(status: Any) -> bool:
    """True se il montaggio è già stato completato (stato 8 o 9)."""
    return _parse_status(status) in INSTALLED_STATUSES


def compute_final_amount(total_amount: Any, discount_amount: Any = None) -> Decimal:
    """Importo finale: totale - sconto, mai negativo."""
    return floor_zero(round_money(total_amount) - round_money(discount_amount))


def material_total_price(
    status: Any,
    planned_quantity: Any,
    used_quantity: Any,
    unit_price: Any,
) -> Decimal:
    """
    Totale riga di un materiale.

    Prima del montaggio vale la quantità pianificata, dopo quella utilizzata.
    """
    quantity = used_quantity if installation_reached(status) else planned_quantity
    return line_total(quantity, unit_price)
