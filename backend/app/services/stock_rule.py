"""
Regola di impatto sul magazzino dei materiali
Progetto: Gestionale Impianti TVCC

La quantità utilizzata di un materiale è l'unico dato che scarica il
magazzino, e può passare da 0 a un valore positivo solo quando il
lavoro è in stato "Montaggio completato". Le correzioni di una quantità
già registrata restano possibili anche dopo.
"""

from decimal import Decimal
from typing import Any, NamedTuple, Optional

from app.core.exceptions import BusinessValidationError
from app.core.money import to_decimal
from app.schemas.job import StockMovementType
from app.services.job_status import is_used_quantity_editable


class StockDelta(NamedTuple):
    """Movimento di magazzino implicato da una variazione di quantità."""
    movement_type: StockMovementType
    quantity: Decimal


def validate_used_quantity_change(status: Any, old_used: Any, new_used: Any) -> Decimal:
    """
    Verifica che la nuova quantità utilizzata sia ammessa.

    Args:
        status: Stato attuale del lavoro
        old_used: Quantità utilizzata registrata (0 per un nuovo materiale)
        new_used: Quantità utilizzata richiesta

    Returns:
        Decimal: La nuova quantità validata

    Raises:
        BusinessValidationError: Quantità negativa, oppure prima registrazione
            di consumo con il lavoro non in "Montaggio completato"
    """
    old_value = to_decimal(old_used)
    new_value = to_decimal(new_used)

    if new_value < 0:
        raise BusinessValidationError(
            "La quantità utilizzata non può essere negativa",
            extra={"errors": {"used_quantity": ["Valore negativo"]}},
        )

    if old_value == 0 and new_value > 0 and not is_used_quantity_editable(status):
        raise BusinessValidationError(
            "La quantità utilizzata è modificabile solo a montaggio completato",
            extra={"errors": {"used_quantity": ["Disponibile solo a montaggio completato"]}},
        )

    return new_value


def stock_delta_for_used_quantity(old_used: Any, new_used: Any) -> Optional[StockDelta]:
    """
    Movimento di magazzino per una variazione della quantità utilizzata.

    Aumento -> scarico della differenza, diminuzione -> reso della
    differenza, nessuna variazione -> None.
    """
    difference = to_decimal(new_used) - to_decimal(old_used)
    if difference > 0:
        return StockDelta(StockMovementType.STOCK_OUT, difference)
    if difference < 0:
        return StockDelta(StockMovementType.RETURN, -difference)
    return None
