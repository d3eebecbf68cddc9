"""
Utility per importi e quantità
Progetto: Gestionale Impianti TVCC

Arrotondamenti, somme e percentuali su Decimal usati da tutti i calcoli
(costi lavoro, crediti clienti, statistiche).
Tutti gli importi monetari sono arrotondati a 2 decimali ROUND_HALF_UP.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value: Any) -> Decimal:
    """
    Converte un valore in Decimal senza mai sollevare eccezioni.

    None, stringhe vuote, NaN e valori non numerici diventano 0.
    Le stringhe con la virgola come separatore decimale sono accettate.

    Args:
        value: Valore da convertire (Decimal, int, float, str o None)

    Returns:
        Decimal: Valore convertito (0 se non convertibile)
    """
    if value is None or isinstance(value, bool):
        return Decimal("0")
    if isinstance(value, Decimal):
        result = value
    else:
        if isinstance(value, str):
            value = value.strip().replace(",", ".")
            if not value:
                return Decimal("0")
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError):
            return Decimal("0")
    if not result.is_finite():
        return Decimal("0")
    return result


def round_money(value: Any) -> Decimal:
    """Arrotonda un importo a 2 decimali (ROUND_HALF_UP)."""
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def money_sum(values: Iterable[Any]) -> Decimal:
    """
    Somma esatta di importi, indipendente dall'ordine.

    Una collezione vuota restituisce 0.00.
    """
    total = sum((to_decimal(v) for v in values), Decimal("0"))
    return round_money(total)


def line_total(quantity: Any, unit_price: Any) -> Decimal:
    """Totale riga: quantità × prezzo unitario, arrotondato."""
    return round_money(to_decimal(quantity) * to_decimal(unit_price))


def floor_zero(value: Any) -> Decimal:
    """Limita un importo a zero dal basso."""
    amount = round_money(value)
    return amount if amount > 0 else ZERO


def percentage(part: Any, whole: Any) -> Decimal:
    """
    Percentuale di `part` su `whole` con 2 decimali.

    Restituisce 0 se `whole` è zero.
    """
    whole_dec = to_decimal(whole)
    if whole_dec == 0:
        return ZERO
    return round_money(to_decimal(part) * Decimal("100") / whole_dec)
