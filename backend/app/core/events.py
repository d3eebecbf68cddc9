"""
Notifiche di invalidazione delle viste derivate
Progetto: Gestionale Impianti TVCC

Ogni mutazione dichiara quali viste aggregate rende obsolete
(es. "pagamento aggiunto" → costi del lavoro + crediti del cliente).
I service pubblicano la mutazione dopo il flush; i sottoscrittori
(cache, websocket, ricalcoli) ricevono la vista invalidata e il contesto.
"""

import logging
from collections import defaultdict
from enum import Enum
from typing import Any, Callable

# Logger per questo modulo
logger = logging.getLogger(__name__)


class View(str, Enum):
    """Viste derivate ricalcolate a partire dai dati del backend."""
    JOB = "job"
    JOB_LIST = "job_list"
    JOB_COSTS = "job_costs"
    JOB_STATISTICS = "job_statistics"
    CUSTOMER_RECEIVABLES = "customer_receivables"
    STOCK = "stock"


class Mutation(str, Enum):
    """Mutazioni eseguite dai service."""
    JOB_CREATED = "job_created"
    JOB_UPDATED = "job_updated"
    JOB_DELETED = "job_deleted"
    JOB_STATUS_CHANGED = "job_status_changed"
    MATERIAL_ADDED = "material_added"
    MATERIAL_UPDATED = "material_updated"
    MATERIAL_REMOVED = "material_removed"
    PAYMENT_ADDED = "payment_added"
    PAYMENT_UPDATED = "payment_updated"
    PAYMENT_REMOVED = "payment_removed"
    PAYMENT_MARKED_PAID = "payment_marked_paid"
    EXPENSE_ADDED = "expense_added"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_REMOVED = "expense_removed"


_JOB_FINANCIALS = (View.JOB, View.JOB_LIST, View.JOB_COSTS, View.JOB_STATISTICS, View.CUSTOMER_RECEIVABLES)
_MATERIALS = (View.JOB, View.JOB_COSTS, View.JOB_STATISTICS, View.STOCK)
_PAYMENTS = (View.JOB, View.JOB_COSTS, View.JOB_STATISTICS, View.CUSTOMER_RECEIVABLES)
_EXPENSES = (View.JOB, View.JOB_COSTS, View.JOB_STATISTICS)

# Tabella dichiarativa: mutazione -> viste invalidate
MUTATION_INVALIDATES: dict[Mutation, tuple[View, ...]] = {
    Mutation.JOB_CREATED: _JOB_FINANCIALS,
    Mutation.JOB_UPDATED: _JOB_FINANCIALS,
    Mutation.JOB_DELETED: _JOB_FINANCIALS,
    # L'annullamento restituisce a magazzino i materiali consumati
    Mutation.JOB_STATUS_CHANGED: _JOB_FINANCIALS + (View.STOCK,),
    Mutation.MATERIAL_ADDED: _MATERIALS,
    Mutation.MATERIAL_UPDATED: _MATERIALS,
    Mutation.MATERIAL_REMOVED: _MATERIALS,
    Mutation.PAYMENT_ADDED: _PAYMENTS,
    Mutation.PAYMENT_UPDATED: _PAYMENTS,
    Mutation.PAYMENT_REMOVED: _PAYMENTS,
    Mutation.PAYMENT_MARKED_PAID: _PAYMENTS,
    Mutation.EXPENSE_ADDED: _EXPENSES,
    Mutation.EXPENSE_UPDATED: _EXPENSES,
    Mutation.EXPENSE_REMOVED: _EXPENSES,
}

InvalidationHandler = Callable[[View, Mutation, dict[str, Any]], None]


class InvalidationBus:
    """
    Bus pub/sub in-process per le invalidazioni.

    Un handler sottoscrive una vista e viene chiamato per ogni mutazione
    che la invalida. Un errore di un handler viene loggato e non
    interrompe la mutazione né gli altri handler.
    """

    def __init__(self) -> None:
        self._handlers: dict[View, list[InvalidationHandler]] = defaultdict(list)

    def subscribe(self, view: View, handler: InvalidationHandler) -> None:
        """Registra un handler per una vista."""
        self._handlers[view].append(handler)

    def unsubscribe(self, view: View, handler: InvalidationHandler) -> None:
        """Rimuove un handler registrato (nessun errore se assente)."""
        if handler in self._handlers[view]:
            self._handlers[view].remove(handler)

    def clear(self) -> None:
        """Rimuove tutti gli handler."""
        self._handlers.clear()

    def publish(self, mutation: Mutation, **context: Any) -> tuple[View, ...]:
        """
        Notifica la mutazione a tutti gli handler delle viste invalidate.

        Args:
            mutation: Mutazione appena eseguita
            **context: Identificativi coinvolti (job_id, customer_id, product_id...)

        Returns:
            Le viste invalidate dalla mutazione
        """
        views = MUTATION_INVALIDATES.get(mutation, ())
        logger.debug("Mutazione %s: invalidate %s", mutation.value, [v.value for v in views])

        for view in views:
            for handler in list(self._handlers.get(view, ())):
                try:
                    handler(view, mutation, context)
                except Exception:
                    logger.exception(
                        "Errore nell'handler di invalidazione per la vista %s", view.value
                    )
        return views


# Istanza condivisa usata dai service
invalidation_bus = InvalidationBus()
