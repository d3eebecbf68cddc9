"""
Modelli Database SQLAlchemy
Progetto: Gestionale Impianti TVCC

Import centralizzato di tutti i modelli per la creazione dello schema e usage generico.

Modelli:
- Customer: Anagrafica clienti (letta dal calcolo crediti)
- Product: Catalogo prodotti (prezzo di acquisto e giacenza)
- StockMovement: Movimenti magazzino
- Job: Lavori di installazione
- JobMaterial: Materiali del lavoro
- JobPayment: Pagamenti del lavoro
- JobExpense: Spese del lavoro
- JobStatusHistory: Storico cambi di stato
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class per tutti i modelli SQLAlchemy."""
    pass


from app.models.customer import Customer
from app.models.product import Product, StockMovement
from app.models.job import Job, JobExpense, JobMaterial, JobPayment, JobStatusHistory

__all__ = [
    "Base",
    "Customer",
    "Product",
    "StockMovement",
    "Job",
    "JobMaterial",
    "JobPayment",
    "JobExpense",
    "JobStatusHistory",
]
