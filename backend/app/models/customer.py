"""
Modello SQLAlchemy per l'entità Customer
Progetto: Gestionale Impianti TVCC

Rappresenta l'anagrafica dei clienti a cui vengono intestati i lavori.
"""


from __future__ import annotations
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models import Base
from app.models.mixins import SoftDeleteMixin, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.job import Job


class Customer(Base, UUIDMixin, TimestampMixin, SoftDeleteMixin):
    """
    Modello per l'anagrafica clienti.

    Attributes:
        id: UUID primary key
        name: Nome e cognome del referente
        company_name: Ragione sociale (opzionale)
        phone_number: Telefono
        email: Email
        address: Indirizzo
        tax_number: Codice fiscale / partita IVA (opzionale)
        tax_office: Ufficio imposte (opzionale)
        notes: Note
        is_active: False = cliente disattivato

    Relationships:
        jobs: Lavori intestati al cliente
    """

    __tablename__ = "customers"

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        doc="Nome e cognome del referente",
    )

    company_name: Mapped[Optional[str]] = mapped_column(
        String(200),
        nullable=True,
        doc="Ragione sociale",
    )

    phone_number: Mapped[Optional[str]] = mapped_column(
        String(30),
        nullable=True,
        doc="Numero di telefono",
    )

    email: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        doc="Indirizzo email",
    )

    address: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Indirizzo",
    )

    tax_number: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        doc="Codice fiscale o partita IVA",
    )

    tax_office: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        doc="Ufficio imposte",
    )

    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Note aggiuntive",
    )

    jobs: Mapped[List["Job"]] = relationship(
        "Job",
        back_populates="customer",
        lazy="noload",
        doc="Lavori intestati al cliente",
    )

    __table_args__ = (
        Index("ix_customers_name", "name"),
    )

    def __repr__(self) -> str:
        return f"Customer(id={self.id}, name={self.name!r})"
