"""
Modelli SQLAlchemy per Prodotti e Magazzino
Progetto: Gestionale Impianti TVCC

Contiene:
- Product: Prodotto a catalogo (telecamere, NVR, cavi, accessori)
- StockMovement: Movimento di magazzino
"""


from __future__ import annotations
import datetime
import uuid
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.models import Base
from app.models.mixins import SoftDeleteMixin, TimestampMixin, UUIDMixin


class Product(Base, UUIDMixin, TimestampMixin, SoftDeleteMixin):
    """
    Modello per il catalogo prodotti.

    Il prezzo di acquisto attuale è il "prezzo live" usato dal calcolo
    costi quando configurato; la giacenza è aggiornata solo tramite
    StockMovement.

    Properties:
        is_below_minimum: True se stock < minimum_stock_level
    """

    __tablename__ = "products"

    code: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        index=True,
        doc="Codice identificativo univoco del prodotto",
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="Nome del prodotto",
    )

    barcode: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        doc="Codice a barre",
    )

    purchase_price: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0"),
        doc="Prezzo di acquisto attuale",
    )

    sale_price: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0"),
        doc="Prezzo di vendita",
    )

    stock_quantity: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0"),
        doc="Giacenza attuale",
    )

    minimum_stock_level: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0"),
        doc="Livello minimo giacenza per alert",
    )

    unit: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default="pz",
        doc="Unità di misura (pz, mt, kg...)",
    )

    stock_movements: Mapped[List["StockMovement"]] = relationship(
        "StockMovement",
        back_populates="product",
        lazy="noload",
        doc="Storico movimenti di magazzino",
    )

    __table_args__ = (
        Index("ix_products_active_stock", "is_active", "stock_quantity"),
        CheckConstraint("purchase_price >= 0", name="ck_products_purchase_price"),
    )

    @property
    def is_below_minimum(self) -> bool:
        """True se la giacenza è sotto il livello minimo."""
        return self.stock_quantity < self.minimum_stock_level

    def __repr__(self) -> str:
        return f"Product(code={self.code!r}, name={self.name!r})"


class StockMovement(Base, UUIDMixin, TimestampMixin):
    """
    Modello per i movimenti di magazzino.

    movement_type (codici interi):
        1 = carico, 2 = scarico, 3 = rettifica, 4 = reso, 5 = trasferimento

    I movimenti generati dai lavori riportano in reference_number il numero lavoro.
    """

    __tablename__ = "stock_movements"

    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="UUID del prodotto",
    )

    movement_type: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        doc="Tipo movimento (1-5)",
    )

    quantity: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        doc="Quantità movimentata (sempre positiva)",
    )

    previous_stock: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        doc="Giacenza prima del movimento",
    )

    new_stock: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        doc="Giacenza dopo il movimento",
    )

    reference_number: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        doc="Riferimento (es. numero lavoro)",
    )

    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Note",
    )

    movement_date: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        doc="Data/ora del movimento",
    )

    product: Mapped["Product"] = relationship(
        "Product",
        back_populates="stock_movements",
        doc="Prodotto movimentato",
    )

    __table_args__ = (
        CheckConstraint("movement_type BETWEEN 1 AND 5", name="ck_stock_movements_type"),
        CheckConstraint("quantity >= 0", name="ck_stock_movements_quantity"),
    )

    def __repr__(self) -> str:
        return (
            f"StockMovement(product_id={self.product_id}, type={self.movement_type}, "
            f"qty={self.quantity})"
        )
