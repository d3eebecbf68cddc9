"""
Service Layer per il magazzino prodotti
Progetto: Gestionale Impianti TVCC

Applica alla giacenza dei prodotti i movimenti generati dai lavori
(scarico dei materiali utilizzati, reso per correzioni, eliminazioni
e annullamenti) registrando ogni volta uno StockMovement.
"""

import logging
import uuid
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BusinessValidationError, NotFoundError
from app.core.money import to_decimal
from app.models import Product, StockMovement
from app.schemas.job import StockMovementType

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Movimenti che riducono la giacenza
_OUTGOING = {StockMovementType.STOCK_OUT, StockMovementType.TRANSFER}


class StockService:
    """
    Service per la giacenza dei prodotti.

    Ogni variazione passa da apply_movement, che controlla la
    disponibilità e scrive il movimento con giacenza prima/dopo.
    """

    async def get_product(self, db: AsyncSession, product_id: uuid.UUID) -> Product:
        """
        Recupera un prodotto tramite ID.

        Raises:
            NotFoundError: Se il prodotto non esiste
        """
        result = await db.execute(select(Product).where(Product.id == product_id))
        product = result.scalar_one_or_none()

        if not product:
            logger.warning("Prodotto non trovato: %s", product_id)
            raise NotFoundError(f"Prodotto con ID {product_id} non trovato")
        return product

    async def get_products_map(
        self,
        db: AsyncSession,
        product_ids: Iterable[uuid.UUID],
    ) -> dict[uuid.UUID, Product]:
        """Mappa id -> prodotto per gli ID richiesti (quelli assenti sono omessi)."""
        ids = {pid for pid in product_ids if pid is not None}
        if not ids:
            return {}
        result = await db.execute(select(Product).where(Product.id.in_(ids)))
        return {product.id: product for product in result.scalars().all()}

    async def apply_movement(
        self,
        db: AsyncSession,
        product: Product,
        movement_type: StockMovementType,
        quantity: Decimal,
        reference_number: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> StockMovement:
        """
        Registra un movimento e aggiorna la giacenza del prodotto.

        Args:
            db: Sessione database
            product: Prodotto movimentato
            movement_type: Tipo di movimento
            quantity: Quantità (positiva; per la rettifica è la nuova giacenza)
            reference_number: Riferimento (numero lavoro)
            notes: Note

        Returns:
            StockMovement: Il movimento creato

        Raises:
            BusinessValidationError: Quantità negativa o giacenza insufficiente
        """
        quantity = to_decimal(quantity)
        if quantity < 0:
            raise BusinessValidationError("La quantità del movimento non può essere negativa")

        previous_stock = to_decimal(product.stock_quantity)

        if movement_type == StockMovementType.ADJUSTMENT:
            new_stock = quantity
        elif movement_type in _OUTGOING:
            new_stock = previous_stock - quantity
            if new_stock < 0:
                logger.warning(
                    "Giacenza insufficiente per prodotto %s: disponibili=%s, richiesti=%s",
                    product.code,
                    previous_stock,
                    quantity,
                )
                raise BusinessValidationError(
                    f"Giacenza insufficiente. Disponibili: {previous_stock}, richiesti: {quantity}",
                    extra={"errors": {"used_quantity": ["Giacenza insufficiente"]}},
                )
        else:
            new_stock = previous_stock + quantity

        product.stock_quantity = new_stock

        movement = StockMovement(
            product_id=product.id,
            movement_type=movement_type.value,
            quantity=quantity,
            previous_stock=previous_stock,
            new_stock=new_stock,
            reference_number=reference_number,
            notes=notes,
        )
        db.add(movement)

        logger.info(
            "Movimento %s per prodotto %s: qty=%s, giacenza %s -> %s",
            movement_type.name,
            product.code,
            quantity,
            previous_stock,
            new_stock,
        )
        if product.is_below_minimum:
            logger.warning("Prodotto %s sotto scorta minima: %s", product.code, new_stock)

        return movement


# Istanza singleton del service
stock_service = StockService()
