"""
Unit tests for the used quantity / stock impact rule.
"""

from decimal import Decimal

import pytest

from app.core.exceptions import BusinessValidationError
from app.schemas.job import JobStatus, StockMovementType
from app.services.stock_rule import stock_delta_for_used_quantity, validate_used_quantity_change


class TestValidateUsedQuantityChange:
    """Tests for the used quantity gate."""

    @pytest.mark.parametrize("status", [s for s in JobStatus if s != JobStatus.INSTALLATION_COMPLETED])
    def test_first_usage_rejected_before_installation(self, status):
        """Test prima registrazione del consumo rifiutata fuori dallo stato 8."""
        with pytest.raises(BusinessValidationError) as exc_info:
            validate_used_quantity_change(status, Decimal("0"), Decimal("3"))
        assert "used_quantity" in exc_info.value.extra["errors"]

    def test_first_usage_allowed_at_installation_completed(self):
        """Test consumo registrabile a montaggio completato."""
        assert validate_used_quantity_change(8, 0, Decimal("3")) == Decimal("3")

    def test_zero_always_allowed(self):
        """Test quantità zero sempre ammessa."""
        assert validate_used_quantity_change(1, 0, 0) == Decimal("0")

    def test_correction_after_leaving_installation(self):
        """Test correzione di una quantità già registrata dopo lo stato 8."""
        assert validate_used_quantity_change(9, Decimal("3"), Decimal("2")) == Decimal("2")

    def test_negative_rejected(self):
        """Test quantità negativa rifiutata."""
        with pytest.raises(BusinessValidationError):
            validate_used_quantity_change(8, 0, Decimal("-1"))


class TestStockDelta:
    """Tests for the implied stock movement."""

    def test_increase_is_stock_out(self):
        """Test aumento = scarico della differenza."""
        delta = stock_delta_for_used_quantity(Decimal("2"), Decimal("5"))
        assert delta.movement_type == StockMovementType.STOCK_OUT
        assert delta.quantity == Decimal("3")

    def test_decrease_is_return(self):
        """Test diminuzione = reso della differenza."""
        delta = stock_delta_for_used_quantity(Decimal("5"), Decimal("1"))
        assert delta.movement_type == StockMovementType.RETURN
        assert delta.quantity == Decimal("4")

    def test_no_change(self):
        """Test nessuna variazione, nessun movimento."""
        assert stock_delta_for_used_quantity(Decimal("2"), Decimal("2.00")) is None
