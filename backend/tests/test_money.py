"""
Unit tests for the money/quantity helpers.
"""

from decimal import Decimal

from app.core.money import floor_zero, line_total, money_sum, percentage, round_money, to_decimal


class TestToDecimal:
    """Tests for tolerant Decimal conversion."""

    def test_none_is_zero(self):
        """Test None diventa 0."""
        assert to_decimal(None) == Decimal("0")

    def test_invalid_string_is_zero(self):
        """Test stringa non numerica diventa 0."""
        assert to_decimal("abc") == Decimal("0")
        assert to_decimal("") == Decimal("0")

    def test_nan_is_zero(self):
        """Test NaN e infinito diventano 0."""
        assert to_decimal(float("nan")) == Decimal("0")
        assert to_decimal("Infinity") == Decimal("0")

    def test_comma_separator(self):
        """Test virgola come separatore decimale."""
        assert to_decimal("12,50") == Decimal("12.50")

    def test_float_uses_string_repr(self):
        """Test il float è convertito senza errori binari."""
        assert to_decimal(0.1) == Decimal("0.1")


class TestRounding:
    """Tests for rounding and sums."""

    def test_round_half_up(self):
        """Test arrotondamento ROUND_HALF_UP."""
        assert round_money(Decimal("2.675")) == Decimal("2.68")
        assert round_money(Decimal("2.665")) == Decimal("2.67")

    def test_money_sum_empty(self):
        """Test somma vuota restituisce 0.00."""
        assert money_sum([]) == Decimal("0.00")

    def test_money_sum_order_independent(self):
        """Test la somma non dipende dall'ordine."""
        values = [Decimal("0.10"), Decimal("0.20"), Decimal("1000000.01"), None]
        assert money_sum(values) == money_sum(reversed(values)) == Decimal("1000000.31")

    def test_line_total(self):
        """Test totale riga quantità × prezzo."""
        assert line_total(Decimal("5"), Decimal("100")) == Decimal("500.00")
        assert line_total(Decimal("1.5"), Decimal("9.99")) == Decimal("14.99")

    def test_floor_zero(self):
        """Test limite inferiore a zero."""
        assert floor_zero(Decimal("-10")) == Decimal("0.00")
        assert floor_zero(Decimal("10")) == Decimal("10.00")

    def test_percentage_zero_whole(self):
        """Test percentuale su totale zero restituisce 0."""
        assert percentage(Decimal("10"), Decimal("0")) == Decimal("0.00")

    def test_percentage(self):
        """Test percentuale con 2 decimali."""
        assert percentage(Decimal("1"), Decimal("3")) == Decimal("33.33")
