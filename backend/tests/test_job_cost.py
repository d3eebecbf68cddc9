"""
Unit tests for the job cost aggregator and period statistics.
"""

from decimal import Decimal

from conftest import MockJob, MockJobExpense, MockJobPayment, MockMaterial, MockProduct

from app.schemas.job import ExpenseType, PaymentType
from app.services.job_cost import (
    UNKNOWN,
    aggregate_job_costs,
    compute_job_statistics,
    effective_purchase_price,
)


class TestEffectivePurchasePrice:
    """Tests for price resolution."""

    def test_snapshot_uses_stored_price(self):
        """Test con snapshot si usa il prezzo registrato."""
        product = MockProduct(purchase_price=Decimal("120.00"))
        material = MockMaterial(product_id=product.id, unit_price=Decimal("100.00"))

        price = effective_purchase_price(material, {product.id: product}, "snapshot")

        assert price == Decimal("100.00")

    def test_live_prefers_product_price(self):
        """Test con live si preferisce il prezzo attuale del prodotto."""
        product = MockProduct(purchase_price=Decimal("120.00"))
        material = MockMaterial(product_id=product.id, unit_price=Decimal("100.00"))

        price = effective_purchase_price(material, {product.id: product}, "live")

        assert price == Decimal("120.00")

    def test_live_falls_back_without_product(self):
        """Test con live e prodotto assente si ricade sul prezzo registrato."""
        material = MockMaterial(unit_price=Decimal("100.00"))

        assert effective_purchase_price(material, {}, "live") == Decimal("100.00")

    def test_live_falls_back_on_zero_price(self):
        """Test prezzo live a zero ignorato."""
        product = MockProduct(purchase_price=Decimal("0"))
        material = MockMaterial(product_id=product.id, unit_price=Decimal("80.00"))

        assert effective_purchase_price(material, {product.id: product}, "live") == Decimal("80.00")

    def test_missing_price_is_unknown(self):
        """Test nessun prezzo disponibile restituisce UNKNOWN."""
        material = MockMaterial(unit_price=None)

        assert effective_purchase_price(material) is UNKNOWN


class TestAggregateJobCosts:
    """Tests for the job cost summary."""

    def test_empty_collections_are_zero(self):
        """Test collezioni vuote producono valori a zero."""
        summary = aggregate_job_costs([], [], [], Decimal("0"))

        assert summary.planned_material_cost == Decimal("0.00")
        assert summary.used_material_cost == Decimal("0.00")
        assert summary.total_payments == Decimal("0.00")
        assert summary.total_paid_amount == Decimal("0.00")
        assert summary.total_expenses == Decimal("0.00")
        assert summary.remaining_payment == Decimal("0.00")
        assert summary.net_profit == Decimal("0.00")
        assert summary.unpriced_materials == 0

    def test_none_collections_are_zero(self):
        """Test collezioni None trattate come vuote."""
        summary = aggregate_job_costs(None, None, None, Decimal("500"))

        assert summary.remaining_payment == Decimal("500.00")
        assert summary.net_profit == Decimal("500.00")

    def test_paid_and_remaining(self):
        """Test lavoro da 10000 con 4000 incassati e 2000 previsti."""
        payments = [
            MockJobPayment(amount=Decimal("4000"), is_paid=True),
            MockJobPayment(amount=Decimal("2000"), is_paid=False),
        ]

        summary = aggregate_job_costs([], payments, [], Decimal("10000"))

        assert summary.total_payments == Decimal("6000.00")
        assert summary.total_paid_amount == Decimal("4000.00")
        assert summary.remaining_payment == Decimal("6000.00")

    def test_planned_cost_without_product(self):
        """Test 5 pezzi a 100 senza prodotto collegato = 500."""
        material = MockMaterial(planned_quantity=Decimal("5"), unit_price=Decimal("100"))

        summary = aggregate_job_costs([material], [], [], Decimal("0"))

        assert summary.planned_material_cost == Decimal("500.00")

    def test_net_profit_can_be_negative(self):
        """Test utile netto negativo non viene limitato."""
        material = MockMaterial(
            planned_quantity=Decimal("10"),
            used_quantity=Decimal("12"),
            unit_price=Decimal("100"),
        )
        expenses = [MockJobExpense(amount=Decimal("300"))]

        summary = aggregate_job_costs([material], [], expenses, Decimal("1000"))

        assert summary.used_material_cost == Decimal("1200.00")
        assert summary.net_profit == Decimal("-500.00")

    def test_overpayment_remaining_is_zero(self):
        """Test residuo mai negativo con pagamenti in eccesso."""
        payments = [MockJobPayment(amount=Decimal("1200"), is_paid=True)]

        summary = aggregate_job_costs([], payments, [], Decimal("1000"))

        assert summary.remaining_payment == Decimal("0.00")

    def test_unpriced_material_contributes_zero(self):
        """Test materiale senza prezzo: contributo 0 e conteggio."""
        priced = MockMaterial(planned_quantity=Decimal("2"), unit_price=Decimal("50"))
        unpriced = MockMaterial(planned_quantity=Decimal("3"), unit_price=None)

        summary = aggregate_job_costs([priced, unpriced], [], [], Decimal("0"))

        assert summary.planned_material_cost == Decimal("100.00")
        assert summary.unpriced_materials == 1

    def test_live_pricing_uses_lookup(self):
        """Test politica live con mappa prodotti."""
        product = MockProduct(purchase_price=Decimal("150"))
        material = MockMaterial(
            product_id=product.id,
            planned_quantity=Decimal("2"),
            unit_price=Decimal("100"),
        )

        summary = aggregate_job_costs(
            [material], [], [], Decimal("0"), products={product.id: product}, pricing="live"
        )

        assert summary.planned_material_cost == Decimal("300.00")

    def test_breakdowns(self):
        """Test ripartizione di spese e pagamenti per tipo."""
        expenses = [
            MockJobExpense(expense_type=1, amount=Decimal("40")),
            MockJobExpense(expense_type=1, amount=Decimal("20")),
            MockJobExpense(expense_type=2, amount=Decimal("15.50")),
        ]
        payments = [
            MockJobPayment(payment_type=3, amount=Decimal("1000"), is_paid=True),
        ]

        summary = aggregate_job_costs([], payments, expenses, Decimal("1000"))

        assert summary.expenses_by_type == {
            ExpenseType.FUEL: Decimal("60.00"),
            ExpenseType.MEAL: Decimal("15.50"),
        }
        assert summary.payments_by_type == {PaymentType.BANK_TRANSFER: Decimal("1000.00")}
        assert summary.total_expenses == Decimal("75.50")

    def test_order_independent(self):
        """Test risultato indipendente dall'ordine delle collezioni."""
        materials = [
            MockMaterial(planned_quantity=Decimal("1.5"), unit_price=Decimal("33.33")),
            MockMaterial(planned_quantity=Decimal("3"), unit_price=Decimal("0.07")),
        ]
        payments = [
            MockJobPayment(amount=Decimal("0.10"), is_paid=True),
            MockJobPayment(amount=Decimal("0.20"), is_paid=True),
        ]

        forward = aggregate_job_costs(materials, payments, [], Decimal("100"))
        backward = aggregate_job_costs(materials[::-1], payments[::-1], [], Decimal("100"))

        assert forward == backward


class TestJobStatistics:
    """Tests for period statistics."""

    def test_empty(self):
        """Test nessun lavoro nel periodo."""
        stats = compute_job_statistics([], [], [])

        assert stats.total_jobs == 0
        assert stats.average_job_value == Decimal("0.00")

    def test_counts_and_totals(self):
        """Test conteggi per stato e totali economici."""
        jobs = [
            MockJob(status=3, final_amount=Decimal("1000")),
            MockJob(status=7, final_amount=Decimal("2000")),
            MockJob(status=9, final_amount=Decimal("3000")),
            MockJob(status=10, final_amount=Decimal("0")),
        ]
        payments = [
            MockJobPayment(amount=Decimal("1500"), is_paid=True),
            MockJobPayment(amount=Decimal("700"), is_paid=False),
        ]
        expenses = [MockJobExpense(amount=Decimal("200"))]

        stats = compute_job_statistics(jobs, payments, expenses)

        assert stats.total_jobs == 4
        assert stats.active_jobs == 2
        assert stats.completed_jobs == 1
        assert stats.cancelled_jobs == 1
        assert stats.pending_payment_jobs == 1
        assert stats.total_revenue == Decimal("1500.00")
        assert stats.total_expenses == Decimal("200.00")
        assert stats.net_profit == Decimal("1300.00")
        assert stats.average_job_value == Decimal("1500.00")
