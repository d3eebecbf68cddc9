"""
Unit tests for the receivables and aging engine.
"""

import uuid
from datetime import timedelta
from decimal import Decimal

import pytest
from conftest import NOW, MockCustomer, MockJob, MockJobPayment, days_ago, scalar_result, scalars_result

from app.core.exceptions import NotFoundError
from app.services.receivable_service import (
    ReceivableService,
    aging_bucket,
    build_receivable_summaries,
    build_receivable_summary,
    job_age_days,
)


def bucket_total(summary):
    return summary.aging.total


class TestAgingBucket:
    """Tests for bucket boundaries."""

    @pytest.mark.parametrize(
        "age, expected",
        [
            (0, "current"),
            (29, "current"),
            (30, "days_30_to_60"),
            (59, "days_30_to_60"),
            (60, "days_60_to_90"),
            (89, "days_60_to_90"),
            (90, "over_90_days"),
            (400, "over_90_days"),
            (-5, "current"),
        ],
    )
    def test_boundaries(self, age, expected):
        """Test intervalli semiaperti delle fasce."""
        assert aging_bucket(age) == expected

    def test_custom_thresholds(self):
        """Test soglie configurate."""
        assert aging_bucket(20, (15, 45, 75)) == "days_30_to_60"


class TestJobAge:
    """Tests for job age computation."""

    def test_age_from_created_at(self):
        """Test età dalla data di creazione."""
        job = MockJob(created_at=days_ago(45))
        assert job_age_days(job, NOW) == 45

    def test_age_from_scheduled_date(self):
        """Test età dalla data pianificata."""
        job = MockJob(scheduled_date=NOW.date() - timedelta(days=70))
        assert job_age_days(job, NOW, "scheduled_date") == 70

    def test_future_reference_is_zero(self):
        """Test data futura considerata età 0."""
        job = MockJob(scheduled_date=NOW.date() + timedelta(days=10))
        assert job_age_days(job, NOW, "scheduled_date") == 0

    def test_missing_reference_is_zero(self):
        """Test data di riferimento mancante considerata età 0."""
        job = MockJob(created_at=None)
        assert job_age_days(job, NOW) == 0


class TestReceivableSummary:
    """Tests for a single customer summary."""

    def test_paid_and_overdue_jobs(self):
        """Test lavoro A saldato (10 giorni) e lavoro B non pagato (95 giorni)."""
        customer = MockCustomer()
        job_a = MockJob(customer_id=customer.id, final_amount=Decimal("5000"), created_at=days_ago(10))
        job_b = MockJob(customer_id=customer.id, final_amount=Decimal("3000"), created_at=days_ago(95))
        payments = [MockJobPayment(job_id=job_a.id, amount=Decimal("5000"), is_paid=True)]

        summary = build_receivable_summary(customer, [job_a, job_b], payments, now=NOW)

        assert summary.total_billed == Decimal("8000.00")
        assert summary.total_paid == Decimal("5000.00")
        assert summary.outstanding_balance == Decimal("3000.00")
        assert summary.aging.over_90_days == Decimal("3000.00")
        assert summary.aging.current == Decimal("0.00")
        assert summary.aging.days_30_to_60 == Decimal("0.00")
        assert summary.aging.days_60_to_90 == Decimal("0.00")

    def test_unpaid_payments_are_ignored(self):
        """Test i pagamenti previsti non incassati non riducono il saldo."""
        customer = MockCustomer()
        job = MockJob(customer_id=customer.id, final_amount=Decimal("1000"), created_at=days_ago(5))
        payments = [MockJobPayment(job_id=job.id, amount=Decimal("400"), is_paid=False)]

        summary = build_receivable_summary(customer, [job], payments, now=NOW)

        assert summary.total_paid == Decimal("0.00")
        assert summary.aging.current == Decimal("1000.00")

    def test_whole_balance_in_one_bucket(self):
        """Test il residuo di un lavoro finisce per intero in una sola fascia."""
        customer = MockCustomer()
        job = MockJob(customer_id=customer.id, final_amount=Decimal("1000"), created_at=days_ago(61))
        payments = [MockJobPayment(job_id=job.id, amount=Decimal("250"), is_paid=True)]

        summary = build_receivable_summary(customer, [job], payments, now=NOW)

        assert summary.aging.days_60_to_90 == Decimal("750.00")
        assert bucket_total(summary) == summary.outstanding_balance

    def test_inactive_and_cancelled_jobs_are_billed(self):
        """Test fatturato su tutti i lavori, anche eliminati o annullati."""
        customer = MockCustomer()
        jobs = [
            MockJob(customer_id=customer.id, status=9, final_amount=Decimal("100")),
            MockJob(customer_id=customer.id, status=10, final_amount=Decimal("200")),
            MockJob(customer_id=customer.id, status=2, final_amount=Decimal("300"), is_active=False),
        ]

        summary = build_receivable_summary(customer, jobs, [], now=NOW)

        assert summary.total_billed == Decimal("600.00")
        assert summary.total_jobs == 3
        assert summary.active_jobs == 1

    def test_overpayment_keeps_buckets_consistent(self):
        """Test pagamento in eccesso scalato dalle fasce più vecchie."""
        customer = MockCustomer()
        overpaid = MockJob(customer_id=customer.id, final_amount=Decimal("1000"), created_at=days_ago(5))
        old = MockJob(customer_id=customer.id, final_amount=Decimal("500"), created_at=days_ago(100))
        recent = MockJob(customer_id=customer.id, final_amount=Decimal("400"), created_at=days_ago(40))
        payments = [MockJobPayment(job_id=overpaid.id, amount=Decimal("1600"), is_paid=True)]

        summary = build_receivable_summary(customer, [overpaid, old, recent], payments, now=NOW)

        assert summary.outstanding_balance == Decimal("300.00")
        assert summary.aging.over_90_days == Decimal("0.00")
        assert summary.aging.days_30_to_60 == Decimal("300.00")
        assert bucket_total(summary) == summary.outstanding_balance

    def test_total_overpayment_floors_at_zero(self):
        """Test saldo mai negativo e fasce a zero."""
        customer = MockCustomer()
        job = MockJob(customer_id=customer.id, final_amount=Decimal("100"))
        payments = [MockJobPayment(job_id=job.id, amount=Decimal("150"), is_paid=True)]

        summary = build_receivable_summary(customer, [job], payments, now=NOW)

        assert summary.outstanding_balance == Decimal("0.00")
        assert bucket_total(summary) == Decimal("0.00")

    def test_payments_of_other_jobs_ignored(self):
        """Test i pagamenti di lavori di altri clienti sono ignorati."""
        customer = MockCustomer()
        job = MockJob(customer_id=customer.id, final_amount=Decimal("100"))
        foreign = MockJobPayment(job_id=uuid.uuid4(), amount=Decimal("100"), is_paid=True)

        summary = build_receivable_summary(customer, [job], [foreign], now=NOW)

        assert summary.total_paid == Decimal("0.00")

    def test_idempotent(self):
        """Test stesso snapshot, stesso risultato."""
        customer = MockCustomer()
        jobs = [
            MockJob(customer_id=customer.id, final_amount=Decimal("1234.56"), created_at=days_ago(d))
            for d in (3, 33, 66, 99)
        ]
        payments = [MockJobPayment(job_id=jobs[1].id, amount=Decimal("34.56"), is_paid=True)]

        first = build_receivable_summary(customer, jobs, payments, now=NOW)
        second = build_receivable_summary(customer, jobs, payments, now=NOW)

        assert first == second
        assert bucket_total(first) == first.outstanding_balance

    def test_has_overdue_only_beyond_current(self):
        """Test credito scaduto solo se esiste saldo oltre la fascia corrente."""
        customer = MockCustomer()
        recent = MockJob(customer_id=customer.id, final_amount=Decimal("100"), created_at=days_ago(5))
        old = MockJob(customer_id=customer.id, final_amount=Decimal("100"), created_at=days_ago(45))

        assert build_receivable_summary(customer, [recent], [], now=NOW).has_overdue is False
        summary = build_receivable_summary(customer, [recent, old], [], now=NOW)
        assert summary.has_overdue is True
        assert summary.aging.total == Decimal("200.00")

    def test_camel_case_wire_names(self):
        """Test nomi JSON attesi dal frontend."""
        customer = MockCustomer()
        summary = build_receivable_summary(customer, [], [], now=NOW)

        data = summary.model_dump(by_alias=True)

        assert "outstandingBalance" in data
        assert set(data["aging"]) == {"current", "days30To60", "days60To90", "over90Days"}


class TestReceivableSummaries:
    """Tests for the all-customers rollup."""

    def test_one_summary_per_customer(self):
        """Test un riepilogo per cliente, anche senza lavori."""
        alice = MockCustomer(name="Alice")
        bob = MockCustomer(name="Bob")
        job = MockJob(customer_id=alice.id, final_amount=Decimal("700"))
        payment = MockJobPayment(job_id=job.id, amount=Decimal("200"), is_paid=True)

        summaries = build_receivable_summaries([alice, bob], [job], [payment], now=NOW)

        by_name = {s.customer_name: s for s in summaries}
        assert by_name["Alice"].outstanding_balance == Decimal("500.00")
        assert by_name["Bob"].total_jobs == 0

    def test_active_only(self):
        """Test filtro clienti attivi."""
        active = MockCustomer(name="Attivo")
        inactive = MockCustomer(name="Disattivato", is_active=False)

        summaries = build_receivable_summaries([active, inactive], [], [], now=NOW, active_only=True)

        assert [s.customer_name for s in summaries] == ["Attivo"]


class TestReceivableService:
    """Tests for the async loader."""

    async def test_get_summary_not_found(self, mock_db):
        """Test cliente inesistente."""
        mock_db.execute.return_value = scalar_result(None)

        with pytest.raises(NotFoundError):
            await ReceivableService().get_summary(mock_db, uuid.uuid4())

    async def test_get_summary(self, mock_db, mock_customer):
        """Test riepilogo caricato dal database."""
        job = MockJob(customer_id=mock_customer.id, final_amount=Decimal("900"), created_at=days_ago(31))
        payment = MockJobPayment(job_id=job.id, amount=Decimal("100"), is_paid=True)
        mock_db.execute.side_effect = [
            scalar_result(mock_customer),
            scalars_result([job]),
            scalars_result([payment]),
        ]

        service = ReceivableService(reference_field="created_at", thresholds=(30, 60, 90))
        summary = await service.get_summary(mock_db, mock_customer.id, now=NOW)

        assert summary.outstanding_balance == Decimal("800.00")
        assert summary.aging.days_30_to_60 == Decimal("800.00")
