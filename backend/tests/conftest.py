"""
Pytest configuration and fixtures for the job and receivables tests.

Entities are plain mock objects built from kwargs, so the pure
calculations and the services can be tested without a database.
"""

import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.events import invalidation_bus


# ============================================================
# Fixtures per AsyncSession Mock
# ============================================================


@pytest.fixture
def mock_db():
    """Crea un mock di AsyncSession."""
    db = AsyncMock(spec=AsyncSession)
    db.execute = AsyncMock()
    db.add = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.flush = AsyncMock()
    db.refresh = AsyncMock()
    db.delete = AsyncMock()
    # begin_nested() usato come async context manager (savepoint)
    db.begin_nested = MagicMock()
    return db


def scalar_result(value):
    """Risultato di db.execute() per scalar_one_or_none()."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    return result


def scalars_result(values):
    """Risultato di db.execute() per scalars().all()."""
    result = MagicMock()
    result.scalars.return_value.all.return_value = list(values)
    result.scalars.return_value.unique.return_value.all.return_value = list(values)
    return result


@pytest.fixture(autouse=True)
def clean_invalidation_bus():
    """Svuota il bus di invalidazione tra un test e l'altro."""
    invalidation_bus.clear()
    yield
    invalidation_bus.clear()


# ============================================================
# Mock delle entità
# ============================================================


NOW = datetime(2026, 6, 30, 12, 0, tzinfo=timezone.utc)


class MockCustomer:
    """Mock di Customer."""
    def __init__(self, **kwargs):
        self.id = kwargs.get('id', uuid.uuid4())
        self.name = kwargs.get('name', 'Mario Rossi')
        self.company_name = kwargs.get('company_name', None)
        self.is_active = kwargs.get('is_active', True)


class MockProduct:
    """Mock di Product."""
    def __init__(self, **kwargs):
        self.id = kwargs.get('id', uuid.uuid4())
        self.code = kwargs.get('code', 'CAM-4MP')
        self.name = kwargs.get('name', 'Telecamera bullet 4MP')
        self.purchase_price = kwargs.get('purchase_price', Decimal("100.00"))
        self.stock_quantity = kwargs.get('stock_quantity', Decimal("10"))
        self.minimum_stock_level = kwargs.get('minimum_stock_level', Decimal("2"))
        self.unit = kwargs.get('unit', 'pz')

    @property
    def is_below_minimum(self):
        return self.stock_quantity < self.minimum_stock_level


class MockJob:
    """Mock di Job."""
    def __init__(self, **kwargs):
        self.id = kwargs.get('id', uuid.uuid4())
        self.customer_id = kwargs.get('customer_id', uuid.uuid4())
        self.job_number = kwargs.get('job_number', 'JOB-2026-0001')
        self.title = kwargs.get('title', 'Impianto 8 telecamere')
        self.address = kwargs.get('address', 'Via Roma 1, Milano')
        self.status = kwargs.get('status', 1)
        self.total_amount = kwargs.get('total_amount', Decimal("10000.00"))
        self.discount_amount = kwargs.get('discount_amount', Decimal("0"))
        self.final_amount = kwargs.get('final_amount', Decimal("10000.00"))
        self.scheduled_date = kwargs.get('scheduled_date', NOW.date())
        self.start_date = kwargs.get('start_date', None)
        self.completion_date = kwargs.get('completion_date', None)
        self.created_at = kwargs.get('created_at', NOW)
        self.is_active = kwargs.get('is_active', True)
        self.materials = kwargs.get('materials', [])
        self.payments = kwargs.get('payments', [])
        self.expenses = kwargs.get('expenses', [])


class MockMaterial:
    """Mock di JobMaterial."""
    def __init__(self, **kwargs):
        self.id = kwargs.get('id', uuid.uuid4())
        self.job_id = kwargs.get('job_id', uuid.uuid4())
        self.product_id = kwargs.get('product_id', uuid.uuid4())
        self.planned_quantity = kwargs.get('planned_quantity', Decimal("1"))
        self.used_quantity = kwargs.get('used_quantity', Decimal("0"))
        self.unit_price = kwargs.get('unit_price', Decimal("100.00"))
        self.total_price = kwargs.get('total_price', Decimal("100.00"))
        self.is_extra = kwargs.get('is_extra', False)


class MockJobPayment:
    """Mock di JobPayment."""
    def __init__(self, **kwargs):
        self.id = kwargs.get('id', uuid.uuid4())
        self.job_id = kwargs.get('job_id', uuid.uuid4())
        self.amount = kwargs.get('amount', Decimal("100.00"))
        self.payment_type = kwargs.get('payment_type', 1)
        self.payment_date = kwargs.get('payment_date', NOW.date())
        self.is_paid = kwargs.get('is_paid', False)
        self.paid_date = kwargs.get('paid_date', None)


class MockJobExpense:
    """Mock di JobExpense."""
    def __init__(self, **kwargs):
        self.id = kwargs.get('id', uuid.uuid4())
        self.job_id = kwargs.get('job_id', uuid.uuid4())
        self.expense_type = kwargs.get('expense_type', 1)
        self.amount = kwargs.get('amount', Decimal("50.00"))


def days_ago(days: int) -> datetime:
    """Istante `days` giorni prima di NOW."""
    return NOW - timedelta(days=days)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def mock_customer():
    """Crea un mock di Customer attivo."""
    return MockCustomer()


@pytest.fixture
def mock_product():
    """Crea un mock di Product con 10 pezzi a magazzino."""
    return MockProduct()


@pytest.fixture
def mock_job(mock_customer):
    """Crea un mock di Job in stato Preventivo inviato."""
    return MockJob(customer_id=mock_customer.id)
