"""
API tests: routing, error payloads and camelCase responses.

Services are patched, the database session is a mock injected via
dependency override, so no database is needed.
"""

import uuid
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from conftest import NOW, MockCustomer, MockJob, MockJobPayment, days_ago, scalar_result
from fastapi.testclient import TestClient

from app.core.database import get_db
from app.core.exceptions import InvalidTransitionError, NotFoundError
from app.main import app
from app.services.receivable_service import build_receivable_summary


@pytest.fixture
def client(mock_db):
    async def override_get_db():
        yield mock_db

    app.dependency_overrides[get_db] = override_get_db
    # Senza context manager il lifespan (connessione DB) non viene eseguito
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


class TestSystem:
    """Tests for system endpoints."""

    def test_health(self, client):
        """Test health check."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestErrorPayloads:
    """Tests for the error JSON format."""

    def test_invalid_transition_is_409(self, client):
        """Test transizione non consentita: 409 con stati nel payload."""
        job_id = uuid.uuid4()
        with patch(
            "app.api.v1.jobs.job_service.change_status",
            new=AsyncMock(side_effect=InvalidTransitionError(10, 7)),
        ):
            response = client.patch(f"/api/v1/jobs/{job_id}/status", json={"status": 7})

        assert response.status_code == 409
        body = response.json()
        assert body["statusCode"] == 409
        assert body["errorCode"] == "INVALID_STATUS_TRANSITION"
        assert body["current_status"] == 10
        assert body["target_status"] == 7
        assert "message" in body

    def test_unknown_status_code_is_422(self, client):
        """Test codice stato fuori intervallo: errori per campo."""
        response = client.patch(f"/api/v1/jobs/{uuid.uuid4()}/status", json={"status": 11})

        assert response.status_code == 422
        body = response.json()
        assert body["errorCode"] == "REQUEST_VALIDATION_ERROR"
        assert "status" in body["errors"]

    def test_null_required_field_is_422(self, client, mock_db):
        """Test null su un campo obbligatorio in modifica: 422 e non 500."""
        job = MockJob()
        mock_db.execute.return_value = scalar_result(job)

        response = client.put(f"/api/v1/jobs/{job.id}", json={"totalAmount": None})

        assert response.status_code == 422
        body = response.json()
        assert body["errorCode"] == "BUSINESS_VALIDATION_ERROR"
        assert "total_amount" in body["errors"]
        mock_db.commit.assert_not_awaited()

    def test_not_found_is_404(self, client):
        """Test lavoro inesistente."""
        with patch(
            "app.api.v1.jobs.job_service.get_by_id",
            new=AsyncMock(side_effect=NotFoundError("Lavoro non trovato")),
        ):
            response = client.get(f"/api/v1/jobs/{uuid.uuid4()}")

        assert response.status_code == 404
        assert response.json()["message"] == "Lavoro non trovato"

    def test_unexpected_error_is_500(self, client):
        """Test eccezione non gestita: messaggio generico."""
        with patch(
            "app.api.v1.jobs.job_service.get_by_id",
            new=AsyncMock(side_effect=RuntimeError("segreto")),
        ):
            response = client.get(f"/api/v1/jobs/{uuid.uuid4()}")

        assert response.status_code == 500
        body = response.json()
        assert body["errorCode"] == "INTERNAL_SERVER_ERROR"
        assert "segreto" not in body["message"]


class TestReceivableEndpoint:
    """Tests for the customer receivable summary endpoint."""

    def test_summary_camel_case(self, client):
        """Test riepilogo crediti in camelCase."""
        customer = MockCustomer()
        job = MockJob(customer_id=customer.id, final_amount=Decimal("1000"), created_at=days_ago(70))
        payment = MockJobPayment(job_id=job.id, amount=Decimal("400"), is_paid=True)
        summary = build_receivable_summary(customer, [job], [payment], now=NOW)

        with patch(
            "app.api.v1.customers.receivable_service.get_summary",
            new=AsyncMock(return_value=summary),
        ):
            response = client.get(f"/api/v1/customer/{customer.id}/receivable-summary")

        assert response.status_code == 200
        body = response.json()
        assert Decimal(body["outstandingBalance"]) == Decimal("600.00")
        assert Decimal(body["aging"]["days60To90"]) == Decimal("600.00")
        assert body["hasOverdue"] is True
