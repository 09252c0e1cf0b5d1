"""Tests for the HTTP API."""

import warnings

import httpx
import pytest
import pytest_asyncio

from cardspend.core.errors import FieldExtractionError, UnrecognizedFormatError
from cardspend.main import _status_for, app
from tests.fixtures.sample_emails import MUFG_BAD_AMOUNT, MUFG_PLAIN, UNRELATED_EMAIL


@pytest_asyncio.fixture
async def client(memory_services):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.mark.asyncio
class TestHealth:
    async def test_health(self, client):
        response = await client.get("/")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    async def test_healthz(self, client):
        response = await client.get("/healthz")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert "X-Request-ID" in response.headers


@pytest.mark.asyncio
class TestCardUsageEndpoints:
    async def test_create(self, client):
        response = await client.post("/card-usages", json={"email_text": MUFG_PLAIN})

        assert response.status_code == 201
        usage = response.json()["card_usage"]
        assert usage["amount"] == 390
        assert usage["where_to_use"] == "マツヤ"
        assert usage["card_company"] == "MUFG"
        assert usage["datetime_of_use"].startswith("2025-01-21T12:08:00")
        assert usage["id"] is not None

    async def test_create_unrecognized(self, client):
        response = await client.post("/card-usages", json={"email_text": UNRELATED_EMAIL})

        assert response.status_code == 422
        assert response.json()["error"] == "UnrecognizedFormatError"
        assert response.json()["retryable"] is False

    async def test_create_bad_field(self, client):
        response = await client.post("/card-usages", json={"email_text": MUFG_BAD_AMOUNT})

        assert response.status_code == 422
        assert response.json()["error"] == "FieldExtractionError"
        assert response.json()["field"] == "amount"

    async def test_get_and_delete(self, client):
        created = (await client.post("/card-usages", json={"email_text": MUFG_PLAIN})).json()
        usage_id = created["card_usage"]["id"]

        response = await client.get(f"/card-usages/{usage_id}")
        assert response.status_code == 200
        assert response.json()["card_usage"]["amount"] == 390

        response = await client.delete(f"/card-usages/{usage_id}")
        assert response.json() == {"deleted": True}

        response = await client.get(f"/card-usages/{usage_id}")
        assert response.status_code == 404
        assert response.json()["error"] == "NotFoundError"

    async def test_list(self, client):
        await client.post("/card-usages", json={"email_text": MUFG_PLAIN})

        response = await client.get(
            "/card-usages",
            params={"start": "2025-01-19T00:00:00+09:00", "end": "2025-01-26T00:00:00+09:00"},
        )
        assert response.status_code == 200
        assert len(response.json()["card_usages"]) == 1

        response = await client.get(
            "/card-usages",
            params={"start": "2025-01-26T00:00:00+09:00", "end": "2025-02-02T00:00:00+09:00"},
        )
        assert response.json()["card_usages"] == []


@pytest.mark.asyncio
class TestReportEndpoints:
    async def test_generate_and_get(self, client, notifier):
        await client.post("/card-usages", json={"email_text": MUFG_PLAIN})

        response = await client.post(
            "/reports/generate",
            json={"report_type": "WEEKLY", "period_start": "2025-01-19T00:00:00"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["report"]["total_amount"] == 390
        assert body["report"]["usage_count"] == 1
        assert body["report"]["crossed_level"] is None
        assert body["alert"] is None

        response = await client.get("/reports/WEEKLY/2025-01-19T00:00:00")
        assert response.status_code == 200
        assert response.json()["total_amount"] == 390

    async def test_generate_alert(self, client, memory_services, notifier):
        for _ in range(3):
            await client.post(
                "/card-usages", json={"email_text": MUFG_PLAIN.replace("３９０円", "５００円")}
            )

        response = await client.post(
            "/reports/generate",
            json={"report_type": "WEEKLY", "period_start": "2025-01-19T00:00:00+09:00"},
        )
        alert = response.json()["alert"]
        assert alert["crossed_level"] == 1
        assert alert["total_amount"] == 1500
        assert len(notifier.alerts) == 1

    async def test_generate_current_period(self, client):
        response = await client.post("/reports/generate", json={"report_type": "MONTHLY"})
        assert response.status_code == 200
        assert response.json()["report"]["total_amount"] == 0

    async def test_generate_invalid_period(self, client):
        response = await client.post(
            "/reports/generate",
            json={"report_type": "WEEKLY", "period_start": "2025-01-20T00:00:00"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "InvalidPeriodError"

    async def test_get_missing_report(self, client):
        response = await client.get("/reports/MONTHLY/2025-01-01T00:00:00")
        assert response.status_code == 404

    async def test_threshold_config_unavailable(self, client, memory_services):
        memory_services.threshold_provider.tables.clear()

        response = await client.post(
            "/reports/generate",
            json={"report_type": "WEEKLY", "period_start": "2025-01-19T00:00:00"},
        )
        assert response.status_code == 503
        assert response.json()["retryable"] is True


def test_extraction_errors_map_to_422_without_warnings():
    with warnings.catch_warnings():
        warnings.simplefilter("error", DeprecationWarning)
        assert _status_for(UnrecognizedFormatError("no format")) == 422
        assert _status_for(FieldExtractionError("amount", "bad amount")) == 422
